"""
Constantes del sistema

Define valores que no cambian durante la ejecución.
"""

from decimal import Decimal
from enum import Enum


class FulfillmentStatus(str, Enum):
    """Estados de envío que reporta Shopify (no es un conjunto cerrado)"""
    FULFILLED = "fulfilled"
    SHIPPED = "shipped"
    PARTIAL = "partial"
    RESTOCKED = "restocked"
    UNFULFILLED = "unfulfilled"


class FinancialStatus(str, Enum):
    """Estados financieros comunes de una orden"""
    PENDING = "pending"
    AUTHORIZED = "authorized"
    PARTIALLY_PAID = "partially_paid"
    PAID = "paid"
    PARTIALLY_REFUNDED = "partially_refunded"
    REFUNDED = "refunded"
    VOIDED = "voided"


# Una orden deja de estar abierta solo con estos estados (en minúsculas)
CLOSED_FULFILLMENT_STATUSES = frozenset({
    FulfillmentStatus.FULFILLED.value,
    FulfillmentStatus.SHIPPED.value,
})

# Unidad mínima de moneda para promedios
MONEY_QUANTUM = Decimal("0.01")

# Shopify Admin REST
SHOPIFY_MAX_PAGE_SIZE = 250
SHOPIFY_DEFAULT_API_VERSION = "2024-01"
SHOPIFY_ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"

# Reporte
DEFAULT_RECENT_ORDERS_LIMIT = 10
DEFAULT_REPORT_TIMEZONE = "UTC"
