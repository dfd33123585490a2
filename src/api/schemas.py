"""
API Schemas

Schemas Pydantic documentados para la API REST.
Proporciona validación y documentación automática para OpenAPI/Swagger.

El dashboard consume JSON en camelCase; los schemas usan nombres
snake_case en Python y alias camelCase en la respuesta. Los montos
viajan como texto decimal ("129.90") para no perder exactitud.

Uso:
    from src.api.schemas import FinancialReportResponse
"""

from typing import Optional, List, Dict, Any, Union
from datetime import datetime, timezone

from pydantic import BaseModel, Field, ConfigDict
from pydantic.alias_generators import to_camel

from src.metrics.finance import MetricsReport, format_money


# ============================================================================
# BASE SCHEMAS
# ============================================================================

class BaseSchema(BaseModel):
    """Schema base con configuración común."""
    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={"example": {}}
    )


class CamelSchema(BaseSchema):
    """Schema con alias camelCase para el dashboard."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ============================================================================
# ERROR SCHEMAS
# ============================================================================

class ErrorResponse(BaseSchema):
    """Respuesta de error estándar."""
    error: str = Field(..., description="Tipo de error")
    message: str = Field(..., description="Mensaje descriptivo del error")
    category: str = Field(..., description="Categoría del error")
    correlation_id: Optional[str] = Field(
        None,
        description="ID para rastrear el request en los logs"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Momento del error"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "DataFormatError",
                "message": "La tienda devolvió datos con un formato inesperado.",
                "category": "DATA_FORMAT",
                "correlation_id": "3f1c0a8e-1b2d-4c5e-9f60-7a8b9c0d1e2f",
                "timestamp": "2024-01-15T10:30:00Z"
            }
        }
    )


# ============================================================================
# FINANCE SCHEMAS
# ============================================================================

class MonthlyRevenueSchema(CamelSchema):
    """Ingresos de un mes calendario."""
    month: str = Field(..., description="Mes en formato YYYY-MM")
    revenue: str = Field(..., description="Ingresos del mes (decimal)")


class RecentOrderSchema(CamelSchema):
    """Orden reciente para la tabla del dashboard."""
    id: Union[int, str] = Field(..., description="ID de la orden en Shopify")
    order_number: Optional[int] = Field(None, description="Número visible de la orden")
    total_price: str = Field(..., description="Total de la orden (decimal)")
    created_at: str = Field(..., description="Fecha de creación ISO-8601")
    financial_status: Optional[str] = Field(None, description="Estado de pago")
    fulfillment_status: Optional[str] = Field(
        None,
        description="Estado de envío (null = sin enviar)"
    )


class HistoricalDataSchema(CamelSchema):
    """Serie diaria para Analytics (listas paralelas)."""
    dates: List[str] = Field(default_factory=list, description="Días YYYY-MM-DD")
    revenue: List[str] = Field(default_factory=list, description="Ingresos por día")
    orders: List[int] = Field(default_factory=list, description="Órdenes por día")
    customers: List[int] = Field(default_factory=list, description="Clientes nuevos por día")


class FinancialReportResponse(CamelSchema):
    """Reporte financiero del dashboard."""
    total_revenue: str = Field(..., description="Suma de todas las órdenes")
    total_orders: int = Field(..., description="Cantidad de órdenes")
    average_order_value: str = Field(..., description="Ticket promedio (2 decimales)")
    monthly_revenue: List[MonthlyRevenueSchema] = Field(default_factory=list)
    recent_orders: List[RecentOrderSchema] = Field(default_factory=list)
    sales_month_to_date: str = Field(..., description="Ventas del mes en curso")
    new_customers_this_week: int = Field(..., description="Clientes desde el domingo")
    open_orders_count: int = Field(..., description="Órdenes sin enviar")
    website_visits_this_week: Optional[int] = Field(
        None,
        description="No disponible vía Admin API; siempre null"
    )
    historical_data: HistoricalDataSchema = Field(default_factory=HistoricalDataSchema)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "totalRevenue": "350.00",
                "totalOrders": 3,
                "averageOrderValue": "116.67",
                "monthlyRevenue": [
                    {"month": "2024-01", "revenue": "150.00"},
                    {"month": "2024-02", "revenue": "200.00"}
                ],
                "recentOrders": [],
                "salesMonthToDate": "200.00",
                "newCustomersThisWeek": 1,
                "openOrdersCount": 2,
                "websiteVisitsThisWeek": None,
                "historicalData": {
                    "dates": [], "revenue": [], "orders": [], "customers": []
                }
            }
        }
    )

    @classmethod
    def from_report(cls, report: MetricsReport) -> "FinancialReportResponse":
        """Proyecta el reporte del motor al contrato HTTP."""
        return cls(
            total_revenue=format_money(report.total_revenue),
            total_orders=report.total_orders,
            average_order_value=format_money(report.average_order_value),
            monthly_revenue=[
                MonthlyRevenueSchema(month=m.month, revenue=format_money(m.revenue))
                for m in report.monthly_revenue
            ],
            recent_orders=[
                RecentOrderSchema(
                    id=o.id,
                    order_number=o.order_number,
                    total_price=format_money(o.total_price),
                    created_at=o.created_at.isoformat(),
                    financial_status=o.financial_status,
                    fulfillment_status=o.fulfillment_status,
                )
                for o in report.recent_orders
            ],
            sales_month_to_date=format_money(report.sales_month_to_date),
            new_customers_this_week=report.new_customers_this_week,
            open_orders_count=report.open_orders_count,
            website_visits_this_week=None,
            historical_data=HistoricalDataSchema(**report.historical.to_dict()),
        )


# ============================================================================
# SHOP SCHEMAS
# ============================================================================

class ValidateConnectionRequest(CamelSchema):
    """Token a validar contra la tienda configurada."""
    access_token: Optional[str] = Field(None, description="Token de Admin API")


class ValidateConnectionResponse(CamelSchema):
    """Resultado de la validación."""
    success: bool = Field(..., description="True si el token es válido")


class ShopResponse(BaseSchema):
    """Objeto `shop` tal como lo entrega Shopify."""
    shop: Dict[str, Any] = Field(..., description="Datos de la tienda")


# ============================================================================
# HEALTH SCHEMAS
# ============================================================================

class ComponentHealthSchema(BaseSchema):
    """Estado de un componente."""
    name: str
    status: str = Field(..., description="up, down, degraded o unknown")
    latency_ms: Optional[float] = None
    message: Optional[str] = None


class HealthResponse(BaseSchema):
    """Respuesta de health check."""
    status: str = Field(..., description="healthy, degraded o unhealthy")
    timestamp: str
    version: str
    environment: str
    components: Dict[str, ComponentHealthSchema] = Field(default_factory=dict)
    uptime_seconds: Optional[float] = None
