"""
API Module

Endpoints HTTP del dashboard de finanzas.

Endpoints:
- Health: /health, /health/live, /health/ready
- Metrics: /metrics, /metrics/prometheus
- Finances: /api/shopify/finances, /api/shopify/validate, /api/shopify/shop

Documentación:
- Swagger UI: /docs
- ReDoc: /redoc
- OpenAPI JSON: /openapi.json
"""

# Health
from src.api.health import health_router, get_health_checker, HealthChecker

# Metrics
from src.api.metrics import metrics_router

# Finances
from src.api.finances import finances_router, get_finance_service, get_shopify_service

# App
from src.api.app import app, create_app, run_api

# Schemas (documentados)
from src.api.schemas import (
    BaseSchema,
    ErrorResponse,
    FinancialReportResponse,
    MonthlyRevenueSchema,
    RecentOrderSchema,
    HistoricalDataSchema,
    ValidateConnectionRequest,
    ValidateConnectionResponse,
    ShopResponse,
    HealthResponse,
)

__all__ = [
    # Health
    "health_router",
    "get_health_checker",
    "HealthChecker",
    # Metrics
    "metrics_router",
    # Finances
    "finances_router",
    "get_finance_service",
    "get_shopify_service",
    # App
    "app",
    "create_app",
    "run_api",
    # Schemas
    "BaseSchema",
    "ErrorResponse",
    "FinancialReportResponse",
    "MonthlyRevenueSchema",
    "RecentOrderSchema",
    "HistoricalDataSchema",
    "ValidateConnectionRequest",
    "ValidateConnectionResponse",
    "ShopResponse",
    "HealthResponse",
]
