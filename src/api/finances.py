"""
Finance Endpoints

Endpoints de la vista de Finanzas del dashboard:
- GET  /api/shopify/finances  -> reporte financiero
- POST /api/shopify/validate  -> valida un token de Admin API
- GET  /api/shopify/shop      -> datos de la tienda

El token llega en el header X-Shopify-Token; si falta se usa el
configurado en SHOPIFY_ACCESS_TOKEN.
"""

from datetime import date, datetime, time, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query

from src.api.schemas import (
    ErrorResponse,
    FinancialReportResponse,
    ShopResponse,
    ValidateConnectionRequest,
    ValidateConnectionResponse,
)
from src.metrics.finance import DateRange
from src.services.finance_service import FinanceReportService
from src.services.shopify_service import ShopifyConfig, ShopifyService
from src.utils.logger import bind_context, get_logger

logger = get_logger(__name__)

TOKEN_HEADER = "X-Shopify-Token"


# ============================================================================
# DEPENDENCIES
# ============================================================================

_finance_service: Optional[FinanceReportService] = None


def get_finance_service() -> FinanceReportService:
    """Instancia compartida del servicio de reportes."""
    global _finance_service
    if _finance_service is None:
        _finance_service = FinanceReportService()
    return _finance_service


def get_shopify_service(
    service: FinanceReportService = Depends(get_finance_service),
) -> ShopifyService:
    """Servicio de Shopify (el mismo que usa el reporte)."""
    return service.shopify


def parse_date_param(value: Optional[str], name: str, end_of_day: bool = False) -> Optional[datetime]:
    """
    Interpreta start_date/end_date.

    Acepta fecha (YYYY-MM-DD) o fecha-hora ISO-8601. Una fecha sola en
    end_date cubre el día completo. Sin zona se asume UTC.
    """
    if value is None or not value.strip():
        return None
    text = value.strip()
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            return datetime.combine(day, time.max if end_of_day else time.min, tzinfo=timezone.utc)
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"{name} inválido: {value!r}")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def get_date_range(
    start_date: Optional[str] = Query(None, description="Inicio del rango (ISO-8601)"),
    end_date: Optional[str] = Query(None, description="Fin del rango, inclusivo (ISO-8601)"),
) -> Optional[DateRange]:
    """Rango de fechas del request; None si no se pidió."""
    start = parse_date_param(start_date, "start_date")
    end = parse_date_param(end_date, "end_date", end_of_day=True)
    if start is None and end is None:
        return None
    try:
        return DateRange(start=start, end=end)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


# ============================================================================
# ROUTER
# ============================================================================

finances_router = APIRouter(
    prefix="/api/shopify",
    tags=["finances"],
    responses={
        401: {"model": ErrorResponse, "description": "Token ausente o inválido"},
        502: {"model": ErrorResponse, "description": "Shopify falló o devolvió datos inválidos"},
    },
)


@finances_router.get(
    "/finances",
    response_model=FinancialReportResponse,
    summary="Reporte financiero",
    description="Totales, ingresos por mes, órdenes recientes y actividad de la semana",
)
async def get_finances(
    token: Optional[str] = Header(None, alias=TOKEN_HEADER),
    date_range: Optional[DateRange] = Depends(get_date_range),
    service: FinanceReportService = Depends(get_finance_service),
) -> FinancialReportResponse:
    """
    Reporte financiero de la tienda.

    Lee hasta 250 órdenes (cualquier estado) y 250 clientes, y calcula
    el reporte con la hora actual en UTC.
    """
    config = ShopifyConfig.from_settings(access_token=token)
    bind_context(shop=config.shop_name)

    report = await service.get_report(config, date_range=date_range)
    return FinancialReportResponse.from_report(report)


@finances_router.post(
    "/validate",
    response_model=ValidateConnectionResponse,
    summary="Validar conexión",
    description="Verifica que un token de Admin API pueda leer la tienda",
    responses={400: {"model": ErrorResponse, "description": "Token no provisto"}},
)
async def validate_connection(
    body: ValidateConnectionRequest,
    shopify: ShopifyService = Depends(get_shopify_service),
) -> ValidateConnectionResponse:
    if not body.access_token or not body.access_token.strip():
        raise HTTPException(status_code=400, detail="accessToken es requerido")

    config = ShopifyConfig.from_settings(access_token=body.access_token)
    await shopify.validate_connection(config)
    return ValidateConnectionResponse(success=True)


@finances_router.get(
    "/shop",
    response_model=ShopResponse,
    summary="Datos de la tienda",
)
async def get_shop(
    token: Optional[str] = Header(None, alias=TOKEN_HEADER),
    shopify: ShopifyService = Depends(get_shopify_service),
) -> ShopResponse:
    config = ShopifyConfig.from_settings(access_token=token)
    shop = await shopify.get_shop(config)
    return ShopResponse(shop=shop)
