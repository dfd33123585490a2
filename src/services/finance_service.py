"""
Servicio de Reportes Financieros

Orquesta la lectura de la tienda y el cálculo del reporte:
1. Busca en cache (si está habilitado)
2. Lee órdenes y clientes en paralelo
3. Calcula el reporte con el motor de métricas
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Optional

from config.settings import settings
from src.metrics.finance import DateRange, MetricsReport, compute_report
from src.services.report_cache import ReportCache
from src.services.shopify_service import ShopifyConfig, ShopifyService
from src.utils.errors import DashboardError
from src.utils.logger import LogContext, get_logger, log_performance
from src.utils.metrics import Timer, finance_reports, report_cache_hits, report_duration

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FinanceReportService:
    """Reporte financiero de una tienda a partir de su estado actual."""

    def __init__(
        self,
        shopify: Optional[ShopifyService] = None,
        cache: Optional[ReportCache] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.shopify = shopify or ShopifyService()
        if cache is None and settings.REPORT_CACHE_ENABLED:
            cache = ReportCache(ttl_seconds=settings.REPORT_CACHE_TTL_SECONDS)
        self.cache = cache
        self._clock = clock

    async def get_report(
        self,
        config: ShopifyConfig,
        date_range: Optional[DateRange] = None,
    ) -> MetricsReport:
        """
        Obtiene el reporte de la tienda.

        Args:
            config: Credenciales de la tienda para este request
            date_range: Rango opcional sobre created_at

        Returns:
            MetricsReport calculado (o cacheado dentro del TTL)

        Raises:
            ExternalAPIError: Si Shopify falla
            AuthenticationError: Si el token es rechazado
            DataFormatError: Si algún registro trae datos inválidos
        """
        with LogContext(shop=config.shop_name):
            if self.cache is not None:
                cached = self.cache.get(config.shop_name, config.access_token, date_range)
                if cached is not None:
                    report_cache_hits.inc()
                    finance_reports.inc(labels={"status": "cached"})
                    logger.debug("Reporte servido desde cache")
                    return cached

            try:
                with Timer(report_duration) as timer:
                    orders, customers = await asyncio.gather(
                        self.shopify.fetch_orders(config),
                        self.shopify.fetch_customers(config),
                    )
                    report = compute_report(
                        orders,
                        customers,
                        now=self._clock(),
                        date_range=date_range,
                        tz=settings.get_report_timezone(),
                        recent_limit=settings.REPORT_RECENT_ORDERS_LIMIT,
                    )
            except DashboardError as e:
                finance_reports.inc(labels={"status": e.category.value.lower()})
                raise

            finance_reports.inc(labels={"status": "success"})
            log_performance(logger, "finance_report", timer.elapsed_ms)
            logger.info(
                f"Reporte calculado: {len(orders)} órdenes, {len(customers)} clientes, "
                f"{report.total_orders} en rango"
            )

            if self.cache is not None:
                self.cache.set(config.shop_name, config.access_token, date_range, report)
            return report
