"""
Health Check Endpoints

Endpoints para verificar el estado de la aplicación y sus dependencias.
Compatible con Kubernetes, Docker y balanceadores de carga.
"""

import time
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from dataclasses import dataclass, field

from fastapi import APIRouter, Response

from config.settings import settings
from src.services.shopify_service import ShopifyConfig, ShopifyService
from src.utils.errors import DashboardError
from src.utils.logger import get_logger

logger = get_logger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


# ============================================================================
# HEALTH CHECK MODELS
# ============================================================================

@dataclass
class ComponentHealth:
    """Estado de salud de un componente."""
    name: str
    status: str  # "up", "down", "degraded", "unknown"
    latency_ms: Optional[float] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "name": self.name,
            "status": self.status,
        }
        if self.latency_ms is not None:
            result["latency_ms"] = round(self.latency_ms, 2)
        if self.message:
            result["message"] = self.message
        return result


@dataclass
class SystemHealth:
    """Estado agregado del sistema."""
    status: str  # "healthy", "unhealthy", "degraded"
    timestamp: str
    version: str
    environment: str
    components: Dict[str, ComponentHealth] = field(default_factory=dict)
    uptime_seconds: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "version": self.version,
            "environment": self.environment,
            "components": {k: v.to_dict() for k, v in self.components.items()},
            "uptime_seconds": round(self.uptime_seconds, 2) if self.uptime_seconds else None,
        }


# ============================================================================
# HEALTH CHECKER
# ============================================================================

class HealthChecker:
    """
    Verificador de salud del sistema.

    Componentes: configuración y conexión con Shopify.
    """

    def __init__(self, shopify: Optional[ShopifyService] = None):
        self._start_time = time.time()
        self._shopify = shopify

    @property
    def uptime(self) -> float:
        """Tiempo de actividad en segundos."""
        return time.time() - self._start_time

    def check_configuration(self) -> ComponentHealth:
        """Verifica que haya tienda configurada."""
        if not settings.SHOPIFY_SHOP_NAME:
            return ComponentHealth(
                name="configuration",
                status="down",
                message="SHOPIFY_SHOP_NAME no configurado",
            )
        return ComponentHealth(name="configuration", status="up")

    async def check_shopify(self) -> ComponentHealth:
        """
        Verifica la conexión con Shopify.

        Solo se prueba si hay tienda y token configurados; si no, el
        estado es "unknown" (el token puede llegar por request).
        """
        if not settings.SHOPIFY_SHOP_NAME or not settings.get_shopify_access_token():
            return ComponentHealth(
                name="shopify",
                status="unknown",
                message="Sin token configurado; se usa el del request",
            )

        start = time.time()
        try:
            service = self._shopify or ShopifyService()
            await service.validate_connection(ShopifyConfig.from_settings())
            return ComponentHealth(
                name="shopify",
                status="up",
                latency_ms=(time.time() - start) * 1000,
            )
        except DashboardError as e:
            logger.warning(f"Shopify health check falló: {e.message}")
            return ComponentHealth(
                name="shopify",
                status="down",
                latency_ms=(time.time() - start) * 1000,
                message=e.message,
            )

    async def check_all(self) -> SystemHealth:
        """Ejecuta todos los health checks."""
        components = {
            "configuration": self.check_configuration(),
            "shopify": await self.check_shopify(),
        }

        statuses = [c.status for c in components.values()]
        if components["configuration"].status == "down":
            overall_status = "unhealthy"
        elif all(s in ("up", "unknown") for s in statuses):
            overall_status = "healthy"
        else:
            overall_status = "degraded"

        return SystemHealth(
            status=overall_status,
            timestamp=_now_iso(),
            version=settings.VERSION,
            environment=settings.ENVIRONMENT.value,
            components=components,
            uptime_seconds=self.uptime,
        )

    async def liveness(self) -> Dict[str, Any]:
        """Liveness probe: solo verifica que el proceso responde."""
        return {
            "status": "alive",
            "timestamp": _now_iso(),
        }

    async def readiness(self) -> Dict[str, Any]:
        """Readiness probe: requiere configuración mínima."""
        config_check = self.check_configuration()

        if config_check.status == "up":
            return {
                "status": "ready",
                "timestamp": _now_iso(),
            }
        return {
            "status": "not_ready",
            "timestamp": _now_iso(),
            "reason": config_check.message,
        }


# ============================================================================
# SINGLETON
# ============================================================================

_health_checker: Optional[HealthChecker] = None


def get_health_checker() -> HealthChecker:
    """Obtiene la instancia del health checker."""
    global _health_checker
    if _health_checker is None:
        _health_checker = HealthChecker()
    return _health_checker


# ============================================================================
# ROUTER
# ============================================================================

health_router = APIRouter(prefix="/health", tags=["health"])


@health_router.get(
    "",
    summary="Health check completo",
    description="Verifica configuración y conexión con Shopify",
    responses={
        200: {"description": "Sistema saludable o degradado"},
        503: {"description": "Sistema no saludable"}
    }
)
async def health_check(response: Response):
    """Estado de salud de cada componente y estado general."""
    result = await get_health_checker().check_all()
    if result.status == "unhealthy":
        response.status_code = 503
    return result.to_dict()


@health_router.get(
    "/live",
    summary="Liveness probe",
    description="Verifica que la aplicación está viva (Kubernetes)"
)
async def liveness_check():
    return await get_health_checker().liveness()


@health_router.get(
    "/ready",
    summary="Readiness probe",
    description="Verifica que la aplicación puede recibir tráfico",
    responses={
        200: {"description": "Aplicación lista"},
        503: {"description": "Aplicación no lista"}
    }
)
async def readiness_check(response: Response):
    result = await get_health_checker().readiness()

    if result["status"] != "ready":
        response.status_code = 503

    return result
