"""
Metrics Endpoints

Endpoints para exponer métricas de la aplicación.
Compatible con Prometheus y formato JSON.
"""

from typing import Dict, Any
from datetime import datetime, timezone

from fastapi import APIRouter, Response

from src.utils.errors import error_registry
from src.utils.metrics import get_metrics, get_prometheus_metrics


def get_metrics_json() -> Dict[str, Any]:
    """
    Obtiene métricas en formato JSON.

    Incluye los conteos de errores por categoría:severidad.
    """
    return {
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "metrics": get_metrics(),
        "errors": error_registry.get_counts(),
    }


# ============================================================================
# FASTAPI ROUTER
# ============================================================================

metrics_router = APIRouter(prefix="/metrics", tags=["metrics"])


@metrics_router.get("")
async def metrics_json():
    """Métricas en formato JSON."""
    return get_metrics_json()


@metrics_router.get("/prometheus")
async def metrics_prometheus():
    """Métricas en formato Prometheus."""
    return Response(
        content=get_prometheus_metrics(),
        media_type="text/plain; version=0.0.4; charset=utf-8"
    )
