"""
FastAPI Application

Aplicación principal de la API REST.
Incluye todos los routers y configuración.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from src.api.finances import finances_router
from src.api.health import health_router
from src.api.metrics import metrics_router
from src.utils.errors import DashboardError, ErrorCategory, USER_MESSAGES, error_registry
from src.utils.logger import (
    bind_context,
    clear_context,
    get_correlation_id,
    get_logger,
    log_exception,
    new_correlation_id,
)

logger = get_logger(__name__)

# Código HTTP por categoría de error
STATUS_BY_CATEGORY = {
    ErrorCategory.DATA_FORMAT: 502,
    ErrorCategory.EXTERNAL_API: 502,
    ErrorCategory.AUTHENTICATION: 401,
    ErrorCategory.VALIDATION: 422,
    ErrorCategory.CONFIGURATION: 500,
    ErrorCategory.INTERNAL: 500,
}

CATEGORY_BY_STATUS = {
    400: ErrorCategory.VALIDATION,
    401: ErrorCategory.AUTHENTICATION,
    422: ErrorCategory.VALIDATION,
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def error_body(error: str, message: str, category: ErrorCategory) -> dict:
    """Cuerpo JSON de error común a todos los handlers."""
    return {
        "error": error,
        "message": message,
        "category": category.value,
        "correlation_id": get_correlation_id(),
        "timestamp": _timestamp(),
    }


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"API iniciando: {settings.PROJECT_NAME} {settings.VERSION} "
        f"({settings.ENVIRONMENT.value})"
    )
    if not settings.SHOPIFY_SHOP_NAME:
        logger.warning("SHOPIFY_SHOP_NAME no configurado; /api/shopify responderá 500")
    yield
    logger.info("API cerrada")


def create_app() -> FastAPI:
    """
    Crea y configura la aplicación FastAPI.

    Returns:
        Aplicación FastAPI
    """
    is_production = settings.is_production()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="""
## API de Finanzas para el Dashboard de Shopify

### Características
- **Reporte financiero**: totales, ingresos por mes, órdenes recientes
- **Dinero exacto**: montos como texto decimal, nunca float
- **Rangos de fechas**: `start_date` / `end_date` opcionales

### Autenticación
Usa el header `X-Shopify-Token` con un token de Admin API.
        """,
        version=settings.VERSION,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        lifespan=lifespan,
        openapi_tags=[
            {
                "name": "health",
                "description": "Health checks y estado del sistema"
            },
            {
                "name": "metrics",
                "description": "Métricas de la aplicación (Prometheus)"
            },
            {
                "name": "finances",
                "description": "Reporte financiero de la tienda"
            },
        ],
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # MIDDLEWARE
    # =========================================================================

    @app.middleware("http")
    async def add_request_context(request: Request, call_next):
        """Correlation ID y tiempo de respuesta por request."""
        incoming = request.headers.get("X-Correlation-ID")
        if incoming:
            bind_context(correlation_id=incoming)
            correlation_id = incoming
        else:
            correlation_id = new_correlation_id()

        start = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            duration = (time.perf_counter() - start) * 1000
            logger.info(f"{request.method} {request.url.path} ({duration:.2f}ms)")

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Response-Time"] = f"{duration:.2f}ms"

        clear_context()
        return response

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.exception_handler(DashboardError)
    async def dashboard_error_handler(request: Request, exc: DashboardError):
        """Errores de la aplicación con categoría."""
        status_code = STATUS_BY_CATEGORY.get(exc.category, 500)
        error_registry.record(exc)
        if status_code >= 500:
            log_exception(logger, f"{request.method} {request.url.path} falló", exc)
        else:
            logger.warning(f"{request.method} {request.url.path}: {exc.message}")

        return JSONResponse(
            status_code=status_code,
            content=error_body(type(exc).__name__, exc.message, exc.category),
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        """Maneja HTTPExceptions."""
        category = CATEGORY_BY_STATUS.get(exc.status_code, ErrorCategory.INTERNAL)
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("HTTPException", str(exc.detail), category),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Parámetros o body inválidos."""
        return JSONResponse(
            status_code=422,
            content=error_body(
                "RequestValidationError",
                USER_MESSAGES[ErrorCategory.VALIDATION],
                ErrorCategory.VALIDATION,
            ),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Maneja excepciones no capturadas."""
        log_exception(logger, "Unhandled exception", exc)
        message = USER_MESSAGES[ErrorCategory.INTERNAL] if is_production else str(exc)
        return JSONResponse(
            status_code=500,
            content=error_body("Internal Server Error", message, ErrorCategory.INTERNAL),
        )

    # =========================================================================
    # ROUTERS
    # =========================================================================

    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(finances_router)

    # =========================================================================
    # ROOT ENDPOINT
    # =========================================================================

    @app.get("/")
    async def root():
        """Endpoint raíz."""
        return {
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "status": "running",
            "docs": None if is_production else "/docs"
        }

    @app.get("/api/v1")
    async def api_info():
        """Información de la API."""
        return {
            "version": settings.VERSION,
            "endpoints": {
                "health": "/health",
                "metrics": "/metrics",
                "finances": "/api/shopify/finances",
                "validate": "/api/shopify/validate",
                "shop": "/api/shopify/shop"
            }
        }

    return app


# Crear instancia de la aplicación
app = create_app()


def run_api(host: str = "0.0.0.0", port: int = 8000, reload: bool = False):
    """
    Ejecuta el servidor de la API.

    Args:
        host: Host para escuchar
        port: Puerto para escuchar
        reload: Recarga automática (solo desarrollo)
    """
    import uvicorn

    logger.info(f"Iniciando API en http://{host}:{port}")
    uvicorn.run(
        "src.api.app:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run_api(reload=settings.is_development())
