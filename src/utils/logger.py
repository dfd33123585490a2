"""
Sistema de Logging Estructurado

Configura el logging para toda la aplicación con:
- Salida a consola (colores en desarrollo, JSON en producción)
- Archivo rotativo para logs generales
- Archivo rotativo para errores
- Contexto por request (correlation ID, tienda Shopify)
"""

import logging
import json
import uuid
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime, timezone
from typing import Optional
from contextvars import ContextVar

# Context variables para información de contexto
correlation_id_var: ContextVar[Optional[str]] = ContextVar('correlation_id', default=None)
shop_var: ContextVar[Optional[str]] = ContextVar('shop', default=None)


# ============================================================================
# FORMATTERS
# ============================================================================

class ColoredFormatter(logging.Formatter):
    """
    Formatter con colores para desarrollo.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        cid = correlation_id_var.get()
        record.context = f" [cid={cid[:8]}]" if cid else ""

        # Copia para no contaminar el record que reciben otros handlers
        colored = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, '')
        colored.levelname = f"{color}{record.levelname}{self.RESET}"

        return super().format(colored)


class JSONFormatter(logging.Formatter):
    """
    Formatter JSON para producción.

    Genera logs estructurados fáciles de procesar por herramientas
    como ELK Stack, Datadog, etc.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        correlation_id = correlation_id_var.get()
        if correlation_id:
            log_data["correlation_id"] = correlation_id

        shop = shop_var.get()
        if shop:
            log_data["shop"] = shop

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        if hasattr(record, 'extra_data'):
            log_data["extra"] = record.extra_data

        return json.dumps(log_data, ensure_ascii=False, default=str)


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

_configured = False


def setup_logging(
    environment: str = "development",
    log_level: str = "INFO",
    log_dir: str = "logs",
    log_format: str = "json",
    max_size_mb: int = 50,
    backup_count: int = 10,
) -> None:
    """
    Configura el sistema de logging según el entorno.

    Args:
        environment: Entorno (development, staging, production)
        log_level: Nivel de log (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directorio para archivos de log
        log_format: "json" o "console" para la salida estándar
        max_size_mb: Tamaño máximo por archivo antes de rotar
        backup_count: Archivos rotados a conservar
    """
    global _configured

    if _configured:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    logs_path = Path(log_dir)
    logs_path.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    root_logger.handlers = []

    # Consola: JSON en producción o si se pide explícitamente
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if environment == "production" or (environment != "development" and log_format == "json"):
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter(
            '%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d%(context)s | %(message)s',
            datefmt='%H:%M:%S'
        ))

    root_logger.addHandler(console_handler)

    # Archivo general (siempre JSON para procesamiento)
    file_handler = RotatingFileHandler(
        logs_path / "app.log",
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(file_handler)

    # Solo errores
    error_handler = RotatingFileHandler(
        logs_path / "errors.log",
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(error_handler)

    # httpx loggea cada request en INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True

    root_logger.info(
        f"Logging configurado: environment={environment}, level={log_level}"
    )


def get_logger(name: str) -> logging.Logger:
    """
    Obtiene un logger configurado para el módulo especificado.

    Args:
        name: Nombre del módulo (típicamente __name__)

    Returns:
        Logger configurado
    """
    if not _configured:
        from config.settings import settings
        setup_logging(
            environment=settings.ENVIRONMENT.value,
            log_level=settings.LOG_LEVEL,
            log_dir=settings.LOG_DIR,
            log_format=settings.LOG_FORMAT,
            max_size_mb=settings.LOG_MAX_SIZE_MB,
            backup_count=settings.LOG_BACKUP_COUNT,
        )

    return logging.getLogger(name)


# ============================================================================
# CONTEXT MANAGEMENT
# ============================================================================

def bind_context(correlation_id: str = None, shop: str = None) -> None:
    """
    Establece variables de contexto para logging.

    Args:
        correlation_id: ID de correlación para tracking
        shop: Dominio de la tienda Shopify
    """
    if correlation_id:
        correlation_id_var.set(correlation_id)
    if shop:
        shop_var.set(shop)


def clear_context() -> None:
    """Limpia todas las variables de contexto."""
    correlation_id_var.set(None)
    shop_var.set(None)


def new_correlation_id() -> str:
    """
    Genera y establece un nuevo correlation ID.

    Returns:
        El correlation ID generado
    """
    cid = str(uuid.uuid4())
    correlation_id_var.set(cid)
    return cid


def get_correlation_id() -> Optional[str]:
    """Obtiene el correlation ID actual."""
    return correlation_id_var.get()


class LogContext:
    """
    Context manager para establecer contexto de logging temporalmente.

    Uso:
        with LogContext(shop="mi-tienda.myshopify.com"):
            logger.info("Este log incluirá la tienda")
    """

    def __init__(
        self,
        correlation_id: str = None,
        shop: str = None,
        auto_correlation: bool = True
    ):
        self.correlation_id = correlation_id
        self.shop = shop
        self.auto_correlation = auto_correlation

        self._prev_correlation = None
        self._prev_shop = None

    def __enter__(self):
        self._prev_correlation = correlation_id_var.get()
        self._prev_shop = shop_var.get()

        if self.correlation_id:
            correlation_id_var.set(self.correlation_id)
        elif self.auto_correlation and not self._prev_correlation:
            correlation_id_var.set(str(uuid.uuid4()))

        if self.shop:
            shop_var.set(self.shop)

        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        correlation_id_var.set(self._prev_correlation)
        shop_var.set(self._prev_shop)
        return False


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def log_exception(logger: logging.Logger, message: str, exc: Exception) -> None:
    """
    Loggea una excepción con contexto completo.

    Args:
        logger: Logger a usar
        message: Mensaje descriptivo
        exc: Excepción a loggear
    """
    logger.error(
        f"{message}: {type(exc).__name__}: {str(exc)}",
        exc_info=exc,
        extra={
            "extra_data": {
                "exception_type": type(exc).__name__,
                "exception_message": str(exc),
            }
        }
    )


def log_performance(logger: logging.Logger, operation: str, duration_ms: float) -> None:
    """
    Loggea métricas de rendimiento.

    Args:
        logger: Logger a usar
        operation: Nombre de la operación
        duration_ms: Duración en milisegundos
    """
    logger.info(
        f"Performance: {operation} completed in {duration_ms:.2f}ms",
        extra={
            "extra_data": {
                "metric_type": "performance",
                "operation": operation,
                "duration_ms": duration_ms,
            }
        }
    )
