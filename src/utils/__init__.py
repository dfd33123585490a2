"""
Utilidades del Sistema

Módulo que exporta todas las utilidades:
- Logger: Logging estructurado con contexto
- Errors: Manejo centralizado de errores
- Metrics: Contadores, histogramas, Prometheus
"""

# Logger
from src.utils.logger import (
    get_logger,
    setup_logging,
    bind_context,
    clear_context,
    new_correlation_id,
    get_correlation_id,
    LogContext,
    log_exception,
    log_performance,
)

# Metrics
from src.utils.metrics import (
    Counter,
    Histogram,
    MetricsRegistry,
    registry,
    Timer,
    get_metrics,
    get_prometheus_metrics,
    # Métricas pre-definidas
    finance_reports,
    shopify_requests,
    report_cache_hits,
    report_duration,
)

# Errors
from src.utils.errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    DashboardError,
    DataFormatError,
    ExternalAPIError,
    AuthenticationError,
    ConfigurationError,
    wrap_external_error,
    ErrorRegistry,
    error_registry,
)

__all__ = [
    # Logger
    "get_logger",
    "setup_logging",
    "bind_context",
    "clear_context",
    "new_correlation_id",
    "get_correlation_id",
    "LogContext",
    "log_exception",
    "log_performance",
    # Metrics
    "Counter",
    "Histogram",
    "MetricsRegistry",
    "registry",
    "Timer",
    "get_metrics",
    "get_prometheus_metrics",
    "finance_reports",
    "shopify_requests",
    "report_cache_hits",
    "report_duration",
    # Errors
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorContext",
    "DashboardError",
    "DataFormatError",
    "ExternalAPIError",
    "AuthenticationError",
    "ConfigurationError",
    "wrap_external_error",
    "ErrorRegistry",
    "error_registry",
]
