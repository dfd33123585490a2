"""
Sistema Centralizado de Manejo de Errores

Proporciona:
- Tipos de error categorizados (DataFormatError, ExternalAPIError, etc.)
- Mensajes amigables para el dashboard
- Correlation IDs para soporte técnico
- Registro de errores para métricas

Los errores de este módulo no loggean al construirse: el motor de
métricas los lanza sin efectos secundarios y la capa HTTP decide
cómo reportarlos.
"""

from enum import Enum
from typing import Optional, Any, Dict, List
from dataclasses import dataclass

from src.utils.logger import get_correlation_id


# ============================================================================
# ERROR CATEGORIES
# ============================================================================

class ErrorCategory(str, Enum):
    """Categorías de error para clasificación."""
    DATA_FORMAT = "DATA_FORMAT"
    EXTERNAL_API = "EXTERNAL_API"
    AUTHENTICATION = "AUTHENTICATION"
    CONFIGURATION = "CONFIGURATION"
    VALIDATION = "VALIDATION"
    INTERNAL = "INTERNAL"


class ErrorSeverity(str, Enum):
    """Severidad del error para priorización."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


# ============================================================================
# USER-FRIENDLY MESSAGES
# ============================================================================

USER_MESSAGES = {
    ErrorCategory.DATA_FORMAT: (
        "La tienda devolvió datos con un formato inesperado. "
        "No se pudo calcular el reporte."
    ),
    ErrorCategory.EXTERNAL_API: (
        "No se pudo conectar con Shopify. "
        "Por favor intenta nuevamente."
    ),
    ErrorCategory.AUTHENTICATION: (
        "Se requiere un token de acceso de Shopify válido."
    ),
    ErrorCategory.CONFIGURATION: (
        "El servicio no está configurado correctamente."
    ),
    ErrorCategory.VALIDATION: (
        "Los parámetros de la solicitud no son válidos."
    ),
    ErrorCategory.INTERNAL: (
        "Ocurrió un error inesperado. "
        "Nuestro equipo ha sido notificado."
    ),
}


# ============================================================================
# ERROR CONTEXT
# ============================================================================

@dataclass
class ErrorContext:
    """Contexto adicional para un error."""
    shop: Optional[str] = None
    operation: Optional[str] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class DashboardError(Exception):
    """
    Excepción base de la aplicación.

    Incluye categoría, severidad y mensaje amigable.
    """

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        user_message: Optional[str] = None,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.user_message = user_message or USER_MESSAGES.get(
            category, USER_MESSAGES[ErrorCategory.INTERNAL]
        )
        self.context = context or ErrorContext()
        self.original_error = original_error
        # Solo lee el contexto; no genera uno nuevo
        self.correlation_id = get_correlation_id()

    def to_dict(self) -> Dict[str, Any]:
        """Convierte el error a diccionario para logging."""
        return {
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "correlation_id": self.correlation_id,
            "context": {
                "shop": self.context.shop,
                "operation": self.context.operation,
                "entity_type": self.context.entity_type,
                "entity_id": self.context.entity_id,
                "extra": self.context.extra,
            },
            "original_error": str(self.original_error) if self.original_error else None,
        }


class DataFormatError(DashboardError):
    """
    Dato de entrada imposible de interpretar (precio, timestamp, forma del registro).

    Siempre identifica el registro que lo causó.
    """

    def __init__(
        self,
        message: str,
        record_id: Any = None,
        field: Optional[str] = None,
        entity_type: str = "order",
        **kwargs
    ):
        self.record_id = record_id
        self.field = field
        kwargs.setdefault("context", ErrorContext(
            entity_type=entity_type,
            entity_id=str(record_id) if record_id is not None else None,
            extra={"field": field} if field else None,
        ))
        super().__init__(
            message=message,
            category=ErrorCategory.DATA_FORMAT,
            severity=ErrorSeverity.HIGH,
            **kwargs
        )


class ExternalAPIError(DashboardError):
    """Error de API externa (Shopify)."""

    def __init__(
        self,
        message: str,
        service: str = "shopify",
        status_code: Optional[int] = None,
        **kwargs
    ):
        self.service = service
        self.status_code = status_code
        super().__init__(
            message=message,
            category=ErrorCategory.EXTERNAL_API,
            severity=ErrorSeverity.MEDIUM,
            **kwargs
        )


class AuthenticationError(DashboardError):
    """Token de Shopify ausente o rechazado."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            message=message,
            category=ErrorCategory.AUTHENTICATION,
            severity=ErrorSeverity.LOW,
            **kwargs
        )


class ConfigurationError(DashboardError):
    """Configuración incompleta o inválida."""

    def __init__(self, message: str, setting: Optional[str] = None, **kwargs):
        self.setting = setting
        super().__init__(
            message=message,
            category=ErrorCategory.CONFIGURATION,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


# ============================================================================
# ERROR CONVERSION UTILITIES
# ============================================================================

def wrap_external_error(
    error: Exception,
    service: str = "shopify",
    operation: Optional[str] = None,
    status_code: Optional[int] = None,
) -> ExternalAPIError:
    """Envuelve un error de servicio externo en ExternalAPIError."""
    return ExternalAPIError(
        message=f"Error en {service}: {str(error)}",
        service=service,
        status_code=status_code,
        original_error=error,
        context=ErrorContext(operation=operation)
    )


# ============================================================================
# ERROR REGISTRY (para métricas)
# ============================================================================

class ErrorRegistry:
    """
    Registro de errores para métricas y análisis.

    Permite trackear errores por categoría y severidad.
    """

    def __init__(self, max_recent: int = 100):
        self._counts: Dict[str, int] = {}
        self._recent_errors: List[Dict[str, Any]] = []
        self._max_recent = max_recent

    def record(self, error: DashboardError) -> None:
        """Registra un error en el registry."""
        key = f"{error.category.value}:{error.severity.value}"
        self._counts[key] = self._counts.get(key, 0) + 1

        self._recent_errors.append({
            "correlation_id": error.correlation_id,
            "category": error.category.value,
            "message": error.message[:100],
        })
        if len(self._recent_errors) > self._max_recent:
            self._recent_errors.pop(0)

    def get_counts(self) -> Dict[str, int]:
        """Obtiene conteo de errores por categoría:severidad."""
        return self._counts.copy()

    def get_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Obtiene los errores más recientes."""
        return self._recent_errors[-limit:]

    def reset(self) -> None:
        """Resetea los contadores."""
        self._counts.clear()
        self._recent_errors.clear()


# Instancia global del registry
error_registry = ErrorRegistry()


__all__ = [
    "ErrorCategory",
    "ErrorSeverity",
    "USER_MESSAGES",
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
