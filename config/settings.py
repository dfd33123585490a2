"""
Configuración centralizada del sistema

Carga variables de entorno y proporciona acceso a configuración
en todo el proyecto.

Uso:
    from config.settings import settings

    timeout = settings.SHOPIFY_TIMEOUT_SECONDS
    tz = settings.get_report_timezone()
"""

from datetime import timezone, tzinfo
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings
from pydantic import SecretStr, field_validator

from config.constants import (
    DEFAULT_RECENT_ORDERS_LIMIT,
    DEFAULT_REPORT_TIMEZONE,
    SHOPIFY_DEFAULT_API_VERSION,
    SHOPIFY_MAX_PAGE_SIZE,
)
from config.environments import Environment, get_config


def resolve_timezone(name: str) -> tzinfo:
    """
    Convierte un nombre IANA en tzinfo.

    UTC se resuelve sin depender de la base de zonas del sistema.
    """
    if name.upper() in ("UTC", "Z", "ETC/UTC"):
        return timezone.utc
    return ZoneInfo(name)


class Settings(BaseSettings):
    """
    Configuración del sistema con soporte multi-entorno.

    Todas las configuraciones se cargan desde variables de entorno
    o archivo .env, con valores por defecto sensatos para desarrollo.
    """

    # =========================================================================
    # ENTORNO
    # =========================================================================
    ENVIRONMENT: Environment = Environment.DEVELOPMENT
    DEBUG: bool = False

    # =========================================================================
    # INFORMACIÓN DEL PROYECTO
    # =========================================================================
    PROJECT_NAME: str = "Business Dashboard Finance API"
    VERSION: str = "1.0.0"
    API_VERSION: str = "v1"

    # =========================================================================
    # SHOPIFY ADMIN API
    # =========================================================================
    SHOPIFY_SHOP_NAME: str = ""  # mi-tienda.myshopify.com
    SHOPIFY_ACCESS_TOKEN: Optional[SecretStr] = None  # Fallback si no llega header
    SHOPIFY_API_VERSION: str = SHOPIFY_DEFAULT_API_VERSION
    SHOPIFY_TIMEOUT_SECONDS: int = 30
    SHOPIFY_MAX_RETRIES: int = 3
    SHOPIFY_ORDERS_LIMIT: int = SHOPIFY_MAX_PAGE_SIZE
    SHOPIFY_CUSTOMERS_LIMIT: int = SHOPIFY_MAX_PAGE_SIZE

    # =========================================================================
    # REPORTE FINANCIERO
    # =========================================================================
    REPORT_TIMEZONE: str = DEFAULT_REPORT_TIMEZONE  # Zona fija para buckets de mes/semana
    REPORT_RECENT_ORDERS_LIMIT: int = DEFAULT_RECENT_ORDERS_LIMIT
    REPORT_CACHE_ENABLED: bool = True
    REPORT_CACHE_TTL_SECONDS: int = 60

    # =========================================================================
    # API
    # =========================================================================
    CORS_ORIGINS: str = "*"

    # =========================================================================
    # LOGGING
    # =========================================================================
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json o console
    LOG_DIR: str = "logs"
    LOG_MAX_SIZE_MB: int = 50
    LOG_BACKUP_COUNT: int = 10

    @field_validator("SHOPIFY_SHOP_NAME")
    @classmethod
    def validate_shop_name(cls, v: str, info) -> str:
        """Exige la tienda en producción y normaliza el dominio"""
        values = info.data
        v = v.strip().removeprefix("https://").removeprefix("http://").rstrip("/")
        if values.get("ENVIRONMENT") == Environment.PRODUCTION and not v:
            raise ValueError("SHOPIFY_SHOP_NAME es obligatorio en producción")
        return v

    @field_validator("SHOPIFY_ORDERS_LIMIT", "SHOPIFY_CUSTOMERS_LIMIT")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        """Shopify no devuelve más de 250 registros por página"""
        if v < 1 or v > SHOPIFY_MAX_PAGE_SIZE:
            raise ValueError(f"El límite debe estar entre 1 y {SHOPIFY_MAX_PAGE_SIZE}")
        return v

    @field_validator("REPORT_TIMEZONE")
    @classmethod
    def validate_report_timezone(cls, v: str) -> str:
        """Valida que la zona horaria exista"""
        try:
            resolve_timezone(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Zona horaria inválida: {v}") from e
        return v

    def get_report_timezone(self) -> tzinfo:
        """Retorna la zona usada para los buckets del reporte."""
        return resolve_timezone(self.REPORT_TIMEZONE)

    def get_shopify_access_token(self) -> Optional[str]:
        """Retorna el token configurado o None."""
        if self.SHOPIFY_ACCESS_TOKEN is None:
            return None
        return self.SHOPIFY_ACCESS_TOKEN.get_secret_value() or None

    def get_cors_origins(self) -> List[str]:
        """Retorna lista de orígenes permitidos."""
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    def is_production(self) -> bool:
        """Verifica si está en producción."""
        return self.ENVIRONMENT == Environment.PRODUCTION

    def is_development(self) -> bool:
        """Verifica si está en desarrollo."""
        return self.ENVIRONMENT == Environment.DEVELOPMENT

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


# Instancia única de configuración
settings = Settings()

# Aplicar perfil del entorno a lo que no vino explícito
env_config = get_config(settings.ENVIRONMENT)
if not settings.DEBUG:
    settings.DEBUG = env_config.DEBUG
for _field in (
    "SHOPIFY_TIMEOUT_SECONDS",
    "SHOPIFY_MAX_RETRIES",
    "REPORT_CACHE_ENABLED",
    "REPORT_CACHE_TTL_SECONDS",
):
    if _field not in settings.model_fields_set:
        setattr(settings, _field, getattr(env_config, _field))
