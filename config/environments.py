"""
Configuración Multi-Entorno

Define perfiles de configuración para development, staging y production.
"""

from enum import Enum
from typing import Dict, Type


class Environment(str, Enum):
    """Entornos disponibles"""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class BaseConfig:
    """Configuración base compartida"""
    PROJECT_NAME: str = "Business Dashboard Finance API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Shopify defaults
    SHOPIFY_TIMEOUT_SECONDS: int = 30
    SHOPIFY_MAX_RETRIES: int = 3

    # Cache de reportes
    REPORT_CACHE_ENABLED: bool = True
    REPORT_CACHE_TTL_SECONDS: int = 60


class DevelopmentConfig(BaseConfig):
    """Configuración para desarrollo"""
    DEBUG: bool = True
    LOG_LEVEL: str = "DEBUG"

    # En desarrollo se quiere ver cada cambio de inmediato
    REPORT_CACHE_ENABLED: bool = False


class StagingConfig(BaseConfig):
    """Configuración para staging"""
    LOG_LEVEL: str = "INFO"
    REPORT_CACHE_TTL_SECONDS: int = 30


class ProductionConfig(BaseConfig):
    """
    Configuración para producción.

    - Timeouts más cortos hacia Shopify para no bloquear workers
    - Cache de 2 minutos por tienda y rango de fechas
    """
    LOG_LEVEL: str = "WARNING"

    SHOPIFY_TIMEOUT_SECONDS: int = 20
    SHOPIFY_MAX_RETRIES: int = 2
    REPORT_CACHE_TTL_SECONDS: int = 120


def get_config(env: Environment) -> Type[BaseConfig]:
    """
    Obtiene la configuración según el entorno.

    Args:
        env: Entorno seleccionado

    Returns:
        Clase de configuración correspondiente
    """
    configs: Dict[Environment, Type[BaseConfig]] = {
        Environment.DEVELOPMENT: DevelopmentConfig,
        Environment.STAGING: StagingConfig,
        Environment.PRODUCTION: ProductionConfig,
    }
    return configs.get(env, DevelopmentConfig)
