"""
Pytest Configuration and Fixtures

Configuración global de pytest y fixtures compartidos.
"""

import os
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Agregar el directorio raíz al path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.shopify_mock import TEST_SHOP, TEST_TOKEN


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """Configuración de pytest."""
    # Establecer entorno de test antes de importar config.settings
    os.environ["ENVIRONMENT"] = "development"
    os.environ["SHOPIFY_SHOP_NAME"] = TEST_SHOP
    os.environ["REPORT_TIMEZONE"] = "UTC"
    os.environ["REPORT_CACHE_ENABLED"] = "false"
    os.environ["SHOPIFY_MAX_RETRIES"] = "0"
    os.environ["LOG_LEVEL"] = "WARNING"
    os.environ["LOG_DIR"] = os.path.join(tempfile.gettempdir(), "finance-dashboard-test-logs")
    os.environ.pop("SHOPIFY_ACCESS_TOKEN", None)


# ============================================================================
# TIME FIXTURES
# ============================================================================

@pytest.fixture
def now() -> datetime:
    """Jueves 15 de febrero de 2024, 12:00 UTC (la semana empieza el domingo 11)."""
    return datetime(2024, 2, 15, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# SHOPIFY FIXTURES
# ============================================================================

@pytest.fixture
def shopify_config():
    """Credenciales de la tienda de prueba."""
    from src.services.shopify_service import ShopifyConfig

    return ShopifyConfig(
        shop_name=TEST_SHOP,
        access_token=TEST_TOKEN,
        api_version="2024-01",
    )


# ============================================================================
# CLEANUP FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def reset_singletons():
    """Resetea singletons y métricas entre tests."""
    yield
    import src.api.finances
    from src.utils.errors import error_registry
    from src.utils.logger import clear_context
    from src.utils.metrics import registry

    src.api.finances._finance_service = None
    registry.reset()
    error_registry.reset()
    clear_context()
