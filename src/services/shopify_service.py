"""
Servicio de Shopify Admin API

Lee órdenes, clientes y datos de la tienda vía REST. Las credenciales
llegan en un ShopifyConfig explícito por request; el servicio no guarda
tokens entre llamadas.

Uso:
    config = ShopifyConfig.from_settings(access_token=token)
    service = ShopifyService()
    orders = await service.fetch_orders(config)
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from config.constants import SHOPIFY_ACCESS_TOKEN_HEADER
from config.settings import settings
from src.models.commerce import Customer, Order
from src.services.http_client import CircuitBreakerOpen, ResilientHTTPClient
from src.utils.errors import (
    AuthenticationError,
    ConfigurationError,
    DataFormatError,
    ErrorContext,
    ExternalAPIError,
    wrap_external_error,
)
from src.utils.logger import get_logger
from src.utils.metrics import shopify_requests

logger = get_logger(__name__)


@dataclass(frozen=True)
class ShopifyConfig:
    """Credenciales y límites para una lectura de la tienda."""

    shop_name: str
    access_token: str
    api_version: str
    orders_limit: int = 250
    customers_limit: int = 250

    @classmethod
    def from_settings(cls, access_token: Optional[str] = None) -> "ShopifyConfig":
        """
        Construye la configuración desde settings y el token del request.

        Args:
            access_token: Token del header; si falta se usa el configurado

        Raises:
            AuthenticationError: Si no hay token disponible
            ConfigurationError: Si no hay tienda configurada
        """
        token = (access_token or "").strip() or settings.get_shopify_access_token()
        if not token:
            raise AuthenticationError("Token de acceso de Shopify no provisto")
        if not settings.SHOPIFY_SHOP_NAME:
            raise ConfigurationError(
                "SHOPIFY_SHOP_NAME no configurado",
                setting="SHOPIFY_SHOP_NAME",
            )
        return cls(
            shop_name=settings.SHOPIFY_SHOP_NAME,
            access_token=token,
            api_version=settings.SHOPIFY_API_VERSION,
            orders_limit=settings.SHOPIFY_ORDERS_LIMIT,
            customers_limit=settings.SHOPIFY_CUSTOMERS_LIMIT,
        )

    @property
    def base_url(self) -> str:
        return f"https://{self.shop_name}/admin/api/{self.api_version}"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            SHOPIFY_ACCESS_TOKEN_HEADER: self.access_token,
            "Content-Type": "application/json",
        }


class ShopifyService:
    """Lectura de la tienda con reintentos y circuit breaker."""

    def __init__(self, client: Optional[ResilientHTTPClient] = None):
        self.client = client or ResilientHTTPClient(
            base_timeout=float(settings.SHOPIFY_TIMEOUT_SECONDS),
            max_retries=settings.SHOPIFY_MAX_RETRIES,
        )

    async def _get(
        self,
        config: ShopifyConfig,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """GET a un recurso de Admin API; devuelve el JSON decodificado."""
        url = f"{config.base_url}/{endpoint}.json"
        context = ErrorContext(shop=config.shop_name, operation=f"GET {endpoint}")

        try:
            response = await self.client.get(url, params=params, headers=config.headers)
        except CircuitBreakerOpen as e:
            shopify_requests.inc(labels={"endpoint": endpoint, "status": "circuit_open"})
            raise wrap_external_error(e, operation=f"GET {endpoint}")
        except httpx.HTTPStatusError as e:
            shopify_requests.inc(labels={"endpoint": endpoint, "status": "error"})
            raise wrap_external_error(
                e, operation=f"GET {endpoint}", status_code=e.response.status_code
            )
        except httpx.HTTPError as e:
            shopify_requests.inc(labels={"endpoint": endpoint, "status": "error"})
            raise wrap_external_error(e, operation=f"GET {endpoint}")

        if response.status_code in (401, 403):
            shopify_requests.inc(labels={"endpoint": endpoint, "status": "unauthorized"})
            raise AuthenticationError(
                f"Shopify rechazó el token ({response.status_code}) en {endpoint}",
                context=context,
            )
        if response.status_code >= 400:
            shopify_requests.inc(labels={"endpoint": endpoint, "status": "error"})
            raise ExternalAPIError(
                f"Shopify respondió {response.status_code} en {endpoint}",
                status_code=response.status_code,
                context=context,
            )

        shopify_requests.inc(labels={"endpoint": endpoint, "status": "success"})

        try:
            payload = response.json()
        except ValueError as e:
            raise ExternalAPIError(
                f"Respuesta no JSON de Shopify en {endpoint}",
                status_code=response.status_code,
                context=context,
                original_error=e,
            ) from e

        if not isinstance(payload, dict):
            raise ExternalAPIError(
                f"Respuesta inesperada de Shopify en {endpoint}",
                status_code=response.status_code,
                context=context,
            )
        return payload

    @staticmethod
    def _records(payload: Dict[str, Any], key: str, entity_type: str) -> List[Dict[str, Any]]:
        records = payload.get(key)
        if not isinstance(records, list):
            raise DataFormatError(
                f"La respuesta de Shopify no incluye la lista '{key}'",
                field=key,
                entity_type=entity_type,
            )
        return records

    async def fetch_orders(self, config: ShopifyConfig) -> List[Order]:
        """
        Obtiene las órdenes más recientes (cualquier estado).

        Raises:
            ExternalAPIError: Si Shopify no responde
            AuthenticationError: Si el token es rechazado
            DataFormatError: Si algún registro no tiene la forma esperada
        """
        payload = await self._get(
            config,
            "orders",
            params={"status": "any", "limit": config.orders_limit},
        )
        orders = [
            Order.from_shopify(item)
            for item in self._records(payload, "orders", "order")
        ]
        logger.debug(f"{len(orders)} órdenes leídas de {config.shop_name}")
        return orders

    async def fetch_customers(self, config: ShopifyConfig) -> List[Customer]:
        """Obtiene los clientes de la tienda."""
        payload = await self._get(
            config,
            "customers",
            params={"limit": config.customers_limit},
        )
        customers = [
            Customer.from_shopify(item)
            for item in self._records(payload, "customers", "customer")
        ]
        logger.debug(f"{len(customers)} clientes leídos de {config.shop_name}")
        return customers

    async def get_shop(self, config: ShopifyConfig) -> Dict[str, Any]:
        """Retorna el objeto `shop` de la tienda."""
        payload = await self._get(config, "shop")
        shop = payload.get("shop")
        if not isinstance(shop, dict):
            raise DataFormatError(
                "La respuesta de Shopify no incluye 'shop'",
                field="shop",
                entity_type="shop",
            )
        return shop

    async def validate_connection(self, config: ShopifyConfig) -> bool:
        """
        Verifica que el token permita leer la tienda.

        Returns:
            True si el token es válido

        Raises:
            AuthenticationError: Si Shopify rechaza el token
            ExternalAPIError: Si Shopify no responde
        """
        await self.get_shop(config)
        logger.info(f"Conexión con {config.shop_name} validada")
        return True
