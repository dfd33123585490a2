"""
Modelos Pydantic de Comercio

Registros de órdenes y clientes tal como llegan de Shopify Admin REST.
Los campos de precio y fecha se guardan sin convertir: el motor de
métricas los interpreta y reporta el registro exacto si vienen mal.
"""

from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from src.utils.errors import DataFormatError


class CommerceRecord(BaseModel):
    """Base de registros leídos de la tienda (solo lectura)"""
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Union[int, str]

    @classmethod
    def from_shopify(cls, payload: Dict[str, Any]):
        """
        Construye el registro desde el JSON de Shopify.

        Raises:
            DataFormatError: Si el payload no tiene la forma esperada
        """
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            record_id = payload.get("id") if isinstance(payload, dict) else None
            raise DataFormatError(
                f"Registro {cls.__name__.lower()} inválido (id={record_id}): "
                f"{e.error_count()} errores de validación",
                record_id=record_id,
                entity_type=cls.__name__.lower(),
                original_error=e,
            ) from e


class Order(CommerceRecord):
    """Orden de la tienda"""
    order_number: Optional[int] = None
    total_price: Any = None  # "129.90" en Shopify; Decimal o int también valen
    created_at: Any = None  # ISO-8601 con offset, o datetime
    financial_status: Optional[str] = None
    fulfillment_status: Optional[str] = None  # None = sin enviar


class Customer(CommerceRecord):
    """Cliente de la tienda"""
    created_at: Any = None
