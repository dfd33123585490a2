"""
Factories para Tests

Proporciona factories para crear objetos de prueba de forma limpia y reutilizable.
Sigue el patrón Factory de factory-boy para testing.

Uso:
    from tests.factories import OrderFactory, CustomerFactory

    # Crear instancia con valores por defecto
    order = OrderFactory()

    # Crear con valores personalizados
    order = OrderFactory(total_price="250.00", enviada=True)

    # Crear múltiples instancias
    customers = CustomerFactory.create_batch(5)
"""

from tests.factories.commerce import (
    OrderFactory,
    CustomerFactory,
    OrderPayloadFactory,
    CustomerPayloadFactory,
)

__all__ = [
    "OrderFactory",
    "CustomerFactory",
    "OrderPayloadFactory",
    "CustomerPayloadFactory",
]
