"""
Finance Metrics

Motor de métricas financieras del dashboard.

Transforma un snapshot de órdenes y clientes de la tienda en el reporte
que muestra la vista de Finanzas: totales, ingresos por mes, órdenes
recientes, ventas del mes, clientes nuevos de la semana y órdenes abiertas.

Reglas:
- Dinero siempre con Decimal, nunca float
- Los buckets de mes/semana/día usan una sola zona horaria (UTC por defecto)
- `now` lo entrega el llamador; aquí nunca se lee el reloj
- Sin I/O, sin logging, sin estado entre llamadas
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from config.constants import (
    CLOSED_FULFILLMENT_STATUSES,
    DEFAULT_RECENT_ORDERS_LIMIT,
    MONEY_QUANTUM,
)
from src.models.commerce import Customer, Order
from src.utils.errors import DataFormatError

ZERO = Decimal("0")

_ENTITY_LABELS = {"order": "Orden", "customer": "Cliente"}


# ============================================================================
# PARSING
# ============================================================================

def format_money(value: Decimal) -> str:
    """Decimal a texto sin notación científica."""
    return format(value, "f")


def parse_price(value: Any, record_id: Any = None) -> Decimal:
    """
    Interpreta un precio de orden como Decimal.

    Args:
        value: Precio como str ("129.90"), int o Decimal
        record_id: ID de la orden, para el mensaje de error

    Returns:
        Precio exacto, no negativo

    Raises:
        DataFormatError: Si el precio no se puede interpretar
    """
    if isinstance(value, Decimal):
        price = value
    elif isinstance(value, bool) or value is None:
        raise DataFormatError(
            f"Orden {record_id}: precio ausente o inválido ({value!r})",
            record_id=record_id,
            field="total_price",
        )
    elif isinstance(value, int):
        price = Decimal(value)
    elif isinstance(value, (str, float)):
        try:
            price = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise DataFormatError(
                f"Orden {record_id}: precio no numérico {value!r}",
                record_id=record_id,
                field="total_price",
                original_error=e,
            ) from e
    else:
        raise DataFormatError(
            f"Orden {record_id}: tipo de precio no soportado {type(value).__name__}",
            record_id=record_id,
            field="total_price",
        )

    if not price.is_finite() or price < 0:
        raise DataFormatError(
            f"Orden {record_id}: precio fuera de rango {value!r}",
            record_id=record_id,
            field="total_price",
        )
    return price


def parse_timestamp(
    value: Any,
    record_id: Any = None,
    entity_type: str = "order",
) -> datetime:
    """
    Interpreta un timestamp ISO-8601 como datetime con zona.

    Los valores sin zona se toman como UTC.

    Raises:
        DataFormatError: Si el timestamp no se puede interpretar
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise DataFormatError(
                f"{_ENTITY_LABELS.get(entity_type, entity_type)} {record_id}: timestamp inválido {value!r}",
                record_id=record_id,
                field="created_at",
                entity_type=entity_type,
                original_error=e,
            ) from e
    else:
        raise DataFormatError(
            f"{_ENTITY_LABELS.get(entity_type, entity_type)} {record_id}: timestamp ausente o inválido ({value!r})",
            record_id=record_id,
            field="created_at",
            entity_type=entity_type,
        )

    return _as_aware(parsed)


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None or value.utcoffset() is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# ============================================================================
# PERIOD BOUNDS
# ============================================================================

def start_of_month(now: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Día 1 a las 00:00 del mes de `now`, en la zona del reporte."""
    local = _as_aware(now).astimezone(tz)
    return datetime(local.year, local.month, 1, tzinfo=tz)


def start_of_week(now: datetime, tz: tzinfo = timezone.utc) -> datetime:
    """Domingo más reciente a las 00:00, en la zona del reporte."""
    local = _as_aware(now).astimezone(tz)
    # weekday(): lunes=0 ... domingo=6
    days_since_sunday = (local.weekday() + 1) % 7
    sunday = local.date() - timedelta(days=days_since_sunday)
    return datetime(sunday.year, sunday.month, sunday.day, tzinfo=tz)


def month_key(timestamp: datetime, tz: tzinfo = timezone.utc) -> str:
    """Clave "YYYY-MM" del bucket mensual."""
    local = timestamp.astimezone(tz)
    return f"{local.year:04d}-{local.month:02d}"


def calculate_growth(current: Decimal, previous: Decimal) -> Decimal:
    """
    Crecimiento porcentual entre dos períodos.

    Sin período anterior se reporta 100%, igual que la vista de Analytics.
    """
    if previous == 0:
        return Decimal("100")
    growth = (Decimal(current) - Decimal(previous)) / Decimal(previous) * 100
    return growth.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


# ============================================================================
# DATA CLASSES
# ============================================================================

@dataclass(frozen=True)
class DateRange:
    """Rango de fechas inclusivo; cualquier extremo puede faltar."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def __post_init__(self):
        if self.start is not None:
            object.__setattr__(self, "start", _as_aware(self.start))
        if self.end is not None:
            object.__setattr__(self, "end", _as_aware(self.end))
        if self.start and self.end and self.start > self.end:
            raise ValueError("start_date no puede ser posterior a end_date")

    def contains(self, timestamp: datetime) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp > self.end:
            return False
        return True

    @property
    def is_open(self) -> bool:
        """True si no restringe nada."""
        return self.start is None and self.end is None

    def cache_key(self) -> str:
        start = self.start.isoformat() if self.start else "-"
        end = self.end.isoformat() if self.end else "-"
        return f"{start}..{end}"


@dataclass(frozen=True)
class MonthlyRevenue:
    """Ingresos de un mes calendario."""

    month: str
    revenue: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {"month": self.month, "revenue": format_money(self.revenue)}


@dataclass(frozen=True)
class RecentOrder:
    """Proyección de una orden apta para mostrar en el dashboard."""

    id: Any
    order_number: Optional[int]
    total_price: Decimal
    created_at: datetime
    financial_status: Optional[str]
    fulfillment_status: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "total_price": format_money(self.total_price),
            "created_at": self.created_at.isoformat(),
            "financial_status": self.financial_status,
            "fulfillment_status": self.fulfillment_status,
        }


@dataclass(frozen=True)
class DailyPoint:
    """Actividad de un día calendario."""

    day: date
    revenue: Decimal = ZERO
    orders: int = 0
    customers: int = 0


@dataclass(frozen=True)
class HistoricalSeries:
    """Serie diaria para la vista de Analytics (ascendente por día)."""

    points: Tuple[DailyPoint, ...] = ()

    def to_dict(self) -> Dict[str, List[Any]]:
        return {
            "dates": [p.day.isoformat() for p in self.points],
            "revenue": [format_money(p.revenue) for p in self.points],
            "orders": [p.orders for p in self.points],
            "customers": [p.customers for p in self.points],
        }


@dataclass(frozen=True)
class MetricsReport:
    """Reporte financiero calculado; no tiene identidad ni se persiste."""

    total_revenue: Decimal
    total_orders: int
    average_order_value: Decimal
    monthly_revenue: Tuple[MonthlyRevenue, ...]
    recent_orders: Tuple[RecentOrder, ...]
    sales_month_to_date: Decimal
    new_customers_this_week: int
    open_orders_count: int
    historical: HistoricalSeries = HistoricalSeries()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_revenue": format_money(self.total_revenue),
            "total_orders": self.total_orders,
            "average_order_value": format_money(self.average_order_value),
            "monthly_revenue": [m.to_dict() for m in self.monthly_revenue],
            "recent_orders": [o.to_dict() for o in self.recent_orders],
            "sales_month_to_date": format_money(self.sales_month_to_date),
            "new_customers_this_week": self.new_customers_this_week,
            "open_orders_count": self.open_orders_count,
            "historical": self.historical.to_dict(),
        }


class _PricedOrder(NamedTuple):
    order: Order
    price: Decimal
    created_at: datetime


# ============================================================================
# AGGREGATION
# ============================================================================

def is_open_order(order: Order) -> bool:
    """Abierta = estado de envío distinto de fulfilled/shipped (None cuenta como abierta)."""
    status = (order.fulfillment_status or "").lower()
    return status not in CLOSED_FULFILLMENT_STATUSES


def _sum(prices: Iterable[Decimal]) -> Decimal:
    return sum(prices, ZERO)


def _monthly_revenue(orders: Sequence[_PricedOrder], tz: tzinfo) -> Tuple[MonthlyRevenue, ...]:
    buckets: Dict[str, Decimal] = {}
    for item in orders:
        key = month_key(item.created_at, tz)
        buckets[key] = buckets.get(key, ZERO) + item.price

    # "YYYY-MM" ordena igual lexicográfica que cronológicamente
    return tuple(
        MonthlyRevenue(month=key, revenue=revenue)
        for key, revenue in sorted(buckets.items())
    )


def _recent_orders(orders: Sequence[_PricedOrder], limit: int) -> Tuple[RecentOrder, ...]:
    # sorted() es estable también con reverse=True: empates conservan el orden de entrada
    newest_first = sorted(orders, key=lambda item: item.created_at, reverse=True)
    return tuple(
        RecentOrder(
            id=item.order.id,
            order_number=item.order.order_number,
            total_price=item.price,
            created_at=item.created_at,
            financial_status=item.order.financial_status,
            fulfillment_status=item.order.fulfillment_status,
        )
        for item in newest_first[:limit]
    )


def _historical_series(
    orders: Sequence[_PricedOrder],
    customer_dates: Sequence[datetime],
    tz: tzinfo,
) -> HistoricalSeries:
    revenue: Dict[date, Decimal] = {}
    order_counts: Dict[date, int] = {}
    customer_counts: Dict[date, int] = {}

    for item in orders:
        day = item.created_at.astimezone(tz).date()
        revenue[day] = revenue.get(day, ZERO) + item.price
        order_counts[day] = order_counts.get(day, 0) + 1

    for created_at in customer_dates:
        day = created_at.astimezone(tz).date()
        customer_counts[day] = customer_counts.get(day, 0) + 1

    days = sorted(set(revenue) | set(customer_counts))
    return HistoricalSeries(points=tuple(
        DailyPoint(
            day=day,
            revenue=revenue.get(day, ZERO),
            orders=order_counts.get(day, 0),
            customers=customer_counts.get(day, 0),
        )
        for day in days
    ))


def compute_report(
    orders: Sequence[Order],
    customers: Sequence[Customer],
    now: datetime,
    date_range: Optional[DateRange] = None,
    tz: tzinfo = timezone.utc,
    recent_limit: int = DEFAULT_RECENT_ORDERS_LIMIT,
) -> MetricsReport:
    """
    Calcula el reporte financiero de un snapshot de la tienda.

    Todo el snapshot se interpreta antes de agregar: un precio o fecha
    inválido en cualquier registro aborta el cálculo completo, sin
    reportes parciales.

    Args:
        orders: Órdenes de la tienda, en cualquier orden
        customers: Clientes de la tienda
        now: Instante de referencia para mes y semana en curso
        date_range: Restringe órdenes y clientes por created_at (inclusivo)
        tz: Zona horaria de los buckets
        recent_limit: Cantidad de órdenes recientes a proyectar

    Returns:
        MetricsReport; con órdenes vacías todos los montos son 0

    Raises:
        DataFormatError: Precio o timestamp inválido, con el ID del registro
    """
    now = _as_aware(now)

    priced = [
        _PricedOrder(
            order=order,
            price=parse_price(order.total_price, order.id),
            created_at=parse_timestamp(order.created_at, order.id, "order"),
        )
        for order in orders
    ]
    customer_dates = [
        parse_timestamp(customer.created_at, customer.id, "customer")
        for customer in customers
    ]

    if date_range is not None and not date_range.is_open:
        priced = [item for item in priced if date_range.contains(item.created_at)]
        customer_dates = [ts for ts in customer_dates if date_range.contains(ts)]

    total_revenue = _sum(item.price for item in priced)
    total_orders = len(priced)
    if total_orders:
        average = (total_revenue / total_orders).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)
    else:
        average = ZERO

    month_start = start_of_month(now, tz)
    week_start = start_of_week(now, tz)

    return MetricsReport(
        total_revenue=total_revenue,
        total_orders=total_orders,
        average_order_value=average,
        monthly_revenue=_monthly_revenue(priced, tz),
        recent_orders=_recent_orders(priced, recent_limit),
        sales_month_to_date=_sum(
            item.price for item in priced if item.created_at >= month_start
        ),
        new_customers_this_week=sum(1 for ts in customer_dates if ts >= week_start),
        open_orders_count=sum(1 for item in priced if is_open_order(item.order)),
        historical=_historical_series(priced, customer_dates, tz),
    )
