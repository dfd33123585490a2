"""
Metrics Module

Motor de métricas financieras para el dashboard de negocio.

Componentes:
- compute_report: snapshot de órdenes/clientes -> MetricsReport
- Helpers de períodos: inicio de mes, inicio de semana (domingo), clave de mes
- Parsing estricto de precios (Decimal) y timestamps

Uso:
    from src.metrics import compute_report, DateRange

    report = compute_report(orders, customers, now=datetime.now(timezone.utc))
    report.to_dict()
"""

from src.metrics.finance import (
    compute_report,
    DateRange,
    MetricsReport,
    MonthlyRevenue,
    RecentOrder,
    DailyPoint,
    HistoricalSeries,
    parse_price,
    parse_timestamp,
    start_of_month,
    start_of_week,
    month_key,
    is_open_order,
    calculate_growth,
    format_money,
)

__all__ = [
    "compute_report",
    "DateRange",
    "MetricsReport",
    "MonthlyRevenue",
    "RecentOrder",
    "DailyPoint",
    "HistoricalSeries",
    "parse_price",
    "parse_timestamp",
    "start_of_month",
    "start_of_week",
    "month_key",
    "is_open_order",
    "calculate_growth",
    "format_money",
]
