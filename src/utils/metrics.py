"""
Metrics Collection

Métricas operativas de la API (requests a Shopify, reportes, cache).
Exporta en JSON y en formato de exposición de Prometheus.
"""

import time
from typing import Dict, Any, Optional, Tuple, cast
from collections import defaultdict
from threading import Lock


def _labels_key(labels: Optional[Dict[str, str]] = None) -> str:
    """Clave estable para un conjunto de labels (formato Prometheus)."""
    if not labels:
        return ""
    return ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))


# ============================================================================
# METRIC TYPES
# ============================================================================

class Counter:
    """
    Contador que solo puede incrementar.

    Uso:
        reports = Counter("finance_reports_total", "Reportes calculados")
        reports.inc(labels={"status": "success"})
    """

    def __init__(self, name: str, description: str = ""):
        self.name = name
        self.description = description
        self._values: Dict[str, float] = defaultdict(float)
        self._lock = Lock()

    def inc(self, value: float = 1.0, labels: Dict[str, str] = None) -> None:
        """Incrementa el contador."""
        if value < 0:
            raise ValueError("Counter solo puede incrementar")

        with self._lock:
            self._values[_labels_key(labels)] += value

    def get(self, labels: Dict[str, str] = None) -> float:
        """Valor actual para un conjunto de labels."""
        return self._values.get(_labels_key(labels), 0.0)

    def get_all(self) -> Dict[str, float]:
        return dict(self._values)

    def reset(self) -> None:
        with self._lock:
            self._values.clear()


class Histogram:
    """
    Histograma para distribuciones de valores.

    Uso:
        duration = Histogram("finance_report_duration_ms", "Duración del reporte")
        duration.observe(120.5)
    """

    DEFAULT_BUCKETS: Tuple[float, ...] = (
        10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000
    )

    def __init__(
        self,
        name: str,
        description: str = "",
        buckets: Tuple[float, ...] = None
    ):
        self.name = name
        self.description = description
        self.buckets = tuple(sorted(buckets or self.DEFAULT_BUCKETS))

        self._counts: Dict[str, Dict[float, int]] = defaultdict(lambda: defaultdict(int))
        self._sums: Dict[str, float] = defaultdict(float)
        self._total_counts: Dict[str, int] = defaultdict(int)
        self._lock = Lock()

    def observe(self, value: float, labels: Dict[str, str] = None) -> None:
        """Registra una observación."""
        key = _labels_key(labels)
        with self._lock:
            self._sums[key] += value
            self._total_counts[key] += 1

            for bucket in self.buckets:
                if value <= bucket:
                    self._counts[key][bucket] += 1

    def get_stats(self, labels: Dict[str, str] = None) -> Dict[str, Any]:
        """Conteo, suma y promedio de las observaciones."""
        key = _labels_key(labels)
        total = self._total_counts.get(key, 0)
        total_sum = self._sums.get(key, 0.0)

        return {
            "count": total,
            "sum": total_sum,
            "avg": total_sum / total if total > 0 else 0.0,
        }

    def bucket_counts(self, labels: Dict[str, str] = None) -> Dict[float, int]:
        """Conteos acumulados por bucket (le)."""
        key = _labels_key(labels)
        return {bucket: self._counts[key].get(bucket, 0) for bucket in self.buckets}

    def reset(self) -> None:
        with self._lock:
            self._counts.clear()
            self._sums.clear()
            self._total_counts.clear()


# ============================================================================
# METRICS REGISTRY
# ============================================================================

class MetricsRegistry:
    """
    Registro central de métricas.

    Almacena y gestiona todas las métricas de la aplicación.
    """

    def __init__(self):
        self._metrics: Dict[str, Any] = {}
        self._lock = Lock()

    def counter(self, name: str, description: str = "") -> Counter:
        """Crea o obtiene un Counter."""
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = Counter(name, description)
            return cast(Counter, self._metrics[name])

    def histogram(self, name: str, description: str = "", buckets: tuple = None) -> Histogram:
        """Crea o obtiene un Histogram."""
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = Histogram(name, description, buckets)
            return cast(Histogram, self._metrics[name])

    def get_all(self) -> Dict[str, Any]:
        """Obtiene todas las métricas."""
        result = {}
        for name, metric in self._metrics.items():
            if isinstance(metric, Counter):
                result[name] = metric.get_all()
            elif isinstance(metric, Histogram):
                result[name] = metric.get_stats()
        return result

    def reset(self) -> None:
        """Pone todas las métricas en cero (tests)."""
        for metric in self._metrics.values():
            metric.reset()

    def to_prometheus(self) -> str:
        """
        Exporta métricas en formato Prometheus.

        Returns:
            String en formato Prometheus exposition
        """
        lines = []

        for name, metric in self._metrics.items():
            if isinstance(metric, Counter):
                lines.append(f"# HELP {name} {metric.description}")
                lines.append(f"# TYPE {name} counter")
                for labels_key, value in metric.get_all().items():
                    if labels_key:
                        lines.append(f"{name}{{{labels_key}}} {value}")
                    else:
                        lines.append(f"{name} {value}")

            elif isinstance(metric, Histogram):
                lines.append(f"# HELP {name} {metric.description}")
                lines.append(f"# TYPE {name} histogram")
                stats = metric.get_stats()
                for bucket, count in metric.bucket_counts().items():
                    lines.append(f'{name}_bucket{{le="{bucket}"}} {count}')
                lines.append(f'{name}_bucket{{le="+Inf"}} {stats["count"]}')
                lines.append(f"{name}_count {stats['count']}")
                lines.append(f"{name}_sum {stats['sum']}")

        return "\n".join(lines) + "\n"


# ============================================================================
# GLOBAL REGISTRY AND METRICS
# ============================================================================

registry = MetricsRegistry()

finance_reports = registry.counter(
    "finance_reports_total",
    "Reportes financieros solicitados por resultado"
)

shopify_requests = registry.counter(
    "shopify_requests_total",
    "Requests a Shopify Admin API por endpoint y resultado"
)

report_cache_hits = registry.counter(
    "report_cache_hits_total",
    "Reportes servidos desde cache"
)

report_duration = registry.histogram(
    "finance_report_duration_ms",
    "Duración de fetch + cálculo del reporte en milisegundos"
)


# ============================================================================
# CONTEXT MANAGER
# ============================================================================

class Timer:
    """
    Context manager para medir tiempo en milisegundos.

    Uso:
        with Timer(report_duration) as timer:
            ...
        timer.elapsed_ms
    """

    def __init__(
        self,
        histogram: Histogram = None,
        labels: Dict[str, str] = None
    ):
        self.histogram = histogram or report_duration
        self.labels = labels
        self._start: Optional[float] = None
        self._end: Optional[float] = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._end = time.perf_counter()
        self.histogram.observe(self.elapsed_ms, self.labels)
        return False

    @property
    def elapsed_ms(self) -> float:
        """Tiempo transcurrido en milisegundos."""
        if self._start is None:
            return 0.0
        end = self._end if self._end is not None else time.perf_counter()
        return (end - self._start) * 1000


# ============================================================================
# EXPORT FUNCTIONS
# ============================================================================

def get_metrics() -> Dict[str, Any]:
    """Obtiene todas las métricas en formato JSON."""
    return registry.get_all()


def get_prometheus_metrics() -> str:
    """Obtiene métricas en formato Prometheus."""
    return registry.to_prometheus()
