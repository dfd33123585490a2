"""
Cache de Reportes

Guarda reportes calculados por un tiempo acotado (TTL) para no volver
a leer la tienda en cada refresco del dashboard.

La clave combina tienda, huella del token y rango de fechas: dos tokens
distintos de la misma tienda nunca comparten entradas. El token no se
guarda en claro.

Uso:
    cache = ReportCache(ttl_seconds=60)
    report = cache.get(shop, token, date_range)
    if report is None:
        report = ...
        cache.set(shop, token, date_range, report)
"""

import hashlib
import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from src.metrics.finance import DateRange, MetricsReport
from src.utils.logger import get_logger

logger = get_logger(__name__)

CacheKey = Tuple[str, str, str]


@dataclass
class CacheEntry:
    """Reporte almacenado y su vencimiento (reloj monotónico)."""
    report: MetricsReport
    expires_at: float


def token_fingerprint(access_token: str) -> str:
    """Huella corta del token para usar como parte de la clave."""
    return hashlib.sha256(access_token.encode("utf-8")).hexdigest()[:16]


class ReportCache:
    """Cache en memoria con TTL por entrada."""

    def __init__(
        self,
        ttl_seconds: int = 60,
        max_entries: int = 256,
        clock: Callable[[], float] = time.monotonic
    ):
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = Lock()

    @staticmethod
    def make_key(shop: str, access_token: str, date_range: Optional[DateRange]) -> CacheKey:
        range_key = date_range.cache_key() if date_range else DateRange().cache_key()
        return (shop, token_fingerprint(access_token), range_key)

    def get(
        self,
        shop: str,
        access_token: str,
        date_range: Optional[DateRange] = None
    ) -> Optional[MetricsReport]:
        """Retorna el reporte vigente o None."""
        key = self.make_key(shop, access_token, date_range)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                del self._entries[key]
                return None
            return entry.report

    def set(
        self,
        shop: str,
        access_token: str,
        date_range: Optional[DateRange],
        report: MetricsReport
    ) -> None:
        """Guarda un reporte; descarta vencidos y, si hace falta, el más viejo."""
        key = self.make_key(shop, access_token, date_range)
        now = self._clock()
        with self._lock:
            self._purge_expired(now)
            if key not in self._entries and len(self._entries) >= self.max_entries:
                oldest = min(self._entries, key=lambda k: self._entries[k].expires_at)
                del self._entries[oldest]
            self._entries[key] = CacheEntry(report=report, expires_at=now + self.ttl_seconds)

    def _purge_expired(self, now: float) -> None:
        expired = [k for k, entry in self._entries.items() if entry.expires_at <= now]
        for k in expired:
            del self._entries[k]
        if expired:
            logger.debug(f"Cache: {len(expired)} reportes vencidos descartados")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
