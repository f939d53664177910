"""
Cache metrics recorder injected into the task cache.
"""

import threading
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TYPE_CHECKING

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


@dataclass
class CacheTypeMetrics:
    """Counters for a single cache kind."""

    cache_type: str
    hits: int = 0
    misses: int = 0
    writes: int = 0
    evictions: int = 0
    errors: int = 0
    total_requests: int = 0
    hit_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CacheMetrics:
    """Snapshot of all cache counters."""

    start_time: datetime
    bulk_evictions: int
    cache_type_metrics: Dict[str, CacheTypeMetrics] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start_time": self.start_time.isoformat(),
            "bulk_evictions": self.bulk_evictions,
            "cache_type_metrics": {
                name: metrics.to_dict() for name, metrics in self.cache_type_metrics.items()
            },
        }


def _hit_rate(hits: int, misses: int) -> float:
    total = hits + misses
    return hits / total * 100 if total > 0 else 0.0


class CacheMetricsRecorder:
    """In-process cache counters, optionally mirrored to Prometheus."""

    def __init__(self, collector: Optional["MetricsCollector"] = None):
        self.collector = collector
        self.logger = get_logger("tasks.cache.metrics")
        self._lock = threading.Lock()
        self._reset_counters()

    def _reset_counters(self):
        self._start_time = datetime.now(timezone.utc)
        self._hits: Dict[str, int] = defaultdict(int)
        self._misses: Dict[str, int] = defaultdict(int)
        self._writes: Dict[str, int] = defaultdict(int)
        self._evictions: Dict[str, int] = defaultdict(int)
        self._errors: Dict[str, int] = defaultdict(int)
        self._bulk_evictions = 0

    def _record(self, counters: Dict[str, int], namespace: str, operation: str):
        with self._lock:
            counters[namespace] += 1
        if self.collector is not None:
            self.collector.record_cache_operation(namespace, operation)

    def record_cache_hit(self, namespace: str):
        self._record(self._hits, namespace, "hit")

    def record_cache_miss(self, namespace: str):
        self._record(self._misses, namespace, "miss")

    def record_cache_write(self, namespace: str):
        self._record(self._writes, namespace, "write")

    def record_cache_eviction(self, namespace: str):
        self._record(self._evictions, namespace, "eviction")

    def record_cache_error(self, namespace: str):
        """Record a failed backend call (write, eviction or read fault)."""
        self._record(self._errors, namespace, "error")

    def record_bulk_eviction(self, count: int):
        """Record keys removed by a bulk eviction."""
        with self._lock:
            self._bulk_evictions += count
        if self.collector is not None:
            self.collector.record_cache_operation("all", "bulk_eviction", count)
        self.logger.debug("Bulk eviction recorded", count=count)

    def _type_metrics(self, cache_type: str) -> CacheTypeMetrics:
        hits = self._hits.get(cache_type, 0)
        misses = self._misses.get(cache_type, 0)
        return CacheTypeMetrics(
            cache_type=cache_type,
            hits=hits,
            misses=misses,
            writes=self._writes.get(cache_type, 0),
            evictions=self._evictions.get(cache_type, 0),
            errors=self._errors.get(cache_type, 0),
            total_requests=hits + misses,
            hit_rate=_hit_rate(hits, misses),
        )

    def _seen_types(self) -> set:
        return set(self._hits) | set(self._misses) | set(self._writes) | set(self._evictions) | set(self._errors)

    def get_metrics(self) -> CacheMetrics:
        """Snapshot of counters for every cache kind seen so far."""
        with self._lock:
            cache_types = self._seen_types()
            return CacheMetrics(
                start_time=self._start_time,
                bulk_evictions=self._bulk_evictions,
                cache_type_metrics={name: self._type_metrics(name) for name in sorted(cache_types)},
            )

    def get_metrics_for_cache_type(self, cache_type: str) -> CacheTypeMetrics:
        with self._lock:
            return self._type_metrics(cache_type)

    def get_summary_stats(self) -> Dict[str, Any]:
        """Totals across all cache kinds."""
        metrics = self.get_metrics()
        per_type = metrics.cache_type_metrics.values()

        total_hits = sum(m.hits for m in per_type)
        total_misses = sum(m.misses for m in per_type)

        return {
            "totalHits": total_hits,
            "totalMisses": total_misses,
            "totalWrites": sum(m.writes for m in per_type),
            "totalEvictions": sum(m.evictions for m in per_type),
            "totalErrors": sum(m.errors for m in per_type),
            "totalRequests": total_hits + total_misses,
            "overallHitRate": f"{_hit_rate(total_hits, total_misses):.2f}%",
            "bulkEvictions": metrics.bulk_evictions,
            "startTime": metrics.start_time.isoformat(),
            "cacheTypes": sorted(metrics.cache_type_metrics),
        }

    def overall_hit_rate(self) -> float:
        with self._lock:
            return _hit_rate(sum(self._hits.values()), sum(self._misses.values()))

    def reset_metrics(self):
        with self._lock:
            self._reset_counters()
        self.logger.info("Cache metrics reset")
