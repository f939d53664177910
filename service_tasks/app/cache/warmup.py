"""
On-demand cache warm-up for task lists.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence, TYPE_CHECKING

from shared.logging import get_logger

from .task_cache import TaskCacheService

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from ..tasks.service import CachedTaskService


@dataclass
class WarmupResult:
    """Outcome of a warm-up run."""

    skipped: bool = False
    planned: int = 0
    warmed: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class CacheWarmupService:
    """Pre-loads task lists for a configured set of users."""

    def __init__(self, cache: TaskCacheService, task_service: "CachedTaskService",
                 user_ids: Sequence[str] = ()):
        self.cache = cache
        self.task_service = task_service
        self.user_ids = list(user_ids)
        self.logger = get_logger("tasks.cache.warmup")

    async def warmup(self) -> WarmupResult:
        """Load each configured user's tasks through the read-through path."""
        if not await self.cache.is_cache_available():
            self.logger.warning("Cache not available, skipping warmup")
            return WarmupResult(skipped=True, planned=len(self.user_ids))

        result = WarmupResult(planned=len(self.user_ids))
        for user_id in self.user_ids:
            try:
                await self.task_service.get_user_tasks(user_id)
                result.warmed += 1
            except Exception as e:
                self.logger.error("Cache warmup failed for user", user_id=user_id, error=str(e))
                result.errors.append(f"{user_id}: {e}")

        self.logger.info(
            "Cache warmup completed",
            planned=result.planned,
            warmed=result.warmed,
            errors=len(result.errors),
        )
        return result

    async def get_warmup_status(self) -> Dict[str, Any]:
        stats = await self.cache.get_cache_stats()
        metrics = self.cache.metrics
        return {
            "cacheAvailable": stats.available,
            "totalCacheSize": stats.total_cache_size,
            "cacheTypes": sorted(metrics.get_metrics().cache_type_metrics),
            "overallHitRate": round(metrics.overall_hit_rate(), 2),
        }
