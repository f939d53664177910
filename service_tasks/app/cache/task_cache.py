"""
Task cache service.

A best-effort accelerator in front of the task store. Reads fold every
backend fault into a miss so callers have a single fallback path; writes
raise ``CacheError`` and leave it to the caller whether that is fatal;
evictions are logged and never raised. Nothing here is retried.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from shared.errors import CacheError
from shared.logging import get_logger

from .backend import CacheBackend
from .keys import CORE_KINDS, DEFAULT_NAMESPACE, HEALTH_CHECK_TTL, CacheKeys, CacheKind, ttl_for
from .metrics import CacheMetricsRecorder


@dataclass
class CacheStats:
    """Key counts per cache kind."""

    task_cache_size: int = 0
    user_tasks_cache_size: int = 0
    team_tasks_cache_size: int = 0
    project_tasks_cache_size: int = 0
    available: bool = False

    @property
    def total_cache_size(self) -> int:
        return (
            self.task_cache_size
            + self.user_tasks_cache_size
            + self.team_tasks_cache_size
            + self.project_tasks_cache_size
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskCacheSize": self.task_cache_size,
            "userTasksCacheSize": self.user_tasks_cache_size,
            "teamTasksCacheSize": self.team_tasks_cache_size,
            "projectTasksCacheSize": self.project_tasks_cache_size,
            "totalCacheSize": self.total_cache_size,
            "available": self.available,
        }


class TaskCacheService:
    """Caches single tasks and task lists keyed by owner, team and project."""

    def __init__(self, backend: CacheBackend, metrics: CacheMetricsRecorder,
                 namespace: str = DEFAULT_NAMESPACE):
        self.backend = backend
        self.metrics = metrics
        self.keys = CacheKeys(namespace)
        self.logger = get_logger("tasks.cache")

    # Generic read/write/evict, one kind at a time

    async def _store(self, kind: CacheKind, identifier: Any, value: Any) -> None:
        key = self.keys.key(kind, identifier)
        try:
            await self.backend.set(key, value, ttl_for(kind))
        except Exception as e:
            self.logger.error("Failed to write cache entry", cache_type=kind.value, key=key, error=str(e))
            self.metrics.record_cache_error(kind.value)
            raise CacheError(f"Failed to cache {kind.value}", cause=e, details={"key": key})
        self.metrics.record_cache_write(kind.value)
        self.logger.debug("Cached entry", cache_type=kind.value, key=key, ttl=ttl_for(kind))

    async def _fetch(self, kind: CacheKind, identifier: Any) -> Optional[Any]:
        key = self.keys.key(kind, identifier)
        try:
            value = await self.backend.get(key)
        except Exception as e:
            self.logger.error("Failed to read cache entry", cache_type=kind.value, key=key, error=str(e))
            self.metrics.record_cache_error(kind.value)
            self.metrics.record_cache_miss(kind.value)
            return None

        if value is None:
            self.metrics.record_cache_miss(kind.value)
            self.logger.debug("Cache miss", cache_type=kind.value, key=key)
            return None

        self.metrics.record_cache_hit(kind.value)
        self.logger.debug("Cache hit", cache_type=kind.value, key=key)
        return value

    async def _evict(self, kind: CacheKind, identifier: Any) -> bool:
        key = self.keys.key(kind, identifier)
        try:
            deleted = await self.backend.delete(key)
        except Exception as e:
            self.logger.error("Failed to evict cache entry", cache_type=kind.value, key=key, error=str(e))
            self.metrics.record_cache_error(kind.value)
            return False
        self.metrics.record_cache_eviction(kind.value)
        self.logger.debug("Evicted cache entry", cache_type=kind.value, key=key, deleted=deleted)
        return True

    # Single task

    async def cache_task(self, task_id: Any, task: Dict[str, Any]) -> None:
        await self._store(CacheKind.TASK, task_id, task)

    async def get_task(self, task_id: Any) -> Optional[Dict[str, Any]]:
        return await self._fetch(CacheKind.TASK, task_id)

    async def evict_task(self, task_id: Any) -> bool:
        return await self._evict(CacheKind.TASK, task_id)

    # Per-user lists

    async def cache_user_tasks(self, user_id: Any, tasks: List[Dict[str, Any]]) -> None:
        await self._store(CacheKind.USER_TASKS, user_id, tasks)

    async def get_user_tasks(self, user_id: Any) -> Optional[List[Dict[str, Any]]]:
        return await self._fetch(CacheKind.USER_TASKS, user_id)

    async def evict_user_tasks(self, user_id: Any) -> bool:
        return await self._evict(CacheKind.USER_TASKS, user_id)

    async def evict_user_tasks_summary(self, user_id: Any) -> bool:
        """Evict every cached summary page for a user."""
        pattern = self.keys.user_summary_pattern(user_id)
        try:
            keys = await self.backend.keys(pattern)
            if not keys:
                self.logger.debug("No user task summaries cached", user_id=user_id)
                return True
            deleted = await self.backend.delete(*keys)
        except Exception as e:
            self.logger.error("Failed to evict user task summaries", user_id=user_id, error=str(e))
            self.metrics.record_cache_error(CacheKind.USER_TASKS_SUMMARY.value)
            return False
        self.metrics.record_cache_eviction(CacheKind.USER_TASKS_SUMMARY.value)
        self.logger.info("Evicted user task summaries", user_id=user_id, deleted=deleted)
        return True

    # Per-team lists

    async def cache_team_tasks(self, team_id: Any, tasks: List[Dict[str, Any]]) -> None:
        await self._store(CacheKind.TEAM_TASKS, team_id, tasks)

    async def get_team_tasks(self, team_id: Any) -> Optional[List[Dict[str, Any]]]:
        return await self._fetch(CacheKind.TEAM_TASKS, team_id)

    async def evict_team_tasks(self, team_id: Any) -> bool:
        return await self._evict(CacheKind.TEAM_TASKS, team_id)

    async def cache_team_projects_tasks(self, team_id: Any, tasks: List[Dict[str, Any]]) -> None:
        await self._store(CacheKind.TEAM_PROJECTS_TASKS, team_id, tasks)

    async def get_team_projects_tasks(self, team_id: Any) -> Optional[List[Dict[str, Any]]]:
        return await self._fetch(CacheKind.TEAM_PROJECTS_TASKS, team_id)

    async def evict_team_projects_tasks(self, team_id: Any) -> bool:
        return await self._evict(CacheKind.TEAM_PROJECTS_TASKS, team_id)

    # Per-project lists

    async def cache_project_tasks(self, project_id: Any, tasks: List[Dict[str, Any]]) -> None:
        await self._store(CacheKind.PROJECT_TASKS, project_id, tasks)

    async def get_project_tasks(self, project_id: Any) -> Optional[List[Dict[str, Any]]]:
        return await self._fetch(CacheKind.PROJECT_TASKS, project_id)

    async def evict_project_tasks(self, project_id: Any) -> bool:
        return await self._evict(CacheKind.PROJECT_TASKS, project_id)

    # Per-user task counts

    async def cache_task_stats(self, user_id: Any, stats: Dict[str, Any]) -> None:
        await self._store(CacheKind.TASK_STATS, user_id, stats)

    async def get_task_stats(self, user_id: Any) -> Optional[Dict[str, Any]]:
        return await self._fetch(CacheKind.TASK_STATS, user_id)

    async def evict_task_stats(self, user_id: Any) -> bool:
        return await self._evict(CacheKind.TASK_STATS, user_id)

    # Invalidation

    async def evict_related_caches(
        self,
        task_id: Optional[Any],
        user_id: Optional[Any],
        team_id: Optional[Any],
        project_id: Optional[Any],
    ) -> Dict[str, bool]:
        """Evict the task entry and the three list views derived from it.

        Evictions run in a fixed order (task, user, team, project). Each one
        is attempted even if an earlier one failed; there is no rollback, so
        a failure leaves the set partially evicted until TTL expiry.
        """
        self.logger.info(
            "Evicting related caches",
            task_id=task_id,
            user_id=user_id,
            team_id=team_id,
            project_id=project_id,
        )
        results: Dict[str, bool] = {}

        if task_id is not None:
            results[CacheKind.TASK.value] = await self.evict_task(task_id)

        if user_id is not None:
            results[CacheKind.USER_TASKS.value] = await self.evict_user_tasks(user_id)
            results[CacheKind.USER_TASKS_SUMMARY.value] = await self.evict_user_tasks_summary(user_id)

        if team_id is not None:
            results[CacheKind.TEAM_TASKS.value] = await self.evict_team_tasks(team_id)

        if project_id is not None:
            results[CacheKind.PROJECT_TASKS.value] = await self.evict_project_tasks(project_id)

        failed = [kind for kind, ok in results.items() if not ok]
        if failed:
            self.logger.warning("Partial eviction of related caches", task_id=task_id, failed=failed)

        return results

    async def evict_all_task_caches(self) -> int:
        """Delete every key of the core task kinds."""
        self.logger.info("Starting bulk cache eviction")
        deleted_count = 0
        try:
            for kind in CORE_KINDS:
                keys = await self.backend.keys(self.keys.pattern(kind))
                if keys:
                    deleted_count += await self.backend.delete(*keys)
        except Exception as e:
            self.logger.error("Bulk cache eviction failed", error=str(e))
            raise CacheError("Failed to perform bulk cache eviction", cause=e)

        self.metrics.record_bulk_eviction(deleted_count)
        self.logger.info("Bulk cache eviction completed", deleted=deleted_count)
        return deleted_count

    # Observability

    async def is_cache_available(self) -> bool:
        """Round-trip a sentinel key through the backend."""
        key = self.keys.health_check
        try:
            await self.backend.set(key, "ok", HEALTH_CHECK_TTL)
            result = await self.backend.get(key)
            await self.backend.delete(key)
            return result == "ok"
        except Exception as e:
            self.logger.warning("Cache health check failed", error=str(e))
            return False

    async def _count_keys(self, kind: CacheKind) -> int:
        try:
            return len(await self.backend.keys(self.keys.pattern(kind)))
        except Exception as e:
            self.logger.warning("Cache key enumeration failed", cache_type=kind.value, error=str(e))
            return 0

    async def get_cache_stats(self) -> CacheStats:
        """Key counts per kind; failed enumeration counts as zero."""
        return CacheStats(
            task_cache_size=await self._count_keys(CacheKind.TASK),
            user_tasks_cache_size=await self._count_keys(CacheKind.USER_TASKS),
            team_tasks_cache_size=await self._count_keys(CacheKind.TEAM_TASKS),
            project_tasks_cache_size=await self._count_keys(CacheKind.PROJECT_TASKS),
            available=await self.is_cache_available(),
        )
