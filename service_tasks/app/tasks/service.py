"""
Cache-aware task service.

Reads go to the cache first and fall back to the repository on a miss,
repopulating the cache afterwards. Writes go to the repository and then
evict the task entry plus every list view it appears in.
"""

import uuid
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from shared.errors import CacheError, NotFoundError, ValidationError
from shared.logging import get_logger

from ..cache.task_cache import TaskCacheService
from .models import Task, TaskCreateRequest, TaskStatus, TaskUpdateRequest
from .repository import TaskRepository


class CachedTaskService:
    """Task reads and writes with read-through caching."""

    def __init__(self, repository: TaskRepository, cache: TaskCacheService):
        self.repository = repository
        self.cache = cache
        self.logger = get_logger("tasks.service")

    async def _repopulate(self, write: Callable[[], Awaitable[None]], **context) -> None:
        try:
            await write()
        except CacheError as e:
            self.logger.warning("Cache repopulation skipped", error=e.message, **context)

    async def _decode(self, cached: Any, decode: Callable[[Any], Any],
                      evict: Callable[[], Awaitable[bool]], **context) -> Optional[Any]:
        """Decode a cached payload; unreadable entries are evicted and read as a miss."""
        if cached is None:
            return None
        try:
            return decode(cached)
        except (PydanticValidationError, TypeError) as e:
            self.logger.warning("Discarding unreadable cache entry", error=str(e), **context)
            await evict()
            return None

    async def get_task(self, task_id: str) -> Task:
        cached = await self._decode(
            await self.cache.get_task(task_id),
            Task.model_validate,
            lambda: self.cache.evict_task(task_id),
            task_id=task_id,
        )
        if cached is not None:
            return cached

        task = await self.repository.get(task_id)
        if task is None:
            raise NotFoundError("Task not found", details={"task_id": task_id})

        await self._repopulate(lambda: self.cache.cache_task(task_id, task.to_cache()), task_id=task_id)
        return task

    async def _get_list(
        self,
        cached: Optional[list],
        load: Callable[[], Awaitable[List[Task]]],
        store: Callable[[list], Awaitable[None]],
        evict: Callable[[], Awaitable[bool]],
        **context,
    ) -> List[Task]:
        decoded = await self._decode(
            cached, lambda items: [Task.model_validate(item) for item in items], evict, **context
        )
        if decoded is not None:
            return decoded

        tasks = await load()
        await self._repopulate(lambda: store([t.to_cache() for t in tasks]), **context)
        return tasks

    async def get_user_tasks(self, user_id: str) -> List[Task]:
        return await self._get_list(
            await self.cache.get_user_tasks(user_id),
            lambda: self.repository.list_by_owner(user_id),
            lambda payload: self.cache.cache_user_tasks(user_id, payload),
            lambda: self.cache.evict_user_tasks(user_id),
            user_id=user_id,
        )

    async def get_team_tasks(self, team_id: str) -> List[Task]:
        return await self._get_list(
            await self.cache.get_team_tasks(team_id),
            lambda: self.repository.list_by_team(team_id),
            lambda payload: self.cache.cache_team_tasks(team_id, payload),
            lambda: self.cache.evict_team_tasks(team_id),
            team_id=team_id,
        )

    async def get_project_tasks(self, project_id: str) -> List[Task]:
        return await self._get_list(
            await self.cache.get_project_tasks(project_id),
            lambda: self.repository.list_by_project(project_id),
            lambda payload: self.cache.cache_project_tasks(project_id, payload),
            lambda: self.cache.evict_project_tasks(project_id),
            project_id=project_id,
        )

    async def get_task_stats(self, user_id: str) -> Dict[str, Any]:
        """Task counts per status for one owner."""
        cached = await self._decode(
            await self.cache.get_task_stats(user_id),
            _stats_payload,
            lambda: self.cache.evict_task_stats(user_id),
            user_id=user_id,
        )
        if cached is not None:
            return cached

        tasks = await self.repository.list_by_owner(user_id)
        counts = Counter(task.status.value for task in tasks)
        stats = {
            "total": len(tasks),
            "byStatus": {status.value: counts.get(status.value, 0) for status in TaskStatus},
        }
        await self._repopulate(lambda: self.cache.cache_task_stats(user_id, stats), user_id=user_id)
        return stats

    async def _invalidate(self, task: Task) -> None:
        await self.cache.evict_related_caches(task.task_id, task.owner_id, task.team_id, task.project_id)
        await self.cache.evict_task_stats(task.owner_id)

    async def create_task(self, owner_id: str, request: TaskCreateRequest) -> Task:
        task = Task(
            task_id=str(uuid.uuid4()),
            owner_id=owner_id,
            creator_id=owner_id,
            **request.model_dump(),
        )
        saved = await self.repository.save(task)
        await self._invalidate(saved)
        self.logger.info("Task created", task_id=saved.task_id, owner_id=owner_id)
        return saved

    async def update_task(self, task_id: str, request: TaskUpdateRequest) -> Task:
        existing = await self.repository.get(task_id)
        if existing is None:
            raise NotFoundError("Task not found", details={"task_id": task_id})

        changes = request.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update", details={"task_id": task_id})

        try:
            updated = Task.model_validate(
                {**existing.model_dump(), **changes, "updated_at": datetime.now(timezone.utc)}
            )
        except PydanticValidationError as e:
            fields = sorted({".".join(str(part) for part in error["loc"]) for error in e.errors()})
            raise ValidationError("Invalid task update", details={"task_id": task_id, "fields": fields})

        saved = await self.repository.save(updated)

        await self._invalidate(saved)
        # The task also left whichever lists it moved out of
        moved_from = (
            existing.owner_id if existing.owner_id != saved.owner_id else None,
            existing.team_id if existing.team_id != saved.team_id else None,
            existing.project_id if existing.project_id != saved.project_id else None,
        )
        if any(value is not None for value in moved_from):
            await self.cache.evict_related_caches(None, *moved_from)
        if moved_from[0] is not None:
            await self.cache.evict_task_stats(moved_from[0])

        self.logger.info("Task updated", task_id=task_id, fields=sorted(changes))
        return saved

    async def delete_task(self, task_id: str) -> None:
        existing = await self.repository.get(task_id)
        if existing is None:
            raise NotFoundError("Task not found", details={"task_id": task_id})

        await self.repository.delete(task_id)
        await self._invalidate(existing)
        self.logger.info("Task deleted", task_id=task_id)


def _stats_payload(cached: Any) -> Dict[str, Any]:
    if not isinstance(cached, dict) or "total" not in cached:
        raise TypeError("task stats entry is not a stats mapping")
    return cached
