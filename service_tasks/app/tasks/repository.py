"""
Task repository contract and an in-memory implementation.

The repository is the source of truth the cache sits in front of. The
in-memory store backs local runs and tests; production wiring supplies a
database-backed implementation of the same protocol.
"""

import threading
from typing import Dict, List, Optional, Protocol

from .models import Task


class TaskRepository(Protocol):
    """Persistence contract for tasks."""

    async def get(self, task_id: str) -> Optional[Task]:
        ...

    async def list_by_owner(self, owner_id: str) -> List[Task]:
        ...

    async def list_by_team(self, team_id: str) -> List[Task]:
        ...

    async def list_by_project(self, project_id: str) -> List[Task]:
        ...

    async def save(self, task: Task) -> Task:
        ...

    async def delete(self, task_id: str) -> bool:
        ...


class InMemoryTaskRepository:
    """Dictionary-backed task store."""

    def __init__(self):
        self._tasks: Dict[str, Task] = {}
        self._lock = threading.Lock()

    async def get(self, task_id: str) -> Optional[Task]:
        with self._lock:
            task = self._tasks.get(task_id)
        return task.model_copy() if task else None

    def _select(self, **criteria) -> List[Task]:
        with self._lock:
            tasks = list(self._tasks.values())
        matched = [
            t for t in tasks
            if all(getattr(t, name) == value for name, value in criteria.items())
        ]
        return sorted(matched, key=lambda t: t.created_at)

    async def list_by_owner(self, owner_id: str) -> List[Task]:
        return self._select(owner_id=owner_id)

    async def list_by_team(self, team_id: str) -> List[Task]:
        return self._select(team_id=team_id)

    async def list_by_project(self, project_id: str) -> List[Task]:
        return self._select(project_id=project_id)

    async def save(self, task: Task) -> Task:
        with self._lock:
            self._tasks[task.task_id] = task.model_copy()
        return task

    async def delete(self, task_id: str) -> bool:
        with self._lock:
            return self._tasks.pop(task_id, None) is not None
