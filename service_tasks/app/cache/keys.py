"""
Cache key layout and TTL policy for task caches.

Keys are ``{namespace}:{kind}:{identifier}``. The kind segment partitions the
keyspace so a whole kind can be enumerated or evicted by pattern without a
separate index.
"""

from enum import Enum
from typing import Any, Dict

DEFAULT_NAMESPACE = "taskmanagement"


class CacheKind(str, Enum):
    """Kinds of cached task aggregates."""

    TASK = "task"
    USER_TASKS = "user_tasks"
    TEAM_TASKS = "team_tasks"
    PROJECT_TASKS = "project_tasks"
    TEAM_PROJECTS_TASKS = "team_projects_tasks"
    TASK_STATS = "task_stats"
    USER_TASKS_SUMMARY = "user_tasks_summary"


# Fixed per kind; not configurable per call.
CACHE_TTLS: Dict[CacheKind, int] = {
    CacheKind.TASK: 900,
    CacheKind.USER_TASKS: 600,
    CacheKind.TEAM_TASKS: 480,
    CacheKind.PROJECT_TASKS: 480,
    CacheKind.TEAM_PROJECTS_TASKS: 3600,
    CacheKind.TASK_STATS: 300,
}

# Kinds counted by stats and cleared by bulk eviction
CORE_KINDS = (
    CacheKind.TASK,
    CacheKind.USER_TASKS,
    CacheKind.TEAM_TASKS,
    CacheKind.PROJECT_TASKS,
)

HEALTH_CHECK_TTL = 10


class CacheKeys:
    """Formats namespaced cache keys."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace

    def key(self, kind: CacheKind, identifier: Any) -> str:
        return f"{self.namespace}:{kind.value}:{identifier}"

    def pattern(self, kind: CacheKind) -> str:
        """Pattern matching every key of ``kind``."""
        return f"{self.namespace}:{kind.value}:*"

    def user_summary_pattern(self, user_id: Any) -> str:
        """Pattern matching every paginated summary page cached for a user."""
        return f"{self.namespace}:{CacheKind.USER_TASKS_SUMMARY.value}:{user_id}:*"

    def user_summary_key(self, user_id: Any, page: int, size: int) -> str:
        return f"{self.namespace}:{CacheKind.USER_TASKS_SUMMARY.value}:{user_id}:{page}:{size}"

    @property
    def health_check(self) -> str:
        return f"{self.namespace}:health_check"


def ttl_for(kind: CacheKind) -> int:
    """TTL in seconds for a cache kind."""
    return CACHE_TTLS[kind]
