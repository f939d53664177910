"""
Unit tests for TaskCacheService.
"""

import pytest

from service_tasks.app.cache.keys import CacheKind
from service_tasks.app.cache.task_cache import TaskCacheService
from shared.errors import CacheError
from shared.test_helpers import TestDataFactory


class TestTaskCacheReadWrite:
    """Cache, fetch and evict for each kind."""

    @pytest.mark.asyncio
    async def test_cache_then_get_task_is_a_hit(self, cache, backend, recorder):
        """A cached task comes back unchanged and counts as a hit."""
        task = TestDataFactory.create_task_payload("42")

        await cache.cache_task(42, task)
        result = await cache.get_task(42)

        assert result == task
        assert "taskmanagement:task:42" in backend.store
        assert backend.ttls["taskmanagement:task:42"] == 900
        metrics = recorder.get_metrics_for_cache_type("task")
        assert metrics.hits == 1
        assert metrics.writes == 1

    @pytest.mark.asyncio
    async def test_get_after_evict_is_a_miss(self, cache, recorder):
        await cache.cache_task(42, TestDataFactory.create_task_payload("42"))

        assert await cache.evict_task(42) is True
        assert await cache.get_task(42) is None

        metrics = recorder.get_metrics_for_cache_type("task")
        assert metrics.evictions == 1
        assert metrics.misses == 1

    @pytest.mark.asyncio
    async def test_never_written_key_is_a_miss(self, cache, recorder):
        assert await cache.get_user_tasks("nobody") is None
        assert recorder.get_metrics_for_cache_type("user_tasks").misses == 1

    @pytest.mark.asyncio
    async def test_list_kinds_use_their_ttls(self, cache, backend):
        tasks = [TestDataFactory.create_task_payload("1")]

        await cache.cache_user_tasks("u1", tasks)
        await cache.cache_team_tasks("t1", tasks)
        await cache.cache_project_tasks("p1", tasks)
        await cache.cache_team_projects_tasks("t1", tasks)

        assert backend.ttls == {
            "taskmanagement:user_tasks:u1": 600,
            "taskmanagement:team_tasks:t1": 480,
            "taskmanagement:project_tasks:p1": 480,
            "taskmanagement:team_projects_tasks:t1": 3600,
        }
        assert await cache.get_team_projects_tasks("t1") == tasks
        assert await cache.get_project_tasks("p1") == tasks

    @pytest.mark.asyncio
    async def test_task_stats_round_trip(self, cache, backend):
        stats = {"total": 3, "byStatus": {"TODO": 2, "DONE": 1}}

        await cache.cache_task_stats("u1", stats)

        assert await cache.get_task_stats("u1") == stats
        assert backend.ttls["taskmanagement:task_stats:u1"] == 300
        assert await cache.evict_task_stats("u1") is True
        assert await cache.get_task_stats("u1") is None

    @pytest.mark.asyncio
    async def test_empty_list_is_a_hit(self, cache, recorder):
        await cache.cache_team_tasks("t1", [])

        assert await cache.get_team_tasks("t1") == []
        assert recorder.get_metrics_for_cache_type("team_tasks").hits == 1

    @pytest.mark.asyncio
    async def test_custom_namespace(self, backend, recorder):
        cache = TaskCacheService(backend, recorder, namespace="staging")

        await cache.cache_task("a", {"task_id": "a"})

        assert list(backend.store) == ["staging:task:a"]


class TestTaskCacheFailures:
    """Backend faults on each path."""

    @pytest.mark.asyncio
    async def test_read_fault_is_a_miss(self, cache, backend, recorder):
        await cache.cache_task(42, {"task_id": "42"})
        backend.fail_on.add("get")

        assert await cache.get_task(42) is None

        metrics = recorder.get_metrics_for_cache_type("task")
        assert metrics.misses == 1
        assert metrics.errors == 1

    @pytest.mark.asyncio
    async def test_write_fault_raises_cache_error(self, cache, backend, recorder):
        backend.fail_on.add("set")

        with pytest.raises(CacheError) as exc_info:
            await cache.cache_user_tasks("u1", [])

        assert isinstance(exc_info.value.cause, ConnectionError)
        assert exc_info.value.details["key"] == "taskmanagement:user_tasks:u1"
        assert recorder.get_metrics_for_cache_type("user_tasks").errors == 1
        assert recorder.get_metrics_for_cache_type("user_tasks").writes == 0

    @pytest.mark.asyncio
    async def test_evict_fault_returns_false(self, cache, backend, recorder):
        backend.fail_on.add("delete")

        assert await cache.evict_project_tasks("p1") is False
        assert recorder.get_metrics_for_cache_type("project_tasks").errors == 1


class TestRelatedEviction:
    """Write-path invalidation."""

    @pytest.mark.asyncio
    async def test_evicts_task_and_every_list_view(self, cache, backend):
        await cache.cache_task(42, {"task_id": "42"})
        await cache.cache_user_tasks(7, [{"task_id": "42"}])
        await cache.cache_team_tasks(3, [{"task_id": "42"}])
        await cache.cache_project_tasks(9, [{"task_id": "42"}])
        await cache.cache_task(43, {"task_id": "43"})

        results = await cache.evict_related_caches(42, 7, 3, 9)

        assert all(results.values())
        assert await cache.get_task(42) is None
        assert await cache.get_user_tasks(7) is None
        assert await cache.get_team_tasks(3) is None
        assert await cache.get_project_tasks(9) is None
        assert await cache.get_task(43) == {"task_id": "43"}

    @pytest.mark.asyncio
    async def test_evictions_run_in_fixed_order(self, cache, backend):
        await cache.evict_related_caches(42, 7, 3, 9)

        deletes = [call[1] for call in backend.calls if call[0] == "delete"]
        assert deletes == [
            "taskmanagement:task:42",
            "taskmanagement:user_tasks:7",
            "taskmanagement:team_tasks:3",
            "taskmanagement:project_tasks:9",
        ]

    @pytest.mark.asyncio
    async def test_none_ids_are_skipped(self, cache, backend):
        results = await cache.evict_related_caches(42, 7, None, None)

        assert set(results) == {"task", "user_tasks", "user_tasks_summary"}
        assert not any(call[0] == "delete" and "team_tasks" in call[1] for call in backend.calls)

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_later_evictions(self, cache, backend):
        await cache.cache_task(42, {"task_id": "42"})
        await cache.cache_team_tasks(3, [])
        await cache.cache_project_tasks(9, [])
        backend.fail_on.add("delete")
        backend.fail_keys.add("taskmanagement:user_tasks:7")

        results = await cache.evict_related_caches(42, 7, 3, 9)

        assert results["user_tasks"] is False
        assert results["task"] is True
        assert results["team_tasks"] is True
        assert results["project_tasks"] is True
        assert "taskmanagement:team_tasks:3" not in backend.store
        assert "taskmanagement:project_tasks:9" not in backend.store

    @pytest.mark.asyncio
    async def test_user_eviction_clears_summary_pages(self, cache, backend):
        for page in range(3):
            key = cache.keys.user_summary_key(7, page, 20)
            backend.store[key] = "[]"
        backend.store[cache.keys.user_summary_key(8, 0, 20)] = "[]"

        assert await cache.evict_user_tasks_summary(7) is True

        assert list(backend.store) == ["taskmanagement:user_tasks_summary:8:0:20"]

    @pytest.mark.asyncio
    async def test_summary_eviction_with_nothing_cached(self, cache):
        assert await cache.evict_user_tasks_summary(7) is True


class TestBulkEvictionAndStats:
    """Bulk eviction, availability and stats."""

    @pytest.mark.asyncio
    async def test_evict_all_removes_core_kinds(self, cache, backend, recorder):
        await cache.cache_task(1, {})
        await cache.cache_task(2, {})
        await cache.cache_user_tasks("u", [])
        await cache.cache_team_projects_tasks("t", [])

        deleted = await cache.evict_all_task_caches()

        assert deleted == 3
        assert list(backend.store) == ["taskmanagement:team_projects_tasks:t"]
        assert recorder.get_metrics().bulk_evictions == 3

    @pytest.mark.asyncio
    async def test_evict_all_fault_raises(self, cache, backend):
        backend.fail_on.add("keys")

        with pytest.raises(CacheError):
            await cache.evict_all_task_caches()

    @pytest.mark.asyncio
    async def test_cache_available_leaves_no_sentinel(self, cache, backend):
        assert await cache.is_cache_available() is True
        assert backend.store == {}

    @pytest.mark.asyncio
    async def test_cache_unavailable_never_raises(self, cache, backend):
        backend.fail_on.add("set")

        assert await cache.is_cache_available() is False

    @pytest.mark.asyncio
    async def test_stats_count_keys_per_kind(self, cache):
        await cache.cache_task(1, {})
        await cache.cache_task(2, {})
        await cache.cache_user_tasks("u", [])
        await cache.cache_project_tasks("p", [])

        stats = await cache.get_cache_stats()

        assert stats.task_cache_size == 2
        assert stats.user_tasks_cache_size == 1
        assert stats.team_tasks_cache_size == 0
        assert stats.project_tasks_cache_size == 1
        assert stats.total_cache_size == 4
        assert stats.available is True
        assert stats.to_dict()["totalCacheSize"] == 4

    @pytest.mark.asyncio
    async def test_stats_treat_failed_enumeration_as_zero(self, cache, backend):
        await cache.cache_task(1, {})
        backend.fail_on.add("keys")

        stats = await cache.get_cache_stats()

        assert stats.total_cache_size == 0
        assert stats.available is True

    @pytest.mark.asyncio
    async def test_kind_values_match_key_segments(self, cache):
        assert cache.keys.key(CacheKind.TEAM_TASKS, 3) == "taskmanagement:team_tasks:3"
        assert cache.keys.pattern(CacheKind.TASK) == "taskmanagement:task:*"
