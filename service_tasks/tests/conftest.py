"""
Shared fixtures for task service tests.
"""

import pytest

from service_tasks.app.cache.metrics import CacheMetricsRecorder
from service_tasks.app.cache.task_cache import TaskCacheService
from service_tasks.app.tasks.repository import InMemoryTaskRepository
from service_tasks.app.tasks.service import CachedTaskService
from shared.test_helpers import DummyMetrics, FakeCacheBackend


@pytest.fixture
def backend():
    return FakeCacheBackend()


@pytest.fixture
def collector():
    return DummyMetrics()


@pytest.fixture
def recorder(collector):
    return CacheMetricsRecorder(collector)


@pytest.fixture
def cache(backend, recorder):
    return TaskCacheService(backend, recorder)


@pytest.fixture
def repository():
    return InMemoryTaskRepository()


@pytest.fixture
def task_service(repository, cache):
    return CachedTaskService(repository, cache)
