"""
Task service with Redis caching and premium subscription gating.
"""

from typing import Dict, Optional

from fastapi import Depends, Request

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.errors import CacheError
from shared.metrics import MetricsCollector

from .auth.identity import ApiKeyPrincipalResolver, require_user
from .cache.backend import CacheBackend, RedisCacheBackend
from .cache.keys import CACHE_TTLS, HEALTH_CHECK_TTL
from .cache.metrics import CacheMetricsRecorder
from .cache.task_cache import TaskCacheService
from .cache.warmup import CacheWarmupService
from .subscriptions.gate import SubscriptionGate
from .subscriptions.provider import (
    HttpSubscriptionProvider,
    InMemoryProfileStore,
    ProfileSubscriptionProvider,
    SubscriptionProvider,
)
from .tasks.models import TaskCreateRequest, TaskUpdateRequest
from .tasks.repository import InMemoryTaskRepository, TaskRepository
from .tasks.service import CachedTaskService

SERVICE_NAME = "tasks"
SERVICE_PORT = 8010


class TaskCacheServiceApp(BaseService):
    """Task API fronted by the task cache and the subscription gate."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        backend: Optional[CacheBackend] = None,
        repository: Optional[TaskRepository] = None,
        provider: Optional[SubscriptionProvider] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        config = config or get_config(SERVICE_NAME, SERVICE_PORT)

        # Only a backend we built ourselves is started and stopped here
        self._owns_backend = backend is None
        self.backend = backend or RedisCacheBackend(config.redis_url)
        self.repository = repository or InMemoryTaskRepository()
        self.profile_store = InMemoryProfileStore()
        self.provider = provider or self._build_provider(config)

        super().__init__(SERVICE_NAME, SERVICE_PORT, config=config, metrics=metrics)

        self.cache_metrics = CacheMetricsRecorder(self.metrics if self.config.enable_metrics else None)
        self.cache = TaskCacheService(self.backend, self.cache_metrics, namespace=self.config.cache_namespace)
        self.task_service = CachedTaskService(self.repository, self.cache)
        self.warmup_service = CacheWarmupService(self.cache, self.task_service, self.config.warmup_user_ids)
        self.gate = SubscriptionGate(self.provider, metrics=self.metrics, upgrade_url=self.config.upgrade_url)
        self.principal_resolver = ApiKeyPrincipalResolver(self.config.api_keys)

        self.app.middleware("http")(self.principal_resolver)
        self._setup_task_routes()
        self._setup_cache_admin_routes()

    def _build_provider(self, config: ServiceConfig) -> SubscriptionProvider:
        if config.subscription_service_url:
            return HttpSubscriptionProvider(
                config.subscription_service_url,
                timeout=config.subscription_timeout_seconds,
            )
        return ProfileSubscriptionProvider(self.profile_store.get)

    async def start(self):
        if self._owns_backend:
            try:
                await self.backend.start()
            except CacheError as e:
                # Cache is an accelerator; serve from the repository until Redis is back
                self.logger.error("Cache backend unavailable at startup", error=e.message)

        if self.config.warmup_on_start and self.config.warmup_user_ids:
            await self.warmup_service.warmup()

        self.logger.info("Task service started")

    async def stop(self):
        if self._owns_backend:
            await self.backend.stop()
        self.logger.info("Task service stopped")

    async def _check_dependencies(self) -> Dict[str, str]:
        return {"redis": "ok" if await self.cache.is_cache_available() else "error"}

    def _setup_task_routes(self):
        """Task endpoints gated on premium access."""
        gate = self.gate
        tasks = self.task_service

        @self.app.post("/api/tasks", status_code=201)
        @gate.requires_premium(
            message="Creating tasks requires a Premium subscription",
            feature="task-creation",
        )
        async def create_task(body: TaskCreateRequest, request: Request,
                              user_id: str = Depends(require_user)):
            task = await tasks.create_task(user_id, body)
            return {"success": True, "data": task.model_dump(mode="json")}

        @self.app.get("/api/tasks/my-tasks")
        @gate.requires_premium(feature="my-tasks-viewing", allow_read_only=True)
        async def get_my_tasks(request: Request, user_id: str = Depends(require_user)):
            items = await tasks.get_user_tasks(user_id)
            return {
                "success": True,
                "data": [task.model_dump(mode="json") for task in items],
                "count": len(items),
            }

        @self.app.get("/api/tasks/my-tasks/stats")
        @gate.requires_premium(feature="my-tasks-viewing", allow_read_only=True)
        async def get_my_task_stats(request: Request, user_id: str = Depends(require_user)):
            return {"success": True, "data": await tasks.get_task_stats(user_id)}

        @self.app.get("/api/tasks/{task_id}")
        @gate.requires_premium(feature="task-viewing", allow_read_only=True)
        async def get_task(task_id: str, request: Request, user_id: str = Depends(require_user)):
            task = await tasks.get_task(task_id)
            return {"success": True, "data": task.model_dump(mode="json")}

        @self.app.put("/api/tasks/my-tasks/{task_id}")
        @gate.requires_premium(
            message="Editing tasks requires a Premium subscription",
            feature="task-editing",
        )
        async def update_task(task_id: str, body: TaskUpdateRequest, request: Request,
                              user_id: str = Depends(require_user)):
            task = await tasks.update_task(task_id, body)
            return {"success": True, "data": task.model_dump(mode="json")}

        @self.app.delete("/api/tasks/my-tasks/{task_id}")
        @gate.requires_premium(feature="task-deletion")
        async def delete_task(task_id: str, request: Request, user_id: str = Depends(require_user)):
            await tasks.delete_task(task_id)
            return {"success": True, "taskId": task_id}

    def _setup_cache_admin_routes(self):
        """Cache inspection and eviction endpoints."""
        cache = self.cache
        cache_metrics = self.cache_metrics
        prefix = "/api/admin/cache"

        @self.app.get(f"{prefix}/health")
        async def cache_health():
            available = await cache.is_cache_available()
            return {
                "cacheAvailable": available,
                "status": "UP" if available else "DOWN",
                "overallHitRate": round(cache_metrics.overall_hit_rate(), 2),
            }

        @self.app.get(f"{prefix}/metrics")
        async def cache_metrics_summary():
            return cache_metrics.get_summary_stats()

        @self.app.get(f"{prefix}/metrics/{{cache_type}}")
        async def cache_type_metrics(cache_type: str):
            return cache_metrics.get_metrics_for_cache_type(cache_type).to_dict()

        @self.app.post(f"{prefix}/metrics/reset")
        async def reset_cache_metrics():
            cache_metrics.reset_metrics()
            return {"success": True, "message": "Cache metrics reset"}

        @self.app.get(f"{prefix}/stats")
        async def cache_stats():
            stats = await cache.get_cache_stats()
            return {"stats": stats.to_dict(), "metrics": cache_metrics.get_summary_stats()}

        @self.app.delete(f"{prefix}/tasks/{{task_id}}")
        async def evict_task(task_id: str):
            return {"success": await cache.evict_task(task_id), "taskId": task_id}

        @self.app.delete(f"{prefix}/users/{{user_id}}/tasks")
        async def evict_user_tasks(user_id: str):
            evicted = await cache.evict_user_tasks(user_id)
            summaries = await cache.evict_user_tasks_summary(user_id)
            return {"success": evicted and summaries, "userId": user_id}

        @self.app.delete(f"{prefix}/teams/{{team_id}}/tasks")
        async def evict_team_tasks(team_id: str):
            evicted = await cache.evict_team_tasks(team_id)
            projects = await cache.evict_team_projects_tasks(team_id)
            return {"success": evicted and projects, "teamId": team_id}

        @self.app.delete(f"{prefix}/projects/{{project_id}}/tasks")
        async def evict_project_tasks(project_id: str):
            return {"success": await cache.evict_project_tasks(project_id), "projectId": project_id}

        @self.app.delete(f"{prefix}/all")
        async def evict_all():
            deleted = await cache.evict_all_task_caches()
            return {"success": True, "deletedKeys": deleted}

        @self.app.get(f"{prefix}/config")
        async def cache_config():
            return {
                "namespace": cache.keys.namespace,
                "ttlSeconds": {kind.value: ttl for kind, ttl in CACHE_TTLS.items()},
                "healthCheckTtlSeconds": HEALTH_CHECK_TTL,
                "warmupUserIds": self.warmup_service.user_ids,
            }

        @self.app.post(f"{prefix}/warmup")
        async def run_warmup():
            result = await self.warmup_service.warmup()
            return result.to_dict()

        @self.app.get(f"{prefix}/warmup/status")
        async def warmup_status():
            return await self.warmup_service.get_warmup_status()


def create_app():
    """Create FastAPI application."""
    service = TaskCacheServiceApp()
    return service.app


if __name__ == "__main__":
    service = TaskCacheServiceApp()
    service.run()
