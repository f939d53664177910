"""
Task service package for the task management backend.

This package fronts task reads with a Redis cache and guards premium
operations behind a subscription gate. It provides:

- app.main: API surface for tasks, cache administration and health.
- app.cache: Redis-backed task cache, key layout, metrics and warm-up.
- app.tasks: Task models, the repository contract and the cached service.
- app.subscriptions: Subscription access models, providers and the gate.
- app.auth: Request principal resolution.

Guidelines:
- The cache is an accelerator, never a source of truth.
- Subscription access is recomputed on every gated request.
"""
