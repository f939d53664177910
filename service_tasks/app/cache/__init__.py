"""
Cache package for the task service.

Provides a Redis-backed cache for single tasks and task lists with fixed
per-kind TTLs and explicit invalidation on writes.
"""
