"""
Task models, repository contract and the cache-aware task service.
"""
