"""
Shared configuration management for the task management services.
"""

from typing import Dict, List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="TASKS_",
        case_sensitive=False,
        extra="allow",
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Cache backend
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_namespace: str = Field(default="taskmanagement")

    # Subscription lookups; profile store is used when no URL is set
    subscription_service_url: Optional[str] = Field(default=None)
    subscription_timeout_seconds: float = Field(default=5.0)
    upgrade_url: str = Field(default="/api/payments/checkout")

    # Cache warm-up
    warmup_user_ids: List[str] = Field(default_factory=list)
    warmup_on_start: bool = Field(default=False)

    # API key -> user id
    api_keys: Dict[str, str] = Field(default_factory=dict)

    # Observability
    enable_metrics: bool = Field(default=True)


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int
    host: str = "0.0.0.0"

    def __init__(self, service_name: str, port: int, **kwargs):
        super().__init__(service_name=service_name, port=port, **kwargs)


def get_config(service_name: str, port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service."""
    return ServiceConfig(service_name=service_name, port=port, **overrides)
