"""
Shared configuration management for the Storefront Catalog service.
"""

from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # HTTP surface
    api_prefix: str = Field(default="/api")
    cors_allowed_origins: List[str] = Field(default_factory=lambda: ["*"])

    # Performance logging
    slow_request_threshold_ms: int = Field(default=200, ge=0)

    # Public read caches (declared once, immutable for the process lifetime)
    cache_categories_ttl_minutes: float = Field(default=5)
    cache_categories_max_entries: int = Field(default=10)
    cache_hero_ttl_minutes: float = Field(default=5)
    cache_hero_max_entries: int = Field(default=10)

    # Data source
    seed_demo_data: bool = Field(default=True)


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
