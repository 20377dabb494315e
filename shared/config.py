"""
Shared configuration management for the Page CMS.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="CMS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")

    # Site
    base_url: str = Field(default="http://localhost:8000")
    database_dsn: str = Field(default="postgres://localhost:5432/cms")
    install_dir: str = Field(default="install")
    admin_api_keys: List[str] = Field(default_factory=list)

    # Licensing
    serial_number: str = Field(default="")
    license_server_url: str = Field(default="https://licensing.example.com/")
    license_secret: str = Field(default="")
    license_storage_dir: str = Field(default=".")
    license_local_key_days: int = Field(default=5)
    license_allow_check_fail_days: int = Field(default=2)
    license_suspend_cache_days: int = Field(default=5)
    license_timeout: float = Field(default=30.0)
    server_name: str = Field(default="localhost")
    server_addr: str = Field(default="127.0.0.1")

    # Page cache
    cache_dir: str = Field(default="cache")
    cache_ttl: int = Field(default=3600)
    cache_safe_params: List[str] = Field(default_factory=lambda: ["page", "category", "tag"])

    # Maintenance page
    maintenance_retry_after: int = Field(default=3600)


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
