"""
Site settings: provider interface, in-memory and PostgreSQL providers and
the per-request snapshot.
"""

from .provider import (
    PostgresSettingsProvider,
    SettingsProvider,
    SiteSettings,
    StaticSettingsProvider,
)

__all__ = [
    "PostgresSettingsProvider",
    "SettingsProvider",
    "SiteSettings",
    "StaticSettingsProvider",
]
