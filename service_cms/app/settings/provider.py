"""
Site settings providers.

Settings are a flat key/value table. Every lookup has a default and any
database problem yields that default, so a broken database degrades the
site to its built-in values instead of failing the request.
"""

from typing import Dict, Mapping, Optional, Protocol

from shared.logging import get_logger

from ..persistence.postgres import PostgresDatabase
from ..theme.validators import sanitize_setting


class SettingsProvider(Protocol):
    """Typed access to site settings with a ``get(key, default)`` contract."""

    async def get(self, key: str, default: str = "") -> str:
        ...

    async def set(self, key: str, value: str) -> bool:
        ...

    async def load_all(self) -> Dict[str, str]:
        ...


class SiteSettings:
    """Immutable per-request snapshot of all settings."""

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values = dict(values or {})

    def get(self, key: str, default: str = "") -> str:
        value = self._values.get(key)
        return default if value is None else value

    def flag(self, key: str) -> bool:
        """Boolean settings are stored as ``"1"`` / ``"0"``."""
        return self.get(key, "0") == "1"


class StaticSettingsProvider:
    """In-memory provider, used before the database is configured and in tests."""

    def __init__(self, values: Optional[Mapping[str, str]] = None):
        self._values: Dict[str, str] = dict(values or {})

    async def get(self, key: str, default: str = "") -> str:
        return self._values.get(key, default)

    async def set(self, key: str, value: str) -> bool:
        self._values[key] = sanitize_setting(key, value)
        return True

    async def load_all(self) -> Dict[str, str]:
        return dict(self._values)


class PostgresSettingsProvider:
    """Settings stored in the ``settings`` table."""

    def __init__(self, database: PostgresDatabase):
        self.database = database
        self.logger = get_logger("cms.settings")

    async def get(self, key: str, default: str = "") -> str:
        if not self.database.is_connected:
            return default

        try:
            async with self.database.pool.acquire() as conn:
                value = await conn.fetchval(
                    "SELECT setting_value FROM settings WHERE setting_key = $1 LIMIT 1",
                    key
                )
        except Exception as e:
            self.logger.warning("Setting lookup failed, using default", key=key, error=str(e))
            return default

        return default if value is None else value

    async def set(self, key: str, value: str) -> bool:
        if not self.database.is_connected:
            return False

        cleaned = sanitize_setting(key, value)
        try:
            async with self.database.pool.acquire() as conn:
                await conn.execute("""
                    INSERT INTO settings (setting_key, setting_value)
                    VALUES ($1, $2)
                    ON CONFLICT (setting_key) DO UPDATE SET
                        setting_value = EXCLUDED.setting_value,
                        updated_at = NOW()
                """, key, cleaned)
        except Exception as e:
            self.logger.error("Error saving setting", key=key, error=str(e))
            return False

        self.logger.info("Setting saved", key=key)
        return True

    async def load_all(self) -> Dict[str, str]:
        if not self.database.is_connected:
            return {}

        try:
            async with self.database.pool.acquire() as conn:
                rows = await conn.fetch("SELECT setting_key, setting_value FROM settings")
        except Exception as e:
            self.logger.warning("Settings load failed, using defaults", error=str(e))
            return {}

        return {row["setting_key"]: row["setting_value"] for row in rows if row["setting_value"] is not None}
