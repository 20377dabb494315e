"""
Unit tests for site settings providers.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_cms.app.settings.provider import (
    PostgresSettingsProvider,
    SiteSettings,
    StaticSettingsProvider,
)


class TestSiteSettings:

    def test_get_with_default(self):
        settings = SiteSettings({"site_name": "Acme"})
        assert settings.get("site_name") == "Acme"
        assert settings.get("missing", "fallback") == "fallback"

    def test_flag(self):
        settings = SiteSettings({"cache_enabled": "1", "maintenance_mode": "0"})
        assert settings.flag("cache_enabled") is True
        assert settings.flag("maintenance_mode") is False
        assert settings.flag("unknown") is False


class TestStaticSettingsProvider:

    @pytest.mark.asyncio
    async def test_set_sanitizes_values(self):
        provider = StaticSettingsProvider()

        await provider.set("primary_color", "not-a-color")
        await provider.set("site_name", "Acme")

        assert await provider.get("primary_color") == "#ffffff"
        assert await provider.load_all() == {"primary_color": "#ffffff", "site_name": "Acme"}


class TestPostgresSettingsProvider:
    """Database-backed provider with a mocked pool."""

    @pytest.fixture
    def conn(self):
        return AsyncMock()

    @pytest.fixture
    def database(self, conn):
        database = MagicMock()
        database.is_connected = True
        database.pool.acquire.return_value.__aenter__.return_value = conn
        return database

    @pytest.fixture
    def provider(self, database):
        return PostgresSettingsProvider(database)

    @pytest.mark.asyncio
    async def test_get_returns_stored_value(self, provider, conn):
        conn.fetchval.return_value = "Acme"

        assert await provider.get("site_name", "Default") == "Acme"
        conn.fetchval.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_get_missing_returns_default(self, provider, conn):
        conn.fetchval.return_value = None
        assert await provider.get("site_name", "Default") == "Default"

    @pytest.mark.asyncio
    async def test_get_on_database_error_returns_default(self, provider, database):
        database.pool.acquire.side_effect = Exception("relation \"settings\" does not exist")
        assert await provider.get("site_name", "Default") == "Default"

    @pytest.mark.asyncio
    async def test_disconnected_database_returns_default(self, provider, database):
        database.is_connected = False
        assert await provider.get("site_name", "Default") == "Default"
        assert await provider.load_all() == {}
        assert await provider.set("site_name", "Acme") is False

    @pytest.mark.asyncio
    async def test_set_persists_sanitized_value(self, provider, conn):
        assert await provider.set("accent_color", "javascript:alert(1)") is True

        args = conn.execute.await_args.args
        assert args[1:] == ("accent_color", "#ffffff")

    @pytest.mark.asyncio
    async def test_set_failure_returns_false(self, provider, conn):
        conn.execute.side_effect = Exception("read only")
        assert await provider.set("site_name", "Acme") is False

    @pytest.mark.asyncio
    async def test_load_all(self, provider, conn):
        conn.fetch.return_value = [
            {"setting_key": "site_name", "setting_value": "Acme"},
            {"setting_key": "tagline", "setting_value": None},
        ]

        assert await provider.load_all() == {"site_name": "Acme"}
