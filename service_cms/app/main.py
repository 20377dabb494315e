"""
Page CMS front controller.

Every page request goes through the same pipeline: license gate, install
directory check, settings snapshot, maintenance mode, page cache lookup,
page lookup, render and cache store.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.responses import HTMLResponse, PlainTextResponse, RedirectResponse

from shared.base_service import BaseService
from shared.config import ServiceConfig
from shared.errors import AuthenticationError, ValidationError
from shared.logging import set_viewer_context

from .caching.page_cache import PageCache, normalize_slug
from .context import RequestContext
from .licensing.client import LicenseClient
from .licensing.gate import LicenseGate
from .pages.renderer import (
    render_error_page,
    render_install_check,
    render_maintenance,
    render_not_found,
    render_page,
)
from .pages.repository import PageRepository, PostgresPageRepository
from .persistence.postgres import PostgresDatabase
from .settings.provider import PostgresSettingsProvider, SettingsProvider, SiteSettings

GATE_EXEMPT_PATHS = frozenset({"/health", "/metrics"})
# admin routes stay reachable while the license blocks the site; they check the API key instead
ADMIN_PATH_PREFIX = "/admin/"
INSTALL_CHECK_PATH = "/install-check"
ADMIN_KEY_HEADER = "X-API-Key"


class CMSService(BaseService):
    """Public site plus the cache, license and settings admin endpoints."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        settings_provider: Optional[SettingsProvider] = None,
        page_repository: Optional[PageRepository] = None,
        license_gate: Optional[LicenseGate] = None,
    ):
        super().__init__("cms", 8000, config)
        self.database = PostgresDatabase(self.config.database_dsn)
        self.settings_provider = settings_provider or PostgresSettingsProvider(self.database)
        self.page_repository = page_repository or PostgresPageRepository(self.database)
        self.license_gate = license_gate or self._build_license_gate()
        self.install_dir = Path(self.config.install_dir)
        self.admin_api_keys = {key for key in self.config.admin_api_keys if key}

        @self.app.on_event("startup")
        async def _startup():
            await self.database.start()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.database.stop()

        self._setup_license_middleware()
        self._setup_info_routes()
        self._setup_admin_routes()
        self._setup_page_routes()

    def _build_license_gate(self) -> LicenseGate:
        client = LicenseClient(
            self.config.license_server_url,
            self.config.license_secret,
            domain=self.config.server_name,
            ip=self.config.server_addr,
            directory=str(Path(self.config.license_storage_dir).resolve()),
            local_key_days=self.config.license_local_key_days,
            allow_check_fail_days=self.config.license_allow_check_fail_days,
            timeout=self.config.license_timeout,
        )
        return LicenseGate(
            client,
            self.config.serial_number,
            self.config.license_storage_dir,
            suspend_cache_days=self.config.license_suspend_cache_days,
            metrics=self.metrics,
        )

    def page_cache(self, enabled: bool = True) -> PageCache:
        return PageCache(
            self.config.cache_dir,
            enabled=enabled,
            default_ttl=self.config.cache_ttl,
            safe_params=self.config.cache_safe_params,
            metrics=self.metrics,
        )

    async def _check_dependencies(self) -> Dict[str, str]:
        storage_dir = Path(self.config.license_storage_dir)
        return {
            "database": "ok" if await self.database.ping() else "unavailable",
            "license_storage": "ok" if os.access(storage_dir, os.W_OK) else "unwritable",
        }

    def _is_admin(self, request: Request) -> bool:
        api_key = request.headers.get(ADMIN_KEY_HEADER)
        return bool(api_key) and api_key in self.admin_api_keys

    def _require_admin(self, request: Request):
        if not self._is_admin(request):
            raise AuthenticationError("Admin API key required")

    def _setup_license_middleware(self):
        """License gate first, then the install directory check."""

        @self.app.middleware("http")
        async def license_gate_middleware(request: Request, call_next):
            path = request.url.path
            if path in GATE_EXEMPT_PATHS:
                return await call_next(request)

            if path.startswith(ADMIN_PATH_PREFIX):
                if self.install_dir.is_dir():
                    return RedirectResponse(url=INSTALL_CHECK_PATH, status_code=302)
                return await call_next(request)

            verdict = await self.license_gate.evaluate()
            request.state.license = verdict
            if verdict.should_exit:
                return PlainTextResponse(verdict.exit_message, status_code=verdict.http_code)

            if path != INSTALL_CHECK_PATH and self.install_dir.is_dir():
                return RedirectResponse(url=INSTALL_CHECK_PATH, status_code=302)

            return await call_next(request)

    async def _build_context(self, request: Request, slug: Optional[str]) -> RequestContext:
        is_admin = self._is_admin(request)
        context = RequestContext(
            slug=normalize_slug(slug),
            is_admin=is_admin,
            settings=SiteSettings(await self.settings_provider.load_all()),
            verdict=getattr(request.state, "license", None),
        )
        context.params = self.page_cache(False).filter_params(dict(request.query_params))
        set_viewer_context(context.role)
        return context

    def _setup_info_routes(self):

        @self.app.get(INSTALL_CHECK_PATH, response_class=HTMLResponse)
        async def install_check():
            if not self.install_dir.is_dir():
                return RedirectResponse(url="/", status_code=302)
            site_name = await self.settings_provider.get("site_name", "Your Website")
            return HTMLResponse(render_install_check(site_name))

        @self.app.get("/error-page", response_class=HTMLResponse)
        async def error_page(title: str = "", message: str = "", debug: str = ""):
            # debug output is only rendered on local installs
            details = debug if self.config.env == "local" else ""
            return HTMLResponse(render_error_page(title, message, details), status_code=503)

        @self.app.get("/maintenance", response_class=HTMLResponse)
        async def maintenance_page():
            settings = SiteSettings(await self.settings_provider.load_all())
            return self._maintenance_response(settings)

    def _maintenance_response(self, settings: SiteSettings) -> HTMLResponse:
        return HTMLResponse(
            render_maintenance(settings),
            status_code=503,
            headers={"Retry-After": str(self.config.maintenance_retry_after)},
        )

    def _setup_admin_routes(self):

        @self.app.get("/admin/cache")
        async def cache_stats(request: Request):
            self._require_admin(request)
            settings = SiteSettings(await self.settings_provider.load_all())
            return self.page_cache(settings.flag("cache_enabled")).stats()

        @self.app.post("/admin/cache/clear")
        async def clear_cache(request: Request):
            self._require_admin(request)
            cleared = self.page_cache().clear_all()
            return {"success": True, "cleared": cleared}

        @self.app.delete("/admin/cache/pages/{slug}")
        async def clear_page_cache(slug: str, request: Request):
            self._require_admin(request)
            slug = normalize_slug(slug)
            return {"success": self.page_cache().clear_page(slug), "slug": slug}

        @self.app.get("/admin/license")
        async def license_status(request: Request):
            self._require_admin(request)
            verdict = await self.license_gate.evaluate()
            return {
                "status": verdict.status,
                "output": verdict.output,
                "cached": verdict.is_cache,
                "local_key_present": self.license_gate.local_key_path.exists(),
                "suspended_marker_present": self.license_gate.suspended_key_path.exists(),
            }

        @self.app.post("/admin/license/refresh")
        async def refresh_license(request: Request):
            self._require_admin(request)
            removed = self.license_gate.clear_markers()
            return {"success": True, "removed": removed}

        @self.app.post("/admin/settings")
        async def update_settings(request: Request, updates: Dict[str, Any]):
            self._require_admin(request)
            if not updates:
                raise ValidationError("No settings supplied")

            saved = []
            failed = []
            for key, value in updates.items():
                value = "" if value is None else str(value)
                if await self.settings_provider.set(key, value):
                    saved.append(key)
                else:
                    failed.append(key)

            # rendered pages embed settings, so stale copies must go
            cleared = self.page_cache().clear_all() if saved else 0
            self.logger.info("Settings updated", saved=saved, failed=failed, cache_cleared=cleared)
            return {"success": not failed, "saved": saved, "failed": failed, "cache_cleared": cleared}

    def _setup_page_routes(self):

        @self.app.get("/", response_class=HTMLResponse)
        async def home(request: Request):
            return await self._serve_page(request, None)

        @self.app.get("/{slug}", response_class=HTMLResponse)
        async def page(slug: str, request: Request):
            return await self._serve_page(request, slug)

    async def _serve_page(self, request: Request, slug: Optional[str]) -> HTMLResponse:
        context = await self._build_context(request, slug)
        settings = context.settings
        maintenance = settings.flag("maintenance_mode")

        if maintenance and not context.is_admin:
            return self._maintenance_response(settings)

        cache = self.page_cache(settings.flag("cache_enabled"))
        key = cache.build_key(context.slug, context.params, context.role)
        cached = cache.get(key)
        if cached is not None:
            return HTMLResponse(cached, headers={"X-Cache": "HIT"})

        page = await self.page_repository.get_page_by_slug(context.slug)
        if page is None:
            self.logger.info("Page not found", slug=context.slug)
            return HTMLResponse(render_not_found(settings), status_code=404)

        with self.metrics.time_operation("page_render_duration_seconds"):
            sections = await self.page_repository.get_page_sections(page.id)
            navigation = await self.page_repository.get_navigation_pages() if context.show_navigation else []
            html = render_page(
                page,
                sections,
                settings,
                navigation=navigation,
                show_navigation=context.show_navigation,
                show_maintenance_banner=maintenance and context.is_admin,
            )

        cache.set(key, html)
        return HTMLResponse(html, headers={"X-Cache": "MISS" if cache.enabled else "BYPASS"})


def create_app():
    """Create FastAPI application."""
    service = CMSService()
    return service.app


if __name__ == "__main__":
    service = CMSService()
    service.run()
