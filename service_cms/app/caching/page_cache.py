"""
File-based full-page cache.

Each rendered page is stored as one file under the cache directory. The
file name is the md5 of a key built from the page slug, the allow-listed
query parameters (sorted) and the viewer role, so administrators and
anonymous visitors never share an entry. An entry is valid while
``now - mtime < ttl``; it is only invalidated by expiry or by an explicit
clear.

Filesystem errors are never fatal: a failed read is a miss and a failed
write simply leaves the page uncached.
"""

import hashlib
import json
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, TYPE_CHECKING, Union

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL = 3600
DEFAULT_SAFE_PARAMS = ("page", "category", "tag")
CACHE_SUFFIX = ".cache"
HOME_SLUG = "home"
PROTECT_FILE_CONTENT = "Deny from all\n"


def normalize_slug(slug: Optional[str]) -> str:
    """Strip surrounding slashes; an empty slug is the home page."""
    cleaned = (slug or "").strip().strip("/")
    return cleaned or HOME_SLUG


class PageCache:
    """Rendered page cache keyed by (slug, safe params, viewer role)."""

    def __init__(
        self,
        cache_dir: Union[str, Path],
        *,
        enabled: bool = False,
        default_ttl: int = DEFAULT_TTL,
        safe_params: Iterable[str] = DEFAULT_SAFE_PARAMS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.cache_dir = Path(cache_dir)
        self.enabled = enabled
        self.default_ttl = default_ttl
        self.safe_params = frozenset(safe_params)
        self.metrics = metrics
        self.logger = get_logger("cms.page_cache")

        if self.enabled:
            self._ensure_directory()

    def _ensure_directory(self) -> None:
        """Create the cache directory and drop a web-server deny file in it."""
        try:
            if not self.cache_dir.is_dir():
                self.cache_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
                (self.cache_dir / ".htaccess").write_text(PROTECT_FILE_CONTENT)
        except OSError as exc:
            self.logger.warning("Cache directory unavailable", path=str(self.cache_dir), error=str(exc))

    # ------------------------------------------------------------------
    # Keys
    # ------------------------------------------------------------------

    def filter_params(self, query: Optional[Mapping[str, Any]]) -> Dict[str, str]:
        """Keep only the query parameters that may vary the cached page."""
        if not query:
            return {}
        return {key: str(value) for key, value in query.items() if key in self.safe_params}

    def build_key(
        self,
        slug: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        role: str = "visitor",
    ) -> str:
        """Return the cache file name for a page view."""
        key = normalize_slug(slug)

        if params:
            ordered = sorted((str(k), str(v)) for k, v in params.items())
            digest = hashlib.md5(json.dumps(ordered, separators=(",", ":")).encode("utf-8")).hexdigest()
            key = f"{key}_{digest}"

        if role:
            key = f"{key}_{role}"

        return hashlib.md5(key.encode("utf-8")).hexdigest() + CACHE_SUFFIX

    def path_for(self, key: str) -> Path:
        return self.cache_dir / key

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def is_valid(self, key: str, ttl: Optional[int] = None) -> bool:
        """An entry is valid when its file exists and is younger than the TTL."""
        if not self.enabled:
            return False

        ttl = ttl or self.default_ttl
        try:
            mtime = self.path_for(key).stat().st_mtime
        except OSError:
            return False

        return (time.time() - mtime) < ttl

    def get(self, key: str, ttl: Optional[int] = None) -> Optional[bytes]:
        """Return cached bytes, or None on a miss."""
        if not self.enabled:
            self._record("disabled")
            return None

        if not self.is_valid(key, ttl):
            self._record("miss")
            return None

        try:
            content = self.path_for(key).read_bytes()
        except OSError as exc:
            self.logger.warning("Cache read failed, treating as miss", key=key, error=str(exc))
            self._record("error")
            return None

        self._record("hit")
        return content

    def set(self, key: str, content: Union[bytes, str]) -> bool:
        """Overwrite the entry for ``key``. Returns False if nothing was written."""
        if not self.enabled:
            return False

        if isinstance(content, str):
            content = content.encode("utf-8")

        try:
            self.path_for(key).write_bytes(content)
        except OSError as exc:
            self.logger.warning("Cache write failed", key=key, error=str(exc))
            return False

        return True

    def clear(self, key: str) -> bool:
        """Remove a single entry. A missing entry counts as cleared."""
        try:
            self.path_for(key).unlink()
        except FileNotFoundError:
            return True
        except OSError as exc:
            self.logger.warning("Cache entry removal failed", key=key, error=str(exc))
            return False
        return True

    def clear_page(self, slug: Optional[str], roles: Iterable[str] = ("visitor", "admin")) -> bool:
        """Drop the parameterless entries of one page for every role."""
        results = [self.clear(self.build_key(slug, None, role)) for role in roles]
        return all(results)

    def clear_all(self) -> int:
        """Delete every cache file and return how many were actually removed."""
        if not self.cache_dir.is_dir():
            return 0

        cleared = 0
        for path in self.cache_dir.glob(f"*{CACHE_SUFFIX}"):
            try:
                path.unlink()
            except OSError as exc:
                self.logger.warning("Cache entry removal failed", path=str(path), error=str(exc))
                continue
            cleared += 1

        self.logger.info("Page cache cleared", files=cleared)
        if self.metrics:
            self.metrics.increment_counter("page_cache_cleared_total", cleared)
        return cleared

    def stats(self) -> Dict[str, Any]:
        """Summarise the cache directory for the admin screen."""
        stats: Dict[str, Any] = {
            "enabled": self.enabled,
            "files": 0,
            "size": 0,
            "size_formatted": self.format_bytes(0),
            "oldest": None,
            "newest": None,
        }
        if not self.cache_dir.is_dir():
            return stats

        oldest: Optional[float] = None
        newest: Optional[float] = None
        for path in self.cache_dir.glob(f"*{CACHE_SUFFIX}"):
            try:
                info = path.stat()
            except OSError:
                continue
            stats["files"] += 1
            stats["size"] += info.st_size
            if oldest is None or info.st_mtime < oldest:
                oldest = info.st_mtime
            if newest is None or info.st_mtime > newest:
                newest = info.st_mtime

        stats["size_formatted"] = self.format_bytes(stats["size"])
        stats["oldest"] = self._format_time(oldest)
        stats["newest"] = self._format_time(newest)
        return stats

    @staticmethod
    def format_bytes(size: float, precision: int = 2) -> str:
        """Human readable size, e.g. ``1.5 KB``."""
        units = ("B", "KB", "MB", "GB", "TB")
        index = 0
        while size > 1024 and index < len(units) - 1:
            size /= 1024
            index += 1
        return f"{round(size, precision):g} {units[index]}"

    @staticmethod
    def _format_time(timestamp: Optional[float]) -> Optional[str]:
        if timestamp is None:
            return None
        return datetime.fromtimestamp(timestamp).strftime("%Y-%m-%d %H:%M:%S")

    def _record(self, result: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("page_cache_requests_total", result=result)
