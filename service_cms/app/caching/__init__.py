"""
CMS caching package.

Holds the file-based full-page cache. Entries are segmented by viewer
role and only invalidated by TTL expiry or an explicit clear.
"""

from .page_cache import PageCache, normalize_slug

__all__ = ["PageCache", "normalize_slug"]
