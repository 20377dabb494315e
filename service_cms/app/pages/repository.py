"""
Read-only access to published pages.
"""

from typing import List, Optional, Protocol

from shared.logging import get_logger
from shared.errors import DatabaseUnavailableError

from ..persistence.postgres import PostgresDatabase
from .models import Page, Section


class PageRepository(Protocol):
    async def get_page_by_slug(self, slug: str) -> Optional[Page]:
        ...

    async def get_page_sections(self, page_id: int) -> List[Section]:
        ...

    async def get_navigation_pages(self) -> List[Page]:
        ...


class PostgresPageRepository:
    """Pages and sections read from PostgreSQL."""

    def __init__(self, database: PostgresDatabase):
        self.database = database
        self.logger = get_logger("cms.pages")

    async def get_page_by_slug(self, slug: str) -> Optional[Page]:
        pool = self.database.require_pool()
        try:
            async with pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT * FROM pages WHERE slug = $1 AND is_active = TRUE LIMIT 1",
                    slug
                )
        except Exception as e:
            self.logger.error("Error loading page", slug=slug, error=str(e))
            raise DatabaseUnavailableError(details={"error": str(e)})

        return Page.from_row(row) if row else None

    async def get_page_sections(self, page_id: int) -> List[Section]:
        pool = self.database.require_pool()
        try:
            async with pool.acquire() as conn:
                rows = await conn.fetch("""
                    SELECT * FROM page_sections
                    WHERE page_id = $1 AND is_active = TRUE
                    ORDER BY sort_order ASC, id ASC
                """, page_id)
        except Exception as e:
            self.logger.error("Error loading page sections", page_id=page_id, error=str(e))
            raise DatabaseUnavailableError(details={"error": str(e)})

        return [Section.from_row(row) for row in rows]

    async def get_navigation_pages(self) -> List[Page]:
        """Navigation is best effort: on failure the page renders without it."""
        if not self.database.is_connected:
            return []

        try:
            async with self.database.pool.acquire() as conn:
                rows = await conn.fetch(
                    "SELECT * FROM pages WHERE is_active = TRUE ORDER BY sort_order ASC, title ASC"
                )
        except Exception as e:
            self.logger.warning("Error loading navigation pages", error=str(e))
            return []

        return [Page.from_row(row) for row in rows]
