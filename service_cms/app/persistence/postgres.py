"""
PostgreSQL connection pool for the CMS.

The site keeps running when the database is unreachable: ``start`` logs the
failure and leaves the pool unset, and readers fall back to defaults or
raise :class:`DatabaseUnavailableError` where content is required.
"""

from typing import Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import DatabaseUnavailableError


class PostgresDatabase:
    """Owns the asyncpg pool shared by settings and page readers."""

    def __init__(self, dsn: str):
        self.dsn = dsn
        self.logger = get_logger("cms.persistence.postgres")
        self.pool: Optional[asyncpg.Pool] = None
        self.last_error: str = ""

    @property
    def is_connected(self) -> bool:
        return self.pool is not None

    async def start(self):
        """Open the pool and make sure the content tables exist."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=1,
                max_size=10,
                command_timeout=30
            )
            await self._create_tables()
            self.last_error = ""
            self.logger.info("PostgreSQL pool started")

        except Exception as e:
            self.last_error = str(e)
            self.logger.error("Database connection failed", error=str(e))
            if self.pool is not None:
                await self.pool.close()
            self.pool = None

    async def stop(self):
        """Close the pool."""
        if self.pool:
            await self.pool.close()
            self.pool = None
            self.logger.info("PostgreSQL pool stopped")

    def require_pool(self) -> asyncpg.Pool:
        """Return the pool or fail with the error page contract."""
        if self.pool is None:
            raise DatabaseUnavailableError(
                "The website is temporarily unavailable due to database connection issues.",
                details={"error": self.last_error} if self.last_error else None
            )
        return self.pool

    async def ping(self) -> bool:
        if self.pool is None:
            return False
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            self.logger.warning("Database ping failed", error=str(e))
            return False

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    id SERIAL PRIMARY KEY,
                    setting_key VARCHAR(255) NOT NULL UNIQUE,
                    setting_value TEXT,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS pages (
                    id SERIAL PRIMARY KEY,
                    title VARCHAR(200) NOT NULL,
                    slug VARCHAR(200) NOT NULL UNIQUE,
                    sort_order INTEGER DEFAULT 0,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE,
                    meta_description TEXT,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW(),
                    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS page_sections (
                    id SERIAL PRIMARY KEY,
                    page_id INTEGER NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
                    section_type VARCHAR(50) NOT NULL,
                    title VARCHAR(200),
                    subtitle VARCHAR(300),
                    content TEXT,
                    image_url VARCHAR(500),
                    button_text VARCHAR(100),
                    button_url VARCHAR(500),
                    background_color VARCHAR(20) DEFAULT '#ffffff',
                    text_color VARCHAR(20) DEFAULT '#000000',
                    sort_order INTEGER DEFAULT 0,
                    is_active BOOLEAN NOT NULL DEFAULT TRUE
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_pages_sort_order ON pages(sort_order, is_active);
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_page_sections_page ON page_sections(page_id, sort_order);
            """)
