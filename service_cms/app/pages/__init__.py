"""
Published pages: models, the read-only repository and HTML rendering.
"""

from .models import Page, Section
from .repository import PageRepository, PostgresPageRepository

__all__ = ["Page", "Section", "PageRepository", "PostgresPageRepository"]
