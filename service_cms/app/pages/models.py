"""
Page data models.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Mapping, Optional


@dataclass
class Page:
    """A published page."""
    id: int
    title: str
    slug: str
    sort_order: int = 0
    meta_description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Page":
        return cls(
            id=row["id"],
            title=row["title"],
            slug=row["slug"],
            sort_order=row.get("sort_order") or 0,
            meta_description=row.get("meta_description"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class Section:
    """One content block of a page, rendered in ``sort_order``."""
    id: int
    page_id: int
    section_type: str
    title: Optional[str] = None
    subtitle: Optional[str] = None
    content: Optional[str] = None
    image_url: Optional[str] = None
    button_text: Optional[str] = None
    button_url: Optional[str] = None
    background_color: str = "#ffffff"
    text_color: str = "#000000"
    sort_order: int = 0

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Section":
        return cls(
            id=row["id"],
            page_id=row["page_id"],
            section_type=row["section_type"],
            title=row.get("title"),
            subtitle=row.get("subtitle"),
            content=row.get("content"),
            image_url=row.get("image_url"),
            button_text=row.get("button_text"),
            button_url=row.get("button_url"),
            background_color=row.get("background_color") or "#ffffff",
            text_color=row.get("text_color") or "#000000",
            sort_order=row.get("sort_order") or 0,
        )
