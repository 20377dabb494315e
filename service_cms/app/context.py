"""
Per-request context handed through the front controller.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from .licensing.models import LicenseVerdict
from .settings.provider import SiteSettings

ADMIN_ROLE = "admin"
VISITOR_ROLE = "visitor"


@dataclass
class RequestContext:
    slug: str
    params: Dict[str, str] = field(default_factory=dict)
    is_admin: bool = False
    settings: SiteSettings = field(default_factory=SiteSettings)
    verdict: Optional[LicenseVerdict] = None

    @property
    def role(self) -> str:
        """Cache discriminator: admins and visitors never share a cached page."""
        return ADMIN_ROLE if self.is_admin else VISITOR_ROLE

    @property
    def show_navigation(self) -> bool:
        return self.verdict is None or self.verdict.allows_navigation
