"""
License data models.
"""

from typing import Any, Dict, Optional
from enum import Enum

from pydantic import BaseModel, Field


class LicenseStatus(str, Enum):
    """Statuses reported by the licensing server."""
    ACTIVE = "Active"
    SUSPENDED = "Suspended"
    EXPIRED = "Expired"
    INVALID = "Invalid"
    UNKNOWN = "Unknown"


class LicenseCheckResult(BaseModel):
    """Outcome of one license check, local or remote.

    ``status`` is kept as the raw string because the server may answer with
    values outside :class:`LicenseStatus` (e.g. ``Pending``).
    """

    status: str = LicenseStatus.UNKNOWN.value
    description: Optional[str] = None
    remote_check: bool = False
    local_key: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_active(self) -> bool:
        return self.status == LicenseStatus.ACTIVE.value


class LicenseVerdict(BaseModel):
    """What the front controller should do with the current request."""

    status: str = LicenseStatus.UNKNOWN.value
    output: str = ""
    is_cache: bool = False
    should_exit: bool = False
    http_code: int = 200
    license_key: str = ""
    show_banner: bool = False
    exit_message: str = ""

    @property
    def allows_navigation(self) -> bool:
        """Navigation is hidden for any blocking or unknown state."""
        return self.status.lower() not in ("suspended", "invalid", "expired", "unknown")
