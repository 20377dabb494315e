"""
Site licensing: remote license client, signed local keys and the
per-request license gate.
"""

from .client import LicenseClient
from .gate import LicenseGate
from .models import LicenseCheckResult, LicenseStatus, LicenseVerdict

__all__ = [
    "LicenseClient",
    "LicenseGate",
    "LicenseCheckResult",
    "LicenseStatus",
    "LicenseVerdict",
]
