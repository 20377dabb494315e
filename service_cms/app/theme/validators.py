"""
Validation of theme and site settings before they are persisted or
written into a page.
"""

import re
from typing import Optional
from urllib.parse import urlparse

HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")
DEFAULT_COLOR = "#ffffff"
ALLOWED_URL_SCHEMES = ("http", "https")


def validate_hex_color(value: Optional[str], fallback: str = DEFAULT_COLOR) -> str:
    """Return ``value`` if it is a ``#rrggbb`` color, else ``fallback`` (white)."""
    if isinstance(value, str) and HEX_COLOR.fullmatch(value):
        return value
    return fallback


def validate_url(value: Optional[str]) -> str:
    """Return the URL if it is an absolute http(s) URL, otherwise an empty string."""
    if not value:
        return ""
    candidate = value.strip()
    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in ALLOWED_URL_SCHEMES or not parsed.netloc:
        return ""
    return candidate


def sanitize_setting(key: str, value: str) -> str:
    """Apply the validator matching the setting's naming convention."""
    if key.endswith("_color"):
        return validate_hex_color(value)
    if key.endswith("_url"):
        return validate_url(value)
    return value
