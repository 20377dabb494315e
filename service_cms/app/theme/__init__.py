"""
Theme helpers: color and URL validation shared by settings and rendering.
"""

from .validators import sanitize_setting, validate_hex_color, validate_url

__all__ = ["sanitize_setting", "validate_hex_color", "validate_url"]
