"""
Unit tests for theme setting validation.
"""

import pytest

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_cms.app.theme.validators import (
    sanitize_setting,
    validate_hex_color,
    validate_url,
)


class TestHexColor:

    @pytest.mark.parametrize("value", ["#3b82f6", "#FFFFFF", "#000000"])
    def test_valid_colors_pass_through(self, value):
        assert validate_hex_color(value) == value

    @pytest.mark.parametrize("value", ["red", "#fff", "3b82f6", "#3b82f6; background:url(x)", "", None])
    def test_invalid_colors_fall_back_to_white(self, value):
        assert validate_hex_color(value) == "#ffffff"

    def test_custom_fallback(self):
        assert validate_hex_color("nope", fallback="#000000") == "#000000"


class TestUrl:

    def test_http_and_https_are_allowed(self):
        assert validate_url("https://example.com/logo.png") == "https://example.com/logo.png"
        assert validate_url("http://example.com") == "http://example.com"

    @pytest.mark.parametrize("value", ["javascript:alert(1)", "ftp://example.com", "//example.com", "logo.png", ""])
    def test_other_urls_are_rejected(self, value):
        assert validate_url(value) == ""


class TestSanitizeSetting:

    def test_color_keys_are_validated(self):
        assert sanitize_setting("primary_color", "blue") == "#ffffff"
        assert sanitize_setting("primary_color", "#1e40af") == "#1e40af"

    def test_url_keys_are_validated(self):
        assert sanitize_setting("facebook_url", "javascript:alert(1)") == ""
        assert sanitize_setting("facebook_url", "https://facebook.com/acme") == "https://facebook.com/acme"

    def test_other_keys_are_untouched(self):
        assert sanitize_setting("site_name", "<Acme>") == "<Acme>"
