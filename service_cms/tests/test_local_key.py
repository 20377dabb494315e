"""
Unit tests for the signed local license key.
"""

import pytest
from datetime import date

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_cms.app.licensing.local_key import (
    days_ago,
    decode_local_key,
    encode_local_key,
    format_checkdate,
)

SECRET = "shared-secret"


class TestLocalKey:
    """Local key signing and verification."""

    @pytest.fixture
    def results(self):
        return {"status": "Active", "registeredname": "Acme Ltd", "validdomain": "example.com"}

    def test_decode_returns_signed_results(self, results):
        key = encode_local_key(results, SECRET, "20240110")

        decoded = decode_local_key(key, SECRET)

        assert decoded["status"] == "Active"
        assert decoded["registeredname"] == "Acme Ltd"
        assert decoded["checkdate"] == "20240110"

    def test_key_is_wrapped(self, results):
        key = encode_local_key(results, SECRET, "20240110")
        lines = key.split("\n")
        assert len(lines) > 1
        assert all(len(line) <= 80 for line in lines)

    def test_wrong_secret_is_rejected(self, results):
        key = encode_local_key(results, SECRET, "20240110")
        assert decode_local_key(key, "other-secret") is None

    def test_tampered_key_is_rejected(self, results):
        key = encode_local_key(results, SECRET, "20240110").replace("\n", "")
        flipped = "A" if key[40] != "A" else "B"
        tampered = key[:40] + flipped + key[41:]
        assert decode_local_key(tampered, SECRET) is None

    def test_garbage_is_rejected(self):
        assert decode_local_key("", SECRET) is None
        assert decode_local_key("not a key", SECRET) is None

    def test_checkdate_helpers(self):
        assert format_checkdate(date(2024, 1, 10)) == "20240110"
        assert days_ago(5, date(2024, 1, 10)) == "20240105"
        assert days_ago(10, date(2024, 1, 5)) == "20231226"
