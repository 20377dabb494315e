"""
Unit tests for the licensing server client.
"""

import pytest
import hashlib
from datetime import date
from urllib.parse import parse_qs

import httpx

import sys
import os
sys.path.append(os.path.join(os.path.dirname(__file__), '..', '..'))

from service_cms.app.licensing.client import LicenseClient, parse_verify_response
from service_cms.app.licensing.local_key import decode_local_key, encode_local_key
from shared.retry import RetryConfig

SECRET = "shared-secret"
TODAY = date(2024, 1, 10)


def md5(value: str) -> str:
    return hashlib.md5(value.encode("utf-8")).hexdigest()


class VerifyServer:
    """Fake verify endpoint recording the posted forms."""

    def __init__(self, status="Active", status_code=200, sign=True, body=None, error=None):
        self.status = status
        self.status_code = status_code
        self.sign = sign
        self.body = body
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.requests.append((str(request.url), form))
        if self.error:
            raise self.error

        if self.body is not None:
            body = self.body
        else:
            body = f"<status>{self.status}</status><registeredname>Acme Ltd</registeredname>"
            if self.sign:
                body += f"<md5hash>{md5(SECRET + form['check_token'])}</md5hash>"
        return httpx.Response(self.status_code, text=body)


def make_client(server: VerifyServer) -> LicenseClient:
    return LicenseClient(
        "https://licensing.example.com",
        SECRET,
        domain="example.com",
        ip="10.0.0.5",
        directory="/var/www/site",
        local_key_days=5,
        allow_check_fail_days=2,
        retry_config=RetryConfig(max_attempts=1, base_delay=0, jitter=False),
        transport=httpx.MockTransport(server),
        today=lambda: TODAY,
    )


def local_key(checkdate: str, **fields) -> str:
    results = {"status": "Active", "validdomain": "example.com"}
    results.update(fields)
    return encode_local_key(results, SECRET, checkdate)


class TestParseVerifyResponse:
    """Tagged response parsing."""

    def test_parses_tags(self):
        parsed = parse_verify_response("<status>Active</status><validdomain>a.com,b.com</validdomain>")
        assert parsed == {"status": "Active", "validdomain": "a.com,b.com"}

    def test_ignores_empty_tags(self):
        assert parse_verify_response("<status></status>") == {}


class TestLicenseClientRemote:
    """Remote verification."""

    @pytest.mark.asyncio
    async def test_active_response_issues_local_key(self):
        server = VerifyServer()
        client = make_client(server)

        result = await client.check("SERIAL-1")

        assert result.status == "Active"
        assert result.remote_check is True
        assert result.local_key is not None
        decoded = decode_local_key(result.local_key, SECRET)
        assert decoded["checkdate"] == "20240110"
        assert decoded["registeredname"] == "Acme Ltd"

    @pytest.mark.asyncio
    async def test_posts_installation_details(self):
        server = VerifyServer()
        client = make_client(server)

        await client.check("SERIAL-1")

        url, form = server.requests[0]
        assert url == "https://licensing.example.com/modules/servers/licensing/verify.php"
        assert form["licensekey"] == "SERIAL-1"
        assert form["domain"] == "example.com"
        assert form["ip"] == "10.0.0.5"
        assert form["dir"] == "/var/www/site"
        assert form["check_token"]

    @pytest.mark.asyncio
    async def test_suspended_response_has_no_local_key(self):
        client = make_client(VerifyServer(status="Suspended"))

        result = await client.check("SERIAL-1")

        assert result.status == "Suspended"
        assert result.local_key is None

    @pytest.mark.asyncio
    async def test_checksum_mismatch_is_invalid(self):
        body = "<status>Active</status><md5hash>0123456789abcdef0123456789abcdef</md5hash>"
        client = make_client(VerifyServer(body=body))

        result = await client.check("SERIAL-1")

        assert result.status == "Invalid"
        assert result.description == "MD5 Checksum Verification Failed"
        assert result.local_key is None

    @pytest.mark.asyncio
    async def test_missing_status_is_invalid(self):
        client = make_client(VerifyServer(body="<message>maintenance</message>"))

        result = await client.check("SERIAL-1")

        assert result.status == "Invalid"
        assert result.description == "License status could not be determined"


class TestLicenseClientLocalKey:
    """Local key short-circuit and the offline grace period."""

    @pytest.mark.asyncio
    async def test_fresh_local_key_skips_remote(self):
        server = VerifyServer()
        client = make_client(server)

        result = await client.check("SERIAL-1", local_key("20240109"))

        assert result.status == "Active"
        assert result.remote_check is False
        assert server.requests == []

    @pytest.mark.asyncio
    async def test_local_key_for_other_domain_goes_remote(self):
        server = VerifyServer(status="Active")
        client = make_client(server)

        result = await client.check("SERIAL-1", local_key("20240109", validdomain="other.example"))

        assert len(server.requests) == 1
        assert result.remote_check is True

    @pytest.mark.asyncio
    async def test_tampered_local_key_goes_remote(self):
        server = VerifyServer()
        client = make_client(server)

        await client.check("SERIAL-1", "garbage-local-key-that-does-not-verify")

        assert len(server.requests) == 1

    @pytest.mark.asyncio
    async def test_server_error_within_grace_uses_local_key(self):
        server = VerifyServer(status_code=500)
        client = make_client(server)

        result = await client.check("SERIAL-1", local_key("20240104"))

        assert len(server.requests) == 1
        assert result.status == "Active"
        assert result.local_key is None

    @pytest.mark.asyncio
    async def test_server_error_after_grace_is_invalid(self):
        client = make_client(VerifyServer(status_code=500))

        result = await client.check("SERIAL-1", local_key("20231231"))

        assert result.status == "Invalid"
        assert result.description == "Remote Check Failed"

    @pytest.mark.asyncio
    async def test_unreachable_server_without_local_key_is_invalid(self):
        client = make_client(VerifyServer(error=httpx.ConnectError("connection refused")))

        result = await client.check("SERIAL-1")

        assert result.status == "Invalid"
        assert result.description == "Remote Check Failed"
        assert result.remote_check is True

    @pytest.mark.asyncio
    async def test_repeated_failures_open_circuit(self):
        server = VerifyServer(error=httpx.ConnectError("connection refused"))
        client = make_client(server)

        for _ in range(3):
            await client.check("SERIAL-1")
        assert client.circuit_breaker.is_open()

        result = await client.check("SERIAL-1")

        assert len(server.requests) == 3
        assert result.description == "Remote Check Failed"
