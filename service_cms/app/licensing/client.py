"""
Licensing server client.

Answers "is this license key good?" either from a still-fresh signed local
key or by posting to the licensing server's verify endpoint. When the
server cannot be reached, the last signed local key is honoured for a
short grace period before the license is reported invalid.
"""

import random
import re
import time
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import httpx

from shared.logging import get_logger
from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.retry import RetryConfig, RetryError, retry_on_exception

from .local_key import days_ago, decode_local_key, encode_local_key, format_checkdate, md5_hex
from .models import LicenseCheckResult, LicenseStatus

VERIFY_PATH = "modules/servers/licensing/verify.php"
RESPONSE_FIELD = re.compile(r"<(.*?)>([^<]+)</\1>", re.IGNORECASE)


def parse_verify_response(body: str) -> Dict[str, str]:
    """Turn ``<status>Active</status><md5hash>..</md5hash>`` into a dict."""
    return {name: value for name, value in RESPONSE_FIELD.findall(body)}


class LicenseClient:
    """Client for the remote licensing server."""

    def __init__(
        self,
        server_url: str,
        secret: str,
        *,
        domain: str = "localhost",
        ip: str = "127.0.0.1",
        directory: Optional[str] = None,
        local_key_days: int = 5,
        allow_check_fail_days: int = 2,
        timeout: float = 30.0,
        retry_config: Optional[RetryConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        today: Callable[[], date] = date.today,
    ):
        self.server_url = server_url if server_url.endswith("/") else server_url + "/"
        self.secret = secret
        self.domain = domain
        self.ip = ip
        self.directory = directory or str(Path.cwd())
        self.local_key_days = local_key_days
        self.allow_check_fail_days = allow_check_fail_days
        self.timeout = timeout
        self.transport = transport
        self.today = today
        self.logger = get_logger("cms.license_client")
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=3,
            recovery_timeout=60.0,
            name="license_server"
        )
        self.retry_config = retry_config or RetryConfig(
            max_attempts=2,
            base_delay=0.5,
            max_delay=5.0,
            jitter=True
        )
        self._post_verify = retry_on_exception(
            (httpx.TransportError,),
            config=self.retry_config
        )(self._post_verify_once)

    @property
    def verify_url(self) -> str:
        return self.server_url + VERIFY_PATH

    async def check(self, license_key: str, local_key: str = "") -> LicenseCheckResult:
        """Check ``license_key``, preferring a fresh ``local_key`` over the network."""
        today = self.today()
        local_results: Dict[str, Any] = {}
        stored_checkdate = ""

        if local_key:
            decoded = decode_local_key(local_key, self.secret)
            if decoded is None:
                self.logger.warning("Stored local key failed verification")
            else:
                stored_checkdate = str(decoded["checkdate"])
                local_results = decoded
                if stored_checkdate > days_ago(self.local_key_days, today):
                    if self._bound_here(decoded):
                        return LicenseCheckResult(
                            status=str(decoded.get("status", LicenseStatus.INVALID.value)),
                            description=decoded.get("description"),
                            remote_check=False,
                            data=decoded,
                        )
                    local_results = dict(decoded, status=LicenseStatus.INVALID.value)

        return await self._remote_check(license_key, today, local_results, stored_checkdate)

    def _bound_here(self, results: Dict[str, Any]) -> bool:
        """A local key may pin the domains, IPs and install directories it is valid for."""
        bindings = (
            ("validdomain", self.domain),
            ("validip", self.ip),
            ("validdirectory", self.directory),
        )
        for field, current in bindings:
            allowed = results.get(field)
            if allowed and current not in str(allowed).split(","):
                self.logger.warning("Local key not valid for this installation", field=field, value=current)
                return False
        return True

    async def _remote_check(
        self,
        license_key: str,
        today: date,
        local_results: Dict[str, Any],
        stored_checkdate: str,
    ) -> LicenseCheckResult:
        check_token = f"{int(time.time())}{md5_hex(str(random.randint(100000000, 2147483647)) + license_key)}"
        fields = {
            "licensekey": license_key,
            "domain": self.domain,
            "ip": self.ip,
            "dir": self.directory,
            "check_token": check_token,
        }

        try:
            status_code, body = await self.circuit_breaker.call(self._post_verify, fields)
        except (httpx.HTTPError, RetryError, CircuitBreakerOpenException) as exc:
            self.logger.warning("License server unreachable", error=str(exc))
            status_code, body = 0, ""

        if status_code != 200:
            grace_start = days_ago(self.local_key_days + self.allow_check_fail_days, today)
            if stored_checkdate and stored_checkdate > grace_start:
                self.logger.info("Using last known license state during grace period", checkdate=stored_checkdate)
                return LicenseCheckResult(
                    status=str(local_results.get("status", LicenseStatus.INVALID.value)),
                    description=local_results.get("description"),
                    remote_check=True,
                    data=local_results,
                )
            return LicenseCheckResult(
                status=LicenseStatus.INVALID.value,
                description="Remote Check Failed",
                remote_check=True,
            )

        results: Dict[str, Any] = parse_verify_response(body)

        md5hash = results.get("md5hash")
        if md5hash and md5hash != md5_hex(self.secret + check_token):
            self.logger.warning("License server response failed checksum verification")
            return LicenseCheckResult(
                status=LicenseStatus.INVALID.value,
                description="MD5 Checksum Verification Failed",
                remote_check=True,
                data=results,
            )

        if "status" not in results:
            return LicenseCheckResult(
                status=LicenseStatus.INVALID.value,
                description="License status could not be determined",
                remote_check=True,
                data=results,
            )

        new_local_key = None
        if results["status"] == LicenseStatus.ACTIVE.value:
            checkdate = format_checkdate(today)
            results["checkdate"] = checkdate
            new_local_key = encode_local_key(results, self.secret, checkdate)

        return LicenseCheckResult(
            status=results["status"],
            description=results.get("description"),
            remote_check=True,
            local_key=new_local_key,
            data=results,
        )

    async def _post_verify_once(self, fields: Dict[str, str]) -> Tuple[int, str]:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.verify_url, data=fields)
            return response.status_code, response.text
