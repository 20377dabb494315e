"""
License gate evaluated once per request.

Two marker files live in the license storage directory:

- ``.localkey``: the signed local key returned by the last Active check.
- ``.suspendedkey``: presence-only; while younger than the suspend window
  every request is refused without contacting the licensing server.

A Suspended verdict refreshes the suspended marker. Expired and any other
non-Active status block the request but leave no marker, so the next
request checks again.
"""

import os
import tempfile
import time
from pathlib import Path
from typing import List, Optional, TYPE_CHECKING, Union

from shared.logging import get_logger

from .client import LicenseClient
from .models import LicenseStatus, LicenseVerdict

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector

LOCAL_KEY_FILE = ".localkey"
SUSPENDED_KEY_FILE = ".suspendedkey"
SECONDS_PER_DAY = 86400


class LicenseGate:
    """Decides whether the site may serve the current request."""

    def __init__(
        self,
        client: LicenseClient,
        license_key: str,
        storage_dir: Union[str, Path],
        *,
        suspend_cache_days: int = 5,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.client = client
        self.license_key = license_key
        self.storage_dir = Path(storage_dir)
        self.suspend_cache_days = suspend_cache_days
        self.metrics = metrics
        self.logger = get_logger("cms.license_gate")

    @property
    def local_key_path(self) -> Path:
        return self.storage_dir / LOCAL_KEY_FILE

    @property
    def suspended_key_path(self) -> Path:
        return self.storage_dir / SUSPENDED_KEY_FILE

    async def evaluate(self) -> LicenseVerdict:
        """Run the gate and return the verdict for this request."""
        verdict = LicenseVerdict(license_key=self.license_key)

        if self._suspended_marker_fresh():
            verdict.status = LicenseStatus.SUSPENDED.value
            verdict.is_cache = True
            self._block(verdict, "Licence problem: Suspended (cached)")
            self._record(verdict)
            return verdict

        result = await self.client.check(self.license_key, self._read_local_key())
        verdict.is_cache = not result.remote_check
        verdict.status = result.status

        if result.is_active:
            if result.local_key:
                self._write_local_key(result.local_key)
            verdict.output = "good (cached)" if verdict.is_cache else "good"
        elif result.status == LicenseStatus.SUSPENDED.value:
            self._touch_suspended_marker()
            self._block(verdict, self._problem_message(result.status, verdict.is_cache))
        elif result.status == LicenseStatus.EXPIRED.value:
            self._block(verdict, self._problem_message(result.status, verdict.is_cache))
        else:
            self._block(verdict, f"Licence problem: {result.status}")

        if verdict.should_exit:
            self.logger.warning(
                "License gate blocking requests",
                status=verdict.status,
                cached=verdict.is_cache,
                description=result.description,
            )

        self._record(verdict)
        return verdict

    def clear_markers(self) -> List[str]:
        """Remove both marker files so the next request re-validates remotely."""
        removed = []
        for path in (self.local_key_path, self.suspended_key_path):
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                self.logger.warning("Could not remove license marker", path=str(path), error=str(exc))
                continue
            removed.append(path.name)

        self.logger.info("License markers cleared", removed=removed)
        return removed

    @staticmethod
    def _problem_message(status: str, cached: bool) -> str:
        message = f"Licence problem: {status}"
        return f"{message} (cached)" if cached else message

    @staticmethod
    def _block(verdict: LicenseVerdict, message: str) -> None:
        verdict.output = message
        verdict.exit_message = message
        verdict.should_exit = True
        verdict.http_code = 403
        verdict.show_banner = True

    def _suspended_marker_fresh(self) -> bool:
        """True while the suspended marker is inside its window; stale markers are removed."""
        try:
            mtime = self.suspended_key_path.stat().st_mtime
        except FileNotFoundError:
            return False
        except OSError as exc:
            self.logger.warning("Suspended marker unreadable", error=str(exc))
            return False

        if time.time() - mtime < self.suspend_cache_days * SECONDS_PER_DAY:
            return True

        try:
            self.suspended_key_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            self.logger.warning("Could not remove expired suspended marker", error=str(exc))
        return False

    def _read_local_key(self) -> str:
        try:
            return self.local_key_path.read_text()
        except FileNotFoundError:
            return ""
        except OSError as exc:
            self.logger.warning("Local key unreadable", error=str(exc))
            return ""

    def _write_local_key(self, local_key: str) -> None:
        """Replace the local key atomically so readers never see a partial token."""
        tmp_name = None
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.storage_dir, prefix=".localkey.")
            with os.fdopen(fd, "w") as handle:
                handle.write(local_key)
            os.replace(tmp_name, self.local_key_path)
        except OSError as exc:
            self.logger.warning("Could not persist local key", error=str(exc))
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def _touch_suspended_marker(self) -> None:
        try:
            self.storage_dir.mkdir(parents=True, exist_ok=True)
            self.suspended_key_path.touch()
        except OSError as exc:
            self.logger.warning("Could not write suspended marker", error=str(exc))

    def _record(self, verdict: LicenseVerdict) -> None:
        if self.metrics:
            self.metrics.increment_counter(
                "license_checks_total",
                status=verdict.status,
                source="cache" if verdict.is_cache else "remote",
            )
