"""
Shared single-attempt HTTP plumbing for the integration gateways.

Testability: pass a mock `session` to a gateway in tests instead of letting
it create a real requests.Session internally.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 15


class GatewayResult:
    """Structured return value from gateway calls.

    Attributes:
        ok:             True if the call succeeded (HTTP 2xx + no exception).
        status_code:    HTTP status code (None if network-level failure).
        data:           Parsed JSON response body (dict or list), else None.
        error:          Human-readable error message or None.
        duration_ms:    Round-trip latency in milliseconds.
    """

    def __init__(
        self,
        ok: bool,
        status_code: int | None,
        data: dict | list | None,
        error: str | None,
        duration_ms: int,
    ) -> None:
        self.ok = ok
        self.status_code = status_code
        self.data = data
        self.error = error
        self.duration_ms = duration_ms

    def to_log_dict(self) -> dict:
        return {
            "http_status_code": self.status_code,
            "error_message": self.error,
            "duration_ms": self.duration_ms,
            "sync_status": "success" if self.ok else "error",
        }


class BaseGateway:
    """Lazily-created requests session + one-shot request dispatcher."""

    service_name = "external"

    def __init__(self, session: requests.Session | None = None, timeout: int = DEFAULT_TIMEOUT) -> None:
        self._session: requests.Session | None = session
        self.timeout = timeout

    @property
    def session(self) -> requests.Session:
        """Return (or lazily create) the requests.Session."""
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def send(
        self,
        method: str,
        url: str,
        headers: dict,
        *,
        json_body: dict | list | None = None,
    ) -> GatewayResult:
        """Execute one request.  Always returns a GatewayResult; never raises."""
        kwargs: dict[str, Any] = {"headers": headers, "timeout": self.timeout}
        if json_body is not None:
            kwargs["json"] = json_body

        t0 = time.perf_counter()
        try:
            resp = self.session.request(method, url, **kwargs)
        except requests.Timeout:
            logger.warning("%s request timed out after %ss url=%s", self.service_name, self.timeout, url)
            return GatewayResult(
                ok=False,
                status_code=None,
                data=None,
                error=f"Request timed out after {self.timeout}s",
                duration_ms=int(self.timeout * 1000),
            )
        except requests.RequestException as exc:
            logger.warning("%s network error url=%s error=%s", self.service_name, url, exc)
            return GatewayResult(
                ok=False,
                status_code=None,
                data=None,
                error=str(exc)[:500],
                duration_ms=int((time.perf_counter() - t0) * 1000),
            )

        duration_ms = int((time.perf_counter() - t0) * 1000)
        if not resp.ok:
            logger.warning(
                "%s request failed status=%d url=%s", self.service_name, resp.status_code, url,
            )
            return GatewayResult(
                ok=False,
                status_code=resp.status_code,
                data=None,
                error=f"HTTP {resp.status_code}: {resp.text[:500]}",
                duration_ms=duration_ms,
            )

        try:
            data = resp.json() if resp.content else {}
        except ValueError:
            data = {}
        return GatewayResult(
            ok=True,
            status_code=resp.status_code,
            data=data,
            error=None,
            duration_ms=duration_ms,
        )
