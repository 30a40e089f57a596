"""
=============================================================================
STATUS HANDLER
=============================================================================

A ready-made request handler for liveness and status probes, and a worked
example of the handler contract.

=============================================================================
ENDPOINTS
=============================================================================

    GET /status        Overall status, including registered checks
    GET /status/live   Liveness only: the process answers, nothing else

Every other request is left unhandled, so the dispatcher answers 400.

=============================================================================
RESPONSE FORMAT
=============================================================================

Healthy (200 OK):

    {"status":"healthy","uptime_seconds":3600.0,
     "checks":{"store":{"status":"healthy","message":"OK"}}}

A failing check (503 Service Unavailable):

    {"status":"unhealthy","uptime_seconds":3600.0,
     "checks":{"store":{"status":"unhealthy","message":"disk full"}}}

Responses carry "Cache-Control:no-store" so nothing in between caches a
stale "healthy".

=============================================================================
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict

from ..core.dispatcher import RequestReceivedEvent
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    """
    Outcome of one status check.

    Example:
        def check_store():
            if store.ping():
                return CheckResult(healthy=True)
            return CheckResult(healthy=False, message="store unreachable")
    """

    healthy: bool
    message: str = "OK"
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": "healthy" if self.healthy else "unhealthy",
            "message": self.message,
            **self.details,
        }


StatusCheck = Callable[[], CheckResult]


class StatusHandler:
    """
    Request handler for /status and /status/live.

    Usage:
        status = StatusHandler()
        status.add_check("store", check_store)
        server.on_request(status)

    Args:
        prefix: Path the endpoints live under.
    """

    def __init__(self, prefix: str = "/status"):
        self.prefix = prefix.rstrip("/") or "/status"
        self._checks: Dict[str, StatusCheck] = {}
        self._start_time = time.time()

    @property
    def uptime(self) -> float:
        return time.time() - self._start_time

    def add_check(self, name: str, check: StatusCheck) -> "StatusHandler":
        """Register a check run on every /status request. Returns self."""
        self._checks[name] = check
        return self

    def __call__(self, event: RequestReceivedEvent) -> None:
        request = event.context.request
        if request.method != "GET":
            return

        if request.path == self.prefix:
            self.status(event)
        elif request.path == f"{self.prefix}/live":
            self.liveness(event)

    def liveness(self, event: RequestReceivedEvent) -> None:
        response = event.context.response
        response.set_status(HTTPStatus.OK).set_json({"status": "alive"})
        response.add_header("Cache-Control", "no-store")
        event.is_handled = True

    def status(self, event: RequestReceivedEvent) -> None:
        checks = {}
        healthy = True

        for name, check in self._checks.items():
            try:
                result = check()
            except Exception as e:
                # A broken check reports unhealthy instead of turning into a 500
                logger.warning(f"Status check {name!r} raised: {e}")
                result = CheckResult(healthy=False, message=str(e))
            checks[name] = result.to_dict()
            healthy = healthy and result.healthy

        body = {
            "status": "healthy" if healthy else "unhealthy",
            "uptime_seconds": round(self.uptime, 1),
            "checks": checks,
        }

        response = event.context.response
        response.set_status(HTTPStatus.OK if healthy else HTTPStatus.SERVICE_UNAVAILABLE)
        response.set_json(body).add_header("Cache-Control", "no-store")
        event.is_handled = True
