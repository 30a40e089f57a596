"""
Ready-made request handlers.

A handler is any callable taking a RequestReceivedEvent; register one with
HTTPServer.on_request().
"""

from .status import CheckResult, StatusCheck, StatusHandler

__all__ = [
    "StatusHandler",
    "CheckResult",
    "StatusCheck",
]
