"""
=============================================================================
REQUEST DISPATCHER
=============================================================================

Hands each parsed request to the single registered handler and decides the
final status when the handler is missing, unsure, or broken.

=============================================================================
ONE HANDLER SLOT
=============================================================================

There is no routing here. The hosting application registers ONE callable;
if it needs several endpoints it routes inside that callable.

    def handle(event: RequestReceivedEvent) -> None:
        if event.context.request.path != "/status":
            return                            # not mine → 400
        event.context.response.set_status(200).set_json({"ok": True})
        event.is_handled = True               # "I produced the answer"

    dispatcher.register(handle)

=============================================================================
OUTCOMES
=============================================================================

    ┌────────────────────────────────┬────────┬──────────────────────────────┐
    │ Situation                      │ Status │ Body / headers               │
    ├────────────────────────────────┼────────┼──────────────────────────────┤
    │ no handler registered          │  501   │ empty                        │
    │ handler ran, is_handled False  │  400   │ KEPT as the handler left them│
    │ handler ran, is_handled True   │ as set │ as set (unset status → 200)  │
    │ handler raised                 │  500   │ ErrorBody JSON, headers gone │
    └────────────────────────────────┴────────┴──────────────────────────────┘

The 400 row only overwrites the status. A handler that wrote a body and
forgot to set is_handled produces "400 Bad Request" carrying that body.

=============================================================================
THREADING
=============================================================================

dispatch() runs on the connection's own thread and reads the handler slot
once. register()/unregister() are not synchronized: register before the
server starts accepting.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional
import logging

from ..http.body import ErrorBody
from ..http.context import HTTPContext
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class RequestReceivedEvent:
    """
    What a handler receives.

    Attributes:
        context: Request to answer and response to fill in.
        is_handled: Set to True to assert a meaningful response was produced.
    """

    context: HTTPContext
    is_handled: bool = False


RequestHandler = Callable[[RequestReceivedEvent], None]


class DispatchOutcome(Enum):
    """How dispatch() ended; used for logging and tests."""

    HANDLED = "handled"
    UNHANDLED = "unhandled"
    NO_HANDLER = "no_handler"
    FAILED = "failed"


class Dispatcher:
    """Owner of the single handler slot."""

    def __init__(self, handler: Optional[RequestHandler] = None):
        self._handler: Optional[RequestHandler] = handler

    @property
    def handler(self) -> Optional[RequestHandler]:
        return self._handler

    @property
    def has_handler(self) -> bool:
        return self._handler is not None

    def register(self, handler: RequestHandler) -> RequestHandler:
        """
        Put ``handler`` in the slot, replacing any previous one.

        Returns the handler so this can be used as a decorator.
        """
        if self._handler is not None:
            logger.warning(f"Replacing registered request handler {self._handler!r}")
        self._handler = handler
        return handler

    def unregister(self) -> None:
        self._handler = None

    def dispatch(self, context: HTTPContext) -> DispatchOutcome:
        """
        Run the handler for ``context`` and settle the response status.

        Handler exceptions are caught here and turned into a 500 response;
        they do not propagate.

        Args:
            context: The connection's request/response pair.

        Returns:
            Which of the four outcomes applied.
        """
        handler = self._handler

        if handler is None:
            context.response.status_code = HTTPStatus.NOT_IMPLEMENTED
            return DispatchOutcome.NO_HANDLER

        event = RequestReceivedEvent(context=context)

        try:
            handler(event)
        except Exception as e:
            request = context.request
            logger.exception(
                f"Request handler failed for {request.method} {request.path}: "
                f"{type(e).__name__}: {e}"
            )
            context.response = HTTPResponse(
                status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
                body=ErrorBody(e),
            )
            return DispatchOutcome.FAILED

        # Read again: the handler may have replaced the response object
        response = context.response
        if not event.is_handled:
            response.status_code = HTTPStatus.BAD_REQUEST
            return DispatchOutcome.UNHANDLED

        if response.status_code is None:
            response.status_code = HTTPStatus.OK
        return DispatchOutcome.HANDLED
