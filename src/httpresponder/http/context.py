"""
Per-connection request/response pair.

One HTTPContext exists per successfully parsed request. The thread handling
the connection creates it, hands it to the dispatcher, serializes its
response and drops it. It is never visible to any other connection, which
is why nothing in here is locked.
"""

from dataclasses import dataclass, field

from .request import HTTPRequest
from .response import HTTPResponse


@dataclass
class HTTPContext:
    """
    The request being answered and the response being built for it.

    Attributes:
        request: Parsed request (read-only).
        response: Response the handler mutates.
    """

    request: HTTPRequest
    response: HTTPResponse = field(default_factory=HTTPResponse)
