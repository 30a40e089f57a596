"""
=============================================================================
CORE: LISTENER, CONNECTIONS, DISPATCH
=============================================================================

    ┌──────────────────────────┐
    │  SocketServer            │  binds, listens, accepts
    └────────────┬─────────────┘
                 │ Connection (one per client socket)
                 ▼
    ┌──────────────────────────┐
    │  Connection              │  one bounded read, one write, close
    └────────────┬─────────────┘
                 │ HTTPContext
                 ▼
    ┌──────────────────────────┐
    │  Dispatcher              │  single handler slot, default statuses
    └──────────────────────────┘

=============================================================================
"""

from .connection import Connection, ConnectionState
from .dispatcher import Dispatcher, DispatchOutcome, RequestReceivedEvent
from .socket_server import SocketServer

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "Dispatcher",
    "DispatchOutcome",
    "RequestReceivedEvent",
]
