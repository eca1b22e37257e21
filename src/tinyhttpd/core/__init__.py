"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the request pipeline:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER                                                      │
    │  • Creates, binds and listens on the TCP socket                     │
    │  • Resolves port 0 to the port the OS assigned                      │
    │  • Runs the accept() loop, wraps each client in a Connection        │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  THREAD POOL (optional)                                             │
    │  • Bounded workers + bounded queue                                  │
    │  • Only used when workers > 0; otherwise connections are served     │
    │    inline, one at a time                                            │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION                                                         │
    │  • recv_byte() / peek_byte() / send() over one client socket        │
    │  • TransportError for failures mid-cycle                            │
    │  • Graceful close (FIN, short drain, close)                         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, TransportError
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "TransportError",
    "ThreadPool",
]
