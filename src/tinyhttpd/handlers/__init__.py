"""
=============================================================================
REQUEST HANDLERS
=============================================================================

    connection.py   ConnectionHandler: the per-connection state machine
    static.py       PathResolver: URL → file under the document root

    ┌──────────────┐   url    ┌──────────────┐   ResolvedPath
    │  Connection  │ ───────► │ PathResolver │ ──────────────┐
    │  Handler     │ ◄─────────────────────────────────────────┘
    └──────────────┘

=============================================================================
"""

from .connection import ConnectionHandler, CycleResult, HandlerState, TRANSITIONS
from .static import PathResolver, ResolvedPath

__all__ = [
    "ConnectionHandler",
    "CycleResult",
    "HandlerState",
    "TRANSITIONS",
    "PathResolver",
    "ResolvedPath",
]
