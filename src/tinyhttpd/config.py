"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized, type-safe configuration for the server.

=============================================================================
WHERE VALUES COME FROM
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION PRECEDENCE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Command line      python -m tinyhttpd --port 8000              │
    │          │                                                           │
    │          ▼ (overrides)                                               │
    │   2. Environment       HTTPD_PORT=8000                              │
    │          │                                                           │
    │          ▼ (overrides)                                               │
    │   3. Dataclass default port = 4000                                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Only two values matter to the request pipeline itself: the listening port
and the document root. Everything else bounds resource usage (buffer sizes,
worker count) or tunes logging.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ServerConfig:
    """
    Server configuration.

    =========================================================================
    GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, timeout, close_timeout

    FILESYSTEM
    - document_root, index_file

    BUFFERS
    - line_buffer_size, max_token_length, chunk_size

    CONCURRENCY
    - workers, queue_size

    LOGGING / IDENTITY
    - log_level, server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind to. "0.0.0.0" listens on every IPv4 interface."""

    port: int = 4000
    """
    Port to listen on.
    0 asks the OS for an ephemeral port; the bound port is reported
    once the socket is listening.
    """

    backlog: int = 5
    """Connections the kernel queues while we are busy with one client."""

    timeout: Optional[float] = None
    """
    Per-connection socket timeout in seconds.
    None = fully blocking. A stalled client then holds its worker
    (or, in sequential mode, the whole server) until it goes away.
    """

    close_timeout: float = 0.5
    """Seconds spent draining unread client bytes while closing."""

    # ─────────────────────────────────────────────────────────────────────
    # FILESYSTEM
    # ─────────────────────────────────────────────────────────────────────

    document_root: str = "htdocs"
    """Directory that request URLs are appended to."""

    index_file: str = "index.html"
    """File served for URLs ending in "/" and for directories."""

    # ─────────────────────────────────────────────────────────────────────
    # BUFFERS
    # ─────────────────────────────────────────────────────────────────────

    line_buffer_size: int = 1024
    """
    Capacity of one request/header line, terminator slot included.
    At most line_buffer_size - 1 bytes are consumed per line; the
    remainder of a longer line is read as the next line.
    """

    max_token_length: int = 254
    """Longest method or URL kept from the request line (extra is dropped)."""

    chunk_size: int = 1024
    """Bytes read from a file per send when streaming a 200 body."""

    # ─────────────────────────────────────────────────────────────────────
    # CONCURRENCY
    # ─────────────────────────────────────────────────────────────────────

    workers: int = 0
    """
    Worker threads for connection handling.
    0 = sequential: each connection is served to completion before the
    next accept(). N > 0 = bounded pool of N threads.
    """

    queue_size: int = 32
    """Connections allowed to wait for a worker before being dropped."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    server_name: str = "httpd/0.1.0"
    """Value of the Server header on every response."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTPD_HOST           Bind address (default: 0.0.0.0)
        HTTPD_PORT           Listening port (default: 4000)
        HTTPD_DOCUMENT_ROOT  Document root (default: htdocs)
        HTTPD_WORKERS        Worker threads, 0 = sequential (default: 0)
        HTTPD_TIMEOUT        Socket timeout in seconds (default: none)
        HTTPD_LOG_LEVEL      Logging level (default: INFO)

        =====================================================================
        """
        timeout = os.getenv("HTTPD_TIMEOUT")
        return cls(
            host=os.getenv("HTTPD_HOST", "0.0.0.0"),
            port=int(os.getenv("HTTPD_PORT", "4000")),
            document_root=os.getenv("HTTPD_DOCUMENT_ROOT", "htdocs"),
            workers=int(os.getenv("HTTPD_WORKERS", "0")),
            timeout=float(timeout) if timeout else None,
            log_level=os.getenv("HTTPD_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup so a bad value fails the process before
        the socket is bound, not on the first request.

        Raises:
            ValueError: If any value is out of range.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        # One slot is reserved for the terminator, so a line needs two.
        if self.line_buffer_size < 2:
            raise ValueError("line_buffer_size must be >= 2")

        if self.max_token_length < 1:
            raise ValueError("max_token_length must be >= 1")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.workers < 0:
            raise ValueError("workers must be >= 0")

        if self.workers and self.queue_size < 1:
            raise ValueError("queue_size must be >= 1 when workers are enabled")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.close_timeout < 0:
            raise ValueError("close_timeout must be >= 0")

        if not self.index_file or "/" in self.index_file:
            raise ValueError(f"Invalid index_file: {self.index_file!r}")
