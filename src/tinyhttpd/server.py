"""
=============================================================================
HTTP SERVER
=============================================================================

Wires the listening socket to the per-connection handler.

=============================================================================
REQUEST FLOW
=============================================================================

    SocketServer.accept()
          │
          ▼
    HTTPServer._dispatch(conn)
          │
          ├── workers == 0 ──► serve(conn) inline  (next accept waits)
          │
          └── workers  > 0 ──► ThreadPool.submit(serve, conn)
                                  └── queue full → close, no response
          │
          ▼
    serve(conn)
          └── with conn: ConnectionHandler.handle(conn)
                 (the connection is closed when the cycle ends)

=============================================================================
SEQUENTIAL BY DEFAULT
=============================================================================

With the default workers=0 each connection is served to completion before
the next accept(). No state is shared between connections and nothing
needs locking, at the price of head-of-line blocking: one slow client
stalls every client queued behind it in the listen backlog.

workers=N moves each connection onto a bounded pool of N threads. The
handler is stateless between connections, so the same instance is shared
by all workers. The one-request-per-connection contract does not change.

=============================================================================
"""

import logging
from typing import Optional

from .config import ServerConfig
from .core import SocketServer, Connection, ThreadPool
from .handlers import ConnectionHandler, CycleResult


logger = logging.getLogger(__name__)


class HTTPServer:
    """
    Static file server for HTTP/1.0 GET requests.

    Usage:
        server = HTTPServer(ServerConfig(port=4000, document_root="htdocs"))
        server.run()            # blocks until SIGINT/SIGTERM or shutdown()

    From another thread (tests, embedding):
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready(5.0)
        port = server.port
        ...
        server.shutdown()
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Raises:
            ValueError: Invalid configuration or missing document root.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._handler = ConnectionHandler.from_config(self.config)

        self._thread_pool: Optional[ThreadPool] = None
        if self.config.workers:
            self._thread_pool = ThreadPool(
                workers=self.config.workers,
                queue_size=self.config.queue_size,
            )

    @property
    def port(self) -> Optional[int]:
        """Port actually bound (resolved from 0), or None before run()."""
        return self._socket_server.port

    # =========================================================================
    # SERVER LIFECYCLE
    # =========================================================================

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the server (blocking).

        Args:
            host: Override config host.
            port: Override config port (0 = ephemeral).

        Raises:
            OSError: If the socket cannot be created, bound or listened on.
        """
        if host is not None:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()

        if self._thread_pool:
            self._thread_pool.start()

        logger.info(
            f"Serving {self.config.document_root} on {self.config.host}:{self.config.port} "
            f"({'sequential' if not self._thread_pool else f'{self.config.workers} workers'})"
        )

        try:
            self._socket_server.start(self._dispatch, on_ready=self._print_startup_banner)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the port is bound and listening."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Stop accepting connections. Safe from any thread."""
        self._socket_server.shutdown()

    def _print_startup_banner(self, port: int):
        print(f"httpd running on port {port}", flush=True)

    def _setup_logging(self):
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("tinyhttpd").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down server...")
        if self._thread_pool:
            self._thread_pool.shutdown(wait=True, timeout=10.0)

        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _dispatch(self, conn: Connection):
        """Called by SocketServer for each accepted connection."""
        if not self._thread_pool:
            self.serve(conn)
            return

        if not self._thread_pool.submit(self.serve, args=(conn,)):
            logger.warning(f"[{conn.id}] Worker queue full, dropping {conn.client_ip}")
            conn.close()

    def serve(self, conn: Connection) -> CycleResult:
        """Serve one connection and close it."""
        with conn:
            return self._handler.handle(conn)

