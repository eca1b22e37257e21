"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: create, bind, listen, accept. Each accepted
client is wrapped in a Connection and handed to a callback. What happens
to the connection after that is not this module's business.

=============================================================================
SOCKET LIFECYCLE (Server Side)
=============================================================================

    1. socket()    Create an IPv4 TCP socket
    2. setsockopt  SO_REUSEADDR so restarts don't hit "Address in use"
    3. bind()      Reserve host:port (port 0 = let the OS choose)
    4. getsockname Learn which port the OS actually gave us
    5. listen()    Start queueing incoming connections (backlog)
    6. accept()    Loop: one new socket per client

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   bound to :4000      │     Never carries request data
                    └───────────┬───────────┘
                                │ accept()
                ┌───────────────┼───────────────┐
                ▼               ▼               ▼
           ┌─────────┐     ┌─────────┐     ┌─────────┐
           │ client  │     │ client  │     │ client  │
           │ socket  │     │ socket  │     │ socket  │
           └─────────┘     └─────────┘     └─────────┘
           one request,    one request,    one request,
           then closed     then closed     then closed

=============================================================================
EPHEMERAL PORTS
=============================================================================

Binding to port 0 asks the kernel for any free port. The only way to
find out which one we got is getsockname() after bind(). We store it so
the caller can print it ("httpd running on port 41873") and tests can
connect to it.

=============================================================================
"""

import socket
import signal
import threading
import logging
from typing import Callable, Optional

from .connection import Connection
from ..config import ServerConfig


logger = logging.getLogger(__name__)


class SocketServer:
    """
    TCP socket server that accepts connections.

    Usage:
        def handle_connection(conn: Connection):
            ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()

    Features:
    - Ephemeral port discovery (port=0)
    - Signal handling (SIGTERM, SIGINT) when run on the main thread
    - Shutdown from any thread via a polled running flag
    """

    # How often the accept loop wakes up to check the running flag
    ACCEPT_POLL_INTERVAL = 1.0

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._port: Optional[int] = None

        # Set once the socket is listening; cleared again on stop
        self._ready_event = threading.Event()

        self._original_handlers: dict = {}

    @property
    def port(self) -> Optional[int]:
        """The bound port (resolved from 0 once listening), else None."""
        return self._port

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with the options we rely on."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)

        # SO_REUSEADDR: rebind immediately after a restart even while old
        # connections sit in TIME_WAIT.
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        # accept() wakes up periodically so shutdown() takes effect
        sock.settimeout(self.ACCEPT_POLL_INTERVAL)

        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that trigger a graceful shutdown.

        signal.signal() only works on the main thread; when the server runs
        in a background thread (tests, embedding) the caller is expected to
        call shutdown() itself.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        """Restore original signal handlers."""
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def bind(self) -> int:
        """
        Create, bind and listen.

        Split out of start() so callers can learn the port before the
        accept loop starts blocking.

        Returns:
            The port actually bound.

        Raises:
            OSError: socket(), bind() or listen() failed. Fatal for the
                     process; logged here and re-raised.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))

            # Port 0 means "any free port": ask the kernel which one
            self._port = self._socket.getsockname()[1]

            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        logger.info(f"Server listening on {self.config.host}:{self._port}")
        return self._port

    def start(
        self,
        connection_handler: Callable[[Connection], None],
        on_ready: Optional[Callable[[int], None]] = None,
    ):
        """
        Start accepting connections. BLOCKS until shutdown() is called.

        Args:
            connection_handler: Receives each accepted Connection. In
                                sequential mode it serves and closes the
                                connection before returning, so the next
                                accept() waits for it.
            on_ready: Called with the bound port once listening.
        """
        if self._socket is None:
            self.bind()

        self._running = True
        self._setup_signals()
        self._ready_event.set()

        if on_ready:
            on_ready(self._port)

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        """
        Main loop for accepting connections.

        ┌─────────────────────────────────────────────────────────────────┐
        │   while self._running:                                           │
        │       accept()            (wakes at least once a second)         │
        │       Connection(...)     wrap client socket                     │
        │       connection_handler  serve it / hand it to a worker         │
        └─────────────────────────────────────────────────────────────────┘
        """
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                # Socket error - usually means we're shutting down
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                timeout=self.config.timeout,
                close_timeout=self.config.close_timeout,
            )

            try:
                connection_handler(conn)
            except Exception as e:
                # A broken handler must not take the accept loop down
                logger.exception(f"[{conn.id}] Unhandled error: {e}")
                conn.close()

    def shutdown(self):
        """
        Initiate graceful shutdown. Idempotent, callable from any thread.
        """
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        """Clean up resources on shutdown."""
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. Returns False on timeout."""
        return self._ready_event.wait(timeout)
