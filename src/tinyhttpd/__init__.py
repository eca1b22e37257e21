"""
=============================================================================
TINYHTTPD - A Minimal HTTP/1.0 Static File Server
=============================================================================

Answers GET requests by streaming files from a document root, and
everything else with a fixed 404 or 501 page. One request per connection,
no keep-alive, raw sockets only.

=============================================================================
ARCHITECTURE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         HTTPServer (server.py)                       │
    │   config + socket server + optional thread pool + handler           │
    └───────────────────────────────┬─────────────────────────────────────┘
                                    │
    ┌───────────────────────────────▼─────────────────────────────────────┐
    │                     SocketServer (core/)                             │
    │   socket → bind → listen → accept loop → Connection                  │
    └───────────────────────────────┬─────────────────────────────────────┘
                                    │ one Connection at a time
    ┌───────────────────────────────▼─────────────────────────────────────┐
    │                 ConnectionHandler (handlers/)                        │
    │                                                                      │
    │   LineReader ──► RequestParser ──► PathResolver ──► ResponseWriter   │
    │   (http/)         (http/)           (handlers/)      (http/)         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    $ python -m tinyhttpd --root ./htdocs --port 4000
    httpd running on port 4000

    $ curl -i http://localhost:4000/
    HTTP/1.0 200 OK
    Server: httpd/0.1.0
    Content-Type: text/html

    <html>...

    from tinyhttpd import HTTPServer, ServerConfig

    server = HTTPServer(ServerConfig(port=0, document_root="./htdocs"))
    server.run()

=============================================================================
"""

__version__ = "0.1.0"

from .config import ServerConfig
from .server import HTTPServer
from .handlers import ConnectionHandler, PathResolver

__all__ = [
    "HTTPServer",
    "ServerConfig",
    "ConnectionHandler",
    "PathResolver",
    "__version__",
]
