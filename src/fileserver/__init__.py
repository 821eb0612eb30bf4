"""
=============================================================================
FILESERVER - Static-File HTTP/1.1 Server Built From Scratch
=============================================================================

Serves a directory tree over HTTP/1.1 using raw sockets and a fixed pool
of worker threads. One request per connection, GET only.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fileserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m fileserver)
    ├── server.py            # FileServer: wires everything together
    ├── config.py            # ServerConfig dataclass
    ├── core/                # Low-level components
    │   ├── socket_server.py # Listening socket and accept loop
    │   ├── connection.py    # One accepted client
    │   └── worker_pool.py   # Fixed-size worker pool
    ├── http/                # HTTP protocol components
    │   ├── request.py       # Request-line parsing and validation
    │   ├── response.py      # Response model, writer and factories
    │   ├── errors.py        # Exceptions carrying a status code
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/            # Filesystem side
        ├── resolver.py      # URL path → file, redirect or listing
        ├── listing.py       # Generated directory index
        └── static.py        # Request → response

=============================================================================
QUICK START
=============================================================================

    from fileserver import FileServer, ServerConfig

    server = FileServer(ServerConfig(root_dir="./public", port=8080))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import FileServer, create_server

__all__ = ["FileServer", "ServerConfig", "create_server", "__version__"]
