"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

All tunables in one dataclass.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments     fileserver --port 3000              │
    │   2. Environment variables      FILESERVER_PORT=3000 fileserver     │
    │   3. Defaults (below)                                               │
    └─────────────────────────────────────────────────────────────────────┘

The CLI builds its defaults from ServerConfig.from_env(), so an explicit
flag always wins over the environment.

The worker count is NOT configurable. The server always runs
DEFAULT_POOL_SIZE workers (see server.py).

=============================================================================
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    Development:
        ServerConfig(host="127.0.0.1", root_dir="./site", log_level="DEBUG")

    Production-ish:
        ServerConfig(host="0.0.0.0", port=80, root_dir="/srv/www")
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """Address to bind. "0.0.0.0" is every IPv4 interface, "::" dual-stack."""

    port: int = 8080
    """Port to listen on. 0 lets the OS pick (useful in tests)."""

    backlog: int = 128
    """Pending handshakes the kernel queues before refusing."""

    # ─────────────────────────────────────────────────────────────────────
    # FILESYSTEM
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """Directory tree served to clients. Nothing outside it is reachable."""

    error_pages_dir: str = "."
    """Where "<code>.html" error pages are looked up."""

    # ─────────────────────────────────────────────────────────────────────
    # I/O
    # ─────────────────────────────────────────────────────────────────────

    chunk_size: int = 32 * 1024
    """Bytes per read/write when streaming a file."""

    max_line_length: int = 8192
    """Longest request or header line accepted."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING or ERROR."""

    server_name: str = "PyFileServer/1.0"
    """Shown in the startup log line."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Build a configuration from environment variables.

            FILESERVER_HOST         bind address   (default 0.0.0.0)
            FILESERVER_PORT         port           (default 8080)
            FILESERVER_ROOT         served root    (default .)
            FILESERVER_ERROR_PAGES  error pages    (default .)
            FILESERVER_LOG_LEVEL    log level      (default INFO)

        Raises:
            ValueError: FILESERVER_PORT is not an integer.
        """
        return cls(
            host=os.getenv("FILESERVER_HOST", "0.0.0.0"),
            port=int(os.getenv("FILESERVER_PORT", "8080")),
            root_dir=os.getenv("FILESERVER_ROOT", "."),
            error_pages_dir=os.getenv("FILESERVER_ERROR_PAGES", "."),
            log_level=os.getenv("FILESERVER_LOG_LEVEL", "INFO").upper(),
        )

    def validate(self) -> None:
        """
        Fail fast on values that could only break later.

        Raises:
            ValueError: Describing the first invalid value found.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if not Path(self.root_dir).is_dir():
            raise ValueError(f"root_dir is not a directory: {self.root_dir}")

        if self.chunk_size < 1024:
            raise ValueError("chunk_size must be >= 1024")

        if self.max_line_length < 256:
            raise ValueError("max_line_length must be >= 256")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(
                f"Invalid log_level: {self.log_level}. Must be one of {', '.join(LOG_LEVELS)}."
            )

    @property
    def log_level_value(self) -> int:
        """The log level as a logging module constant."""
        return getattr(logging, self.log_level.upper(), logging.INFO)
