"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
from pathlib import Path
from typing import Generator

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request with a few headers."""
    return (
        b"GET /docs/readme.txt?lang=en HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def reader_for():
    """Factory: bytes → buffered binary reader, like socket.makefile("rb")."""
    def _make(data: bytes) -> io.BufferedReader:
        return io.BufferedReader(io.BytesIO(data))
    return _make


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small served tree:

        site/
        ├── hello.txt           "hi"
        ├── style.css
        ├── with index/
        │   └── index.html
        ├── docs/
        │   ├── b.txt
        │   ├── a.txt
        │   └── nested/
        └── empty/
    """
    root = tmp_path / "site"
    root.mkdir()

    (root / "hello.txt").write_bytes(b"hi")
    (root / "style.css").write_text("body { color: red; }")

    (root / "with index").mkdir()
    (root / "with index" / "index.html").write_text("<h1>home</h1>")

    docs = root / "docs"
    docs.mkdir()
    (docs / "b.txt").write_text("b")
    (docs / "a.txt").write_text("a")
    (docs / "nested").mkdir()

    (root / "empty").mkdir()
    return root


@pytest.fixture
def outside_file(tmp_path: Path) -> Path:
    """A file next to (not inside) the served tree."""
    secret = tmp_path / "secret.txt"
    secret.write_text("top secret")
    return secret


class RunningServer:
    """FileServer running on a background thread."""

    def __init__(self, server: FileServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.port

    def start(self):
        """Start the server and wait until it is listening."""
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()

        if not self.server.ready.wait(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes, half-close, and read the whole response."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as sock:
            sock.sendall(raw)
            sock.shutdown(socket.SHUT_WR)

            chunks = []
            while True:
                chunk = sock.recv(65536)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def get(self, target: str) -> bytes:
        return self.request(f"GET {target} HTTP/1.1\r\nHost: test\r\n\r\n".encode("utf-8"))


@pytest.fixture
def make_server(site: Path) -> Generator:
    """Factory for running servers; every server started is stopped."""
    started = []

    def _make(**overrides) -> RunningServer:
        options = {
            "host": "127.0.0.1",
            "port": 0,  # Let OS pick a free port
            "root_dir": str(site),
            "error_pages_dir": str(site.parent / "no-error-pages"),
            "log_level": "WARNING",
        }
        options.update(overrides)

        running = RunningServer(FileServer(ServerConfig(**options)))
        running.start()
        started.append(running)
        return running

    yield _make

    for running in started:
        running.stop()


@pytest.fixture
def running_server(make_server) -> RunningServer:
    """A server for the ``site`` tree with no custom error pages."""
    return make_server()


def _split_response(raw: bytes) -> tuple[str, dict, bytes]:
    """Split raw response bytes into (status line, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return lines[0], headers, body


@pytest.fixture
def split_response():
    """Helper: raw response bytes → (status line, lowercased headers, body)."""
    return _split_response
