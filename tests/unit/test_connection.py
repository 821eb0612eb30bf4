"""
Unit tests for Connection and the per-connection pipeline.

These run FileServer.serve_connection() directly on one end of a
socketpair, with no listening socket and no worker pool involved.
"""

import logging
import os
import socket
import threading
import time
from pathlib import Path

import pytest

from fileserver import FileServer, ServerConfig
from fileserver.core.connection import DRAIN_TIMEOUT, Connection, ConnectionState
from fileserver.http.response import ResponseWriter


def exchange(server: FileServer, raw: bytes) -> bytes:
    """Feed ``raw`` to serve_connection() and return everything it sent."""
    client, server_side = socket.socketpair()
    with client:
        client.sendall(raw)
        client.shutdown(socket.SHUT_WR)

        server.serve_connection(Connection(socket=server_side, address=("test-client", 0)))

        chunks = []
        while True:
            chunk = client.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


@pytest.fixture
def error_pages(tmp_path: Path) -> Path:
    pages = tmp_path / "errors"
    pages.mkdir()
    return pages


@pytest.fixture
def server(site: Path, error_pages: Path) -> FileServer:
    return FileServer(ServerConfig(
        host="127.0.0.1",
        port=0,
        root_dir=str(site),
        error_pages_dir=str(error_pages),
    ))


class TestConnection:

    def test_close_is_idempotent(self):
        client, server_side = socket.socketpair()
        with client:
            conn = Connection(socket=server_side, address=("1.2.3.4", 5678))
            client.shutdown(socket.SHUT_WR)

            conn.close()
            conn.close()

            assert conn.state is ConnectionState.CLOSED
            assert client.recv(1) == b""

    def test_client_ip(self):
        client, server_side = socket.socketpair()
        with client, Connection(socket=server_side, address=("10.0.0.7", 80)) as conn:
            assert conn.client_ip == "10.0.0.7"
            client.shutdown(socket.SHUT_WR)

    def test_writer_is_flushed_on_close(self):
        client, server_side = socket.socketpair()
        with client:
            client.shutdown(socket.SHUT_WR)
            with Connection(socket=server_side, address=("x", 0)) as conn:
                conn.writer.write(b"buffered")

            assert client.recv(64) == b"buffered"

    def test_drain_is_bounded_in_total(self):
        """A client trickling bytes cannot hold close() past DRAIN_TIMEOUT."""
        client, server_side = socket.socketpair()
        stop = threading.Event()

        def trickle():
            while not stop.is_set():
                try:
                    client.send(b"x")
                except OSError:
                    return
                time.sleep(0.05)

        sender = threading.Thread(target=trickle, daemon=True)
        sender.start()
        try:
            conn = Connection(socket=server_side, address=("x", 0))

            start = time.monotonic()
            conn.close()
            elapsed = time.monotonic() - start

            assert elapsed < DRAIN_TIMEOUT + 1.0
            assert conn.state is ConnectionState.CLOSED
        finally:
            stop.set()
            sender.join(timeout=2.0)
            client.close()


class TestServeConnection:
    """One connection in, exactly one response out."""

    def test_file(self, server: FileServer):
        raw = exchange(server, b"GET /hello.txt HTTP/1.1\r\nHost: x\r\n\r\n")
        assert raw == b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n\r\nhi"

    def test_not_found_plain(self, server: FileServer):
        raw = exchange(server, b"GET /missing HTTP/1.1\r\n\r\n")
        assert raw == b"HTTP/1.1 404 Not Found\r\nContent-Type: text/plain\r\n\r\nNot Found"

    def test_not_found_custom_page(self, server: FileServer, error_pages: Path):
        (error_pages / "404.html").write_bytes(b"<h1>gone</h1>")

        raw = exchange(server, b"GET /missing HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 404 Not Found\r\nContent-Type: text/html\r\n\r\n<h1>gone</h1>"

    def test_file_with_trailing_slash_is_404(self, server: FileServer):
        raw = exchange(server, b"GET /hello.txt/ HTTP/1.1\r\n\r\n")
        assert raw.startswith(b"HTTP/1.1 404 Not Found\r\n")

    def test_listing_with_undecodable_name(self, server: FileServer, site: Path):
        with open(os.path.join(os.fsencode(site / "empty"), b"bad\xff.txt"), "wb") as f:
            f.write(b"x")

        raw = exchange(server, b"GET /empty/ HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b'href="/empty/bad%FF.txt"' in raw

    def test_double_slash_lists_root(self, server: FileServer):
        raw = exchange(server, b"GET // HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 200 OK\r\n")
        assert b'href="//' not in raw
        assert b"../" not in raw

    def test_empty_connection_is_500(self, server: FileServer):
        raw = exchange(server, b"")
        assert raw.startswith(b"HTTP/1.1 500 Internal Server Error\r\n")

    def test_malformed_request_is_500(self, server: FileServer):
        raw = exchange(server, b"NONSENSE\r\n\r\n")
        assert raw.startswith(b"HTTP/1.1 500 ")

    def test_truncated_headers_is_500(self, server: FileServer):
        raw = exchange(server, b"GET / HTTP/1.1\r\nHost: x\r\n")
        assert raw.startswith(b"HTTP/1.1 500 ")

    def test_unreadable_file_is_500(self, server: FileServer, site: Path, monkeypatch):
        def refuse(*args, **kwargs):
            raise PermissionError("denied")

        monkeypatch.setattr("fileserver.http.response.open", refuse, raising=False)

        raw = exchange(server, b"GET /hello.txt HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 500 ")
        assert b"200 OK" not in raw

    def test_no_error_after_headers_sent(self, server: FileServer, monkeypatch):
        """A failure mid-body closes the connection without a second status line."""
        def broken_copy(self, source):
            raise OSError("disk went away")

        monkeypatch.setattr(ResponseWriter, "_copy", broken_copy)

        raw = exchange(server, b"GET /hello.txt HTTP/1.1\r\n\r\n")

        assert raw == b"HTTP/1.1 200 OK\r\nContent-Type: text/plain\r\n\r\n"

    def test_unexpected_error_is_500(self, server: FileServer, monkeypatch, caplog):
        def explode(request):
            raise KeyError("bug")

        monkeypatch.setattr(server._handler, "handle", explode)

        with caplog.at_level(logging.ERROR, logger="fileserver"):
            raw = exchange(server, b"GET / HTTP/1.1\r\n\r\n")

        assert raw.startswith(b"HTTP/1.1 500 ")
        assert any("Unexpected error" in r.message for r in caplog.records)

    def test_access_log(self, server: FileServer, caplog):
        with caplog.at_level(logging.INFO, logger="fileserver.access"):
            exchange(server, b"GET /hello.txt?v=2 HTTP/1.1\r\n\r\n")

        lines = [r.message for r in caplog.records if r.name == "fileserver.access"]
        assert len(lines) == 1
        assert lines[0].startswith('test-client "GET /hello.txt?v=2" 200 ')

    def test_access_log_without_request(self, server: FileServer, caplog):
        with caplog.at_level(logging.INFO, logger="fileserver.access"):
            exchange(server, b"")

        lines = [r.message for r in caplog.records if r.name == "fileserver.access"]
        assert lines[0].startswith('test-client "-" 500 ')
