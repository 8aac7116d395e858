"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserver import StaticServer, ServerConfig
from staticserver.core.connection import Connection


INDEX_HTML = b"<html><body><h1>Home</h1></body></html>"


@pytest.fixture
def web_root(tmp_path: Path) -> Path:
    """
    A web root with a few files, plus a sibling directory that shares its
    name prefix:

        tmp/www/index.html
        tmp/www/style.css
        tmp/www/data.xyz
        tmp/www/sub/page.html
        tmp/www-secret/secret.txt
    """
    root = tmp_path / "www"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "style.css").write_bytes(b"body { color: red; }\n")
    (root / "data.xyz").write_bytes(bytes(range(256)))
    (root / "sub").mkdir()
    (root / "sub" / "page.html").write_bytes(b"<p>sub page</p>")

    secret = tmp_path / "www-secret"
    secret.mkdir()
    (secret / "secret.txt").write_bytes(b"top secret\n")

    return root


@pytest.fixture
def config(web_root: Path) -> ServerConfig:
    """Test server configuration on an ephemeral loopback port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        web_root=str(web_root),
        min_workers=2,
        max_workers=4,
        queue_size=8,
        timeout=5.0,
        accept_poll_interval=0.1,
        log_level="WARNING",
    )


@pytest.fixture
def conn_pair() -> Generator[Tuple[Connection, socket.socket], None, None]:
    """A Connection wrapping one end of a socketpair, and the peer socket."""
    server_side, client_side = socket.socketpair()
    conn = Connection(socket=server_side, address=("127.0.0.1", 54321), timeout=5.0)
    client_side.settimeout(5.0)

    yield conn, client_side

    conn.close()
    client_side.close()


class RunningServer:
    """Test server helper that runs serve_forever() in a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread: threading.Thread = None

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.server_address

    def start(self):
        """Bind, then serve in a background thread."""
        self.server.start()
        self._thread = threading.Thread(target=self.server.serve_forever, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(5.0):
            raise RuntimeError("Server failed to start")

    def stop(self, timeout: float = 10.0):
        """Stop the server and wait for the drain to finish."""
        self.server.stop()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)

    @property
    def finished(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def join(self, timeout: float = 10.0):
        self._thread.join(timeout=timeout)


@pytest.fixture
def running_server(config: ServerConfig) -> Generator[RunningServer, None, None]:
    """A started StaticServer serving the ``web_root`` fixture."""
    server = StaticServer(config, install_signal_handlers=False)
    running = RunningServer(server)
    running.start()

    yield running

    running.stop()


def http_request(address: Tuple[str, int], raw: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes on a fresh connection and read until the server closes."""
    with socket.create_connection(address, timeout=timeout) as s:
        s.sendall(raw)
        chunks = []
        while True:
            chunk = s.recv(65536)
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def split_response(response: bytes) -> Tuple[int, dict, bytes]:
    """Split a raw response into (status code, headers, body)."""
    head, _, body = response.partition(b"\r\n\r\n")
    lines = head.decode("iso-8859-1").split("\r\n")
    status = int(lines[0].split()[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(": ")
        headers[name] = value
    return status, headers, body
