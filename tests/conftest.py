import socket
import threading
import time

import pytest

from rawclient.resolver import ResolvedAddress


class OneShotServer:
    """Accepts one connection, records the request, replies with chunks, then closes."""

    def __init__(self, chunks, delay=0.0, close=True):
        self.chunks = chunks
        self.delay = delay
        self.close = close
        self.request = b""
        self.done = threading.Event()
        self.release = threading.Event()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(("127.0.0.1", 0))
        self._listener.listen(1)
        self.port = self._listener.getsockname()[1]
        self._thread = threading.Thread(target=self._serve, daemon=True)
        self._thread.start()

    @property
    def address(self) -> ResolvedAddress:
        return ResolvedAddress(socket.AF_INET, socket.SOCK_STREAM, 0, ("127.0.0.1", self.port))

    def _read_request(self, conn):
        data = b""
        while b"\r\n\r\n" not in data:
            chunk = conn.recv(4096)
            if not chunk:
                return data
            data += chunk

        head, body = data.split(b"\r\n\r\n", 1)
        length = 0
        for line in head.split(b"\r\n"):
            if line.lower().startswith(b"content-length:"):
                length = int(line.split(b":", 1)[1].strip())
        while len(body) < length:
            chunk = conn.recv(4096)
            if not chunk:
                break
            body += chunk
        return data[:len(head) + 4] + body

    def _serve(self):
        try:
            conn, _ = self._listener.accept()
        except OSError:
            return
        with conn:
            try:
                self.request = self._read_request(conn)
                for chunk in self.chunks:
                    conn.sendall(chunk)
                    if self.delay:
                        time.sleep(self.delay)
            except OSError:
                # client went away early
                return
            finally:
                self.done.set()
            if not self.close:
                self.release.wait(5)

    def stop(self):
        self.release.set()
        self._listener.close()
        self._thread.join(timeout=5)


@pytest.fixture
def one_shot_server():
    servers = []

    def factory(chunks, delay=0.0, close=True):
        server = OneShotServer(chunks, delay=delay, close=close)
        servers.append(server)
        return server

    yield factory
    for server in servers:
        server.stop()


@pytest.fixture
def closed_port():
    """A loopback port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
