"""
Open TCP connections, either with a plain blocking connect or with a
non-blocking connect bounded by a writability wait.
"""

import errno
import os
import select
import socket

import structlog

from .errors import ConnectError, ConnectTimeout, PollError
from .resolver import ResolvedAddress

logger = structlog.get_logger(__name__)

DEFAULT_CONNECT_TIMEOUT = 60.0

_IN_PROGRESS = (errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EAGAIN, errno.EALREADY)


class Connection:
    """An open byte stream to the server. Closing is idempotent."""

    def __init__(self, sock: socket.socket, address: ResolvedAddress, blocking: bool = True):
        self.sock = sock
        self.address = address
        self.blocking = blocking
        self.closed = False

    def fileno(self) -> int:
        return self.sock.fileno()

    def close(self):
        if self.closed:
            return
        self.closed = True
        try:
            self.sock.close()
        finally:
            logger.debug("connection_closed", ip=self.address.ip, port=self.address.port)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return f"<Connection {self.address.ip}:{self.address.port} {state}>"


def _create_socket(address: ResolvedAddress) -> socket.socket:
    try:
        return socket.socket(address.family, address.socktype, address.proto)
    except OSError as e:
        raise ConnectError("Socket creation failed", e.strerror or str(e)) from e


def connect_blocking(address: ResolvedAddress) -> Connection:
    """Connect with a single blocking call."""
    sock = _create_socket(address)
    logger.info("connecting", ip=address.ip, port=address.port, mode="blocking")
    try:
        sock.connect(address.sockaddr)
    except OSError as e:
        sock.close()
        logger.error("connection_failed", ip=address.ip, port=address.port, error=str(e))
        raise ConnectError(f"Connection to {address.ip}:{address.port} failed", e.strerror or str(e)) from e

    logger.info("connected", ip=address.ip, port=address.port)
    return Connection(sock, address, blocking=True)


def connect_nonblocking(address: ResolvedAddress, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> Connection:
    """Start a non-blocking connect and wait up to timeout seconds for it to finish.

    The socket stays non-blocking afterwards.

    Raises:
        ConnectError: the connect was refused or failed immediately
        ConnectTimeout: the socket did not become writable in time
        PollError: the readiness wait itself failed
    """
    sock = _create_socket(address)
    try:
        sock.setblocking(False)
        _finish_connect(sock, address, timeout)
    except BaseException:
        sock.close()
        raise

    logger.info("connected", ip=address.ip, port=address.port)
    return Connection(sock, address, blocking=False)


def _finish_connect(sock: socket.socket, address: ResolvedAddress, timeout: float):
    logger.info("connecting", ip=address.ip, port=address.port, mode="non-blocking", timeout=timeout)
    code = sock.connect_ex(address.sockaddr)
    if code == 0:
        return
    if code not in _IN_PROGRESS:
        raise ConnectError(f"Connection to {address.ip}:{address.port} failed", os.strerror(code))

    logger.debug("connection_in_progress", ip=address.ip, port=address.port)
    try:
        _, writable, _ = select.select([], [sock], [], timeout)
    except (OSError, ValueError) as e:
        raise PollError("select() failed while connecting", str(e)) from e

    if not writable:
        raise ConnectTimeout(f"Connection to {address.ip}:{address.port} timed out after {timeout}s")

    # writable only means the attempt finished; SO_ERROR says how
    so_error = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    if so_error != 0:
        raise ConnectError(f"Connection to {address.ip}:{address.port} failed", os.strerror(so_error))


def open_connection(address: ResolvedAddress, blocking: bool = True, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> Connection:
    if blocking:
        return connect_blocking(address)
    return connect_nonblocking(address, timeout)
