"""
Send a request over an open connection and accumulate the response.
"""

import select
import time
from datetime import datetime, timezone
from typing import Optional

import structlog

from .connection import Connection
from .errors import AllocationError, PollError, ReceiveError, SendError

logger = structlog.get_logger(__name__)

HEADER_DELIMITER = b"\r\n\r\n"
RECV_BUFFER_SIZE = 4096


class FetchResult:
    def __init__(
        self,
        header_block: bytes = b'',
        body: bytes = b'',
        headers_found: bool = False,
        peer_closed: bool = False,
        timed_out: bool = False,
        bytes_received: int = 0,
        reads: int = 0,
        fetch_time: float = 0.0,
    ):
        """Initialize a FetchResult with the received bytes and read metadata."""
        self.header_block = header_block
        self.body = body
        self.headers_found = headers_found
        self.peer_closed = peer_closed
        self.timed_out = timed_out
        self.bytes_received = bytes_received
        self.reads = reads
        self.fetch_time = fetch_time
        self.timestamp = datetime.now(timezone.utc)

    @property
    def encoding(self) -> str:
        """Charset named in the header block's Content-Type, or utf-8."""
        header_text = self.header_block.decode('latin-1').lower()
        for line in header_text.split('\r\n'):
            if line.startswith('content-type:') and 'charset=' in line:
                charset = line.split('charset=', 1)[1].split(';')[0].strip(' "\'')
                if charset:
                    return charset
        return 'utf-8'

    @property
    def text(self) -> str:
        """Decode the body to text using the declared or fallback encoding."""
        if not self.body:
            return ""
        try:
            return self.body.decode(self.encoding)
        except (UnicodeDecodeError, LookupError):
            return self.body.decode('utf-8', errors='replace')

    @property
    def size(self) -> int:
        """Get the size of the body in bytes."""
        return len(self.body)


class ResponseAccumulator:
    """
    Collects response chunks and separates the header block from the body.

    Until the delimiter has been seen every chunk is appended to a pending
    buffer and the whole buffer is searched, so a delimiter split across
    reads is still found. Once found, chunks go straight to the body.
    """

    def __init__(self):
        self._pending = bytearray()
        self._body = bytearray()
        self.header_block = b''
        self.headers_consumed = False
        self.bytes_received = 0
        self.reads = 0

    def feed(self, chunk: bytes):
        self.reads += 1
        self.bytes_received += len(chunk)
        try:
            if self.headers_consumed:
                self._body += chunk
                return

            # only the tail of the old buffer can start a split delimiter
            start = max(0, len(self._pending) - len(HEADER_DELIMITER) + 1)
            self._pending += chunk
            index = self._pending.find(HEADER_DELIMITER, start)
            if index == -1:
                return

            self.headers_consumed = True
            self.header_block = bytes(self._pending[:index])
            self._body += self._pending[index + len(HEADER_DELIMITER):]
            self._pending = bytearray()
        except MemoryError as e:
            raise AllocationError("Memory allocation failed while growing response buffer",
                                  f"{self.bytes_received} bytes received") from e

    @property
    def body(self) -> bytes:
        """Body bytes, or the raw stream when no delimiter was seen."""
        if self.headers_consumed:
            return bytes(self._body)
        return bytes(self._pending)

    def result(self, peer_closed: bool = False, timed_out: bool = False, fetch_time: float = 0.0) -> FetchResult:
        return FetchResult(
            header_block=self.header_block,
            body=self.body,
            headers_found=self.headers_consumed,
            peer_closed=peer_closed,
            timed_out=timed_out,
            bytes_received=self.bytes_received,
            reads=self.reads,
            fetch_time=fetch_time,
        )


def send_request(connection: Connection, payload: bytes) -> int:
    """Write the request with a single send call.

    Partial writes are not retried; they are only logged.

    Raises:
        SendError: if the send call fails
    """
    try:
        sent = connection.sock.send(payload)
    except OSError as e:
        logger.error("request_send_failed", error=str(e))
        raise SendError("Request sending failed", e.strerror or str(e)) from e

    if sent < len(payload):
        logger.warning("partial_send", sent=sent, size=len(payload))
    else:
        logger.info("request_sent", size=sent)
    return sent


def _wait_readable(connection: Connection, timeout: Optional[float]) -> bool:
    try:
        readable, _, _ = select.select([connection.sock], [], [], timeout)
    except (OSError, ValueError) as e:
        raise PollError("select() failed while receiving", str(e)) from e
    return bool(readable)


def receive_response(connection: Connection, timeout: Optional[float] = None,
                     chunk_size: int = RECV_BUFFER_SIZE) -> FetchResult:
    """Read until the peer closes the stream or a readiness wait expires.

    Args:
        connection: Open connection to read from
        timeout: Per-read readiness timeout in seconds; None waits forever
        chunk_size: Maximum bytes per recv call

    Returns:
        FetchResult with the header block and body collected so far

    Raises:
        PollError: the readiness wait failed
        ReceiveError: a recv call failed
    """
    accumulator = ResponseAccumulator()
    start_time = time.time()
    peer_closed = False
    timed_out = False
    wait = timeout is not None or not connection.blocking

    while True:
        if wait and not _wait_readable(connection, timeout):
            logger.info("receive_timeout", timeout=timeout, received=accumulator.bytes_received)
            timed_out = True
            break

        try:
            chunk = connection.sock.recv(chunk_size)
        except BlockingIOError:
            continue
        except OSError as e:
            logger.error("response_receive_failed", error=str(e))
            raise ReceiveError("recv() failed", e.strerror or str(e)) from e

        if not chunk:
            peer_closed = True
            break
        accumulator.feed(chunk)

    result = accumulator.result(peer_closed=peer_closed, timed_out=timed_out,
                                fetch_time=time.time() - start_time)
    if not result.headers_found and result.bytes_received:
        logger.warning("header_delimiter_missing", received=result.bytes_received)
    logger.info("response_received", size=result.size, reads=result.reads,
                peer_closed=peer_closed, fetch_time=round(result.fetch_time, 3))
    return result
