"""
Render HTTP/1.1 requests into the exact bytes that go on the wire.
"""

from dataclasses import dataclass, field
from typing import Dict, Final, Optional, Tuple

HTTP_METHODS: Final[Tuple[str, ...]] = ("GET", "POST", "PUT", "PATCH", "DELETE")
HTTP_VERSION: Final[str] = "HTTP/1.1"
CRLF: Final[str] = "\r\n"
DEFAULT_CONTENT_TYPE: Final[str] = "text/plain"

_FORBIDDEN_CHARS = (" ", "\t", "\r", "\n")


@dataclass
class HttpRequest:
    """
    A request ready to be serialized.

    Headers keep insertion order; the body is sent as UTF-8.
    """
    method: str
    target: str
    host: str
    body: Optional[str] = None
    content_type: str = DEFAULT_CONTENT_TYPE
    connection_close: bool = False
    trailing_crlf: bool = False
    headers: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        self.method = self.method.upper()
        if self.method not in HTTP_METHODS:
            raise ValueError(f"Unsupported method: {self.method}")
        _check_token("path", self.target)
        _check_token("host", self.host)

        if not self.headers:
            self.headers = self._default_headers()

    @property
    def body_bytes(self) -> bytes:
        if self.body is None:
            return b""
        return self.body.encode("utf-8")

    def _default_headers(self) -> Dict[str, str]:
        headers = {"Host": self.host}
        if self.body is None:
            headers["Accept"] = "*/*"
        else:
            headers["Content-Type"] = self.content_type
            headers["Content-Length"] = str(len(self.body_bytes))
        if self.connection_close:
            headers["Connection"] = "close"
        return headers

    def serialize(self) -> bytes:
        start_line = f"{self.method} {self.target} {HTTP_VERSION}"
        field_lines = "".join(f"{key}: {value}{CRLF}" for key, value in self.headers.items())
        head = f"{start_line}{CRLF}{field_lines}{CRLF}".encode("utf-8")

        if self.body is None:
            return head
        if self.trailing_crlf:
            return head + self.body_bytes + CRLF.encode("ascii")
        return head + self.body_bytes


def _check_token(name: str, value: str):
    if not value:
        raise ValueError(f"Request {name} must not be empty")
    for char in _FORBIDDEN_CHARS:
        if char in value:
            raise ValueError(f"Request {name} contains forbidden character {char!r}")


def build_request(
    method: str,
    path: str,
    host: str,
    body: Optional[str] = None,
    content_type: str = DEFAULT_CONTENT_TYPE,
    connection_close: bool = False,
    trailing_crlf: bool = False,
) -> bytes:
    """Build the full request as one contiguous byte string.

    Args:
        method: One of GET, POST, PUT, PATCH, DELETE (any case)
        path: Request target, e.g. "/example"
        host: Value of the Host header
        body: Optional body; when present Content-Type and Content-Length are sent
        content_type: Content-Type used with a body
        connection_close: Add "Connection: close"
        trailing_crlf: Append CRLF after the body (not counted in Content-Length)

    Returns:
        The rendered request bytes
    """
    request = HttpRequest(
        method=method,
        target=path,
        host=host,
        body=body,
        content_type=content_type,
        connection_close=connection_close,
        trailing_crlf=trailing_crlf,
    )
    return request.serialize()
