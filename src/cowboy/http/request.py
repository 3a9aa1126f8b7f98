"""
=============================================================================
NATIVE HTTP REQUEST
=============================================================================

Parses raw HTTP/1.1 request bytes into HTTPRequest objects, the "native"
request that RequestContext normalizes. Implements the parts of RFC 7230
(HTTP/1.1 Message Syntax and Routing) a request needs.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    POST /api/users?page=1 HTTP/1.1\\r\\n        ← request line        │
    │    Host: example.com\\r\\n                       ← headers             │
    │    Content-Type: application/json\\r\\n                               │
    │    Content-Length: 16\\r\\n                                           │
    │    \\r\\n                                        ← separator           │
    │    {"name": "John"}                            ← body                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The request target is combined with the Host header into an absolute URL
("http://example.com/api/users?page=1"), so consumers can parse path,
hostname and query the same way a fetch-style platform request exposes
them.

=============================================================================
ONE-SHOT BODY
=============================================================================

The body behaves like a stream: text(), json() and form_data() each
consume it, and a second read raises BodyUsedError.

    request.body_used   # False
    await request.json()
    request.body_used   # True
    await request.text()  # BodyUsedError

This is the contract RequestContext.parse_body() is written against.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Tuple
import json
import re

from ..errors import BodyUsedError, HTTPParseError
from .forms import FormData, parse_multipart, parse_urlencoded


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request as delivered by the wire parser.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:         GET, POST, PUT, DELETE, ...
        url:            Absolute URL, e.g. "http://localhost/users?page=1"
        headers:        (name, value) pairs with LOWERCASE names, in arrival
                        order. Repeated headers stay separate entries.
        body:           Raw body bytes (exactly Content-Length bytes)
        version:        "HTTP/1.1" or "HTTP/1.0"
        client_address: (ip, port) of the client

    =========================================================================
    """

    method: str
    url: str
    headers: List[Tuple[str, str]] = field(default_factory=list)
    body: bytes = b""
    version: str = "HTTP/1.1"
    client_address: Tuple[str, int] = ("", 0)

    _body_used: bool = field(default=False, repr=False)

    # =========================================================================
    # HEADERS
    # =========================================================================

    def header_items(self) -> Iterator[Tuple[str, str]]:
        """
        Iterate headers with repeated names folded into one value.

        Per RFC 7230, multiple headers with the same name are equivalent
        to a single header with comma-separated values:

            Accept: text/html
            Accept: application/json
            → ("accept", "text/html, application/json")

        Names appear in first-seen order.
        """
        combined: Dict[str, str] = {}
        for name, value in self.headers:
            if name in combined:
                combined[name] += ", " + value
            else:
                combined[name] = value
        return iter(combined.items())

    def get_header(self, name: str, default: str = "") -> str:
        """Get a folded header value (case-insensitive lookup)."""
        values = [value for key, value in self.headers if key == name.lower()]
        return ", ".join(values) if values else default

    @property
    def content_type(self) -> str:
        """Full Content-Type header value (parameters included)."""
        return self.get_header("content-type")

    # =========================================================================
    # BODY EXTRACTORS
    # =========================================================================

    @property
    def body_used(self) -> bool:
        """True once text(), json() or form_data() has read the body."""
        return self._body_used

    def _consume(self) -> bytes:
        if self._body_used:
            raise BodyUsedError()
        self._body_used = True
        return self.body

    async def text(self) -> str:
        """
        Read the body as UTF-8 text.

        Invalid byte sequences become U+FFFD, so binary bodies still
        yield a string.

        Raises:
            BodyUsedError: If the body was already read
        """
        return self._consume().decode("utf-8", errors="replace")

    async def json(self) -> Any:
        """
        Read the body and parse it as JSON.

        Raises:
            BodyUsedError: If the body was already read
            ValueError: If the body is not valid JSON
        """
        return json.loads(await self.text())

    async def form_data(self) -> FormData:
        """
        Read the body as form fields.

        Supports multipart/form-data and application/x-www-form-urlencoded,
        chosen from the Content-Type header.

        Raises:
            BodyUsedError: If the body was already read
            TypeError: If the Content-Type is neither form type
            ValueError: If the body is malformed
        """
        content_type = self.content_type
        essence = content_type.split(";")[0].strip().lower()
        body = self._consume()

        if essence == "multipart/form-data":
            return parse_multipart(body, content_type)
        if essence == "application/x-www-form-urlencoded":
            return parse_urlencoded(body)

        raise TypeError(f"Cannot read form data from content type {content_type!r}")


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER STEPS
    ==========================================================================

        1. Size check                 too large → HTTPParseError(413)
        2. Find \\r\\n\\r\\n separator    missing   → HTTPParseError(400)
        3. Request line               bad method/version → 405 / 505
        4. Headers                    lowercase names, folding supported
        5. Body                       exactly Content-Length bytes
        6. Absolute URL               "http://" + Host + request target

    ==========================================================================
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    # Compiled once at class load time
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024, default_host: str = "localhost"):
        """
        Initialize the request parser.

        Args:
            max_request_size: Maximum allowed request size in bytes (10 MB).
            default_host: Host used to build the URL when the request has
                          no Host header (HTTP/1.0 clients).
        """
        self.max_request_size = max_request_size
        self.default_host = default_host

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        # =====================================================================
        # STEP 1: Reject oversized requests
        # =====================================================================
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        # =====================================================================
        # STEP 2: Split headers and body at the \r\n\r\n boundary
        # =====================================================================
        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")

        # =====================================================================
        # STEP 3: Request line
        # =====================================================================
        method, target, version = self._parse_request_line(lines[0])

        # =====================================================================
        # STEP 4: Headers
        # =====================================================================
        headers = self._parse_headers(lines[1:])

        # =====================================================================
        # STEP 5: Body, trimmed to Content-Length
        # =====================================================================
        content_length = self._content_length(headers)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )
        body = body[:content_length]

        # =====================================================================
        # STEP 6: Absolute URL
        # =====================================================================
        host = next((value for name, value in headers if name == "host"), self.default_host)
        if target.startswith(("http://", "https://")):
            url = target  # absolute-form (proxy requests)
        else:
            url = f"http://{host}{target}"

        return HTTPRequest(
            method=method,
            url=url,
            headers=headers,
            body=body,
            version=version,
            client_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        """
        Parse "METHOD SP REQUEST-TARGET SP HTTP-VERSION".

        Raises:
            HTTPParseError: If the line is malformed
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, target, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        return method, target, version

    def _parse_headers(self, lines: List[str]) -> List[Tuple[str, str]]:
        """
        Parse header lines into (lowercase name, value) pairs.

        Lines starting with whitespace continue the previous header
        (obsolete line folding). Malformed lines are skipped.
        """
        headers: List[Tuple[str, str]] = []

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if headers:
                    name, value = headers[-1]
                    headers[-1] = (name, f"{value} {line.strip()}")
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            headers.append((name.strip().lower(), value.strip()))

        return headers

    @staticmethod
    def _content_length(headers: List[Tuple[str, str]]) -> int:
        lengths = {value for name, value in headers if name == "content-length"}
        if len(lengths) > 1:
            raise HTTPParseError("Conflicting Content-Length headers")
        if not lengths:
            return 0
        try:
            length = int(lengths.pop())
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        if length < 0:
            raise HTTPParseError("Invalid Content-Length header")
        return length


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """
    Parse an HTTP request in one call.

    Use RequestParser directly to parse many requests with the same settings.
    """
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
