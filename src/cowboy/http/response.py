"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Two layers:

    ResponseBuilder  ── to_response() ──►  HTTPResponse  ── to_bytes() ──►  wire
    (mutable, shared by                    (native response:
     middleware + handler)                  status, headers, bytes)

=============================================================================
BUILDER RULES
=============================================================================

The builder is chainable (every mutator returns self) and carries a few
implicit defaults:

    ┌────────────────────────────┬─────────────────────────────────────────┐
    │ Call                       │ Effect                                  │
    ├────────────────────────────┼─────────────────────────────────────────┤
    │ send(data)                 │ code defaults to 200; data passes       │
    │                            │ through if str/bytes/stream/form,       │
    │                            │ otherwise JSON encoded                  │
    │ status(code)               │ if no body yet: "ok" for 2xx,           │
    │                            │ "<code> Fail" otherwise                 │
    │ send_status(code)          │ status(code) + end(); data not allowed  │
    │ end(data=None)             │ optional send(data), then has_sent      │
    │ type("json")               │ Content-Type shorthand or MIME type     │
    └────────────────────────────┴─────────────────────────────────────────┘

    res.status(404).send()        # body "404 Fail"
    res.send({"a": 1})            # code 200, body '{"a":1}'
    res.set("X-Id", "7").type("json").send("[]")

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus
from typing import Any, Dict, Mapping, Optional, Tuple, Union
import io
import json
import logging

from .forms import FormData


logger = logging.getLogger(__name__)


# Bodies sent as-is; everything else is JSON encoded
PASSTHROUGH_TYPES = (str, bytes, bytearray, io.IOBase, FormData)

CONTENT_TYPE_SHORTHANDS = {
    "html": "text/html",
    "json": "application/json",
    "text": "text/plain",
}

# Response log line: string bodies longer than this are truncated...
LOG_BODY_THRESHOLD = 30
# ...to this many characters plus an ellipsis
LOG_BODY_PREVIEW = 50


def reason_phrase(code: int) -> str:
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return "Unknown"


@dataclass
class HTTPResponse:
    """
    The native HTTP response.

    A plain data container; ResponseBuilder.to_response() produces these.

        HTTPResponse(status=200, headers={...}, body=b"...")
            │
            └── to_bytes() ──► b"HTTP/1.1 200 OK\\r\\n...\\r\\n\\r\\n..."
    """

    status: int = 200
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 200 OK"."""
        return f"{self.version} {self.status} {reason_phrase(self.status)}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "Cowboy/1.0") -> bytes:
        """
        Serialize the response for the socket.

        Content-Length, Date and Server are added when missing.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))

        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("utf-8") + b"\r\n"
        return header_bytes + self.body


class ResponseBuilder:
    """
    Chainable response accumulator shared by middleware and the handler.

    ==========================================================================
    STATE
    ==========================================================================

        body      Any         ""      payload (encoded by send())
        code      int | None  None    None means "not decided yet"
        headers   dict        {}      outgoing headers
        has_sent  bool        False   flips to True once, never back

    The body reads as "" until something is assigned. status() only fills in
    its default body while nothing has been assigned, or when a falsy
    non-string value (None, {}, b"") was; an explicit "" is kept.

    ==========================================================================
    """

    def __init__(self):
        self._body: Any = ""
        self._body_set = False
        self.code: Optional[int] = None
        self.headers: Dict[str, str] = {}
        self.has_sent: bool = False

    @property
    def body(self) -> Any:
        return self._body

    @body.setter
    def body(self, value: Any) -> None:
        self._body = value
        self._body_set = True

    # =========================================================================
    # HEADERS
    # =========================================================================

    def set(
        self,
        options: Union[Mapping[str, str], str],
        value: Optional[str] = None,
    ) -> "ResponseBuilder":
        """
        Assign output headers.

        Args:
            options: Either a header mapping to merge, or a header name
            value: The header value when `options` is a name

        Returns:
            Self for method chaining
        """
        if isinstance(options, str) and value is not None:
            self.headers[options] = value
        elif isinstance(options, Mapping):
            self.headers.update(options)
        return self

    def type(self, content_type: str) -> "ResponseBuilder":
        """
        Set Content-Type from a shorthand ("html", "json", "text") or MIME type.

        Raises:
            ValueError: If the value is neither a shorthand nor contains "/"
        """
        if content_type in CONTENT_TYPE_SHORTHANDS:
            return self.set("Content-Type", CONTENT_TYPE_SHORTHANDS[content_type])

        if "/" not in content_type:
            raise ValueError(
                f'Shorthand type "{content_type}" is not recognised '
                "and does not look like a valid mime type"
            )
        return self.set("Content-Type", content_type)

    # =========================================================================
    # BODY / STATUS
    # =========================================================================

    def send(self, data: Any = None, end: bool = True) -> "ResponseBuilder":
        """
        Set the body and (optionally) mark the response complete.

        Args:
            data: Payload. Strings, bytes, streams and form collections are
                  kept as-is; anything else is JSON encoded. None keeps
                  the current body.
            end: Whether to also mark the response as sent

        Returns:
            Self for method chaining
        """
        if self.code is None:
            self.code = 200  # Assume OK if not told otherwise

        if data is None:
            pass
        elif isinstance(data, PASSTHROUGH_TYPES):
            self.body = data
        else:
            # Compact form: {"a":1}
            self.body = json.dumps(data, separators=(",", ":"), ensure_ascii=False)

        if end:
            self.has_sent = True

        return self

    def end(self, data: Any = None) -> "ResponseBuilder":
        """Optionally send data, then mark the response complete."""
        if data is not None:
            self.send(data)
        self.has_sent = True
        return self

    def status(self, code: int) -> "ResponseBuilder":
        """
        Set the status code.

        If no body has been chosen yet, a default body is filled in:
        "ok" for 2xx codes, "<code> Fail" for everything else. An empty
        string counts as a chosen body.
        """
        self.code = code
        if not self._body_set or (not self._body and self._body != ""):
            self.body = "ok" if 200 <= code <= 299 else f"{code} Fail"
        return self

    def send_status(self, code: int, data: Any = None, end: bool = True) -> "ResponseBuilder":
        """
        Set the status and (optionally) end the response.

        Raises:
            ValueError: If data is supplied; use status(code).send(data)
        """
        if data:
            raise ValueError(
                "Data is not allowed with ResponseBuilder.send_status(code) - "
                "use ResponseBuilder.status(code).send(data) instead"
            )
        self.status(code)
        if end:
            self.end()
        return self

    # =========================================================================
    # MATERIALIZATION
    # =========================================================================

    def to_response(self) -> HTTPResponse:
        """
        Build the native HTTPResponse.

        The status falls back to 200 when no code was chosen. Emits one
        INFO log line describing the outgoing response. Does not mutate
        the builder.
        """
        headers = dict(self.headers)
        body, default_type = self._encode_body()
        if default_type and "Content-Type" not in headers:
            headers["Content-Type"] = default_type

        summary = {
            "status": self.code if self.code else None,
            "headers": headers,
            "body": self._log_preview(),
        }
        preview = json.dumps(summary, indent="\t", default=repr, ensure_ascii=False)
        logger.info(f"Response {preview}")

        return HTTPResponse(
            status=self.code if self.code else 200,
            headers=headers,
            body=body,
        )

    def _encode_body(self) -> Tuple[bytes, Optional[str]]:
        """Convert the accumulated body to bytes plus an implied Content-Type."""
        body = self.body

        if isinstance(body, FormData):
            return body.encode()
        if isinstance(body, (bytes, bytearray)):
            return bytes(body), None
        if isinstance(body, io.IOBase):
            chunk = self._read_stream(body)
            return (chunk.encode("utf-8") if isinstance(chunk, str) else chunk), None
        if body is None:
            return b"", None
        return str(body).encode("utf-8"), None

    @staticmethod
    def _read_stream(stream: io.IOBase) -> Any:
        """Read a stream fully, rewinding it afterwards when it is seekable."""
        if not stream.seekable():
            return stream.read()

        position = stream.tell()
        try:
            return stream.read()
        finally:
            stream.seek(position)

    def _log_preview(self) -> Any:
        body = self.body
        if isinstance(body, str) and len(body) > LOG_BODY_THRESHOLD:
            return body[:LOG_BODY_PREVIEW] + "…"
        return body

    def __repr__(self) -> str:
        return f"<ResponseBuilder code={self.code} has_sent={self.has_sent}>"


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
