"""
=============================================================================
FORM FIELD COLLECTIONS
=============================================================================

Two ways a browser submits form fields:

    ┌──────────────────────────────────┬──────────────────────────────────┐
    │ Content-Type                     │ Wire format                      │
    ├──────────────────────────────────┼──────────────────────────────────┤
    │ application/x-www-form-urlencoded│ name=John&tags=a&tags=b          │
    ├──────────────────────────────────┼──────────────────────────────────┤
    │ multipart/form-data              │ --boundary\\r\\n                   │
    │                                  │ Content-Disposition: form-data;  │
    │                                  │   name="avatar"; filename="a.png"│
    │                                  │ \\r\\n<bytes>\\r\\n--boundary--       │
    └──────────────────────────────────┴──────────────────────────────────┘

Both decode into an ordered list of (name, value) pairs. A name may repeat,
so the collections keep every pair; to_dict() flattens them with
last-value-wins, which is what RequestContext.parse_body() stores.

The same classes work in the other direction: ResponseBuilder.send() passes
a FormData or SearchParams through untouched, and HTTPResponse encoding
calls encode() to produce the body bytes and matching Content-Type.

=============================================================================
"""

from dataclasses import dataclass
from email.parser import BytesParser
from email.policy import HTTP
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union
from urllib.parse import parse_qsl, urlencode
import uuid


@dataclass
class FormFile:
    """An uploaded file part from a multipart body."""

    filename: str
    content_type: str = "application/octet-stream"
    content: bytes = b""

    @property
    def size(self) -> int:
        return len(self.content)


FieldValue = Union[str, FormFile]


class FormData:
    """
    Ordered multi-valued collection of form fields.

    Usage:
        form = FormData([("name", "John"), ("tags", "a"), ("tags", "b")])
        form.get("tags")        # "a" (first value)
        form.get_all("tags")    # ["a", "b"]
        form.to_dict()          # {"name": "John", "tags": "b"}
    """

    def __init__(self, items: Optional[Iterable[Tuple[str, FieldValue]]] = None):
        self._items: List[Tuple[str, FieldValue]] = list(items or [])

    def append(self, name: str, value: FieldValue) -> "FormData":
        """Add a field (duplicates allowed). Returns self for chaining."""
        self._items.append((name, value))
        return self

    def get(self, name: str, default: Optional[FieldValue] = None) -> Optional[FieldValue]:
        """First value for a field, or default."""
        for key, value in self._items:
            if key == name:
                return value
        return default

    def get_all(self, name: str) -> List[FieldValue]:
        """Every value for a field, in submission order."""
        return [value for key, value in self._items if key == name]

    def items(self) -> List[Tuple[str, FieldValue]]:
        return list(self._items)

    def keys(self) -> List[str]:
        return [key for key, _ in self._items]

    def to_dict(self) -> Dict[str, FieldValue]:
        """Flatten to a plain dict; the last value for a repeated name wins."""
        return dict(self._items)

    def encode(self) -> Tuple[bytes, str]:
        """
        Serialize as multipart/form-data.

        Returns:
            Tuple of (body bytes, Content-Type header value with boundary)
        """
        boundary = f"----CowboyFormBoundary{uuid.uuid4().hex}"
        chunks: List[bytes] = []

        for name, value in self._items:
            chunks.append(f"--{boundary}\r\n".encode("utf-8"))
            if isinstance(value, FormFile):
                chunks.append(
                    f'Content-Disposition: form-data; name="{name}"; filename="{value.filename}"\r\n'
                    f"Content-Type: {value.content_type}\r\n\r\n".encode("utf-8")
                )
                chunks.append(value.content)
            else:
                chunks.append(
                    f'Content-Disposition: form-data; name="{name}"\r\n\r\n'.encode("utf-8")
                )
                chunks.append(str(value).encode("utf-8"))
            chunks.append(b"\r\n")

        chunks.append(f"--{boundary}--\r\n".encode("utf-8"))
        return b"".join(chunks), f"multipart/form-data; boundary={boundary}"

    def __iter__(self) -> Iterator[Tuple[str, FieldValue]]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormData):
            return NotImplemented
        return type(self) is type(other) and self._items == other._items

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self._items!r})"


class SearchParams(FormData):
    """
    URL-encoded field collection (the query string / urlencoded body form).

    Values are always strings.
    """

    def encode(self) -> Tuple[bytes, str]:
        """Serialize as application/x-www-form-urlencoded."""
        body = urlencode([(name, str(value)) for name, value in self._items])
        return body.encode("utf-8"), "application/x-www-form-urlencoded;charset=UTF-8"


# =============================================================================
# PARSING
# =============================================================================

def parse_urlencoded(body: bytes) -> SearchParams:
    """
    Decode an application/x-www-form-urlencoded body.

    Raises:
        UnicodeDecodeError: If the body is not valid UTF-8
    """
    text = body.decode("utf-8")
    return SearchParams(parse_qsl(text, keep_blank_values=True))


def parse_multipart(body: bytes, content_type: str) -> FormData:
    """
    Decode a multipart/form-data body.

    The boundary comes from the Content-Type header, so the full header
    value must be passed, not just the MIME essence. Parts are split by the
    standard library email parser, which already understands MIME
    multipart framing.

    Raises:
        ValueError: If the body is not a well-formed multipart payload
    """
    # The email parser needs the Content-Type header to find the boundary
    envelope = f"Content-Type: {content_type}\r\n\r\n".encode("utf-8") + body
    message = BytesParser(policy=HTTP).parsebytes(envelope)

    if not message.is_multipart():
        raise ValueError("Body is not a multipart payload")
    if message.defects:
        raise ValueError(f"Malformed multipart body: {message.defects[0]!r}")

    form = FormData()
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if name is None:
            continue  # Not a form field

        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()
        if filename is not None:
            form.append(name, FormFile(filename, part.get_content_type(), payload))
        else:
            charset = part.get_content_charset() or "utf-8"
            form.append(name, payload.decode(charset))

    return form
