"""
=============================================================================
REQUEST CONTEXT
=============================================================================

Normalizes a native HTTPRequest into the long-lived, mutable object that
middleware and handlers share for the lifetime of one request.

=============================================================================
WHAT GETS NORMALIZED
=============================================================================

    HTTPRequest                              RequestContext
    ───────────                              ──────────────
    url = "http://api.test//users/?a=1&a=2"  path     = "/users"   (tidied)
                                             hostname = "api.test"
                                             query    = {"a": "2"} (last wins)
    headers = [("accept", "a"),              headers  = {"accept": "a, b"}
               ("accept", "b")]
    text(), json(), form_data()              body     = Unparsed(extractors)
                                             text     = native text()

    The router fills route_path and params during route matching.

=============================================================================
THE TWO-PHASE BODY
=============================================================================

`body` starts as a bundle of deferred extractors and becomes plain data
once parse_body() has run (or a middleware assigns it directly):

    ┌────────────────────────┐   parse_body()   ┌────────────────────────┐
    │ Unparsed               │ ───────────────► │ Parsed                 │
    │   .extractors.json     │   exactly once   │   .value = {"a": 1}    │
    │   .extractors.form_data│                  │                        │
    │   .extractors.text     │                  │                        │
    └────────────────────────┘                  └────────────────────────┘

The attribute reads naturally in both phases: `request.body` returns the
BodyExtractors bundle before parsing and the decoded value after.

=============================================================================
CONTENT-TYPE DISPATCH
=============================================================================

    ┌──────────────────────────────────────┬───────────────────────────────┐
    │ Type token                           │ body becomes                  │
    ├──────────────────────────────────────┼───────────────────────────────┤
    │ json, application/json               │ decoded JSON value            │
    │ formData, multipart/form-data,       │ {field: value} (last wins)    │
    │   application/x-www-form-urlencoded  │                               │
    │ text, text/plain                     │ raw text string               │
    │ anything else (including "")         │ {}  and `text` = raw string   │
    └──────────────────────────────────────┴───────────────────────────────┘

The short tokens let middleware force a parse mode without spelling out
MIME syntax:  await request.parse_body("json")

=============================================================================
"""

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Optional, Union
from urllib.parse import parse_qsl, urlsplit
import logging

from ..errors import BodyAlreadyParsedError, BodyDecodeError
from .forms import FormData
from .request import HTTPRequest


logger = logging.getLogger(__name__)


TextSource = Callable[[], Awaitable[str]]
PathTidy = Callable[[str], str]


@dataclass(frozen=True)
class BodyExtractors:
    """The deferred extraction capabilities of an unread body."""

    json: Callable[[], Awaitable[Any]]
    form_data: Callable[[], Awaitable[FormData]]
    text: TextSource


@dataclass(frozen=True)
class Unparsed:
    """Body state before decoding."""

    extractors: BodyExtractors


@dataclass(frozen=True)
class Parsed:
    """Body state after decoding."""

    value: Any


BodyState = Union[Unparsed, Parsed]


# Type tokens, matched exactly (case-sensitive) against the MIME essence
JSON_TYPES = frozenset({"json", "application/json"})
FORM_TYPES = frozenset({"formData", "multipart/form-data", "application/x-www-form-urlencoded"})
TEXT_TYPES = frozenset({"text", "text/plain"})


def mime_essence(content_type: str) -> str:
    """
    Strip parameters from a content type.

        "application/json; charset=utf-8" → "application/json"
    """
    return content_type.split(";", 1)[0].strip()


class RequestContext:
    """
    Uniform, mutable view of one inbound request.

    Holds the native request privately and exposes only what middleware
    and handlers consume: method, url, path, hostname, query, headers,
    body, text, route_path and params.

    Usage:
        ctx = RequestContext(native, router=router, path_tidy=tidy_path)
        await ctx.parse_body()
        ctx.body          # {"name": "John"}
        str(ctx)          # "POST /users"
    """

    def __init__(
        self,
        native: HTTPRequest,
        router: Any = None,
        path_tidy: Optional[PathTidy] = None,
    ):
        """
        Build a context from a native request.

        Args:
            native: The parsed native request
            router: The router that owns this request (used by CORS)
            path_tidy: Function normalizing the URL pathname
        """
        self._native = native

        # Must exist before the path is computed
        self.router = router
        self.path_tidy: PathTidy = path_tidy or (lambda path: path)

        url = urlsplit(native.url)
        self.path: str = self.path_tidy(url.path or "/")
        self.hostname: str = url.hostname or ""
        self.query: Dict[str, str] = dict(parse_qsl(url.query, keep_blank_values=True))

        # Filled in by the router during matching
        self.route_path: str = ""
        self.params: Dict[str, Optional[str]] = {}

        self.headers: Dict[str, str] = dict(native.header_items())

        self._text: Union[TextSource, str] = native.text
        self._body: BodyState = Unparsed(
            BodyExtractors(
                json=native.json,
                form_data=native.form_data,
                text=native.text,
            )
        )

    # =========================================================================
    # DELEGATED NATIVE FIELDS
    # =========================================================================

    @property
    def method(self) -> str:
        return self._native.method

    @property
    def url(self) -> str:
        return self._native.url

    # =========================================================================
    # BODY / TEXT
    # =========================================================================

    @property
    def body(self) -> Any:
        """The extractor bundle while unparsed, the decoded value afterwards."""
        if isinstance(self._body, Parsed):
            return self._body.value
        return self._body.extractors

    @body.setter
    def body(self, value: Any) -> None:
        self._body = Parsed(value)

    @property
    def body_state(self) -> BodyState:
        return self._body

    @property
    def body_parsed(self) -> bool:
        return isinstance(self._body, Parsed)

    @property
    def text(self) -> Union[TextSource, str]:
        """The raw-text extractor, or the resolved string after a raw parse."""
        return self._text

    @text.setter
    def text(self, value: Union[TextSource, str]) -> None:
        self._text = value

    async def read_text(self) -> str:
        """Return the raw text, invoking the extractor if not yet resolved."""
        if isinstance(self._text, str):
            return self._text
        return await self._text()

    # =========================================================================
    # BODY PARSING
    # =========================================================================

    async def parse_body(self, force_type: Optional[str] = None) -> None:
        """
        Decode the body according to its content type.

        Args:
            force_type: Type token used instead of the Content-Type header
                        (e.g. "json", "text", "formData", "text/plain")

        Raises:
            BodyAlreadyParsedError: If the body was already parsed
            BodyDecodeError: If the body does not decode as its type
        """
        if isinstance(self._body, Parsed):
            raise BodyAlreadyParsedError()

        extractors = self._body.extractors
        content_type = mime_essence(force_type or self.headers.get("content-type") or "")

        if content_type in JSON_TYPES:
            try:
                self.body = await extractors.json()
            except Exception as err:
                logger.debug(f"Failed to decode request body as JSON: {err}")
                raise BodyDecodeError("Invalid JSON body") from err

        elif content_type in FORM_TYPES:
            try:
                form = await extractors.form_data()
                self.body = form.to_dict()
            except Exception as err:
                logger.debug(f"Failed to decode multi-part body: {err}")
                raise BodyDecodeError("Invalid multi-part encoded body") from err

        elif content_type in TEXT_TYPES:
            try:
                self.body = await extractors.text()
            except Exception as err:
                logger.debug(f"Failed to decode plain-text body: {err}")
                raise BodyDecodeError("Invalid text body") from err

        else:
            logger.debug("Empty Body Payload - assuming raw payload")
            try:
                self.text = await extractors.text()
                self.body = {}
            except Exception as err:
                logger.debug(f"Failed to decode body as raw text: {err}")
                # Partial state is left in place before the failure surfaces
                self.text = ""
                self.body = {}
                raise BodyDecodeError("Invalid raw text body") from err

    def __str__(self) -> str:
        return f"{self.method} {self.path}"

    def __repr__(self) -> str:
        return f"<RequestContext {self}>"
