"""
=============================================================================
COWBOY EXCEPTIONS
=============================================================================

Every error raised on purpose by this package derives from CowboyError,
so callers can catch the whole family in one place:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       EXCEPTION HIERARCHY                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   CowboyError                                                        │
    │   ├── HTTPParseError          raw bytes are not a valid request     │
    │   ├── BodyDecodeError         body does not match its content type  │
    │   ├── BodyUsedError           native body was already consumed      │
    │   └── BodyAlreadyParsedError  parse_body() called a second time     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Validation failures are NOT exceptions. A failed validator turns into a
400 response, because bad input is a routine outcome, not a crash.

=============================================================================
"""


class CowboyError(Exception):
    """Base class for all Cowboy exceptions."""

    pass


class HTTPParseError(CowboyError):
    """
    Raised when raw HTTP request parsing fails.

    Carries the HTTP status code that should be returned to the client:

        400 Bad Request                - Malformed request syntax
        405 Method Not Allowed         - Unknown/unsupported method
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class BodyDecodeError(CowboyError, ValueError):
    """
    Raised when a request body cannot be decoded as its declared type.

    The message is one of a fixed set of labels ("Invalid JSON body",
    "Invalid text body", ...). The underlying exception is chained as
    __cause__ for debugging.
    """

    pass


class BodyUsedError(CowboyError, TypeError):
    """Raised when a native request body is read more than once."""

    def __init__(self, message: str = "Body has already been consumed"):
        super().__init__(message)


class BodyAlreadyParsedError(CowboyError, RuntimeError):
    """Raised when parse_body() runs on a context whose body is already parsed."""

    def __init__(self, message: str = "Request body has already been parsed"):
        super().__init__(message)
