"""
pytest configuration and fixtures.
"""

from typing import Callable, Dict, Optional, Union
import json

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from cowboy.http import HTTPRequest, RequestContext, ResponseBuilder, Router, tidy_path


NativeFactory = Callable[..., HTTPRequest]


def build_native(
    method: str = "GET",
    url: str = "http://localhost/",
    headers: Optional[Dict[str, str]] = None,
    body: Union[bytes, str, dict, list, None] = None,
) -> HTTPRequest:
    """Build a native request; dict/list bodies are JSON encoded."""
    if isinstance(body, (dict, list)):
        body = json.dumps(body).encode()
    elif isinstance(body, str):
        body = body.encode()

    return HTTPRequest(
        method=method,
        url=url,
        headers=[(name.lower(), value) for name, value in (headers or {}).items()],
        body=body or b"",
    )


@pytest.fixture
def make_native() -> NativeFactory:
    """Factory for native requests."""
    return build_native


@pytest.fixture
def make_context() -> Callable[..., RequestContext]:
    """Factory for request contexts with tidied paths."""
    def factory(*args, router: Optional[Router] = None, **kwargs) -> RequestContext:
        return RequestContext(build_native(*args, **kwargs), router=router, path_tidy=tidy_path)
    return factory


@pytest.fixture
def response() -> ResponseBuilder:
    """A fresh response builder."""
    return ResponseBuilder()


@pytest.fixture
def router() -> Router:
    """An empty router."""
    return Router()


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body
