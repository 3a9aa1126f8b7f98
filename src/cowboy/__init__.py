"""
Cowboy - a small async HTTP routing toolkit.

    from cowboy import Router
    from cowboy.middleware import cors, validate_body

    router = Router()
    router.use(cors())

    @router.post("/users")
    async def create_user(request, response, env):
        response.status(201).send({"name": request.body["name"]})

    native_response = await router.dispatch(native_request)
"""

from .config import CowboyConfig, configure_logging
from .errors import (
    BodyAlreadyParsedError,
    BodyDecodeError,
    BodyUsedError,
    CowboyError,
    HTTPParseError,
)
from .http import (
    HTTPRequest,
    HTTPResponse,
    RequestContext,
    ResponseBuilder,
    Route,
    Router,
)

__version__ = "1.0.0"

__all__ = [
    "CowboyConfig",
    "configure_logging",
    "CowboyError",
    "HTTPParseError",
    "BodyDecodeError",
    "BodyUsedError",
    "BodyAlreadyParsedError",
    "HTTPRequest",
    "HTTPResponse",
    "RequestContext",
    "ResponseBuilder",
    "Route",
    "Router",
]
