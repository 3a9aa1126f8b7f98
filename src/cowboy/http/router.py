"""
=============================================================================
URL ROUTER
=============================================================================

Maps requests to handlers and drives the middleware chain for each one.

Supports:
- Static paths: /users, /api/health
- Dynamic parameters: /users/:id, /posts/:post_id/comments/:comment_id
- Wildcard paths: /static/*filepath
- Several methods and several paths per route
- Global middleware (router.use) and per-route middleware

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         router.dispatch(native)                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   RequestContext + ResponseBuilder                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   global middleware ──── returned a value? ────► to_response()       │
    │        │                                                             │
    │        ▼                                                             │
    │   resolve(request) ───── no route? ──── 404 ───► to_response()       │
    │        │                                                             │
    │        ▼                                                             │
    │   parse_body()        (skipped if a middleware already set body)    │
    │        │                                                             │
    │        ▼                                                             │
    │   route middleware ───── returned a value? ────► to_response()       │
    │        │                                                             │
    │        ▼                                                             │
    │   handler(request, response, env)                                   │
    │        │                                                             │
    │        ▼                                                             │
    │   to_response()                                                      │
    │                                                                      │
    │   Any exception on the way ──► logged, 500 {"error": "..."}          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Global middleware runs before route resolution so that a CORS middleware
can register its OPTIONS routes in time for the very first preflight.

=============================================================================
ROUTE PATTERNS
=============================================================================

    Pattern:  /users/:id/posts/:post_id
    Regex:    ^/users/(?P<id>[^/]+)/posts/(?P<post_id>[^/]+)$

    Pattern:  /static/*filepath
    Regex:    ^/static/(?P<filepath>.*)$

First match wins, in registration order. Register /users/me before
/users/:id.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union
import inspect
import logging
import re

from ..config import CowboyConfig
from ..errors import HTTPParseError
from ..middleware.base import Env, Middleware, MiddlewarePipeline, as_middleware, call_middleware
from .context import RequestContext
from .request import HTTPRequest, RequestParser
from .response import HTTPResponse, ResponseBuilder


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# Handler: same calling convention as middleware; the builder is the output
Handler = Callable[[RequestContext, ResponseBuilder, Env], Any]

# Method wildcard accepted by Route.methods
ALL_METHODS = "ALL"

_REPEATED_SLASHES = re.compile(r"/{2,}")


def tidy_path(path: str) -> str:
    """
    Normalize a URL pathname.

        "//users///42/"  → "/users/42"
        "/"              → "/"
    """
    path = _REPEATED_SLASHES.sub("/", path)
    if len(path) > 1 and path.endswith("/"):
        path = path[:-1]
    return path or "/"


def compile_pattern(path: str) -> Tuple["re.Pattern[str]", List[str]]:
    """
    Compile a path pattern into a regex.

    Patterns:
        :param - Match a single path segment (no slashes)
        *param - Match the remaining path (including slashes)

    Args:
        path: Route pattern to compile

    Returns:
        Tuple of (compiled regex, list of parameter names)
    """
    param_names: List[str] = []
    regex_parts = ["^"]

    for segment in path.split("/"):
        if not segment:
            continue

        regex_parts.append("/")

        if segment.startswith(":"):
            param_name = segment[1:]
            param_names.append(param_name)
            regex_parts.append(f"(?P<{param_name}>[^/]+)")

        elif segment.startswith("*"):
            param_name = segment[1:] or "wildcard"
            param_names.append(param_name)
            regex_parts.append(f"(?P<{param_name}>.*)")
            break  # Wildcard consumes everything

        else:
            regex_parts.append(re.escape(segment))

    if len(regex_parts) == 1:
        regex_parts.append("/")  # The root pattern "/"

    regex_parts.append("$")
    return re.compile("".join(regex_parts)), param_names


@dataclass
class Route:
    """
    A handler bound to one or more methods and one or more path patterns.

    =========================================================================
    ANATOMY OF A ROUTE
    =========================================================================

        router.post(["/users", "/people"], validate_body(schema), create_user)

        Route(
            methods=["POST"],
            paths=["/users", "/people"],
            middleware=[<ValidateMiddleware body>],
            handler=create_user,
        )

    =========================================================================
    """

    methods: List[str]
    paths: List[str]
    handler: Handler
    middleware: List[Middleware] = field(default_factory=list)

    _patterns: List[Tuple[str, "re.Pattern[str]"]] = field(default_factory=list, repr=False)

    def __post_init__(self):
        self.methods = [method.upper() for method in self.methods]
        self._patterns = [(path, compile_pattern(path)[0]) for path in self.paths]

    def handles(self, method: str) -> bool:
        """True if this route answers the method ("ALL" answers every method)."""
        return ALL_METHODS in self.methods or method.upper() in self.methods

    def match(self, method: str, path: str) -> Optional[Tuple[str, Dict[str, str]]]:
        """
        Try this route against a method and a tidied path.

        Returns:
            (matched path pattern, extracted params), or None
        """
        if not self.handles(method):
            return None

        for pattern_path, pattern in self._patterns:
            match = pattern.match(path)
            if match:
                return pattern_path, match.groupdict()
        return None


class Router:
    """
    HTTP request router and middleware driver.

    ==========================================================================
    REGISTRATION API
    ==========================================================================

    Handlers receive (request, response, env) and write to the response:

        router = Router()
        router.use(cors())

        @router.get("/users/:id")
        async def get_user(request, response, env):
            response.send({"id": request.params["id"]})

        router.post("/users", validate_body(schema), create_user)

    With handlers passed in, the last one is the route handler and any
    before it are route middleware. With none, the call is a decorator.

    ==========================================================================
    CORS STATE
    ==========================================================================

        routes       every registered Route, in registration order
        loaded_cors  True once CORS OPTIONS routes have been attached

    The CORS middleware appends to `routes` while handling a request, so a
    router is meant to serve one request at a time unless preload_cors()
    was called up front.

    ==========================================================================
    """

    def __init__(
        self,
        path_tidy: Callable[[str], str] = tidy_path,
        config: Optional[CowboyConfig] = None,
    ):
        """
        Initialize the router.

        Args:
            path_tidy: Normalizer applied to every request pathname
            config: Wire limits and server identity (defaults apply if None)
        """
        self.path_tidy = path_tidy
        self.config = config or CowboyConfig()
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self.routes: List[Route] = []
        self.loaded_cors: bool = False
        self._middleware = MiddlewarePipeline()

    # =========================================================================
    # ROUTE REGISTRATION
    # =========================================================================

    def route(
        self,
        methods: Union[str, Sequence[str]],
        paths: Union[str, Sequence[str]],
        *handlers: Any,
    ) -> Any:
        """
        Register a route.

        Args:
            methods: One method or a list of methods ("ALL" matches any)
            paths: One path pattern or a list of them
            *handlers: Route middleware followed by the handler

        Returns:
            The Route when handlers were given, otherwise a decorator
        """
        methods = [methods] if isinstance(methods, str) else list(methods)
        paths = [paths] if isinstance(paths, str) else list(paths)

        if not handlers:
            def decorator(handler: Handler) -> Handler:
                self.route(methods, paths, handler)
                return handler  # Unchanged, so decorators stack
            return decorator

        *middleware, handler = handlers
        if not callable(handler):
            raise TypeError(f"Route handler must be callable, got {type(handler).__name__}")

        route = Route(
            methods=methods,
            paths=paths,
            handler=handler,
            middleware=[as_middleware(mw) for mw in middleware],
        )
        self.routes.append(route)
        logger.debug(f"Registered route {'|'.join(route.methods)} {', '.join(route.paths)}")
        return route

    def get(self, path: Union[str, Sequence[str]], *handlers: Any) -> Any:
        """Register a GET route."""
        return self.route("GET", path, *handlers)

    def post(self, path: Union[str, Sequence[str]], *handlers: Any) -> Any:
        """Register a POST route."""
        return self.route("POST", path, *handlers)

    def put(self, path: Union[str, Sequence[str]], *handlers: Any) -> Any:
        return self.route("PUT", path, *handlers)

    def patch(self, path: Union[str, Sequence[str]], *handlers: Any) -> Any:
        return self.route("PATCH", path, *handlers)

    def delete(self, path: Union[str, Sequence[str]], *handlers: Any) -> Any:
        return self.route("DELETE", path, *handlers)

    def head(self, path: Union[str, Sequence[str]], *handlers: Any) -> Any:
        return self.route("HEAD", path, *handlers)

    def options(self, path: Union[str, Sequence[str]], *handlers: Any) -> Any:
        """Register an OPTIONS route. Used for CORS preflight."""
        return self.route("OPTIONS", path, *handlers)

    def all(self, path: Union[str, Sequence[str]], *handlers: Any) -> Any:
        """Register a route answering every method."""
        return self.route(ALL_METHODS, path, *handlers)

    def use(self, *middleware: Any) -> "Router":
        """
        Register global middleware, run for every request before routing.

        Returns:
            Self for method chaining
        """
        self._middleware.use(*middleware)
        return self

    def preload_cors(self, **cors_options: Any) -> "Router":
        """
        Attach CORS preflight routes now instead of on the first request.

        Call after every route is registered. Takes the same options as
        cors().
        """
        from ..middleware.cors import CORSConfig, attach_preflight_routes

        attach_preflight_routes(self, CORSConfig(**cors_options))
        return self

    # =========================================================================
    # ROUTE MATCHING
    # =========================================================================

    def resolve(self, request: RequestContext) -> Optional[Route]:
        """
        Find the first route matching the request.

        Fills in request.route_path and request.params on a match.
        """
        for route in self.routes:
            result = route.match(request.method, request.path)
            if result:
                request.route_path, request.params = result
                return route
        return None

    # =========================================================================
    # DISPATCH
    # =========================================================================

    async def dispatch(self, native: HTTPRequest, env: Optional[Mapping[str, Any]] = None) -> HTTPResponse:
        """
        Handle one native request end to end.

        Args:
            native: The parsed native request
            env: Environment bindings handed to middleware and handler

        Returns:
            The native response
        """
        env = {} if env is None else env
        request = RequestContext(native, router=self, path_tidy=self.path_tidy)
        response = ResponseBuilder()

        try:
            await self._handle(request, response, env)
        except Exception as err:
            logger.exception(f"Unhandled error while serving {request}")
            response.status(500).send({"error": str(err)})

        return response.to_response()

    async def _handle(self, request: RequestContext, response: ResponseBuilder, env: Env) -> None:
        if await self._middleware.run(request, response, env) is not None:
            return

        route = self.resolve(request)
        if route is None:
            logger.debug(f"No route matches {request}")
            response.send_status(404)
            return

        if not request.body_parsed:
            await request.parse_body()

        for middleware in route.middleware:
            if await call_middleware(middleware, request, response, env) is not None:
                return

        result = route.handler(request, response, env)
        if inspect.isawaitable(result):
            result = await result

        if result is not None and result is not response and not response.has_sent:
            response.send(result)

    async def handle_bytes(
        self,
        data: bytes,
        env: Optional[Mapping[str, Any]] = None,
        client_address: Tuple[str, int] = ("", 0),
    ) -> bytes:
        """
        Handle one raw HTTP request and return the raw response.

        Malformed requests never reach middleware; they are answered with
        the parser's status code and a JSON error body.
        """
        try:
            native = self._parser.parse(data, client_address)
        except HTTPParseError as err:
            logger.debug(f"Rejected malformed request: {err}")
            response = ResponseBuilder().status(err.status_code).send({"error": str(err)}).to_response()
        else:
            response = await self.dispatch(native, env)

        return response.to_bytes(self.config.server_name)

    def __len__(self) -> int:
        return len(self.routes)

    def __repr__(self) -> str:
        return f"<Router routes={len(self.routes)} loaded_cors={self.loaded_cors}>"
