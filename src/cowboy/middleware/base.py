"""
=============================================================================
MIDDLEWARE CONTRACT
=============================================================================

Every middleware has the same calling convention:

    middleware(request: RequestContext, response: ResponseBuilder, env) -> result

and one of two outcomes:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       MIDDLEWARE OUTCOMES                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   return None        → CONTINUE: the next middleware runs, seeing   │
    │   (or await None)      request/response exactly as left here        │
    │                                                                      │
    │   return <anything>  → SHORT-CIRCUIT: remaining middleware and the  │
    │                        handler are skipped                          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    ┌──────────┐    ┌──────────┐    ┌──────────┐    ┌──────────┐
    │   CORS   │───►│   JWT    │───►│ Validate │───►│ Handler  │
    │ (mutate) │    │ (mutate) │    │ (maybe   │    │          │
    └──────────┘    └──────────┘    │  400)    │    └──────────┘
                                    └────┬─────┘
                                         │ returns response
                                         ▼
                                    chain stops

Execution is strictly sequential: each middleware is awaited fully before
the next begins. Only the validation family returns a value by convention;
the pipeline is what checks for it.

Middleware can be plain functions (sync or async) or Middleware subclasses.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, List, Mapping, Optional, Union
import inspect
import logging

if TYPE_CHECKING:
    from ..http.context import RequestContext
    from ..http.response import ResponseBuilder


logger = logging.getLogger(__name__)


# =============================================================================
# TYPE ALIASES
# =============================================================================

# Environment bindings handed to every middleware (config, secrets, ...)
Env = Mapping[str, Any]

MiddlewareFunction = Callable[["RequestContext", "ResponseBuilder", Env], Any]


class Middleware(ABC):
    """
    Abstract base class for middleware.

    Subclasses implement __call__, either as a plain method or as a
    coroutine:

        class AddHeader(Middleware):
            async def __call__(self, request, response, env):
                response.set("X-Processed-By", "AddHeader")
                # returning None continues the chain
    """

    @abstractmethod
    def __call__(self, request: "RequestContext", response: "ResponseBuilder", env: Env) -> Any:
        """
        Process the request.

        Returns:
            None to continue, any other value to short-circuit
        """
        pass

    @property
    def name(self) -> str:
        """Get the middleware name for logging."""
        return self.__class__.__name__


class FunctionMiddleware(Middleware):
    """
    Wraps a plain function as middleware.

        def stamp(request, response, env):
            response.set("X-Stamp", "1")

        pipeline.add(stamp)    # wrapped automatically
    """

    def __init__(self, func: MiddlewareFunction, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", func.__class__.__name__)

    def __call__(self, request: "RequestContext", response: "ResponseBuilder", env: Env) -> Any:
        return self._func(request, response, env)

    @property
    def name(self) -> str:
        return self._name


def as_middleware(func: Union[Middleware, MiddlewareFunction]) -> Middleware:
    """Return func unchanged if it is already Middleware, else wrap it."""
    if isinstance(func, Middleware):
        return func
    if not callable(func):
        raise TypeError(f"Middleware must be callable, got {type(func).__name__}")
    return FunctionMiddleware(func)


async def call_middleware(
    middleware: Union[Middleware, MiddlewareFunction],
    request: "RequestContext",
    response: "ResponseBuilder",
    env: Env,
) -> Any:
    """Invoke one middleware and await its result if it is awaitable."""
    result = middleware(request, response, env)
    if inspect.isawaitable(result):
        result = await result
    return result


class MiddlewarePipeline:
    """
    Ordered list of middleware run one after another.

        pipeline = MiddlewarePipeline()
        pipeline.use(cors(), parse_jwt(), validate_body(schema))

        result = await pipeline.run(request, response, env)
        if result is not None:
            ...  # a middleware short-circuited

    Middleware run in the order added.
    """

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Union[Middleware, MiddlewareFunction]) -> "MiddlewarePipeline":
        """
        Add middleware to the end of the pipeline.

        Returns:
            Self for method chaining
        """
        wrapped = as_middleware(middleware)
        self._middleware.append(wrapped)
        logger.debug(f"Added middleware: {wrapped.name}")
        return self

    def use(self, *middleware: Union[Middleware, MiddlewareFunction]) -> "MiddlewarePipeline":
        """Add several middleware at once."""
        for mw in middleware:
            self.add(mw)
        return self

    async def run(self, request: "RequestContext", response: "ResponseBuilder", env: Env) -> Any:
        """
        Run every middleware in order.

        Returns:
            The first non-None value a middleware returned, or None when
            the whole chain continued
        """
        for middleware in self._middleware:
            result = await call_middleware(middleware, request, response, env)
            if result is not None:
                logger.debug(f"Middleware {middleware.name} short-circuited {request}")
                return result
        return None

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
