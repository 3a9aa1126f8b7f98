"""
=============================================================================
CORS (Cross-Origin Resource Sharing) MIDDLEWARE
=============================================================================

Stamps CORS headers on every response and makes sure every route can
answer a browser preflight.

=============================================================================
WHAT THIS MIDDLEWARE DOES
=============================================================================

    PREFLIGHT REQUEST (non-simple requests):

    ┌─────────┐                                          ┌─────────┐
    │ Browser │─────────── OPTIONS /api/users ──────────▶│ Server  │
    │         │           Origin: https://app.com        │         │
    │         │◀──────────────────────────────────────────│         │
    │         │    Access-Control-Allow-Origin: *        │         │
    │         │    Access-Control-Allow-Methods: ...     │         │
    │         │    200 ok                                │         │
    │         │                                          │         │
    │         │─────────── POST /api/users ─────────────▶│         │
    │         │◀──────────────────────────────────────────│         │
    │         │    Access-Control-Allow-Origin: *        │         │
    └─────────┘                                          └─────────┘

1. Every call: the configured headers are merged into the response.
2. Once per router: every route that does not already answer OPTIONS gets
   a sibling OPTIONS route (same paths) replying 200 "ok". An "ALL" route
   already answers OPTIONS and is skipped.

    Before                          After the first CORS call
    ──────                          ─────────────────────────
    GET  /users                     GET     /users
    POST /users/:id                 POST    /users/:id
                                    OPTIONS /users        → 200
                                    OPTIONS /users/:id    → 200

The router remembers the registration in `router.loaded_cors`, so the
second and later calls only set headers.

=============================================================================
DEFAULT HEADERS
=============================================================================

    ┌─────────────────────────────────┬───────────────────────────────────┐
    │ Header                          │ Default                           │
    ├─────────────────────────────────┼───────────────────────────────────┤
    │ Access-Control-Allow-Origin     │ *                                 │
    │ Access-Control-Allow-Methods    │ GET, POST, OPTIONS                │
    │ Access-Control-Allow-Headers    │ *                                 │
    │ Content-Type                    │ application/json;charset=UTF-8    │
    └─────────────────────────────────┴───────────────────────────────────┘

Passing `headers` replaces this set entirely; it is not merged.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
import logging

from .base import Env, Middleware


logger = logging.getLogger(__name__)


DEFAULT_CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "*",
    "Content-Type": "application/json;charset=UTF-8",
}


@dataclass
class CORSConfig:
    """
    CORS configuration options.

        CORSConfig()                                  # defaults, preflight on
        CORSConfig(attach_options=False)              # headers only
        CORSConfig(headers={"Access-Control-Allow-Origin": "https://app.com"})
    """

    # Register OPTIONS preflight routes for every route on first use
    attach_options: bool = True

    # Headers stamped on every response (replaces the defaults)
    headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_CORS_HEADERS))


def preflight(request, response, env) -> None:
    """Answer a CORS preflight with a bare 200."""
    response.send_status(200)


def attach_preflight_routes(router: Any, config: CORSConfig) -> None:
    """
    Give every route lacking OPTIONS an OPTIONS sibling, once per router.

    The route list is snapshotted first, so the OPTIONS routes added here
    are never revisited.
    """
    if not config.attach_options or router.loaded_cors:
        return

    pending = [route for route in router.routes if not route.handles("OPTIONS")]
    for route in pending:
        for path in route.paths:
            router.options(path, preflight)

    router.loaded_cors = True
    logger.debug(f"Attached CORS preflight routes for {len(pending)} route(s)")


class CORSMiddleware(Middleware):
    """
    CORS middleware.

    =========================================================================
    MIDDLEWARE POSITION
    =========================================================================

    Register it globally so the preflight routes exist before the first
    OPTIONS request is resolved:

        router.use(cors())

    Attached to a single route it still sets headers, but the preflight
    routes only appear after that route has been hit once.

    =========================================================================
    """

    def __init__(self, config: Optional[CORSConfig] = None):
        self.config = config or CORSConfig()

    def __call__(self, request, response, env: Env) -> None:
        response.set(self.config.headers)

        if request.router is not None:
            attach_preflight_routes(request.router, self.config)


def cors(attach_options: bool = True, headers: Optional[Mapping[str, str]] = None) -> CORSMiddleware:
    """
    Build a CORS middleware.

    Args:
        attach_options: Register OPTIONS preflight routes on first use
        headers: Replacement header set (defaults to DEFAULT_CORS_HEADERS)
    """
    config = CORSConfig(attach_options=attach_options)
    if headers is not None:
        config.headers = dict(headers)
    return CORSMiddleware(config)
