"""
=============================================================================
MIDDLEWARE
=============================================================================

Built-in middleware factories, each returning a ready-to-use middleware:

    ┌───────────────────┬────────────────────────────────────────────────┐
    │ Factory           │ Effect                                         │
    ├───────────────────┼────────────────────────────────────────────────┤
    │ cors()            │ CORS headers + OPTIONS preflight routes        │
    │ parse_jwt()       │ JWT payload → request.body                     │
    │ validate()        │ 400 unless a validator accepts a request part  │
    │ validate_body()   │ validate("body", ...)                          │
    │ validate_headers()│ validate("headers", ...)                       │
    │ validate_params() │ validate("params", ...)                        │
    │ validate_query()  │ validate("query", ...)                         │
    └───────────────────┴────────────────────────────────────────────────┘

`registry` maps the factory names for lookup by name and can be extended
with project-specific factories.

=============================================================================
"""

from typing import Callable, Dict

from .base import Env, FunctionMiddleware, Middleware, MiddlewarePipeline, as_middleware
from .cors import DEFAULT_CORS_HEADERS, CORSConfig, CORSMiddleware, cors
from .jwt import JWTMiddleware, decode_jwt_payload, parse_jwt
from .schema import schema_validator
from .validate import (
    ValidateMiddleware,
    validate,
    validate_body,
    validate_headers,
    validate_params,
    validate_query,
)


registry: Dict[str, Callable[..., Middleware]] = {
    "cors": cors,
    "parse_jwt": parse_jwt,
    "validate": validate,
    "validate_body": validate_body,
    "validate_headers": validate_headers,
    "validate_params": validate_params,
    "validate_query": validate_query,
}


__all__ = [
    # Base classes
    "Env",
    "Middleware",
    "FunctionMiddleware",
    "MiddlewarePipeline",
    "as_middleware",

    # Built-in middleware
    "CORSConfig",
    "CORSMiddleware",
    "DEFAULT_CORS_HEADERS",
    "JWTMiddleware",
    "ValidateMiddleware",

    # Factories
    "cors",
    "parse_jwt",
    "validate",
    "validate_body",
    "validate_headers",
    "validate_params",
    "validate_query",
    "registry",

    # Helpers
    "decode_jwt_payload",
    "schema_validator",
]
