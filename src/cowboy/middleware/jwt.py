"""
JWT body middleware.

Decodes the payload segment of a JWT request body into `request.body`:

    content-type: application/jwt

    eyJhbGciOiJIUzI1NiJ9.eyJhIjoxfQ.c2ln
    ─────── header ─────  ─ payload ─  sig
                              │
                  base64url → {"a": 1} → request.body

The signature is NOT verified. Put an authenticating layer in front of
this middleware if the payload has to be trusted.
"""

from typing import Any, Callable, Optional
import base64
import binascii
import inspect
import json
import logging

from ..errors import BodyDecodeError
from .base import Env, Middleware


logger = logging.getLogger(__name__)


JWT_CONTENT_TYPE = "application/jwt"

# Predicate deciding whether a request carries a JWT body; may be async
JWTPredicate = Callable[[Any, Any], Any]


def is_jwt_request(request, response) -> bool:
    """Default predicate: the content-type header is exactly application/jwt."""
    return request.headers.get("content-type") == JWT_CONTENT_TYPE


def decode_jwt_payload(token: str) -> Any:
    """
    Decode the payload (second) segment of a JWT without verifying it.

    Raises:
        BodyDecodeError: If the token has no payload segment, or the
                         segment is not base64url encoded JSON
    """
    try:
        segment = token.strip().split(".")[1]
        segment = segment.replace("-", "+").replace("_", "/")
        segment += "=" * (-len(segment) % 4)
        return json.loads(base64.b64decode(segment, validate=True))
    except (IndexError, binascii.Error, ValueError) as err:
        logger.debug(f"Failed to decode JWT body: {err}")
        raise BodyDecodeError("Invalid JWT body") from err


class JWTMiddleware(Middleware):
    """
    Replaces request.body with the decoded JWT payload.

        router.post("/hook", parse_jwt(), handle_hook)

        # Custom detection, sync or async:
        parse_jwt(is_jwt=lambda req, res: req.path.startswith("/hooks"))
    """

    def __init__(self, is_jwt: Optional[JWTPredicate] = None):
        self.is_jwt = is_jwt or is_jwt_request

    async def __call__(self, request, response, env: Env) -> None:
        matched = self.is_jwt(request, response)
        if inspect.isawaitable(matched):
            matched = await matched
        if not matched:
            return

        text = request.text if isinstance(request.text, str) else await request.text()
        request.body = decode_jwt_payload(text)


def parse_jwt(is_jwt: Optional[JWTPredicate] = None) -> JWTMiddleware:
    """Build a JWT body middleware."""
    return JWTMiddleware(is_jwt=is_jwt)
