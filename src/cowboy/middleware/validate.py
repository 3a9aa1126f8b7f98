"""
=============================================================================
VALIDATION MIDDLEWARE
=============================================================================

Runs a validator against one part of the request and answers 400 with
the validator's verdict when it fails.

    ┌───────────────────┬────────────────────────────────────────────────┐
    │ Factory           │ Validates                                      │
    ├───────────────────┼────────────────────────────────────────────────┤
    │ validate_body     │ request.body     (decoded payload)             │
    │ validate_query    │ request.query    ({name: value})               │
    │ validate_params   │ request.params   (route :params)               │
    │ validate_headers  │ request.headers  ({lowercase-name: value})     │
    └───────────────────┴────────────────────────────────────────────────┘

A validator is any callable returning exactly True on success; anything
else is the failure and is sent as the response body:

    def has_name(body):
        return True if "name" in body else "name is required"

    router.post("/users", validate_body(has_name), create_user)

    POST /users {}   →   400 "name is required"   (handler never runs)

A mapping is treated as a JSON Schema (see schema.schema_validator):

    router.get("/search", validate_query({"required": ["q"]}), search)

=============================================================================
"""

from typing import Any, Callable, Mapping, Union
import logging

from .base import Env, Middleware
from .schema import schema_validator


logger = logging.getLogger(__name__)


VALIDATABLE_SUBKEYS = ("body", "query", "params", "headers")

Validator = Union[Callable[[Any], Any], Mapping[str, Any]]


class ValidateMiddleware(Middleware):
    """Short-circuits with a 400 when the validator does not return True."""

    def __init__(self, subkey: str, validator: Validator):
        if subkey not in VALIDATABLE_SUBKEYS:
            raise ValueError(
                f"Cannot validate request.{subkey}; "
                f"expected one of {', '.join(VALIDATABLE_SUBKEYS)}"
            )

        if isinstance(validator, Mapping):
            validator = schema_validator(validator)
        elif not callable(validator):
            raise TypeError(f"Validator must be callable or a schema, got {type(validator).__name__}")

        self.subkey = subkey
        self.validator = validator

    @property
    def name(self) -> str:
        return f"ValidateMiddleware({self.subkey})"

    def __call__(self, request, response, env: Env):
        result = self.validator(getattr(request, self.subkey))

        if result is not True:
            logger.debug(f"Validation of request.{self.subkey} failed for {request}")
            return response.status(400).send(result)

        return None


def validate(subkey: str, validator: Validator) -> ValidateMiddleware:
    """
    Build a validation middleware for one request subkey.

    Raises:
        ValueError: If subkey is not body, query, params or headers
    """
    return ValidateMiddleware(subkey, validator)


def validate_body(validator: Validator) -> ValidateMiddleware:
    return validate("body", validator)


def validate_query(validator: Validator) -> ValidateMiddleware:
    return validate("query", validator)


def validate_params(validator: Validator) -> ValidateMiddleware:
    return validate("params", validator)


def validate_headers(validator: Validator) -> ValidateMiddleware:
    return validate("headers", validator)
