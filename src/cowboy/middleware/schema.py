"""
JSON Schema validator adapter.

Turns a JSON Schema into the validator shape the validation middleware
expects: a callable returning True on success, or a failure value that
becomes the 400 response body.

    check = schema_validator({"type": "object", "required": ["name"]})

    check({"name": "John"})   # True
    check({})                 # [{"path": "", "message": "'name' is a required property"}]
"""

from typing import Any, Callable, Dict, List, Mapping, Union
import logging

from jsonschema.validators import validator_for


logger = logging.getLogger(__name__)


ValidationResult = Union[bool, List[Dict[str, str]]]


def schema_validator(schema: Mapping[str, Any]) -> Callable[[Any], ValidationResult]:
    """
    Compile a JSON Schema into a validation callable.

    The schema's own "$schema" keyword picks the draft; the latest
    supported draft is used when it is absent.

    Args:
        schema: The JSON Schema document

    Returns:
        Callable returning True, or a list of {"path", "message"} errors
        sorted by path

    Raises:
        jsonschema.exceptions.SchemaError: If the schema itself is invalid
    """
    validator_class = validator_for(schema)
    validator_class.check_schema(schema)
    validator = validator_class(schema)

    def validate(instance: Any) -> ValidationResult:
        errors = [
            {
                "path": ".".join(str(part) for part in error.absolute_path),
                "message": error.message,
            }
            for error in validator.iter_errors(instance)
        ]
        if not errors:
            return True

        logger.debug(f"Schema validation failed with {len(errors)} error(s)")
        return sorted(errors, key=lambda error: (error["path"], error["message"]))

    return validate
