"""
Internal module for tool argument validation against JSON Schema.

This module is not part of the public API - do not import directly.
Use appgate.framework.tools.dispatcher instead.
"""

from collections.abc import Mapping
from typing import Any

from jsonschema.exceptions import ValidationError as JSONSchemaValidationError
from jsonschema.exceptions import best_match
from jsonschema.validators import validator_for

from appgate.framework.errors import ValidationError

from .tool_interface import ToolDefinition


def _error_path(error: JSONSchemaValidationError) -> list[str]:
    """Dotted-path parts of the field that failed validation.

    ``required`` errors are reported against the parent object, so the
    missing property name is appended to make the path point at the field.
    """
    path = [str(part) for part in error.absolute_path]
    if error.validator == "required" and isinstance(error.instance, Mapping):
        missing = [name for name in error.validator_value if name not in error.instance]
        if missing:
            path.append(str(missing[0]))
    elif error.validator == "additionalProperties" and isinstance(error.instance, Mapping):
        allowed = set(error.schema.get("properties", {}))
        extra = sorted(str(name) for name in error.instance if name not in allowed)
        if extra:
            path.append(extra[0])
    return path


def validate_arguments(definition: ToolDefinition, arguments: Any) -> dict[str, Any]:
    """
    Validate tool arguments against the tool's input schema.

    Args:
        definition: Tool definition carrying the input schema
        arguments: Raw arguments from the request

    Returns:
        A plain dict copy of the validated arguments

    Raises:
        ValidationError: With the offending field path if validation fails
    """
    if arguments is None:
        arguments = {}
    if not isinstance(arguments, Mapping):
        msg = f"Arguments must be an object, got {type(arguments).__name__}"
        raise ValidationError(msg, tool_name=definition.name, validator="type")

    data = dict(arguments)
    validator_cls = validator_for(definition.input_schema)
    validator = validator_cls(definition.input_schema)

    error = best_match(validator.iter_errors(data))
    if error is None:
        return data

    path = _error_path(error)
    location = ".".join(path) if path else "<root>"
    msg = f"Invalid argument '{location}': {error.message}"
    raise ValidationError(msg, tool_name=definition.name, path=path, validator=str(error.validator))
