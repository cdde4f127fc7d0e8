"""Tests for tool argument validation."""

from typing import Any

import pytest

from appgate.framework.errors import ErrorCode, ValidationError
from appgate.framework.tools._tool_validation import validate_arguments
from appgate.framework.tools.tool_interface import ToolDefinition


def _definition(schema: dict[str, Any]) -> ToolDefinition:
    return ToolDefinition(name="t", handler=lambda arguments, ctx: None, input_schema=schema)


class TestValidateArguments:
    """Test JSON Schema validation of tool arguments."""

    def test_valid_arguments_returned_as_copy(self) -> None:
        """Test valid arguments come back as a new dict."""
        definition = _definition({"type": "object", "properties": {"text": {"type": "string"}}})
        arguments = {"text": "hi"}

        validated = validate_arguments(definition, arguments)

        assert validated == {"text": "hi"}
        assert validated is not arguments

    def test_none_means_no_arguments(self) -> None:
        """Test None is treated as an empty object."""
        definition = _definition({"type": "object", "properties": {}})

        assert validate_arguments(definition, None) == {}

    def test_missing_required_field_path(self) -> None:
        """Test a missing required property is reported against that property."""
        definition = _definition(
            {"type": "object", "properties": {"text": {"type": "string"}}, "required": ["text"]}
        )

        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(definition, {})

        error = exc_info.value
        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.field == "text"
        assert error.details["validator"] == "required"
        assert error.details["tool"] == "t"

    def test_wrong_type_field_path(self) -> None:
        """Test a type mismatch names the offending field."""
        definition = _definition({"type": "object", "properties": {"count": {"type": "integer"}}})

        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(definition, {"count": "three"})

        assert exc_info.value.field == "count"
        assert "count" in exc_info.value.message

    def test_nested_field_path_is_dotted(self) -> None:
        """Test nested errors produce a dotted path."""
        definition = _definition(
            {
                "type": "object",
                "properties": {
                    "user": {"type": "object", "properties": {"age": {"type": "integer"}}}
                },
            }
        )

        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(definition, {"user": {"age": "old"}})

        assert exc_info.value.path == ["user", "age"]
        assert exc_info.value.details["field"] == "user.age"

    def test_additional_property_path(self) -> None:
        """Test an unexpected property is reported by name."""
        definition = _definition(
            {
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "additionalProperties": False,
            }
        )

        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(definition, {"text": "a", "extra": 1})

        assert exc_info.value.field == "extra"

    def test_non_object_arguments_rejected(self) -> None:
        """Test arguments that are not an object fail validation."""
        definition = _definition({"type": "object", "properties": {}})

        with pytest.raises(ValidationError) as exc_info:
            validate_arguments(definition, ["not", "an", "object"])

        assert exc_info.value.details["validator"] == "type"
        assert exc_info.value.field is None
