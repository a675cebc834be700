"""
Parameter Schema Validation - JSON Schema checks for tool parameters.

Tool parameter schemas are validated with ``jsonschema.Draft7Validator``,
extended so ``default`` values are filled in while properties are checked.
Every violation is collected before failing, so callers can fix all of
their input in one go. A ``None`` value counts as an absent parameter.
"""

from __future__ import annotations

import copy
from typing import Any

from jsonschema import Draft7Validator, FormatChecker, validators
from jsonschema.exceptions import ValidationError

from chatledger.config.errors import SchemaValidationError

__all__ = ["validate_parameters", "check_parameters"]


def _extend_with_default(validator_class):
    validate_properties = validator_class.VALIDATORS["properties"]

    def set_defaults(validator, properties, instance, schema):
        if isinstance(instance, dict):
            for name, subschema in properties.items():
                if "default" in subschema and instance.get(name) is None:
                    instance[name] = copy.deepcopy(subschema["default"])
        yield from validate_properties(validator, properties, instance, schema)

    return validators.extend(validator_class, {"properties": set_defaults})


_DefaultingValidator = _extend_with_default(Draft7Validator)

# required first, unknown fields last; everything else keeps schema order
_RANK = {"required": 0, "additionalProperties": 2}


def _violation(field: str, message: str) -> dict[str, str]:
    return {"field": field, "message": message}


def _field(error: ValidationError, name: str | None = None) -> str:
    parts = [str(part) for part in error.absolute_path]
    if name is not None:
        parts.append(name)
    return ".".join(parts) if parts else "$"


def _message(error: ValidationError) -> str:
    rule, value = error.validator, error.validator_value
    if rule == "type":
        expected = value if isinstance(value, list) else [value]
        return f"expected {' or '.join(expected)}, got {type(error.instance).__name__}"
    if rule == "enum":
        return f"must be one of {', '.join(repr(v) for v in value)}"
    if rule == "format":
        return f"must be a valid {value}"
    return error.message


def _convert(error: ValidationError) -> list[dict[str, str]]:
    """Flatten one jsonschema error into field-level violations."""
    if error.validator == "required":
        return [
            _violation(_field(error, name), "required field is missing")
            for name in error.validator_value
            if name not in error.instance
        ]
    if error.validator == "additionalProperties":
        known = error.schema.get("properties", {})
        return [
            _violation(_field(error, name), "unknown field")
            for name in error.instance
            if name not in known
        ]
    if error.context:
        # oneOf / anyOf: report what each branch rejected
        return [v for sub in error.context for v in _convert(sub)]
    return [_violation(_field(error), _message(error))]


def check_parameters(
    schema: dict[str, Any],
    parameters: Any,
) -> tuple[dict[str, Any], list[dict[str, str]]]:
    """
    Validate without raising.

    Returns:
        (parameters with defaults applied, list of violations)
    """
    if not isinstance(parameters, dict):
        return {}, [_violation("$", "parameters must be an object")]

    result = {k: copy.deepcopy(v) for k, v in parameters.items() if v is not None}
    validator = _DefaultingValidator(schema, format_checker=FormatChecker())
    errors = sorted(validator.iter_errors(result), key=lambda e: _RANK.get(e.validator, 1))

    violations: list[dict[str, str]] = []
    for error in errors:
        for violation in _convert(error):
            if violation not in violations:
                violations.append(violation)
    return result, violations


def validate_parameters(
    tool_name: str,
    schema: dict[str, Any],
    parameters: Any,
) -> dict[str, Any]:
    """
    Validate parameters against a tool schema and apply defaults.

    Raises:
        SchemaValidationError: Listing every violated field
    """
    result, violations = check_parameters(schema, parameters)
    if violations:
        raise SchemaValidationError(tool_name, violations)
    return result
