"""
Parameter simulation - how Make.com validates and converts mapped values.

Catches "Validation error: [Collection]" style issues before deploying:
a collection mapped into a "text" parameter is rejected by Make.com.
"""

import json
from dataclasses import dataclass, field
from typing import Any

DATA_PARAMETER_HINTS = ("data", "table", "input")

_SAMPLE_ROWS = [
    {"name": "OpenAI", "description": "AI company"},
    {"name": "Stripe", "description": "Payments"},
]

# Inputs as Make.com would pass them from upstream modules
SAMPLE_INPUTS: dict[str, Any] = {
    # Collection from another module (e.g. Set Variable, Iterator)
    "collection": _SAMPLE_ROWS,
    # JSON string (user mapped {{toString(...)}})
    "json_string": json.dumps(_SAMPLE_ROWS, separators=(",", ":")),
    "text": "some text value",
    "boolean": True,
    "number": 42,
}

RECOMMENDATIONS = [
    (
        'Use type "array" with spec: []',
        ["This tells Make.com to accept any array without validating structure."],
    ),
    (
        'Use type "text" and have users convert with toString()',
        [
            "In mapping: {{toString(1.dataSet)}}",
            "In module communication: {{parseJSON(parameters.inputData)}}",
        ],
    ),
    (
        "Use explicit collection spec",
        ["Define the exact structure of objects the module accepts."],
    ),
]

TO_STRING_HINT = "User must use {{toString(variable)}} to convert to JSON string."


class ParameterError(ValueError):
    """A mapped value cannot be converted to the parameter's type."""


@dataclass
class ValidationResult:
    """Outcome of validating one value against one parameter."""

    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def error(self, message: str) -> None:
        self.valid = False
        self.errors.append(message)


def js_type(value: Any) -> str:
    """Name a value using the JavaScript typeof vocabulary Make.com reports."""
    if value is None:
        return "undefined"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, int | float):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def _validate_array(param: dict, value: Any, result: ValidationResult) -> None:
    name = param.get("name", "?")
    if not isinstance(value, list):
        result.error(f'Parameter "{name}" expects array but got {js_type(value)}')
        return

    spec = param.get("spec")
    if isinstance(spec, list) and spec:
        result.warnings.append(f'Parameter "{name}" has array spec - Make.com will validate each item')
    elif isinstance(spec, dict) and spec.get("type") == "collection":
        for i, item in enumerate(value):
            if not isinstance(item, dict):
                result.warnings.append(f'Array item {i} in "{name}" should be an object (collection)')
    # Empty spec [] means "accept any array"


def validate_parameter(param: dict, value: Any) -> ValidationResult:
    """
    Simulate Make.com's validation of a mapped value.

    Args:
        param: Parameter definition (name, type, required, spec)
        value: Mapped value (None when unmapped)

    Returns:
        ValidationResult with errors (rejections) and warnings
    """
    result = ValidationResult()
    name = param.get("name", "?")
    param_type = param.get("type")

    if param.get("required") and value is None:
        result.error(f'Required parameter "{name}" is missing')
        return result

    if param_type == "text":
        if isinstance(value, list):
            result.error(f'Parameter "{name}" is type "text" but received array/collection. {TO_STRING_HINT}')
        elif isinstance(value, dict):
            result.error(f'Parameter "{name}" is type "text" but received object. {TO_STRING_HINT}')

    elif param_type == "array":
        _validate_array({**param, "name": name}, value, result)

    elif param_type == "boolean":
        if not isinstance(value, bool):
            result.warnings.append(f'Parameter "{name}" expects boolean but got {js_type(value)}')

    elif param_type in ("number", "integer", "uinteger"):
        if js_type(value) != "number":
            result.warnings.append(f'Parameter "{name}" expects number but got {js_type(value)}')

    elif param_type == "collection":
        if not isinstance(value, dict):
            result.error(f'Parameter "{name}" expects collection but got {js_type(value)}')

    elif param_type == "select":
        pass

    else:
        result.warnings.append(f'Unknown parameter type "{param_type}" for "{name}"')

    return result


def _to_js_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value)


def simulate_parameters(parameters: list[dict], inputs: dict[str, Any]) -> dict[str, Any]:
    """
    Convert mapped inputs the way Make.com does before rendering communication.

    Raises:
        ParameterError: If a value cannot be converted to its parameter type
    """
    result: dict[str, Any] = {}

    for param in parameters:
        name = param.get("name") if isinstance(param, dict) else None
        if not name:
            raise ParameterError(f"Parameter definition without a name: {json.dumps(param)}")
        value = inputs.get(name)

        if value is None and "default" in param:
            value = param["default"]

        param_type = param.get("type")
        if param_type == "text":
            if isinstance(value, list | dict):
                raise ParameterError(
                    f'Parameter "{name}" is type "text" but received a collection/array. '
                    "Use toString() in mapping."
                )
            result[name] = _to_js_string(value)
        elif param_type == "array":
            if not isinstance(value, list):
                raise ParameterError(f'Parameter "{name}" expects array but got {js_type(value)}')
            result[name] = value
        elif param_type == "boolean":
            result[name] = bool(value)
        else:
            result[name] = value

    return result


def find_data_parameters(module: dict) -> list[dict]:
    """Parameters most likely to receive collections (name mentions data/table/input)."""
    return [
        p
        for p in module.get("parameters") or []
        if isinstance(p, dict) and any(hint in str(p.get("name", "")).lower() for hint in DATA_PARAMETER_HINTS)
    ]
