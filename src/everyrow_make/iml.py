"""
IML template simulation - a small subset of Make.com's {{ ... }} expressions.

Supported:
    {{parameters.name}}          mapped parameter (collections as JSON)
    {{temp.name}}                temp variable
    {{body.name}}                response body field
    {{parseJSON(parameters.x)}}  JSON string parameter, parsed and re-serialized
"""

import json
import re
from typing import Any

PARAMETER_PATTERN = re.compile(r"\{\{parameters\.(\w+)\}\}")
TEMP_PATTERN = re.compile(r"\{\{temp\.(\w+)\}\}")
BODY_PATTERN = re.compile(r"\{\{body\.(\w+)\}\}")
PARSE_JSON_PATTERN = re.compile(r"\{\{parseJSON\(([^)]+)\)\}\}")
PARAMETER_REF = re.compile(r"parameters\.(\w+)")


def _to_json(value: Any) -> str:
    """Compact JSON with non-ASCII characters kept, matching JSON.stringify."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _js_string(value: Any) -> str:
    """String form of a value as JavaScript would interpolate it."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return _to_json(value)


def _lookup(context: dict, scope: str, key: str) -> Any:
    values = context.get(scope) or {}
    return values.get(key)


def render_template(template: str, context: dict) -> str:
    """
    Render an IML template string.

    Args:
        template: String possibly containing {{ ... }} expressions
        context: Dict with optional "parameters", "temp" and "body" mappings

    Returns:
        Rendered string
    """

    def parameter(match: re.Match) -> str:
        return _js_string(_lookup(context, "parameters", match.group(1)))

    def falsy_blank(scope: str):
        def replace(match: re.Match) -> str:
            value = _lookup(context, scope, match.group(1))
            return _js_string(value) if value else ""

        return replace

    def parse_json(match: re.Match) -> str:
        ref = PARAMETER_REF.search(match.group(1))
        if not ref:
            return ""
        value = _lookup(context, "parameters", ref.group(1))
        if isinstance(value, str):
            value = json.loads(value)
        return _to_json(value)

    result = PARAMETER_PATTERN.sub(parameter, template)
    result = TEMP_PATTERN.sub(falsy_blank("temp"), result)
    result = BODY_PATTERN.sub(falsy_blank("body"), result)
    result = PARSE_JSON_PATTERN.sub(parse_json, result)
    return result


def render_value(value: Any, context: dict) -> Any:
    """Render every string inside a nested dict/list structure."""
    if isinstance(value, str):
        return render_template(value, context)
    if isinstance(value, dict):
        return {key: render_value(item, context) for key, item in value.items()}
    if isinstance(value, list):
        return [render_value(item, context) for item in value]
    return value
