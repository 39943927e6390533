"""
Result types for computed variables.

Templates always render to strings; a declared type converts the rendered
string into the JSON type the consumer expects.
"""

import json
from typing import Any

from .exceptions import ExpressionError


STRING = "string"
INTEGER = "integer"
NUMBER = "number"
BOOLEAN = "boolean"
OBJECT = "object"
ARRAY = "array"

KNOWN_TYPES = {STRING, INTEGER, NUMBER, BOOLEAN, OBJECT, ARRAY}


def cast_to(value: Any, result_type: str) -> Any:
    """
    Cast an evaluated value to a declared type.

    Args:
        value: Evaluated value, usually a string
        result_type: One of KNOWN_TYPES

    Returns:
        The converted value

    Raises:
        ExpressionError: If the type is unknown or the value doesn't convert
    """
    if result_type not in KNOWN_TYPES:
        raise ExpressionError(f"unknown result type {result_type!r}")

    if result_type == STRING:
        if isinstance(value, str):
            return value
        try:
            return json.dumps(value)
        except (TypeError, ValueError) as e:
            raise ExpressionError(f"couldn't cast {type(value).__name__} to string: {e}") from e

    if not isinstance(value, str):
        return value

    text = value.strip()
    try:
        if result_type == INTEGER:
            return int(text)
        elif result_type == NUMBER:
            return float(text)
        elif result_type == BOOLEAN:
            lowered = text.lower()
            if lowered not in ('true', 'false'):
                raise ValueError(f"expected true or false, got {value!r}")
            return lowered == 'true'
        else:
            decoded = json.loads(text)
    except (ValueError, json.JSONDecodeError) as e:
        raise ExpressionError(f"couldn't cast {value!r} to {result_type}: {e}") from e

    expected = dict if result_type == OBJECT else list
    if not isinstance(decoded, expected):
        raise ExpressionError(f"couldn't cast {value!r} to {result_type}: got {type(decoded).__name__}")
    return decoded
