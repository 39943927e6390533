"""
Builtin functions available inside ${...} expressions.

Functions are grouped into namespaces so expressions read as
``${regexp.matches("^a", name)}`` or ``${str.truncate(10, name)}``.
"""

import base64
import json
import re
import secrets
import time
import urllib.parse
from types import SimpleNamespace
from typing import Any, Dict, Mapping

from ..exceptions import ExpressionError


def format_value(value: Any) -> str:
    """Render an evaluated value as template output."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    elif value is None:
        return ''
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, str):
        return value
    else:
        # Complex types get JSON representation
        try:
            return json.dumps(value, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise ExpressionError(f"can't render {type(value).__name__} value: {e}") from e


class Counter:
    """Monotonic counter, one per interpolator."""

    def __init__(self):
        self._value = 0

    def next(self) -> int:
        self._value += 1
        return self._value


def _assert(condition: Any, message: str = "") -> bool:
    if not condition:
        raise ExpressionError(f"assert: Assertion failed: {message}")
    return True


def _regexp_matches(pattern: str, text: str) -> bool:
    try:
        return re.search(pattern, text) is not None
    except re.error as e:
        raise ExpressionError(f"regexp.matches: invalid pattern {pattern!r}: {e}")


def _truncate(limit: int, text: str) -> str:
    if limit < 0:
        raise ExpressionError(f"str.truncate: limit must be non-negative, got {limit}")
    return text[:limit]


def _query_escape(text: str) -> str:
    return urllib.parse.quote_plus(text)


def _nano() -> str:
    return str(time.time_ns())


def _rand_base64(count: int) -> str:
    if count < 0:
        raise ExpressionError(f"rand.base64: byte count must be non-negative, got {count}")
    return base64.urlsafe_b64encode(secrets.token_bytes(count)).decode('ascii')


def _json_marshal(value: Any) -> str:
    try:
        return json.dumps(value, sort_keys=True, separators=(',', ':'))
    except TypeError as e:
        raise ExpressionError(f"json.marshal: {e}")


def _map_flatten(kv_separator: str, tuple_separator: str, values: Mapping[str, Any]) -> str:
    if not isinstance(values, Mapping):
        raise ExpressionError(f"map.flatten: expected a map, got {type(values).__name__}")
    tuples = [f"{key}{kv_separator}{format_value(values[key])}" for key in sorted(values)]
    return tuple_separator.join(tuples)


def builtin_functions() -> Dict[str, Any]:
    """
    Build the global function table for a new interpolator.

    Returns:
        Mapping of global names to callables or namespaces of callables
    """
    counter = Counter()
    functions: Dict[str, Any] = {
        'assert': _assert,
        'regexp': SimpleNamespace(matches=_regexp_matches),
        'str': SimpleNamespace(truncate=_truncate, queryEscape=_query_escape),
        'counter': SimpleNamespace(next=counter.next),
        'time': SimpleNamespace(nano=_nano),
        'rand': SimpleNamespace(base64=_rand_base64),
        'json': SimpleNamespace(marshal=_json_marshal),
        'map': SimpleNamespace(flatten=_map_flatten),
    }
    return functions

