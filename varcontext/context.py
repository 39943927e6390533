"""
Immutable variable context produced by ContextBuilder.build.
"""

import copy
import json
from collections.abc import Mapping
from typing import Any, Dict, Iterator, Type, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConversionError
from .structs import struct_fields, zero_value


T = TypeVar('T')


class VarContext(Mapping):
    """
    Read-only snapshot of resolved variables.

    Values are copied in on construction and copied out by to_map, so no
    caller can change a context after it is built. Safe to share between
    readers without locking.
    """

    def __init__(self, values: Dict[str, Any]):
        self._values: Dict[str, Any] = copy.deepcopy(dict(values))

    def __getitem__(self, name: str) -> Any:
        return copy.deepcopy(self._values[name])

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VarContext({self._values!r})"

    def to_map(self) -> Dict[str, Any]:
        """Return a copy of the flat name to value mapping."""
        return copy.deepcopy(self._values)

    def to_json(self) -> str:
        """Serialize the context as a JSON object."""
        return json.dumps(self._values, sort_keys=True)

    def has_key(self, name: str) -> bool:
        return name in self._values

    def get_string(self, name: str) -> str:
        """
        Get a value as a string.

        Missing keys give an empty string. Numbers and bools are rendered,
        structured values are rejected.
        """
        value = self._values.get(name)
        if value is None:
            return ''
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, (str, int, float)):
            return str(value)
        raise ConversionError(f"value for {name!r} is a {type(value).__name__}, not a string")

    def get_int(self, name: str) -> int:
        """Get a value as an integer; missing keys give 0."""
        value = self._values.get(name)
        if value is None:
            return 0
        if isinstance(value, bool):
            raise ConversionError(f"value for {name!r} is a bool, not an integer")
        if isinstance(value, float) and value.is_integer():
            return int(value)
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            try:
                return int(value.strip())
            except ValueError:
                pass
        raise ConversionError(f"value for {name!r} can't be converted to an integer: {value!r}")

    def get_bool(self, name: str) -> bool:
        """Get a value as a bool; missing keys give False."""
        value = self._values.get(name)
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in ('true', 'false'):
            return value.strip().lower() == 'true'
        raise ConversionError(f"value for {name!r} can't be converted to a bool: {value!r}")

    def get_string_map(self, name: str) -> Dict[str, str]:
        """Get a mapping value with every entry rendered as a string."""
        value = self._values.get(name)
        if value is None:
            return {}
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError as e:
                raise ConversionError(f"value for {name!r} is not a JSON object: {e}") from e
        if not isinstance(value, dict):
            raise ConversionError(f"value for {name!r} is a {type(value).__name__}, not a map")

        result = {}
        for key, item in value.items():
            if isinstance(item, bool):
                result[str(key)] = 'true' if item else 'false'
            elif isinstance(item, (dict, list)):
                result[str(key)] = json.dumps(item, sort_keys=True)
            else:
                result[str(key)] = '' if item is None else str(item)
        return result

    def extract(self, cls: Type[T]) -> T:
        """
        Populate a dataclass or pydantic model from the context.

        Fields match keys by their declared external name, falling back to
        the attribute name. Unknown keys are ignored; unmatched fields keep
        their default or get the zero value of their type.

        Args:
            cls: Target dataclass or pydantic model class

        Returns:
            A new instance of cls

        Raises:
            ConversionError: If a value can't be converted to its field's type
        """
        if not isinstance(cls, type):
            raise ConversionError(f"extract needs a class, got an instance of {type(cls).__name__}")
        is_model = issubclass(cls, BaseModel)

        data: Dict[str, Any] = {}
        for f in struct_fields(cls):
            key = f.name if is_model else f.attribute
            if f.name in self._values:
                data[key] = copy.deepcopy(self._values[f.name])
            elif f.required:
                data[key] = zero_value(f.annotation)

        try:
            if is_model:
                return cls.model_validate(data)
            return TypeAdapter(cls).validate_python(data)
        except PydanticValidationError as e:
            raise ConversionError(f"couldn't extract {cls.__name__}: {e}") from e
