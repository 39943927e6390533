"""
Field tables for structured values.

A dataclass field declares its external name with
``field(metadata={"json": "username"})``; ``"-"`` leaves the field out.
Pydantic models use their field aliases. Fields without a declared name are
known by their attribute name.
"""

import dataclasses
import types
import typing
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Tuple, Union

from pydantic import BaseModel


EXTERNAL_NAME_KEY = 'json'
SKIP_NAME = '-'

_ZERO_VALUES: Dict[Any, Any] = {
    str: '',
    int: 0,
    float: 0.0,
    bool: False,
    bytes: b'',
}
_EMPTY_CONTAINERS = {list: list, dict: dict, set: set, frozenset: frozenset, tuple: tuple}


@dataclass(frozen=True)
class StructField:
    """One field of a structured type and the name it is known by outside."""
    attribute: str
    name: str
    annotation: Any
    required: bool


def is_struct(value: Any) -> bool:
    """Whether a value or type is a dataclass or pydantic model."""
    cls = value if isinstance(value, type) else type(value)
    return dataclasses.is_dataclass(cls) or issubclass(cls, BaseModel)


def struct_fields(target: Any) -> List[StructField]:
    """
    Resolve the field table of a dataclass or pydantic model.

    Args:
        target: The structured type or an instance of it

    Returns:
        Fields in declaration order

    Raises:
        TypeError: If target is not a dataclass or pydantic model
    """
    cls = target if isinstance(target, type) else type(target)

    if dataclasses.is_dataclass(cls):
        try:
            hints = typing.get_type_hints(cls)
        except (NameError, TypeError):
            hints = {}

        fields = []
        for f in dataclasses.fields(cls):
            name = _declared_name(f.metadata.get(EXTERNAL_NAME_KEY)) or f.name
            if name == SKIP_NAME:
                continue
            has_default = (
                f.default is not dataclasses.MISSING
                or f.default_factory is not dataclasses.MISSING
            )
            fields.append(StructField(f.name, name, hints.get(f.name, f.type), not has_default))
        return fields

    if issubclass(cls, BaseModel):
        return [
            StructField(attribute, info.alias or attribute, info.annotation, info.is_required())
            for attribute, info in cls.model_fields.items()
        ]

    raise TypeError(f"{cls.__name__} is not a dataclass or pydantic model")


def _declared_name(tag: Any) -> str:
    # "username,omitempty" style declarations keep only the name
    if not tag:
        return ''
    return str(tag).split(',', 1)[0]


def struct_items(value: Any) -> List[Tuple[str, Any]]:
    """
    Flatten a structured value into ordered (external name, value) pairs.

    Mappings pass through unchanged. Nested structured values become plain
    dicts keyed by their own external names.
    """
    if isinstance(value, Mapping):
        return [(str(key), to_plain(item)) for key, item in value.items()]
    if isinstance(value, type):
        raise TypeError(f"{value.__name__} is a type, not a structured value")

    return [(f.name, to_plain(getattr(value, f.attribute))) for f in struct_fields(value)]


def to_plain(value: Any) -> Any:
    """Convert structured values into JSON-representable containers."""
    if not isinstance(value, type) and is_struct(value):
        return dict(struct_items(value))
    elif isinstance(value, Mapping):
        return {str(key): to_plain(item) for key, item in value.items()}
    elif isinstance(value, (list, tuple, set, frozenset)):
        return [to_plain(item) for item in value]
    return value


def zero_value(annotation: Any) -> Any:
    """
    Zero value for a field annotation.

    Optional fields get None, scalars their empty value, containers an empty
    container, nested structured types a dict of their required zero fields.
    """
    origin = typing.get_origin(annotation)

    if origin is Union or (hasattr(types, 'UnionType') and origin is types.UnionType):
        args = typing.get_args(annotation)
        if type(None) in args:
            return None
        return zero_value(args[0])

    target = origin or annotation
    if target in _ZERO_VALUES:
        return _ZERO_VALUES[target]
    if target in _EMPTY_CONTAINERS:
        return _EMPTY_CONTAINERS[target]()
    if isinstance(target, type) and is_struct(target):
        return {f.name if issubclass(target, BaseModel) else f.attribute: zero_value(f.annotation)
                for f in struct_fields(target) if f.required}
    return None
