"""
Context builder: accumulates variables from several sources and resolves
computed ones into a VarContext.

Merges are applied in call order. Every entry is tagged when it is merged as
either a Literal value or an Expression to evaluate at build time, so a plain
string merged through merge_map is never interpreted. Expressions are
evaluated in insertion order against the values resolved so far, overlaid by
the evaluation constants.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .context import VarContext
from .exceptions import (
    BuildFailure,
    BuilderStateError,
    ContextBuildError,
    DecodeError,
    EvaluationError,
    ExpressionError,
)
from .interpolation import Interpolator
from .structs import struct_items, to_plain
from .types import cast_to


logger = logging.getLogger(__name__)


@dataclass
class DefaultVariable:
    """
    A variable with a default value.

    Attributes:
        name: Variable name
        default: Default value; strings are evaluated as templates, None adds nothing
        overwrite: Replace the variable even if it is already set
        type: Optional type the evaluated value is cast to
    """
    name: str
    default: Any = None
    overwrite: bool = False
    type: Optional[str] = None


@dataclass(frozen=True)
class Literal:
    """Entry whose value is used as is."""
    value: Any


@dataclass(frozen=True)
class Expression:
    """Entry computed from a template at build time."""
    template: str
    result_type: Optional[str] = None


Entry = Union[Literal, Expression]


class ContextBuilder:
    """
    Fluent accumulator for variables.

    Every merge returns the builder so calls can be chained. Merge problems
    such as malformed JSON never raise from the chain; they are collected and
    reported by build together with evaluation failures.
    """

    def __init__(self, evaluator: Optional[Any] = None):
        """
        Initialize an empty builder.

        Args:
            evaluator: Object with evaluate(template, scope) raising
                ExpressionError on failure; defaults to an Interpolator
        """
        self.evaluator = evaluator if evaluator is not None else Interpolator()
        self._entries: Dict[str, Entry] = {}
        self._constants: Dict[str, Any] = {}
        self._errors: List[BuildFailure] = []
        self._built = False

    def _check_open(self):
        if self._built:
            raise BuilderStateError("context builder has already been built")

    def _set(self, name: str, entry: Entry):
        # Re-inserting moves the name to the end of the evaluation order
        self._entries.pop(name, None)
        self._entries[name] = entry

    def merge_map(self, values: Mapping[str, Any]) -> 'ContextBuilder':
        """Merge every key of a mapping as a literal, replacing existing entries."""
        self._check_open()
        for name, value in values.items():
            self._set(name, Literal(value))
        return self

    def merge_defaults(self, defaults: Sequence[DefaultVariable]) -> 'ContextBuilder':
        """
        Merge default values.

        A default is applied when its name is not set yet or when it asks to
        overwrite. String defaults are templates and may reference other
        variables; None defaults are skipped.
        """
        self._check_open()
        for default in defaults:
            if default.default is None:
                continue
            if default.name in self._entries and not default.overwrite:
                logger.debug(f"Keeping existing value for {default.name!r}")
                continue

            if isinstance(default.default, str):
                self._set(default.name, Expression(default.default, default.type))
            else:
                self._set(default.name, Literal(default.default))
        return self

    def merge_eval_result(
        self,
        name: str,
        template: str,
        result_type: Optional[str] = None
    ) -> 'ContextBuilder':
        """
        Compute a variable from a template at build time.

        Args:
            name: Variable to set
            template: Template such as "${a}-suffix"
            result_type: Optional type the rendered string is cast to
        """
        self._check_open()
        self._set(name, Expression(template, result_type))
        return self

    def merge_json_object(self, raw: Union[str, bytes, bytearray, None]) -> 'ContextBuilder':
        """
        Merge the top level keys of a JSON object as literals.

        An empty or absent payload is a no-op. Malformed payloads and
        non-object documents are reported by build.
        """
        self._check_open()
        if raw is None or len(raw) == 0:
            return self

        try:
            text = raw.decode('utf-8') if isinstance(raw, (bytes, bytearray)) else raw
        except UnicodeDecodeError as e:
            self._errors.append(DecodeError(f"invalid UTF-8 at offset {e.start}: {e.reason}"))
            return self

        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as e:
            character = text[e.pos] if e.pos < len(text) else 'end of input'
            self._errors.append(DecodeError(
                f"invalid character {character!r} at offset {e.pos}: {e.msg}"
            ))
            return self

        if not isinstance(decoded, dict):
            self._errors.append(DecodeError(
                f"expected a JSON object, got {type(decoded).__name__}"
            ))
            return self

        return self.merge_map(decoded)

    def merge_struct(self, value: Any) -> 'ContextBuilder':
        """
        Merge the fields of a dataclass or pydantic model as literals.

        Fields are keyed by their declared external name, or by their
        attribute name when none is declared.
        """
        self._check_open()
        try:
            items = struct_items(value)
        except TypeError as e:
            self._errors.append(DecodeError(str(e), source='struct'))
            return self

        return self.merge_map(dict(items))

    def set_eval_constants(self, constants: Mapping[str, Any]) -> 'ContextBuilder':
        """
        Replace the constants visible to expressions.

        Constants win over variables of the same name inside expressions but
        are not part of the built context unless merged separately.
        """
        self._check_open()
        self._constants = {name: to_plain(value) for name, value in constants.items()}
        return self

    def build(self) -> VarContext:
        """
        Resolve every expression and freeze the result.

        Returns:
            The built VarContext

        Raises:
            ContextBuildError: If any merge or evaluation failed
            BuilderStateError: If the builder was already built
        """
        self._check_open()
        self._built = True

        errors: List[BuildFailure] = list(self._errors)
        resolved: Dict[str, Any] = {}
        pending = 0

        for name, entry in self._entries.items():
            if isinstance(entry, Literal):
                resolved[name] = entry.value

        for name, entry in self._entries.items():
            if not isinstance(entry, Expression):
                continue
            pending += 1

            # Constants take precedence over variables of the same name
            scope = dict(resolved)
            scope.update(self._constants)
            try:
                value = self.evaluator.evaluate(entry.template, scope)
                if entry.result_type:
                    value = cast_to(value, entry.result_type)
            except ExpressionError as e:
                errors.append(EvaluationError(name, entry.template, str(e)))
                continue

            resolved[name] = value

        logger.debug(
            f"Built context with {len(self._entries)} variables, "
            f"{pending} evaluated, {len(errors)} errors"
        )

        if errors:
            raise ContextBuildError(errors)

        # Keep insertion order of the merged names in the output
        return VarContext({name: resolved[name] for name in self._entries})

    def build_map(self) -> Dict[str, Any]:
        """Build and return the plain mapping view."""
        return self.build().to_map()


Builder = ContextBuilder
