"""
Template interpolation for variable expressions.
Handles ${expression} evaluation against a variable scope.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jinja2 import StrictUndefined, TemplateError, Undefined
from jinja2.sandbox import ImmutableSandboxedEnvironment

from ..exceptions import ExpressionError
from .functions import builtin_functions, format_value


logger = logging.getLogger(__name__)


class Interpolator:
    """
    Evaluates template strings such as ``"${a}-${b + 1}"``.

    Text outside ``${...}`` is copied as is. ``$${`` produces a literal
    ``${`` and starts no expression; any other ``$`` is plain text.
    Each ``${...}`` holds an expression compiled by a sandboxed Jinja2
    environment, so ``true``/``false``, arithmetic, comparisons, boolean
    operators, inline ``if``/``else`` and function calls are available.
    The result is always a string.
    """

    def __init__(self, functions: Optional[Dict[str, Any]] = None):
        """
        Initialize the interpolator.

        Args:
            functions: Extra global functions, overriding builtins of the same name
        """
        self.environment = ImmutableSandboxedEnvironment(undefined=StrictUndefined)
        self.environment.globals.update(builtin_functions())
        if functions:
            self.environment.globals.update(functions)
        self._compiled: Dict[str, Any] = {}

    def evaluate(self, template: str, scope: Mapping[str, Any]) -> str:
        """
        Evaluate a template against a scope.

        Args:
            template: Text with embedded ${...} expressions
            scope: Variables visible to the expressions

        Returns:
            The rendered string

        Raises:
            ExpressionError: If any expression can't be computed
        """
        output = []
        for is_expression, text in self._split(template):
            if is_expression:
                output.append(format_value(self._evaluate_expression(text, scope)))
            else:
                output.append(text)
        return "".join(output)

    def _split(self, template: str) -> List[Tuple[bool, str]]:
        """
        Split a template into literal and expression parts.

        Returns:
            List of (is_expression, text) pairs in template order
        """
        parts: List[Tuple[bool, str]] = []
        literal: List[str] = []
        position = 0

        while position < len(template):
            if template.startswith('$${', position):
                literal.append('${')
                position += 3
            elif template.startswith('${', position):
                end = self._find_closing_brace(template, position + 2)
                if literal:
                    parts.append((False, "".join(literal)))
                    literal = []
                parts.append((True, template[position + 2:end]))
                position = end + 1
            else:
                literal.append(template[position])
                position += 1

        if literal:
            parts.append((False, "".join(literal)))
        return parts

    def _find_closing_brace(self, template: str, start: int) -> int:
        """Find the brace closing an expression, skipping quoted strings and nested braces."""
        depth = 0
        quote = None
        position = start

        while position < len(template):
            char = template[position]
            if quote:
                if char == '\\':
                    position += 1
                elif char == quote:
                    quote = None
            elif char in ('"', "'"):
                quote = char
            elif char == '{':
                depth += 1
            elif char == '}':
                if depth == 0:
                    return position
                depth -= 1
            position += 1

        raise ExpressionError(f"unterminated expression starting at offset {start - 2}")

    def _evaluate_expression(self, source: str, scope: Mapping[str, Any]) -> Any:
        compiled = self._compiled.get(source)
        if compiled is None:
            try:
                compiled = self.environment.compile_expression(source, undefined_to_none=False)
            except TemplateError as e:
                raise ExpressionError(f"parse error in {source!r}: {e}") from e
            self._compiled[source] = compiled

        try:
            value = compiled(dict(scope))
            if isinstance(value, Undefined):
                # StrictUndefined raises UndefinedError when rendered
                str(value)
        except ExpressionError:
            raise
        except TemplateError as e:
            raise ExpressionError(str(e)) from e
        except (ArithmeticError, LookupError, TypeError, ValueError) as e:
            raise ExpressionError(f"{type(e).__name__}: {e}") from e

        logger.debug(f"Evaluated expression {source!r}")
        return value
