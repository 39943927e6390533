"""Variable context exceptions and error records."""

import json
from typing import List, Sequence, Union
from dataclasses import dataclass


@dataclass
class DecodeError:
    """A payload passed to a merge operation could not be decoded."""
    message: str
    source: str = "json"

    def __str__(self) -> str:
        return f"couldn't decode {self.source} object: {self.message}"


@dataclass
class EvaluationError:
    """A single named expression that failed to evaluate."""
    name: str
    template: str
    detail: str

    def __str__(self) -> str:
        return (
            f"couldn't compute the value for {json.dumps(self.name)}, "
            f"template: {json.dumps(self.template)}, {self.detail}"
        )


@dataclass
class ValidationError:
    """Single validation error."""
    message: str
    path: str = ""


BuildFailure = Union[DecodeError, EvaluationError]


class ContextBuildError(Exception):
    """Raised by ContextBuilder.build when any merge or evaluation failed.

    Carries every failure recorded during the build so the caller sees all
    independent problems at once, not just the first one.
    """

    def __init__(self, errors: Sequence[BuildFailure]):
        self.errors: List[BuildFailure] = list(errors)
        rendered = "; ".join(str(error) for error in self.errors)
        super().__init__(f"{len(self.errors)} error(s) occurred: {rendered}")


class ExpressionError(Exception):
    """Raised by an evaluator when an expression can't be computed."""


class BuilderStateError(RuntimeError):
    """Raised when a builder is used after it has been built."""


class ConversionError(ValueError):
    """Raised when a context value can't be converted to the requested type."""


class DefaultsValidationError(Exception):
    """Raised when a defaults document fails validation.

    All problems found in the document are collected before raising.
    """

    def __init__(self, errors: List[ValidationError]):
        self.errors = errors

        messages = []
        for error in errors:
            if error.path:
                messages.append(f"Validation error at {error.path}: {error.message}")
            else:
                messages.append(f"Validation error: {error.message}")

        super().__init__("\n".join(messages))
