"""
Variable context module.
Builds flat variable mappings from literals, defaults, JSON, structs and
computed templates.
"""

from .builder import Builder, ContextBuilder, DefaultVariable, Expression, Literal
from .context import VarContext
from .exceptions import (
    BuilderStateError,
    ContextBuildError,
    ConversionError,
    DecodeError,
    DefaultsValidationError,
    EvaluationError,
    ExpressionError,
    ValidationError,
)
from .interpolation import Interpolator
from .loader import DefaultsLoader

__all__ = [
    'Builder',
    'ContextBuilder',
    'DefaultVariable',
    'Expression',
    'Literal',
    'VarContext',
    'BuilderStateError',
    'ContextBuildError',
    'ConversionError',
    'DecodeError',
    'DefaultsValidationError',
    'EvaluationError',
    'ExpressionError',
    'ValidationError',
    'Interpolator',
    'DefaultsLoader',
]
