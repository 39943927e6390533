"""
Template interpolation module.
Evaluates ${...} expressions used by computed variables.
"""

from .functions import builtin_functions, format_value
from .interpolator import Interpolator

__all__ = ['Interpolator', 'builtin_functions', 'format_value']
