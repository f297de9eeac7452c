"""Autofix Engine: diagnostic-driven line repairs."""

from .autofix_engine import AutofixEngine, FixResult
from .context import FixContext
from .handlers import HANDLERS

__all__ = [
    'AutofixEngine',
    'FixResult',
    'FixContext',
    'HANDLERS',
]
