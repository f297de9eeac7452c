"""Validation program building, validator invocation and diagnostic parsing."""

from .diagnostics import (
    DIAGNOSTIC_TEMPLATES,
    Diagnostic,
    DiagnosticKind,
    DiagnosticParser,
)
from .glslang import GlslangValidator, ValidatorError, locate_validator
from .program_builder import ValidationProgram, ValidationProgramBuilder

__all__ = [
    'DIAGNOSTIC_TEMPLATES',
    'Diagnostic',
    'DiagnosticKind',
    'DiagnosticParser',
    'GlslangValidator',
    'ValidatorError',
    'locate_validator',
    'ValidationProgram',
    'ValidationProgramBuilder',
]
