"""
MilkDrop preset shaders to GLSL ES 3.00.

Pipeline per shader:
1. HLSLRewriter rewrites the dialect text into a candidate
2. GlslangValidator type-checks the candidate inside a synthetic program
3. AutofixEngine repairs lines from the validator's diagnostics
4. ShaderConverter repeats 2-3 until clean, stuck, or out of passes
"""

from .autofix import AutofixEngine, FixResult
from .config import ConverterConfig
from .pipeline import (
    ConversionOutcome,
    ConversionState,
    PresetShaderResult,
    ShaderConverter,
    convert_preset_shaders,
)
from .rewriter import HLSLRewriter
from .runtime import DEFAULT_TABLES, ConversionTables
from .validation import Diagnostic, DiagnosticParser, GlslangValidator, ValidationProgramBuilder

__version__ = '0.1.0'

__all__ = [
    'AutofixEngine',
    'FixResult',
    'ConverterConfig',
    'ConversionOutcome',
    'ConversionState',
    'PresetShaderResult',
    'ShaderConverter',
    'convert_preset_shaders',
    'HLSLRewriter',
    'DEFAULT_TABLES',
    'ConversionTables',
    'Diagnostic',
    'DiagnosticParser',
    'GlslangValidator',
    'ValidationProgramBuilder',
]
