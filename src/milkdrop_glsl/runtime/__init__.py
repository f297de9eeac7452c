"""Target runtime description: synthetic preamble and lookup tables."""

from .preamble import (
    ENTRY_POINT_LINES,
    EPILOGUE,
    GLSL_PREAMBLE,
    PREAMBLE_VERSION,
    preamble_uniforms,
)
from .tables import DEFAULT_TABLES, ConversionTables

__all__ = [
    'ENTRY_POINT_LINES',
    'EPILOGUE',
    'GLSL_PREAMBLE',
    'PREAMBLE_VERSION',
    'preamble_uniforms',
    'DEFAULT_TABLES',
    'ConversionTables',
]
