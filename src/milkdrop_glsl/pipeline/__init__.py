"""Iteration controller and per-preset conversion helpers."""

from .converter import (
    COMP_SLOT,
    SLOTS,
    WARP_SLOT,
    ConversionOutcome,
    ConversionState,
    ShaderConverter,
    make_warp_uv_writable,
)
from .presets import (
    BROKEN_PREFIX,
    PresetShaderResult,
    convert_preset_shaders,
    output_filename,
    strip_preamble_uniforms,
)

__all__ = [
    'COMP_SLOT',
    'SLOTS',
    'WARP_SLOT',
    'ConversionOutcome',
    'ConversionState',
    'ShaderConverter',
    'make_warp_uv_writable',
    'BROKEN_PREFIX',
    'PresetShaderResult',
    'convert_preset_shaders',
    'output_filename',
    'strip_preamble_uniforms',
]
