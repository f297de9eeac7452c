"""
Unit tests for per-preset helpers.

Test coverage:
- Converting both shader slots of a preset
- Review bucket file names
- Stripping preamble uniform redeclarations
"""

import pytest
from milkdrop_glsl.config import ConverterConfig
from milkdrop_glsl.pipeline import (
    BROKEN_PREFIX,
    ConversionOutcome,
    PresetShaderResult,
    ShaderConverter,
    convert_preset_shaders,
    output_filename,
    strip_preamble_uniforms,
)


@pytest.fixture
def converter():
    """Fixture for a ShaderConverter that skips validation."""
    return ShaderConverter(ConverterConfig(validate=False))


# ============================================================================
# Preset conversion
# ============================================================================

def test_convert_preset_shaders(converter):
    """Test that warp gets a writable uv and an empty comp stays empty."""
    result = convert_preset_shaders('ret = vec3(1.0);', '', 'p', converter)
    assert result.warp.shader == "shader_body\n{\nvec2 _uv = uv;\nret = vec3(1.0);\n}"
    assert result.comp.shader == ''
    assert not result.warnings


def test_preset_warnings_from_either_slot():
    """Test that one flagged slot flags the preset."""
    clean = ConversionOutcome('a', False)
    flagged = ConversionOutcome('b', True)
    assert PresetShaderResult(clean, flagged).warnings
    assert PresetShaderResult(flagged, clean).warnings
    assert not PresetShaderResult(clean, clean).warnings


# ============================================================================
# File names
# ============================================================================

def test_output_filename_clean():
    """Test that clean presets keep their name and drop the broken copy."""
    assert output_filename('preset.json', False) == ('preset.json', BROKEN_PREFIX + 'preset.json')


def test_output_filename_flagged():
    """Test that flagged presets go to the review bucket."""
    assert output_filename('preset.json', True) == ('_broken_preset.json', 'preset.json')


# ============================================================================
# Uniform stripping
# ============================================================================

def test_strip_preamble_uniforms():
    """Test that only uniforms the preamble declares are removed."""
    text = "uniform float time;\nuniform float my_gain;\nret = vec3(time);"
    assert strip_preamble_uniforms(text) == "uniform float my_gain;\nret = vec3(time);"


@pytest.mark.parametrize("text", [None, ''])
def test_strip_preamble_uniforms_empty(text):
    """Test that missing shaders pass through."""
    assert strip_preamble_uniforms(text) == text


def test_strip_custom_names():
    """Test stripping an explicit set of names."""
    text = "uniform float my_gain;\nuniform float time;\n"
    assert strip_preamble_uniforms(text, ['my_gain']) == "uniform float time;\n"
