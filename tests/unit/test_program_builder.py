"""
Unit tests for the validation program builder.

Test coverage:
- Program layout (preamble, header, entry point, body, epilogue)
- Body line offsets
- Mapping diagnostic lines back into header and body
"""

import pytest
from milkdrop_glsl.runtime.preamble import (
    ENTRY_POINT_LINE_COUNT,
    EPILOGUE,
    GLSL_PREAMBLE,
    PREAMBLE_LINE_COUNT,
)
from milkdrop_glsl.validation.program_builder import ValidationProgramBuilder, locate_line


@pytest.fixture
def builder():
    """Fixture for ValidationProgramBuilder instance."""
    return ValidationProgramBuilder()


@pytest.fixture
def candidate():
    """Fixture for a candidate with a one-line header."""
    return "float a;\nshader_body\n{\nret = vec3(a);\n}"


# ============================================================================
# Program layout
# ============================================================================

def test_program_starts_with_preamble(builder, candidate):
    """Test that the preamble comes first."""
    program = builder.build(candidate)
    assert program.program.startswith(GLSL_PREAMBLE)
    assert program.program.startswith('#version 300 es\n')


def test_program_ends_with_epilogue(builder, candidate):
    """Test that the epilogue closes the program."""
    program = builder.build(candidate)
    assert program.program.endswith(EPILOGUE + '\n')


def test_entry_point_declares_runtime_locals(builder, candidate):
    """Test that the entry point declares uv, ret, rad, ang and q1..q32."""
    program = builder.build(candidate).program
    assert 'vec2 uv = _uv_in;' in program
    assert 'vec3 ret;' in program
    assert 'float rad = ' in program
    assert 'float ang = ' in program
    assert 'q1=_qa.x' in program
    assert 'q32=_qh.w' in program


def test_preamble_line_count(builder):
    """Test that the builder counts preamble lines."""
    assert builder.preamble_line_count == PREAMBLE_LINE_COUNT


# ============================================================================
# Line offsets
# ============================================================================

def test_body_line_offset(builder, candidate):
    """Test the offset with a two-line header ('float a;' and the blank before the marker)."""
    program = builder.build(candidate)
    assert program.header_line_count == 2
    assert program.body_line_offset == PREAMBLE_LINE_COUNT + 2 + ENTRY_POINT_LINE_COUNT


def test_body_line_maps_back(builder, candidate):
    """Test that body line 2 is the program line at offset + 2."""
    program = builder.build(candidate)
    lines = program.program.split('\n')
    assert lines[program.body_line_offset + 2 - 1] == 'ret = vec3(a);'


def test_header_line_maps_back(builder, candidate):
    """Test that the header's first line maps to header index 0."""
    program = builder.build(candidate)
    lines = program.program.split('\n')
    assert lines[PREAMBLE_LINE_COUNT] == 'float a;'
    relative = (PREAMBLE_LINE_COUNT + 1) - program.body_line_offset
    assert relative <= 0
    assert program.locate(relative) == ('header', 0)


def test_no_header(builder):
    """Test a candidate without a marker."""
    program = builder.build("ret = vec3(1.0);")
    assert program.header_line_count == 0
    assert program.body_line_offset == PREAMBLE_LINE_COUNT + ENTRY_POINT_LINE_COUNT
    assert program.locate(1) == ('body', 0)


# ============================================================================
# Line mapping
# ============================================================================

def test_locate_body_line():
    """Test positive lines address the body."""
    assert locate_line(3, 4) == ('body', 2)


def test_locate_header_line():
    """Test non-positive lines count back from the header's end."""
    assert locate_line(-ENTRY_POINT_LINE_COUNT, 4) == ('header', 3)
    assert locate_line(-ENTRY_POINT_LINE_COUNT - 3, 4) == ('header', 0)


def test_locate_preamble_line():
    """Test that lines before the header are not addressable."""
    assert locate_line(-40, 4) is None


def test_locate_without_header():
    """Test that without a header everything is body."""
    assert locate_line(0, 0) == ('body', -1)
