"""
Unit tests for the diagnostic parser and the glslangValidator runner.

Test coverage:
- Parsing validator output into Diagnostic records
- Message classification (kinds and their order)
- Validator runner outcomes (missing, clean, errors, timeout, launch failure)
- Temporary file cleanup
"""

import os
import subprocess

import pytest
from milkdrop_glsl.validation import glslang
from milkdrop_glsl.validation.diagnostics import Diagnostic, DiagnosticKind, DiagnosticParser
from milkdrop_glsl.validation.glslang import GlslangValidator, ValidatorError

VEC3_TO_FLOAT = ("cannot convert from ' temp mediump 3-component vector of float' "
                 "to ' temp mediump float'")
VEC2_TO_VEC3 = ("cannot convert from ' temp mediump 2-component vector of float' "
                "to ' temp mediump 3-component vector of float'")
VEC3_PLUS_VEC2 = ("wrong operand types: no operation '+' exists that takes a left-hand operand of type "
                  "' temp mediump 3-component vector of float' and a right operand of type "
                  "' temp mediump 2-component vector of float' (or there is no acceptable conversion)")
FLOAT_TO_INT = "cannot convert from ' const float' to ' temp highp int'"


@pytest.fixture
def parser():
    """Fixture for DiagnosticParser instance."""
    return DiagnosticParser()


@pytest.fixture
def validator_output():
    """Fixture for typical failing validator output."""
    return (
        "ERROR: 0:214: '=' :  " + VEC3_TO_FLOAT + "\n"
        "ERROR: 0:220: 'foo' : undeclared identifier\n"
        "ERROR: 0:221: '' : compilation terminated\n"
        "ERROR: 2 compilation errors.  No code generated.\n"
    )


# ============================================================================
# Parsing
# ============================================================================

def test_parse_lines_and_tokens(parser, validator_output):
    """Test that each ERROR line becomes a body-relative diagnostic."""
    diagnostics = parser.parse(validator_output, 200)
    assert [(d.line, d.token) for d in diagnostics] == [(14, '='), (20, 'foo')]


def test_parse_message_text(parser, validator_output):
    """Test that the message is the text after the token."""
    diagnostics = parser.parse(validator_output, 200)
    assert diagnostics[0].message == VEC3_TO_FLOAT
    assert diagnostics[1].message == 'undeclared identifier'


def test_parse_skips_compilation_terminated(parser, validator_output):
    """Test that the trailing 'compilation terminated' record is dropped."""
    diagnostics = parser.parse(validator_output, 200)
    assert all('compilation terminated' not in d.message for d in diagnostics)


def test_parse_header_lines_are_non_positive(parser):
    """Test that lines before the body come out <= 0."""
    diagnostics = parser.parse("ERROR: 0:190: 'x' : undeclared identifier\n", 200)
    assert diagnostics[0].line == -10


def test_parse_empty_output(parser):
    """Test that output without errors yields no diagnostics."""
    assert parser.parse('', 200) == []


def test_summary():
    """Test the one-line summary used in warnings."""
    diagnostic = Diagnostic(14, '=', 'undeclared identifier')
    assert diagnostic.summary() == 'L14: undeclared identifier'


# ============================================================================
# Classification
# ============================================================================

def test_classify_vector_to_float(parser):
    """Test that a vector-to-float conversion gets exactly one kind."""
    assert parser.classify('=', VEC3_TO_FLOAT) == (DiagnosticKind.VECTOR_TO_FLOAT,)


def test_classify_vector_resize_with_groups(parser):
    """Test vector resizing and its captured sizes."""
    diagnostic = parser.parse("ERROR: 0:5: '=' : " + VEC2_TO_VEC3 + "\n")[0]
    assert diagnostic.kinds == (DiagnosticKind.VECTOR_RESIZE,)
    match = diagnostic.match(DiagnosticKind.VECTOR_RESIZE)
    assert (match.group(1), match.group(2)) == ('2', '3')


def test_classify_dimension_mismatch(parser):
    """Test binary operations on mismatched vector sizes."""
    diagnostic = parser.parse("ERROR: 0:5: '+' : " + VEC3_PLUS_VEC2 + "\n")[0]
    assert diagnostic.kinds == (DiagnosticKind.VECTOR_DIMENSION_MISMATCH,)
    match = diagnostic.match(DiagnosticKind.VECTOR_DIMENSION_MISMATCH)
    assert (match.group(1), match.group(2), match.group(3)) == ('+', '3', '2')


def test_classify_multiple_kinds_in_order(parser):
    """Test that every matching template is listed in template order."""
    assert parser.classify('=', FLOAT_TO_INT) == (
        DiagnosticKind.FLOAT_LITERAL_FOR_INT,
        DiagnosticKind.INT_OPERAND,
        DiagnosticKind.FLOAT_TO_INT,
    )


def test_classify_missing_return_name(parser):
    """Test that the function name is captured."""
    diagnostic = parser.parse("ERROR: 0:5: 'f' : function does not return a value: f\n")[0]
    assert diagnostic.kinds == (DiagnosticKind.MISSING_RETURN,)
    assert diagnostic.match(DiagnosticKind.MISSING_RETURN).group(1) == 'f'


def test_classify_non_constant_initializer(parser):
    """Test the global initializer message."""
    message = "non-constant global initializer (needs GL_EXT_shader_non_constant_global_initializers)"
    assert parser.classify('=', message) == (DiagnosticKind.NON_CONSTANT_INITIALIZER,)


def test_classify_unmatched(parser):
    """Test that unknown messages are kept without kinds."""
    diagnostic = parser.parse("ERROR: 0:5: 'x' : syntax error, unexpected IDENTIFIER\n")[0]
    assert diagnostic.kinds == ()
    assert diagnostic.message == 'syntax error, unexpected IDENTIFIER'


# ============================================================================
# Validator runner
# ============================================================================

def _completed(args, returncode, stdout):
    return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr='')


def test_validator_missing_returns_none(caplog):
    """Test that a missing validator disables validation."""
    validator = GlslangValidator(executable='')
    assert not validator.available
    assert validator.validate("ret = vec3(1.0);") is None
    assert validator.validate("ret = vec3(1.0);") is None
    assert sum('not found' in r.getMessage() for r in caplog.records) == 1


def test_validator_clean_compile(monkeypatch):
    """Test that exit status 0 means no diagnostics."""
    monkeypatch.setattr(glslang.subprocess, 'run', lambda args, **kwargs: _completed(args, 0, ''))
    validator = GlslangValidator(executable='glslangValidator')
    assert validator.validate("shader_body\n{\nret = vec3(1.0);\n}") == []


def test_validator_reports_body_lines(monkeypatch):
    """Test that program lines are mapped back to body lines."""
    def fake_run(args, **kwargs):
        with open(args[1], encoding='utf-8') as f:
            lines = f.read().split('\n')
        line = lines.index('ret = uv;') + 1
        return _completed(args, 2, f"ERROR: 0:{line}: '=' : {VEC2_TO_VEC3}\n")

    monkeypatch.setattr(glslang.subprocess, 'run', fake_run)
    validator = GlslangValidator(executable='glslangValidator')
    diagnostics = validator.validate("shader_body\n{\nret = uv;\n}")
    assert len(diagnostics) == 1
    assert diagnostics[0].line == 2
    assert diagnostics[0].kinds == (DiagnosticKind.VECTOR_RESIZE,)


def test_validator_removes_temporary_file(monkeypatch):
    """Test that the program file is deleted after the run."""
    paths = []

    def fake_run(args, **kwargs):
        paths.append(args[1])
        assert os.path.exists(args[1])
        return _completed(args, 0, '')

    monkeypatch.setattr(glslang.subprocess, 'run', fake_run)
    GlslangValidator(executable='glslangValidator').validate("ret = vec3(1.0);")
    assert len(paths) == 1
    assert paths[0].endswith('.frag')
    assert not os.path.exists(paths[0])


def test_validator_timeout_parses_partial_output(monkeypatch):
    """Test that a timeout is treated like output with nothing to parse."""
    paths = []

    def fake_run(args, **kwargs):
        paths.append(args[1])
        raise subprocess.TimeoutExpired(args, kwargs['timeout'])

    monkeypatch.setattr(glslang.subprocess, 'run', fake_run)
    validator = GlslangValidator(executable='glslangValidator', timeout=0.5)
    assert validator.validate("ret = vec3(1.0);") == []
    assert not os.path.exists(paths[0])


def test_validator_launch_failure(monkeypatch):
    """Test that an executable that cannot start disables validation."""
    def fake_run(args, **kwargs):
        raise FileNotFoundError(2, 'No such file or directory', args[0])

    monkeypatch.setattr(glslang.subprocess, 'run', fake_run)
    validator = GlslangValidator(executable='/missing/glslangValidator')
    assert validator.validate("ret = vec3(1.0);") is None
    with pytest.raises(ValidatorError):
        validator.run("void main() {}")
