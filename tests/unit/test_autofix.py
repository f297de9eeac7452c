"""
Unit tests for the autofix engine and its handlers.

Test coverage:
- Engine dispatch (kind order, first success wins, skipped locations)
- Vector/scalar conversions and vector resizing
- Operator fixes (comparisons, dimension mismatch, conditions)
- Call and constructor fixes
- Header fixes (returns, global initializers, hoisted declarations)
"""

import pytest
from milkdrop_glsl.autofix import AutofixEngine, FixContext
from milkdrop_glsl.autofix.handlers import calls, conversions, operators
from milkdrop_glsl.validation.diagnostics import Diagnostic, DiagnosticKind, DiagnosticParser

OFFSET = 200

VEC3_TO_FLOAT = ("cannot convert from ' temp mediump 3-component vector of float' "
                 "to ' temp mediump float'")
FLOAT_TO_VEC3 = ("cannot convert from ' temp mediump float' "
                 "to ' temp mediump 3-component vector of float'")
VEC2_TO_VEC3 = ("cannot convert from ' temp mediump 2-component vector of float' "
                "to ' temp mediump 3-component vector of float'")
VEC3_TO_VEC2 = ("cannot convert from ' temp mediump 3-component vector of float' "
                "to ' temp mediump 2-component vector of float'")
FLOAT_TO_INT = "cannot convert from ' const float' to ' temp highp int'"


def comparison(op):
    return (f"wrong operand types: no operation '{op}' exists that takes a left-hand operand of type "
            "' temp mediump 3-component vector of float' and a right operand of type "
            "' const float' (or there is no acceptable conversion)")


def mismatch(left, right):
    return ("wrong operand types: no operation '+' exists that takes a left-hand operand of type "
            f"' temp mediump {left}-component vector of float' and a right operand of type "
            f"' temp mediump {right}-component vector of float' (or there is no acceptable conversion)")


def diagnostic(line, message, token='='):
    """Build a classified diagnostic for a body-relative line."""
    output = f"ERROR: 0:{line + OFFSET}: '{token}' : {message}\n"
    return DiagnosticParser().parse(output, OFFSET)[0]


def body(*lines):
    return 'shader_body\n{\n' + '\n'.join(lines) + '\n}'


def context(*lines, index=0, header=None, token=''):
    """FixContext over body lines for calling handlers directly."""
    return FixContext(Diagnostic(1, token, ''), list(header or []), list(lines), False, index)


@pytest.fixture
def engine():
    """Fixture for AutofixEngine instance."""
    return AutofixEngine()


# ============================================================================
# Engine dispatch
# ============================================================================

def test_first_successful_handler_wins():
    """Test that kinds are tried in order until one handler applies."""
    called = []

    def declines(ctx, match):
        called.append('declines')
        return False

    def applies(ctx, match):
        called.append('applies')
        return ctx.replace('int k = 4;')

    def unreachable(ctx, match):
        called.append('unreachable')
        return True

    engine = AutofixEngine(handlers={
        DiagnosticKind.FLOAT_LITERAL_FOR_INT: declines,
        DiagnosticKind.INT_OPERAND: applies,
        DiagnosticKind.FLOAT_TO_INT: unreachable,
    })
    result = engine.apply_fixes(body('int k = 4.0;'), [diagnostic(2, FLOAT_TO_INT)])
    assert called == ['declines', 'applies']
    assert result.applied_count == 1
    assert result.candidate == body('int k = 4;')


def test_out_of_range_line_is_skipped(engine):
    """Test that diagnostics past the body are ignored."""
    candidate = body('float d = uv * 2.0;')
    result = engine.apply_fixes(candidate, [diagnostic(50, VEC3_TO_FLOAT)])
    assert result.applied_count == 0
    assert result.candidate == candidate


def test_unclassified_diagnostic_is_skipped(engine):
    """Test that diagnostics without kinds change nothing."""
    candidate = body('float d = uv * 2.0;')
    result = engine.apply_fixes(candidate, [diagnostic(2, 'syntax error, unexpected IDENTIFIER')])
    assert result.applied_count == 0
    assert result.candidate == candidate


def test_preamble_line_is_skipped(engine):
    """Test that lines before the header are ignored."""
    candidate = "float a = 1.0;\n" + body('ret = vec3(a);')
    result = engine.apply_fixes(candidate, [diagnostic(-40, VEC3_TO_FLOAT)])
    assert result.applied_count == 0


def test_several_fixes_in_one_pass(engine):
    """Test that every fixable diagnostic counts once."""
    candidate = body('float d = uv * 2.0;', 'ret = d;')
    result = engine.apply_fixes(candidate, [
        diagnostic(2, VEC3_TO_FLOAT),
        diagnostic(3, FLOAT_TO_VEC3),
    ])
    assert result.applied_count == 2
    assert result.candidate == body('float d = (uv * 2.0).x;', 'ret = vec3(d);')


# ============================================================================
# Vector <-> scalar
# ============================================================================

def test_vector_to_float_declaration(engine):
    """Test selecting '.x' for a float declaration."""
    result = engine.apply_fixes(body('float d = uv * 2.0;'), [diagnostic(2, VEC3_TO_FLOAT)])
    assert result.candidate == body('float d = (uv * 2.0).x;')


def test_vector_to_float_is_not_repeated(engine):
    """Test that an already selected value is left alone."""
    candidate = body('float d = (uv * 2.0).x;')
    result = engine.apply_fixes(candidate, [diagnostic(2, VEC3_TO_FLOAT)])
    assert result.applied_count == 0


def test_vector_to_float_compound_assignment(engine):
    """Test compound assignments to a single component."""
    result = engine.apply_fixes(body('  col.x += c * 0.5;'), [diagnostic(2, VEC3_TO_FLOAT)])
    assert result.candidate == body('  col.x += (c * 0.5).x;')


def test_float_to_vector_wraps(engine):
    """Test wrapping a float in a vec3 constructor."""
    result = engine.apply_fixes(body('ret = d;'), [diagnostic(2, FLOAT_TO_VEC3)])
    assert result.candidate == body('ret = vec3(d);')


def test_float_to_vector_undoes_over_truncation(engine):
    """Test removing a '.x' that was added to a three-component value."""
    result = engine.apply_fixes(body('ret = (c.xyz).x;'), [diagnostic(2, FLOAT_TO_VEC3)])
    assert result.candidate == body('ret = (c.xyz);')


def test_vector_resize_pads(engine):
    """Test widening vec2 to vec3 with zeros."""
    result = engine.apply_fixes(body('ret = uv;'), [diagnostic(2, VEC2_TO_VEC3)])
    assert result.candidate == body('ret = vec3(uv, 0.0);')


def test_vector_resize_truncates(engine):
    """Test narrowing vec3 to vec2 with a swizzle."""
    result = engine.apply_fixes(body('vec2 p = c;'), [diagnostic(2, VEC3_TO_VEC2)])
    assert result.candidate == body('vec2 p = (c).xy;')


def test_vector_resize_multi_line_keeps_line_count(engine):
    """Test that an assignment spanning lines is padded in place."""
    result = engine.apply_fixes(body('ret = a +', '  b;'), [diagnostic(2, VEC2_TO_VEC3)])
    assert result.candidate == body('ret = vec3(a +', '  b, 0.0);')


# ============================================================================
# Operators
# ============================================================================

def test_comparison_inside_float_becomes_step(engine):
    """Test float(v > s) -> step(s, v)."""
    result = engine.apply_fixes(body('ret = float(col > 0.5);'), [diagnostic(2, comparison('>'))])
    assert result.candidate == body('ret = step(0.5, col);')


def test_less_than_swaps_step_arguments(engine):
    """Test float(v < s) -> step(v, s)."""
    result = engine.apply_fixes(body('ret = float(col < 0.5);'), [diagnostic(2, comparison('<'))])
    assert result.candidate == body('ret = step(col, 0.5);')


def test_bare_comparison_becomes_step(engine):
    """Test a comparison outside parentheses."""
    result = engine.apply_fixes(body('x = c.xyz >= 0.25;'), [diagnostic(2, comparison('>='))])
    assert result.candidate == body('x = step(0.25, c.xyz);')


def test_dimension_mismatch_swizzles_uniform(engine):
    """Test truncating a vec4 uniform to the smaller operand."""
    result = engine.apply_fixes(body('ret = c + rand_frame;'), [diagnostic(2, mismatch(3, 4), '+')])
    assert result.candidate == body('ret = c + rand_frame.xyz;')


def test_dimension_mismatch_shortens_texture_swizzle(engine):
    """Test shortening a texture read's swizzle."""
    result = engine.apply_fixes(
        body('ret = c.xy + texture(sampler_main, uv).xyz;'), [diagnostic(2, mismatch(2, 3), '+')])
    assert result.candidate == body('ret = c.xy + texture(sampler_main, uv).xy;')


def test_dimension_mismatch_narrows_constructor(engine):
    """Test narrowing a larger constructor."""
    result = engine.apply_fixes(body('vec2 p = uv + vec3(1.0);'), [diagnostic(2, mismatch(2, 3), '+')])
    assert result.candidate == body('vec2 p = uv + vec2(1.0);')


def test_dimension_mismatch_keeps_constructor_arguments(engine):
    """Test that a vec3 feeding a wider constructor is not truncated."""
    candidate = "vec3 col;\n" + body('vec2 p = uv + col + vec4(col, 1.0).xy;')
    result = engine.apply_fixes(candidate, [diagnostic(2, mismatch(2, 3), '+')])
    assert result.candidate == "vec3 col;\n" + body('vec2 p = uv + col.xy + vec4(col, 1.0).xy;')


def test_boolean_expected(engine):
    """Test comparing a numeric condition against zero."""
    result = engine.apply_fixes(body('if (x) ret = c;'), [diagnostic(2, 'boolean expression expected', 'if')])
    assert result.candidate == body('if(x != 0.0) ret = c;')


def test_bool_operation_casts_comparison(engine):
    """Test that comparisons used as numbers are cast to float."""
    message = ("wrong operand types: no operation '*' exists that takes a left-hand operand of type "
               "' temp bool' and a right operand of type ' temp mediump float' "
               "(or there is no acceptable conversion)")
    result = engine.apply_fixes(body('ret *= (x > 0.5) * m;'), [diagnostic(2, message, '*')])
    assert result.candidate == body('ret *= float(x > 0.5) * m;')


def test_extraneous_semicolon():
    """Test dropping a semicolon after a closing brace."""
    ctx = context('};')
    assert operators.fix_extraneous_semicolon(ctx, None)
    assert ctx.line == '}'


def test_scalar_swizzle():
    """Test dropping a selection applied to a scalar."""
    ctx = context('float a = (1.0 - b).x;')
    assert operators.fix_scalar_swizzle(ctx, None)
    assert ctx.line == 'float a = (1.0 - b);'


def test_swizzle_out_of_range():
    """Test lowering a selection to the size of a vec2."""
    ctx = context('vec2 p = uv.xz;', token='xz')
    assert operators.fix_swizzle_out_of_range(ctx, None)
    assert ctx.line == 'vec2 p = uv.xy;'


def test_swizzle_out_of_range_uses_operand_size():
    """Test that only the blamed selection is lowered, to the last vec3 component."""
    ctx = context('vec3 c = vec3(0.5);', 'ret = c.xyz * c.w;', index=1, token='w')
    assert operators.fix_swizzle_out_of_range(ctx, None)
    assert ctx.line == 'ret = c.xyz * c.z;'


def test_swizzle_out_of_range_unknown_operand():
    """Test that selections on values of unknown size are left alone."""
    ctx = context('ret = m.w;', token='w')
    assert not operators.fix_swizzle_out_of_range(ctx, None)
    assert ctx.line == 'ret = m.w;'


def test_handler_declines_unrelated_line():
    """Test that handlers return False when nothing matches."""
    ctx = context('}')
    assert not operators.fix_scalar_swizzle(ctx, None)
    assert not conversions.fix_vector_to_float(ctx, None)
    assert ctx.line == '}'


# ============================================================================
# int / float
# ============================================================================

def test_integer_index(engine):
    """Test casting float subscripts to int."""
    message = "scalar integer expression required"
    result = engine.apply_fixes(body('float v = arr[k];'), [diagnostic(2, message, '[')])
    assert result.candidate == body('float v = arr[int(k)];')


def test_int_operand():
    """Test adding '.0' to integer literals but not to subscripts."""
    ctx = context('float a = b * 2 + c[1];')
    assert conversions.fix_int_operand(ctx, None)
    assert ctx.line == 'float a = b * 2.0 + c[1];'


def test_float_to_int():
    """Test casting a float initializer of an int."""
    ctx = context('int k = floor(x);')
    assert conversions.fix_float_to_int(ctx, None)
    assert ctx.line == 'int k = int(floor(x));'


def test_float_literal_for_int():
    """Test dropping '.0' from literals assigned to ints."""
    ctx = context('int k = 4.0;')
    assert conversions.fix_float_literal_for_int(ctx, None)
    assert ctx.line == 'int k = 4;'


def test_int_float_operation_retypes_declaration():
    """Test retyping the int declaration a line refers to."""
    ctx = context('int n = 3;', 'float a = n * 0.5;', index=1)
    assert conversions.fix_int_float_operation(ctx, None)
    assert ctx.body_lines[0] == 'float n = 3;'


# ============================================================================
# Calls and constructors
# ============================================================================

def test_overload_broadcasts_scalar():
    """Test broadcasting a scalar argument of a generic built-in."""
    ctx = context('ret = pow(col, 2.0);')
    assert calls.fix_no_matching_overload(ctx, None)
    assert ctx.line == 'ret = pow(col, vec3(2.0));'


def test_overload_texture_coordinate():
    """Test wrapping a scalar texture coordinate."""
    ctx = context('ret = texture(sampler_noise_lq, t).xyz;')
    assert calls.fix_no_matching_overload(ctx, None)
    assert ctx.line == 'ret = texture(sampler_noise_lq, vec2(t)).xyz;'


def test_constructor_too_few(engine):
    """Test padding a short constructor."""
    message = "not enough data provided for construction"
    result = engine.apply_fixes(body('ret = vec3(p.xy);'), [diagnostic(2, message, 'constructor')])
    assert result.candidate == body('ret = vec3(p.xy, 0.0);')


def test_too_many_arguments(engine):
    """Test dropping extra constructor arguments."""
    message = "too many arguments"
    result = engine.apply_fixes(body('vec2 p = vec2(a, b, c);'), [diagnostic(2, message, 'constructor')])
    assert result.candidate == body('vec2 p = vec2(a, b);')


# ============================================================================
# Header fixes
# ============================================================================

def test_missing_return(engine):
    """Test inserting a neutral return before the closing brace."""
    candidate = "float f(float x) {\n  x *= 2.0;\n}\n" + body('ret = vec3(f(1.0));')
    result = engine.apply_fixes(candidate, [diagnostic(-14, 'function does not return a value: f', 'f')])
    assert result.applied_count == 1
    assert result.candidate == "float f(float x) {\n  x *= 2.0;\n return 0; }\n" + body('ret = vec3(f(1.0));')


def test_non_constant_initializer_is_hoisted(engine):
    """Test moving a global initializer into the body."""
    candidate = "vec2 p = uv * 2.0;\n" + body('ret = vec3(p, 0.0);')
    message = "non-constant global initializer (needs GL_EXT_shader_non_constant_global_initializers)"
    result = engine.apply_fixes(candidate, [diagnostic(-14, message)])
    assert result.candidate == "vec2 p;\n" + body('p = uv * 2.0;', 'ret = vec3(p, 0.0);')


def test_body_fix_after_hoisting_in_same_pass(engine):
    """Test that body lines still map correctly after an initializer is hoisted."""
    candidate = "vec3 cam = vec3(_qa.x, 1.0, 0.0) * time;\n" + body('float d = uv * 2.0;', 'ret = cam;')
    message = "non-constant global initializer (needs GL_EXT_shader_non_constant_global_initializers)"
    result = engine.apply_fixes(candidate, [diagnostic(-14, message), diagnostic(2, VEC3_TO_FLOAT)])
    assert result.applied_count == 2
    assert result.candidate == "vec3 cam;\n" + body(
        'cam = vec3(_qa.x, 1.0, 0.0) * time;',
        'float d = (uv * 2.0).x;',
        'ret = cam;',
    )


def test_undeclared_identifier_becomes_global(engine):
    """Test hoisting a function local that the body uses."""
    header = "float f(float x) {\n  float k = x * 2.0;\n  return k;\n}\n"
    result = engine.apply_fixes(header + body('ret = vec3(k);'),
                                [diagnostic(2, 'undeclared identifier', 'k')])
    expected_header = "float k;\nfloat f(float x) {\n  k = x * 2.0;\n  return k;\n}\n"
    assert result.candidate == expected_header + body('ret = vec3(k);')


def test_undeclared_parameter_declared_once(engine):
    """Test that every use of the same undeclared name adds one global."""
    header = "float f(float t) {\n  return t * 2.0;\n}\n"
    candidate = header + body('ret = vec3(t);', 'ret += t;')
    result = engine.apply_fixes(candidate, [
        diagnostic(2, 'undeclared identifier', 't'),
        diagnostic(3, 'undeclared identifier', 't'),
    ])
    assert result.applied_count == 1
    assert result.candidate == "float t;\n" + header + body('ret = vec3(t);', 'ret += t;')


def test_return_type_mismatch(engine):
    """Test fitting a return value to the function's return type."""
    header = "vec2 g(vec3 c) {\n  return c;\n}\n"
    message = "cannot convert return value to function return type"
    result = engine.apply_fixes(header + body('ret = vec3(g(col), 0.0);'),
                                [diagnostic(-15, message, 'return')])
    assert result.candidate == "vec2 g(vec3 c) {\n  return (c).xy;\n}\n" + body('ret = vec3(g(col), 0.0);')