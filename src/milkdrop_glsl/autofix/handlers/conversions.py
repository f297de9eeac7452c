"""
Handlers for implicit conversions the dialect allows and the target rejects.

Covers vector/scalar narrowing and widening at assignment boundaries,
vector resizing, int/float/bool interop and float array subscripts.
"""

import re

from ...analysis.source_text import paren_balance, replace_func_call, statement_end
from ...analysis.type_inference import swizzle_for
from ..context import (
    ASSIGNMENT,
    COMPOUND_ASSIGNMENT,
    CONTROL_KEYWORD_BEFORE,
    FLOAT_DECLARATION,
    SWIZZLED_ASSIGNMENT,
    VECTOR_DECLARATION,
    FixContext,
    is_wrapped,
    selects,
)

_MID_COMPOUND = re.compile(r'(\b[a-zA-Z_]\w*(?:\.[xyzwrgba]+)?)\s*([+\-*/])=\s*(.*?)\s*;')
_MID_ASSIGNMENT = re.compile(r'(\b[a-zA-Z_]\w*(?:\.[xyzwrgba]+)?)\s*=\s*(.*?)\s*;')
_DECLARATION_BEFORE = re.compile(r'\b(?:float|int|vec[234]|mat[234])\s+$')
_OVER_TRUNCATED = re.compile(r'^(\s*)(.*?)\s*=\s*(.*)\.([xyzw])\s*;(\s*(?://.*)?)?$')
_INT_DECLARATION = re.compile(r'\bint\s+([a-zA-Z_]\w*)')
_PARENTHESIZED_COMPARISON = re.compile(r'(?<!\w)\(([^()]*(?:>=|<=|!=|==|>(?!=)|<(?!=))[^()]*)\)')


# ============================================================================
# Vector <-> scalar
# ============================================================================

def fix_vector_to_float(ctx: FixContext, match: re.Match) -> bool:
    """
    A vector value lands in a float: keep the float, select '.x' of the value.

    float d = v * 2.0;  ->  float d = (v * 2.0).x;
    """
    line = ctx.line

    m = FLOAT_DECLARATION.match(line)
    if m:
        indent, name, rhs, trail = m.groups()
        if selects(rhs, '.x'):
            return False
        return ctx.replace(f'{indent}float {name} = ({rhs}).x;{trail or ""}')

    m = SWIZZLED_ASSIGNMENT.match(line)
    if m:
        indent, name, rhs, trail = m.groups()
        if selects(rhs, '.x'):
            return False
        return ctx.replace(f'{indent}{name} = ({rhs}).x;{trail or ""}')

    m = COMPOUND_ASSIGNMENT.match(line)
    if m:
        indent, name, op, rhs, trail = m.groups()
        if selects(rhs, '.x'):
            return False
        return ctx.replace(f'{indent}{name} {op}= ({rhs}).x;{trail or ""}')

    # Statements sharing a line with others; anything inside parentheses
    # belongs to a for-loop header or a call and is left alone.
    for m in _MID_COMPOUND.finditer(line):
        name, op, rhs = m.groups()
        if paren_balance(line[:m.start()]) > 0 or selects(rhs, '.x'):
            continue
        return ctx.replace(line[:m.start()] + f'{name} {op}= ({rhs}).x;' + line[m.end():])

    for m in _MID_ASSIGNMENT.finditer(line):
        name, rhs = m.groups()
        before = line[:m.start()]
        if paren_balance(before) > 0 or rhs.startswith('='):
            continue
        if _DECLARATION_BEFORE.search(before) or selects(rhs, '.x'):
            continue
        return ctx.replace(before + f'{name} = ({rhs}).x;' + line[m.end():])
    return False


def fix_float_to_vector(ctx: FixContext, match: re.Match) -> bool:
    """
    A float lands in a vecN.

    Undo an over-eager '.x' when the inner value already has N components,
    otherwise wrap the value in a vecN() constructor.
    """
    size = int(match.group(1))
    vec_type = f'vec{size}'
    line = ctx.line

    m = _OVER_TRUNCATED.match(line)
    if m:
        indent, lhs, rhs_base, _, trail = m.groups()
        inner = re.search(r'\.(xy|xyz|xyzw)\s*\)\s*$', rhs_base)
        if inner and len(inner.group(1)) == size:
            return ctx.replace(f'{indent}{lhs} = {rhs_base};{trail or ""}')

    m = re.match(r'^(\s*)([a-zA-Z_]\w*(?:\.[xyzw]+)?)\s*=\s*(.*?)\s*;(\s*(?://.*)?)?$', line)
    if m:
        indent, name, rhs, trail = m.groups()
        if is_wrapped(rhs, vec_type):
            return False
        return ctx.replace(f'{indent}{name} = {vec_type}({rhs});{trail or ""}')

    m = VECTOR_DECLARATION.match(line)
    if m:
        indent, type_name, name, rhs, trail = m.groups()
        if is_wrapped(rhs, type_name):
            return False
        return ctx.replace(f'{indent}{type_name} {name} = {type_name}({rhs});{trail or ""}')

    literal_declaration = re.compile(
        r'(' + vec_type + r'\s+[a-zA-Z_]\w*\s*=\s*)([-+]?\d*\.?\d+(?:[eE][+-]?\d+)?)(\s*;)'
    )
    new_line = literal_declaration.sub(lambda m: f'{m.group(1)}{vec_type}({m.group(2)}){m.group(3)}', line)
    if ctx.replace(new_line):
        return True

    for name in _known_vectors(ctx, size):
        assignment = re.compile(r'(\b' + name + r'\s*=(?!=)\s*)([^;]+)(\s*;)')
        m = assignment.search(line)
        if m and not re.search(r'\b' + vec_type + r'\s*\(', m.group(2)):
            replacement = f'{m.group(1)}{vec_type}({m.group(2)}){m.group(3)}'
            return ctx.replace(line[:m.start()] + replacement + line[m.end():])
    return False


def _known_vectors(ctx: FixContext, size: int):
    """vecN names declared on the line, else on the nearest earlier line declaring any."""
    declaration = re.compile(r'\bvec' + str(size) + r'\s+([a-zA-Z_]\w*(?:\s*,\s*[a-zA-Z_]\w*)*)')
    for j in range(ctx.index, -1, -1):
        names = []
        for m in declaration.finditer(ctx.lines[j]):
            for part in m.group(1).split(','):
                part = part.strip()
                if re.fullmatch(r'[a-zA-Z_]\w*', part) and part not in names:
                    names.append(part)
        if names:
            return names
    return []


def fix_vector_resize(ctx: FixContext, match: re.Match) -> bool:
    """
    vecM assigned to vecN.

    Widening pads with zeros: `ret = uv;` -> `ret = vec3(uv, 0.0);`
    Narrowing selects: `vec2 p = c;` -> `vec2 p = (c).xy;`
    """
    source_size, target_size = int(match.group(1)), int(match.group(2))
    if source_size < target_size:
        return _pad_vector(ctx, target_size, target_size - source_size)
    if source_size > target_size:
        return _truncate_vector(ctx, source_size, target_size)
    return False


def _pad_vector(ctx: FixContext, target_size: int, missing: int) -> bool:
    vec_type = f'vec{target_size}'
    padding = ', '.join(['0.0'] * missing)
    line = ctx.line

    m = ASSIGNMENT.match(line)
    if m:
        indent, name, rhs, trail = m.groups()
        if is_wrapped(rhs, vec_type):
            return False
        return ctx.replace(f'{indent}{name} = {vec_type}({rhs}, {padding});{trail or ""}')

    m = re.match(r'^(\s*)([a-zA-Z_]\w*)\s*([+\-*/])=\s*(.*?)\s*;(\s*(?://.*)?)?$', line)
    if m:
        indent, name, op, rhs, trail = m.groups()
        if is_wrapped(rhs, vec_type):
            return False
        return ctx.replace(f'{indent}{name} {op}= {vec_type}({rhs}, {padding});{trail or ""}')

    # Assignment continued on following lines; rewritten in place so the
    # number of lines stays the same.
    m = re.match(r'^(\s*)([a-zA-Z_]\w*)\s*=\s*(.*)$', line)
    if not m or line.rstrip().endswith(';'):
        return False
    indent, name, rhs = m.groups()
    lines = ctx.lines
    joined = rhs
    end = None
    for k in range(ctx.index + 1, len(lines)):
        joined += '\n' + lines[k]
        if ';' in lines[k]:
            end = k
            break
    if end is None:
        return False
    semicolon = joined.rfind(';')
    wrapped = f'{indent}{name} = {vec_type}({joined[:semicolon].strip()}, {padding});{joined[semicolon + 1:]}'
    wrapped_lines = wrapped.split('\n')
    for k in range(ctx.index, end + 1):
        offset = k - ctx.index
        lines[k] = wrapped_lines[offset] if offset < len(wrapped_lines) else ''
    return True


def _truncate_vector(ctx: FixContext, source_size: int, target_size: int) -> bool:
    swizzle = swizzle_for(target_size)
    line = ctx.line

    m = VECTOR_DECLARATION.match(line)
    if m:
        indent, type_name, name, rhs, trail = m.groups()
        if rhs.endswith(swizzle):
            return False
        return ctx.replace(f'{indent}{type_name} {name} = ({rhs}){swizzle};{trail or ""}')

    m = ASSIGNMENT.match(line)
    if m:
        indent, name, rhs, trail = m.groups()
        if rhs.endswith(swizzle):
            return False
        return ctx.replace(f'{indent}{name} = ({rhs}){swizzle};{trail or ""}')

    def narrow(m):
        rhs = m.group(2).strip()
        if re.search(re.escape(swizzle) + r'\s*$', rhs):
            return m.group(0)
        return f'{m.group(1)}({rhs}){swizzle}{m.group(3)}'

    mid_declaration = re.compile(r'(vec' + str(target_size) + r'\s+[a-zA-Z_]\w*\s*=\s*)([^;]+?)(\s*;)')
    if ctx.replace(mid_declaration.sub(narrow, line)):
        return True

    oversized = re.compile(re.escape(swizzle_for(source_size)) + r'\b')
    return ctx.replace(oversized.sub(swizzle, line))


# ============================================================================
# int / float / bool
# ============================================================================

def fix_float_literal_for_int(ctx: FixContext, match: re.Match) -> bool:
    """An int target received a float literal the rewriter produced: 4.0 -> 4."""
    return ctx.replace(re.sub(r'(\d+)\.0(?!\d)', r'\1', ctx.line))


def fix_int_float_operation(ctx: FixContext, match: re.Match) -> bool:
    """
    int and float mixed in one operation.

    Tried in order: retype an int declaration the line refers to, cast
    int() calls back to float, compare against an int literal instead.
    """
    if _retype_int_declaration(ctx) or _cast_int_calls(ctx):
        return True
    return ctx.replace(re.sub(r'(\w+)\s*(<=|>=|<|>|==|!=)\s*(\d+)\.0\b', r'\1 \2 \3', ctx.line))


def fix_int_to_float(ctx: FixContext, match: re.Match) -> bool:
    """An int value assigned to a float."""
    return _retype_int_declaration(ctx) or _cast_int_calls(ctx)


def _retype_int_declaration(ctx: FixContext) -> bool:
    lines = ctx.lines
    line = ctx.line
    for j, candidate in enumerate(lines):
        m = _INT_DECLARATION.search(candidate)
        if m and re.search(r'\b' + m.group(1) + r'\b', line):
            lines[j] = re.sub(r'\bint\b', 'float', candidate, count=1)
            return True
    return False


def _cast_int_calls(ctx: FixContext) -> bool:
    line = ctx.line
    calls = len(re.findall(r'\bint\s*\(', line))
    if calls == 0 or calls == len(re.findall(r'\bfloat\s*\(\s*int\s*\(', line)):
        return False
    return ctx.replace(replace_func_call(line, 'int', lambda inner: f'float(int({inner}))'))


def fix_bool_operation(ctx: FixContext, match: re.Match) -> bool:
    """
    A comparison result used as a number.

    (x >= 0.5) * mask  ->  float(x >= 0.5) * mask
    """
    line = ctx.line

    def cast(m):
        if CONTROL_KEYWORD_BEFORE.search(line[:m.start()]):
            return m.group(0)
        return f'float({m.group(1)})'

    return ctx.replace(_PARENTHESIZED_COMPARISON.sub(cast, line))


def fix_int_operand(ctx: FixContext, match: re.Match) -> bool:
    """Integer literals left on a float line get '.0'."""
    new_line = re.sub(r'(?<![\d.])\b(\d+)\b(?![\d.xyzwfu\]])', r'\1.0', ctx.line)
    return ctx.replace(new_line)


def fix_float_to_int(ctx: FixContext, match: re.Match) -> bool:
    """
    A float value initializes an int or ivecN: add the explicit cast.

    ivec2 k = mod(p, 4.0);  ->  ivec2 k = ivec2(mod(p, 4.0));
    """
    line = ctx.line
    m = re.search(r'\b(ivec[234]|int)\s+(\w+)\s*=\s*', line)
    if not m:
        return False
    cast_type = m.group(1)
    rest = line[m.end():]
    end = statement_end(rest)
    if end < 0:
        end = len(rest)
    expr = rest[:end].strip()
    if is_wrapped(expr, cast_type):
        return False
    return ctx.replace(line[:m.end()] + f'{cast_type}({expr})' + rest[end:])


def fix_integer_index(ctx: FixContext, match: re.Match) -> bool:
    """Float array subscripts: arr[k] -> arr[int(k)]."""
    def cast(m):
        inner = m.group(1).strip()
        if re.match(r'int\s*\(', inner) or re.fullmatch(r'\d+', inner):
            return m.group(0)
        return f'[int({inner})]'

    return ctx.replace(re.sub(r'\[([^\[\]]+)\]', cast, ctx.line))
