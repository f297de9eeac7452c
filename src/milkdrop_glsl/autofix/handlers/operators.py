"""
Handlers for operator misuse: mixed vector sizes, vector comparisons,
numeric conditions and component selections the target does not accept.
"""

import re
from typing import List, Optional

from ...analysis.source_text import find_matching_paren, is_inside_vec_constructor, replace_func_call
from ...analysis.type_inference import TypeSymbol, collect_declarations, infer_expression_type, swizzle_for
from ...runtime.preamble import Q_PACKS
from ..context import COMPARISON, CONTROL_KEYWORD_BEFORE, FixContext


# ============================================================================
# Vector dimension mismatch
# ============================================================================

def fix_vector_dimension_mismatch(ctx: FixContext, match: re.Match) -> bool:
    """
    vecM op vecN with M != N: truncate the larger operand.

    The dialect truncates implicitly. Strategies are tried in a fixed
    order and the first one that changes the line wins:
    1. swizzle bare vec4 uniform references
    2. shorten texture() swizzles
    3. narrow vecM() constructors (lines without texture reads)
    4. swizzle lum() results
    5. widen '.xy' on vec4 uniforms to '.xyz' (vec2 vs vec3 only)
    6. swizzle vec3 variables declared in the header
    7. swizzle vec3 variables declared earlier in the same section
    8. shorten the first swizzle of the larger size
    """
    sizes = int(match.group(2)), int(match.group(3))
    target_size, larger_size = min(sizes), max(sizes)
    if target_size == larger_size:
        return False

    strategies = (
        _swizzle_uniforms,
        _shorten_texture_swizzles,
        _narrow_constructors,
        _swizzle_lum,
        _widen_uniform_swizzles,
        _swizzle_header_vec3,
        _swizzle_local_vec3,
        _shorten_swizzle,
    )
    for strategy in strategies:
        if ctx.replace(strategy(ctx, ctx.line, target_size, larger_size)):
            return True
    return False


def _swizzle_uniforms(ctx, line, target_size, larger_size) -> Optional[str]:
    swizzle = swizzle_for(target_size)
    for name in ctx.tables.truncatable_vec4_uniforms:
        pattern = re.compile(r'\b' + name + r'\b(?!\s*[.\[])')
        if pattern.search(line):
            return pattern.sub(name + swizzle, line)
    return None


def _shorten_texture_swizzles(ctx, line, target_size, larger_size) -> Optional[str]:
    if re.search(r'\blum\s*\(', line):
        return None
    swizzle = swizzle_for(target_size)
    oversized = re.compile(re.escape(swizzle_for(larger_size)) + r'(?!\w)')
    result = []
    pos = 0
    for m in re.finditer(r'\btexture\s*\(', line):
        if m.start() < pos:
            continue
        close = find_matching_paren(line, m.end())
        if close < 0:
            continue
        if oversized.match(line, close + 1):
            result.append(line[pos:close + 1] + swizzle)
            pos = close + 1 + len(swizzle_for(larger_size))
    result.append(line[pos:])
    return ''.join(result)


def _narrow_constructors(ctx, line, target_size, larger_size) -> Optional[str]:
    constructor = re.compile(r'\bvec' + str(larger_size) + r'\s*\(')
    if not constructor.search(line) or re.search(r'\btexture\s*\(', line):
        return None
    return constructor.sub(f'vec{target_size}(', line)


def _swizzle_lum(ctx, line, target_size, larger_size) -> Optional[str]:
    swizzle = swizzle_for(target_size)
    lum_call = re.compile(r'\blum\s*\(')
    result = line
    pos = 0
    while True:
        m = lum_call.search(result, pos)
        if not m:
            break
        close = find_matching_paren(result, m.end())
        if close < 0:
            break
        pos = close + 1
        if not re.match(r'\s*\.', result[close + 1:]):
            result = result[:close + 1] + swizzle + result[close + 1:]
            pos += len(swizzle)
    return result


def _widen_uniform_swizzles(ctx, line, target_size, larger_size) -> Optional[str]:
    if (target_size, larger_size) != (2, 3):
        return None
    for name in tuple(ctx.tables.narrowed_vec4_uniforms) + Q_PACKS:
        pattern = re.compile(r'\b' + name + r'\.xy\b')
        if pattern.search(line):
            return pattern.sub(name + '.xyz', line)
    return None


def _swizzle_names(line: str, names: List[str], swizzle: str, larger_size: int) -> Optional[str]:
    # References feeding a wider constructor, e.g. vec4(col, 1.0), keep all components
    def select(m):
        if is_inside_vec_constructor(line, m.start(), larger_size):
            return m.group(0)
        return m.group(0) + swizzle

    for name in names:
        if re.search(r'\bvec[234]\s+' + name + r'\b', line):
            continue
        pattern = re.compile(r'\b' + name + r'\b(?!\s*[.\[(])')
        new_line = pattern.sub(select, line)
        if new_line != line:
            return new_line
    return None


def _swizzle_header_vec3(ctx, line, target_size, larger_size) -> Optional[str]:
    if target_size > 2:
        return None
    names = []
    # Declaration lists may span lines: vec3 water, noise,\n   sun;
    for m in re.finditer(r'\bvec3\s+([\s\S]+?)\s*;', '\n'.join(ctx.header_lines)):
        if '(' in m.group(1):
            continue
        for part in m.group(1).split(','):
            name = re.sub(r'\s*=[\s\S]*', '', part).replace('\n', '').strip()
            if re.fullmatch(r'[a-zA-Z_]\w*', name) and name not in names:
                names.append(name)
    return _swizzle_names(line, names, swizzle_for(target_size), larger_size)


def _swizzle_local_vec3(ctx, line, target_size, larger_size) -> Optional[str]:
    if target_size > 2:
        return None
    names = []
    for candidate in ctx.lines[:ctx.index + 1]:
        for name in re.findall(r'\bvec3\s+(\w+)', candidate):
            if name != 'ret' and name not in names:
                names.append(name)
    return _swizzle_names(line, names, swizzle_for(target_size), larger_size)


def _shorten_swizzle(ctx, line, target_size, larger_size) -> Optional[str]:
    for m in re.finditer(r'\.([xyzwrgba]+)\b', line):
        if len(m.group(1)) == larger_size:
            return line[:m.start(1)] + m.group(1)[:target_size] + line[m.end(1):]
    return None


# ============================================================================
# Comparisons and conditions
# ============================================================================

def fix_vector_scalar_comparison(ctx: FixContext, match: re.Match) -> bool:
    """
    vecN compared with a float: use step(), the component-wise threshold.

    step(edge, x) is 1.0 where x >= edge, so `v > 0.5` becomes
    step(0.5, v) and `v < 0.5` becomes step(v, 0.5).
    """
    op = match.group(1)
    upward = op in ('>=', '>')
    op_pattern = re.escape(op) + r'(?!=)'
    line = ctx.line

    def to_step(lhs: str, rhs: str) -> str:
        lhs, rhs = lhs.strip(), rhs.strip()
        return f'step({rhs}, {lhs})' if upward else f'step({lhs}, {rhs})'

    def unwrap_float(inner: str) -> str:
        m = re.match(r'(.+?)\s*' + op_pattern + r'\s*(.+)', inner)
        if m:
            return to_step(m.group(1), m.group(2))
        return f'float({inner})'

    if ctx.replace(replace_func_call(line, 'float', unwrap_float)):
        return True

    group = re.compile(r'\(([^()]+?)\s*' + op_pattern + r'\s*([^()]+?)\)')

    def replace_group(m):
        if CONTROL_KEYWORD_BEFORE.search(line[:m.start()]):
            return m.group(0)
        return to_step(m.group(1), m.group(2))

    if ctx.replace(group.sub(replace_group, line)):
        return True

    bare = re.compile(
        r'(\b[a-zA-Z_]\w*(?:\s*\([^)]*\))?(?:\.[xyzwrgba]+)?)\s*' + op_pattern + r'\s*([\d.]+)'
    )
    return ctx.replace(bare.sub(lambda m: to_step(m.group(1), m.group(2)), line))


def fix_boolean_expected(ctx: FixContext, match: re.Match) -> bool:
    """Numeric condition: if (x) -> if(x != 0.0)."""
    def to_bool(m):
        keyword, expr = m.group(1), m.group(2).strip()
        if COMPARISON.search(expr):
            return m.group(0)
        return f'{keyword}({expr} != 0.0)'

    return ctx.replace(re.sub(r'\b(if|while)\s*\(([^()]+)\)', to_bool, ctx.line))


# ============================================================================
# Component selection and punctuation
# ============================================================================

def fix_swizzle_out_of_range(ctx: FixContext, match: re.Match) -> bool:
    """
    A swizzle reaches past the value's size, e.g. '.w' on a vec3.

    The selection the validator blamed is looked up on each operand whose
    type is known from earlier declarations, entry-point locals or uniforms;
    components past the operand's size are pulled down to its last one.
    Operands of unknown size are left alone.
    """
    token = ctx.diagnostic.token
    if not re.fullmatch(r'[xyzw]{1,4}|[rgba]{1,4}', token or ''):
        return False

    declared = {
        name: TypeSymbol.from_type_name(type_name)
        for name, type_name in ctx.tables.entry_point_locals.items()
    }
    if ctx.in_header:
        preceding = ctx.header_lines[:ctx.index + 1]
    else:
        preceding = ctx.header_lines + ctx.body_lines[:ctx.index + 1]
    collect_declarations('\n'.join(preceding), declared)

    line = ctx.line
    for m in re.finditer(r'(?<![\w.])([a-zA-Z_]\w*)\.(' + token + r')\b', line):
        symbol = infer_expression_type(m.group(1), declared, ctx.tables)
        if symbol is None or not symbol.is_vector:
            continue
        lowered = _lower_components(token, symbol.rows)
        if lowered != token:
            return ctx.replace(line[:m.start(2)] + lowered + line[m.end(2):])
    return False


def _lower_components(swizzle: str, arity: int) -> str:
    components = 'xyzw' if swizzle[0] in 'xyzw' else 'rgba'
    return ''.join(components[min(components.index(c), arity - 1)] for c in swizzle)


def fix_extraneous_semicolon(ctx: FixContext, match: re.Match) -> bool:
    return ctx.replace(re.sub(r'\}\s*;', '}', ctx.line, count=1))


def fix_scalar_swizzle(ctx: FixContext, match: re.Match) -> bool:
    """(1.0 - x).x on a float: drop the selection."""
    return ctx.replace(re.sub(r'(\))\.[xyzwrgba]{1,4}\b', r'\1', ctx.line))
