"""
Call-site rewrites for dialect built-ins without a 1:1 target equivalent.

Each function takes shader text and returns shader text. They are applied
by HLSLRewriter in a fixed order; every rewrite is a no-op on its own output.
"""

import re

from ..analysis.source_text import find_matching_paren, replace_func_call, split_top_level_commas

# GetBlurN(uv) reads the blur texture and undoes the runtime's range packing.
BLUR_LEVELS = (1, 2, 3)

_HELPER_ALIAS = re.compile(r'#define\s+(\w+)\s+(GetPixel|GetBlur[123])\b')


def convert_mod_operator(src: str) -> str:
    """
    Convert `a % b` into `mod(a, b)`.

    The target only accepts '%' on integers, and the dialect's numbers all
    become floats. Operands are found by scanning outwards from the operator:
    a parenthesised group (with any function or cast name in front of it),
    or an identifier/number run including member access.
    """
    result = []
    i = 0
    while i < len(src):
        ch = src[i]
        if ch != '%' or i == 0:
            result.append(ch)
            i += 1
            continue

        emitted = ''.join(result)
        lhs_end = len(emitted) - 1
        while lhs_end >= 0 and emitted[lhs_end].isspace():
            lhs_end -= 1
        if lhs_end < 0 or '//' in emitted[emitted.rfind('\n') + 1:]:
            result.append(ch)
            i += 1
            continue

        if emitted[lhs_end] == ')':
            depth = 1
            j = lhs_end - 1
            while j >= 0 and depth > 0:
                if emitted[j] == ')':
                    depth += 1
                elif emitted[j] == '(':
                    depth -= 1
                j -= 1
            lhs_start = j + 1
            while lhs_start > 0 and _is_word(emitted[lhs_start - 1]):
                lhs_start -= 1
        elif _is_operand_char(emitted[lhs_end]):
            lhs_start = lhs_end
            while lhs_start > 0 and _is_operand_char(emitted[lhs_start - 1]):
                lhs_start -= 1
        else:
            result.append(ch)
            i += 1
            continue

        rhs_start = i + 1
        while rhs_start < len(src) and src[rhs_start].isspace():
            rhs_start += 1
        if rhs_start < len(src) and src[rhs_start] == '(':
            close = find_matching_paren(src, rhs_start + 1)
            rhs_end = len(src) if close < 0 else close + 1
        elif rhs_start < len(src) and _is_operand_char(src[rhs_start]):
            rhs_end = rhs_start
            while rhs_end < len(src) and _is_operand_char(src[rhs_end]):
                rhs_end += 1
        else:
            result.append(ch)
            i += 1
            continue

        lhs = emitted[lhs_start:lhs_end + 1]
        rhs = src[rhs_start:rhs_end]
        result = [emitted[:lhs_start], f'mod({lhs}, {rhs})']
        i = rhs_end
    return ''.join(result)


def _is_word(ch: str) -> bool:
    return ch.isalnum() or ch == '_'


def _is_operand_char(ch: str) -> bool:
    return _is_word(ch) or ch == '.'


def expand_saturate(src: str) -> str:
    """saturate(x) -> clamp(x, 0.0, 1.0), repeated until nested calls are gone."""
    previous = None
    while previous != src:
        previous = src
        src = replace_func_call(src, 'saturate', lambda inner: f'clamp({inner}, 0.0, 1.0)')
    return src


def swap_mul_operands(src: str) -> str:
    """
    mul(A, B) -> (B * A).

    The dialect multiplies row-vector-first; the target's operator* is
    column-major, so the operands trade places. Calls that do not have
    exactly two arguments are left as they are.
    """
    def replace(inner: str) -> str:
        args = split_top_level_commas(inner)
        if len(args) == 2:
            return f'({args[1]} * {args[0]})'
        return f'mul({inner})'

    return replace_func_call(src, 'mul', replace)


def expand_helper_aliases(src: str) -> str:
    """
    Resolve `#define ALIAS GetPixel` style aliases.

    The define line is commented out (the helper it names does not exist in
    the target) and every `ALIAS(` call is renamed to the helper.
    """
    for match in list(_HELPER_ALIAS.finditer(src)):
        alias, target = match.group(1), match.group(2)
        directive = match.group(0)
        src = re.sub(r'(?<!// )' + re.escape(directive), '// ' + directive, src, count=1)
        src = re.sub(r'\b' + re.escape(alias) + r'\s*\(', target + '(', src)
    return src


def expand_texture_helpers(src: str) -> str:
    """
    Inline GetBlur1/2/3 and GetPixel as explicit texture reads.

    GetBlurN(uv) -> ((texture(sampler_blurN, uv).xyz * scaleN) + biasN)
    GetPixel(uv) -> texture(sampler_main, uv).xyz
    """
    for level in BLUR_LEVELS:
        src = replace_func_call(
            src, f'GetBlur{level}',
            lambda uv, n=level: f'((texture(sampler_blur{n}, {uv}).xyz * scale{n}) + bias{n})',
        )
    return replace_func_call(src, 'GetPixel', lambda uv: f'texture(sampler_main, {uv}).xyz')


def add_texture_swizzle(src: str) -> str:
    """
    Append '.xyz' to texture() reads that have no component selection.

    The dialect narrows a 4-component fetch implicitly when it is used as
    a 3-component value; the target does not.
    """
    pattern = re.compile(r'\btexture\s*\(')
    result = []
    pos = 0
    while pos < len(src):
        match = pattern.search(src, pos)
        if not match:
            break
        paren_close = find_matching_paren(src, match.end())
        if paren_close < 0:
            break
        result.append(src[pos:paren_close + 1])
        if not re.match(r'\s*\.', src[paren_close + 1:]):
            result.append('.xyz')
        pos = paren_close + 1
    result.append(src[pos:])
    return ''.join(result)
