"""
Handlers for calls and constructors whose arguments do not fit.

The dialect broadcasts scalars into vectors and pads or truncates
constructor arguments silently; the target resolves overloads exactly.
"""

import re
from typing import Dict, List, NamedTuple

from ...analysis.source_text import find_matching_paren, replace_func_call, split_top_level_commas
from ...analysis.type_inference import arg_vector_size, is_likely_scalar, scalar_score
from ..context import FixContext

# Built-ins whose overloads take all-float or all-vecN arguments.
GENERIC_BUILTINS = ('pow', 'min', 'max', 'clamp', 'step', 'smoothstep', 'mix', 'dot')

_SIGNATURE = re.compile(r'\b(float|vec[234]|int|bool|void)\s+([a-zA-Z_]\w*)\s*\(([^)]*)\)')
_PARAMETER_QUALIFIERS = ('in', 'out', 'inout', 'const', 'highp', 'mediump', 'lowp')
_SCALAR_BROADCAST = re.compile(r'^vec[234]\s*\(\s*([^,()]+)\s*\)$')


class FunctionSignature(NamedTuple):
    return_type: str
    parameter_types: List[str]


# ============================================================================
# No matching overload
# ============================================================================

def fix_no_matching_overload(ctx: FixContext, match: re.Match) -> bool:
    """
    Coerce call arguments until an overload fits.

    - texture(s, x)       -> texture(s, vec2(x)); texture(s, p3) -> texture(s, (p3).xy)
    - mod(int(a), b)      -> mod(float(int(a)), b)
    - pow(col, 2.0)       -> pow(col, vec3(2.0))  (and min, max, clamp, mix, ...)
    - user functions      -> arguments wrapped, selected or padded to match
                             the header's parameter types
    """
    line = ctx.line
    new_line = replace_func_call(line, 'texture', _coerce_texture_coordinate)
    new_line = replace_func_call(new_line, 'mod', _float_mod_arguments)
    for name in GENERIC_BUILTINS:
        new_line = replace_func_call(new_line, name, _generic_coercion(name))

    if new_line == line and ctx.header_lines:
        new_line = _coerce_user_call(new_line, parse_signatures('\n'.join(ctx.header_lines)))
    return ctx.replace(new_line)


def _coerce_texture_coordinate(inner: str) -> str:
    args = split_top_level_commas(inner, strip=False)
    if len(args) >= 2 and 'sampler' in args[0]:
        coord = args[1].strip()
        if arg_vector_size(coord) >= 3:
            args[1] = f' ({coord}).xy'
            return f'texture({",".join(args)})'
        scalar = (
            not re.search(r'\bvec[234]', coord)
            and not re.search(r'\.(?:[xyzw]{2,}|[rgba]{2,})\b', coord)
            and not re.search(r'\btexture\s*\(', coord)
            and is_likely_scalar(coord)
        )
        if scalar:
            args[1] = f' vec2({coord})'
            return f'texture({",".join(args)})'
    return f'texture({inner})'


def _float_mod_arguments(inner: str) -> str:
    args = split_top_level_commas(inner, strip=False)
    if len(args) == 2:
        coerced = [f' float({a.strip()})' if re.match(r'\s*int\s*\(', a) else a for a in args]
        if coerced != args:
            return f'mod({",".join(coerced)})'
    return f'mod({inner})'


def _generic_coercion(name: str):
    def coerce(inner: str) -> str:
        original = f'{name}({inner})'
        args = split_top_level_commas(inner, strip=False)
        if len(args) < 2:
            return original

        vec_size = max(arg_vector_size(a) for a in args)
        if vec_size == 0:
            vec_size = _implied_vector_size(args)

        scores = [scalar_score(a) for a in args]
        high, low = max(scores), min(scores)
        if high != low or high > 0:
            threshold = min(high, 3)
            wrapped = [
                f' vec{vec_size}({a.strip()})' if score >= threshold and score > -5 else a
                for a, score in zip(args, scores)
            ]
            candidate = f'{name}({",".join(wrapped)})'
            if candidate != original:
                return candidate

        sizes = [arg_vector_size(a) for a in args]
        if name == 'dot' and len(args) == 2 and all(sizes) and sizes[0] != sizes[1]:
            narrowest = min(sizes)
            swizzle = '.xy' if narrowest == 2 else '.xyz'
            narrowed = [a.strip() + swizzle if size > narrowest else a.strip() for a, size in zip(args, sizes)]
            return f'dot({", ".join(narrowed)})'

        known = [s for s in sizes if s > 0]
        if len(known) >= 2 and max(known) != min(known):
            widest = max(known)
            promoted = [
                _promote(a.strip(), size, widest) if 0 < size < widest else a
                for a, size in zip(args, sizes)
            ]
            return f'{name}({",".join(promoted)})'
        return original

    return coerce


def _implied_vector_size(args: List[str]) -> int:
    # Nothing explicit: look for names that are vec3 in practice, default vec3
    for arg in args:
        text = arg.strip()
        if re.search(r'\.xyz\b|scale[123]|bias[123]|\btexture\b|\blum\b', text):
            return 3
        if re.search(r'\.xy\b', text):
            return 2
    return 3


def _promote(arg: str, size: int, target: int) -> str:
    broadcast = _SCALAR_BROADCAST.match(arg)
    if broadcast:
        return f' vec{target}({broadcast.group(1).strip()})'
    padding = ', '.join(['0.0'] * (target - size))
    return f' vec{target}({arg}, {padding})'


def parse_signatures(header: str) -> Dict[str, FunctionSignature]:
    """
    Signatures of user functions defined in the header.

    Returns:
        Function name -> FunctionSignature (later definitions win)
    """
    signatures = {}
    for m in _SIGNATURE.finditer(header):
        return_type, name, params = m.group(1), m.group(2), m.group(3).strip()
        types = []
        if params and params != 'void':
            for param in params.split(','):
                words = [w for w in param.split() if w not in _PARAMETER_QUALIFIERS]
                types.append(words[0] if words else '')
        signatures[name] = FunctionSignature(return_type, types)
    return signatures


def _parameter_size(type_name: str) -> int:
    if type_name in ('float', 'int'):
        return 1
    m = re.fullmatch(r'vec([234])', type_name)
    return int(m.group(1)) if m else 0


def _coerce_user_call(line: str, signatures: Dict[str, FunctionSignature]) -> str:
    for m in re.finditer(r'\b([a-zA-Z_]\w*)\s*\(', line):
        name = m.group(1)
        signature = signatures.get(name)
        if signature is None or not signature.parameter_types:
            continue
        if re.search(r'\b(?:float|vec[234]|int|bool|void|mat[234])\s*$', line[max(0, m.start() - 20):m.start()]):
            continue

        def coerce(inner: str, name=name, signature=signature) -> str:
            args = split_top_level_commas(inner, strip=False)
            if len(args) != len(signature.parameter_types):
                return f'{name}({inner})'
            coerced = [
                _coerce_argument(a, _parameter_size(t))
                for a, t in zip(args, signature.parameter_types)
            ]
            return f'{name}({",".join(coerced)})'

        new_line = replace_func_call(line, name, coerce)
        if new_line != line:
            return new_line
    return line


def _coerce_argument(arg: str, param_size: int) -> str:
    if param_size == 0:
        return arg
    text = arg.strip()
    arg_size = arg_vector_size(text)
    if param_size > 1 and arg_size <= 1:
        return f' vec{param_size}({text})'
    if param_size == 1:
        if re.fullmatch(r'[-+]?\d*\.?\d+(?:[eE][+-]?\d+)?', text) or re.search(r'\.[xyzwrgba]$', text):
            return arg
        # The call failed to resolve, so an argument of unknown shape is a vector
        return f' ({text}).x'
    if arg_size != param_size:
        if arg_size > param_size:
            return f' ({text})' + ('.xy' if param_size == 2 else '.xyz')
        return _promote(text, arg_size, param_size)
    return arg


# ============================================================================
# Constructor argument counts
# ============================================================================

def fix_constructor_too_few(ctx: FixContext, match: re.Match) -> bool:
    """
    Too little data for a vec3/vec4 constructor.

    Pads the first short constructor with 0.0 components:
    vec3(uv)     -> vec3(uv, 0.0)
    vec4(c.xyz)  -> vec4(c.xyz, 0.0)
    vec3(a, b)   -> vec3(a, b, 0.0)
    Otherwise single-argument vec3() constructors without a vec3 inside
    become vec2().
    """
    line = ctx.line
    for m in re.finditer(r'\b(vec[34])\s*\(', line):
        size = int(m.group(1)[3])
        close = find_matching_paren(line, m.end())
        if close < 0:
            continue
        inner = line[m.end():close].strip()
        commas = len(split_top_level_commas(inner)) - 1
        if commas >= size - 1:
            continue

        has_vec2 = bool(re.search(r'\.xy\b|\.rg\b|\bvec2\s*\(', inner))
        has_vec3 = bool(re.search(r'\.xyz\b|\.rgb\b|\bvec3\s*\(', inner))
        missing = 0
        if size == 3 and commas == 0 and has_vec2 and not has_vec3:
            missing = 1
        elif size == 4 and commas == 0 and has_vec2 and not has_vec3:
            missing = 2
        elif size == 4 and commas == 0 and has_vec3:
            missing = 1
        elif size == 3 and commas == 1:
            missing = 1
        if missing:
            return ctx.replace(line[:close] + ', 0.0' * missing + line[close:])

    result = line
    for m in reversed(list(re.finditer(r'\bvec3\s*\(', line))):
        close = find_matching_paren(line, m.end())
        if close < 0:
            continue
        inner = line[m.end():close].strip()
        if ',' not in inner and not re.search(r'\.xyz\b|\.rgb\b|\bvec3\s*\(', inner):
            result = result[:m.start()] + 'vec2(' + result[m.end():]
    return ctx.replace(result)


def fix_too_many_arguments(ctx: FixContext, match: re.Match) -> bool:
    """vec2(a, b, c) -> vec2(a, b): drop trailing constructor arguments."""
    line = ctx.line
    for type_name in ('vec2', 'vec3', 'vec4', 'ivec2', 'ivec3', 'ivec4'):
        expected = int(type_name[-1])
        for m in re.finditer(r'\b' + type_name + r'\s*\(', line):
            close = find_matching_paren(line, m.end())
            if close < 0:
                continue
            args = split_top_level_commas(line[m.end():close])
            if len(args) > expected:
                return ctx.replace(line[:m.end()] + ', '.join(args[:expected]) + line[close:])
    return False
