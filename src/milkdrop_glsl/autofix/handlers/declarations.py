"""
Handlers that work across statements: function returns, global
initializers and variables whose declaration sits in the wrong scope.

These are the only handlers allowed to insert lines (hoisting a global
initializer into the body, hoisting a declaration to the top of the header).
"""

import re
from typing import List, Optional, Tuple

from ...analysis.source_text import (
    brace_depths,
    find_enclosing_signature,
    split_top_level_commas,
    statement_end,
)
from ..context import FixContext, is_wrapped, selects

_FUNCTION_START = r'^\s*(float|vec[234]|int|mat[234])\s+\w+\s*\('
_RETURN = re.compile(r'(\breturn\s+)(.*?)\s*;')
_INITIALIZED_GLOBAL = re.compile(r'^(\s*)(mat[234](?:x[234])?|vec[234]|ivec[234]|float|int)\s+(\w+)\s*=\s*')
_LOCAL_TYPES = r'(float|int|vec[234]|ivec[234]|mat[234]|bool|bvec[234])'

# How far handlers look around a return statement
RETURN_SCAN_LINES = 15
SIGNATURE_SCAN_LINES = 20


# ============================================================================
# Function returns
# ============================================================================

def fix_return_type_mismatch(ctx: FixContext, match: re.Match) -> bool:
    """
    Make a return value fit the enclosing function's return type.

    float: select '.x'; vec2: narrow '.xyz'/vec3() or select '.xy';
    vec3: widen '.xy'/vec2() or wrap in vec3(); vec4: wrap in vec4().
    Returns spread over several lines are converted line by line.
    """
    lines = ctx.lines
    index = ctx.index
    line = ctx.line

    start = index
    if not re.search(r'\breturn\b', line):
        for j in range(index - 1, max(0, index - RETURN_SCAN_LINES) - 1, -1):
            if re.search(r'\breturn\b', lines[j]):
                start = j
                break
    end = index
    if ';' not in line:
        for j in range(index + 1, min(len(lines), index + RETURN_SCAN_LINES)):
            if ';' in lines[j]:
                end = j
                break

    signature = find_enclosing_signature(lines, start, _FUNCTION_START, SIGNATURE_SCAN_LINES)
    if signature is None:
        return False
    return_type = signature.group(1)

    m = _RETURN.search(line)
    if m:
        new_rhs = _fit_return_value(m.group(2), return_type)
        if new_rhs is None:
            return False
        return ctx.replace(line[:m.start()] + f'{m.group(1)}{new_rhs};' + line[m.end():])

    if return_type == 'float':
        if start == end or ';' not in lines[end] or not re.search(r'\breturn\s+', lines[start]):
            return False
        lines[start] = re.sub(r'\breturn\s+', 'return (', lines[start], count=1)
        lines[end] = lines[end].replace(';', ').x;', 1)
        return True

    changed = False
    for j in range(start, end + 1):
        original = lines[j]
        if return_type == 'vec2':
            lines[j] = re.sub(r'\bvec3\s*\(', 'vec2(', re.sub(r'\.xyz\b', '.xy', lines[j]))
        elif return_type == 'vec3':
            lines[j] = re.sub(r'\bvec2\s*\(', 'vec3(', re.sub(r'\.xy\b', '.xyz', lines[j]))
        changed = changed or lines[j] != original
    return changed


def _fit_return_value(rhs: str, return_type: str) -> Optional[str]:
    if return_type == 'float':
        return None if selects(rhs, '.x') else f'({rhs}).x'
    if return_type == 'vec2':
        narrowed = re.sub(r'\bvec3\s*\(', 'vec2(', re.sub(r'\.xyz\b', '.xy', rhs))
        if narrowed != rhs:
            return narrowed
        return None if selects(rhs, '.xy') else f'({rhs}).xy'
    if return_type == 'vec3':
        widened = re.sub(r'\bvec2\s*\(', 'vec3(', re.sub(r'\.xy\b', '.xyz', rhs))
        if widened != rhs:
            return widened
        return None if is_wrapped(rhs, 'vec3') else f'vec3({rhs})'
    if return_type == 'vec4':
        return None if is_wrapped(rhs, 'vec4') else f'vec4({rhs})'
    return None


def fix_missing_return(ctx: FixContext, match: re.Match) -> bool:
    """
    Insert a neutral return before the closing brace of a function that
    has none: 0 for float/int, false for bool, vecN(0.0) otherwise.
    """
    name = match.group(1)
    definition = re.compile(r'\b(float|vec[234]|int|ivec[234]|bool|mat[234])\s+' + name + r'\s*\(')
    lines = ctx.header_lines
    for i, line in enumerate(lines):
        m = definition.search(line)
        if not m:
            continue
        return_type = m.group(1)
        if return_type in ('float', 'int'):
            value = '0'
        elif return_type == 'bool':
            value = 'false'
        else:
            value = f'{return_type}(0.0)'
        close = _closing_brace(lines, i, m.end())
        if close is None:
            return False
        j, col = close
        lines[j] = lines[j][:col] + f' return {value}; ' + lines[j][col:]
        return True
    return False


def _closing_brace(lines: List[str], start_line: int, start_col: int) -> Optional[Tuple[int, int]]:
    depth = 0
    opened = False
    for j in range(start_line, len(lines)):
        text = lines[j]
        begin = start_col if j == start_line else 0
        for col in range(begin, len(text)):
            if text[col] == '{':
                depth += 1
                opened = True
            elif text[col] == '}' and opened:
                depth -= 1
                if depth == 0:
                    return j, col
    return None


# ============================================================================
# Global initializers
# ============================================================================

def fix_non_constant_initializer(ctx: FixContext, match: re.Match) -> bool:
    """
    Split a global `type name = expr;` whose expr is not constant.

    The header keeps `type name;` on the same line, continuation lines of a
    multi-line initializer are blanked, and `name = expr;` is inserted at
    the start of the body after any leading blank lines.
    """
    if not ctx.in_header:
        return False
    line = ctx.line
    m = _INITIALIZED_GLOBAL.match(line)
    if not m:
        return False
    indent, type_name, name = m.groups()
    after = line[m.end():]

    end = statement_end(after)
    if end >= 0:
        trailing = after[end + 1:].strip()
        ctx.lines[ctx.index] = f'{indent}{type_name} {name};' + (f' {trailing}' if trailing else '')
        _insert_assignment(ctx.body_lines, f'{name} = {after[:end].strip()};')
        return True

    joined = after
    for k in range(ctx.index + 1, len(ctx.lines)):
        joined += '\n' + ctx.lines[k]
        end = statement_end(joined)
        if end >= 0:
            ctx.lines[ctx.index] = f'{indent}{type_name} {name};'
            for blank in range(ctx.index + 1, k + 1):
                ctx.lines[blank] = ''
            _insert_assignment(ctx.body_lines, f'{name} = {joined[:end].strip()};')
            return True
    return False


def _insert_assignment(body_lines: List[str], assignment: str) -> None:
    position = 0
    for i, line in enumerate(body_lines):
        if '_uv = uv' in line or not line.strip():
            position = i + 1
        else:
            break
    body_lines.insert(position, assignment)


def fix_unsupported_in_header(ctx: FixContext, match: re.Match) -> bool:
    """Older validators word a non-constant global initializer this way."""
    return fix_non_constant_initializer(ctx, match)


# ============================================================================
# Scope
# ============================================================================

def fix_undeclared_identifier(ctx: FixContext, match: re.Match) -> bool:
    """
    A body statement uses a variable declared inside a header function.

    The dialect treats such variables as globals. A global declaration is
    added at the top of the header and the local declaration is removed so
    it no longer shadows the global; a local initializer stays behind as an
    assignment.
    """
    token = ctx.diagnostic.token
    if ctx.in_header or not re.fullmatch(r'[a-zA-Z_]\w*', token or ''):
        return False
    header = ctx.header_lines

    local = re.compile(r'\b' + _LOCAL_TYPES + r'\s+(?:[a-zA-Z_]\w*(?:\s*=[^,;]*)?\s*,\s*)*' + token + r'\b')
    depth = 0
    found_type = None
    found_index = -1
    for i, line in enumerate(header):
        start_depth = depth
        depth += line.count('{') - line.count('}')
        if start_depth <= 0:
            continue
        m = local.search(line)
        if m:
            found_type, found_index = m.group(1), i
            break

    is_parameter = False
    if found_type is None:
        parameter = re.compile(r'\b(float|int|vec[234]|ivec[234]|mat[234]|bool)\s+' + token + r'\b')
        for line in header:
            m = parameter.search(line)
            if m and re.search(r'\w+\s*\(', line):
                found_type, is_parameter = m.group(1), True
                break
    if found_type is None:
        return False

    global_declaration = re.compile(r'^\s*' + found_type + r'\s+' + token + r'\s*;')
    depths = brace_depths(header)
    if any(depths[i] == 0 and global_declaration.match(line) for i, line in enumerate(header)):
        return False

    header.insert(0, f'{found_type} {token};')
    if not is_parameter:
        header[found_index + 1] = _remove_declarator(header[found_index + 1], found_type, token)
    return True


def _remove_declarator(line: str, type_name: str, name: str) -> str:
    declaration = re.compile(r'\b' + re.escape(type_name) + r'\s+([^;]*);')
    for m in declaration.finditer(line):
        declarators = split_top_level_commas(m.group(1))
        names = [re.split(r'\s*=', d, maxsplit=1)[0].strip() for d in declarators]
        if name not in names:
            continue
        kept = [d for d, n in zip(declarators, names) if n != name]
        moved = [d for d, n in zip(declarators, names) if n == name and '=' in d]
        statements = []
        if kept:
            statements.append(f'{type_name} {", ".join(kept)};')
        for declarator in moved:
            value = declarator.split('=', 1)[1].strip()
            statements.append(f'{name} = {value};')
        return line[:m.start()] + ' '.join(statements) + line[m.end():]
    return line
