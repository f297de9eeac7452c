"""
Statement layout and declaration-time type fixes.

The autofix engine addresses diagnostics by line, and its handlers assume
one statement per line. This module puts rewritten text into that shape:
lines holding several statements are split, expressions that continue on
the next line are joined, and the most common scalar/vector mismatches that
are visible at declaration time are patched before validation ever runs.
"""

import re
from typing import Dict, List

from ..analysis.source_text import find_matching_paren, leading_indent, paren_balance, top_level_semicolons
from ..analysis.type_inference import (
    TypeSymbol,
    collect_declarations,
    infer_expression_type,
    is_scalar_expression,
    swizzle_for,
)
from ..runtime.tables import DEFAULT_TABLES, ConversionTables

_DECLARATION = re.compile(
    r'^(\s*)(vec[234])\s+([a-zA-Z_]\w*)\s*=\s*(.*?)\s*;(\s*(?://.*)?)?$'
)
_ASSIGNMENT = re.compile(
    r'^(\s*)([a-zA-Z_]\w*)\s*=\s*(.*?)\s*;(\s*(?://.*)?)?$'
)
_CONSTRUCTOR = re.compile(r'vec([234])\s*\(')


def split_statements(lines: List[str]) -> List[str]:
    """
    Split lines holding more than one top-level statement.

    `a = 0; b = 4;` becomes two lines with the original indentation.
    Semicolons inside for-loop headers or after a '//' comment do not count.
    """
    result = []
    for line in lines:
        positions = top_level_semicolons(line)
        if len(positions) <= 1:
            result.append(line)
            continue
        indent = leading_indent(line)
        previous = 0
        for pos in positions:
            statement = line[previous:pos + 1].strip()
            if statement and statement != ';':
                result.append(indent + statement)
            previous = pos + 1
        tail = line[positions[-1] + 1:].strip()
        if tail:
            result.append(indent + tail)
    return result


def fix_declaration_types(lines: List[str], tables: ConversionTables = DEFAULT_TABLES) -> List[str]:
    """
    Patch scalar/vector mismatches visible from declarations alone.

    - `vec3 v = 0.5;`        -> `vec3 v = vec3(0.5);`
    - `v = 0.5;` (v is vec3) -> `v = vec3(0.5);`
    - `vec3 c = vec4(...);`  -> `vec3 c = vec4(...).xyz;`
    - `vec3 c = p4;` (p4 is vec4) -> `vec3 c = p4.xyz;`
    """
    declared: Dict[str, TypeSymbol] = {
        name: TypeSymbol.from_type_name(type_name)
        for name, type_name in tables.entry_point_locals.items()
    }
    fixed = list(lines)
    for i, line in enumerate(fixed):
        collect_declarations(line, declared)

        match = _DECLARATION.match(line)
        if match:
            indent, type_name, name, rhs, trail = match.groups()
            target = TypeSymbol.from_type_name(type_name)
            new_rhs = _coerce_rhs(rhs, type_name, target, declared, tables)
            if new_rhs is not None:
                fixed[i] = f'{indent}{type_name} {name} = {new_rhs};{trail or ""}'
            continue

        match = _ASSIGNMENT.match(line)
        if match:
            indent, name, rhs, trail = match.groups()
            target = declared.get(name)
            if target is None or not target.is_vector or target.base != 'float':
                continue
            new_rhs = _coerce_rhs(rhs, target.name, target, declared, tables)
            if new_rhs is not None:
                fixed[i] = f'{indent}{name} = {new_rhs};{trail or ""}'
    return fixed


def _coerce_rhs(rhs, type_name, target, declared, tables):
    if is_scalar_expression(rhs, declared, tables):
        return f'{type_name}({rhs})'
    source = infer_expression_type(rhs, declared, tables)
    if source is None or not source.is_vector or source.base != 'float' or source.arity <= target.arity:
        return None
    constructor = _CONSTRUCTOR.match(rhs)
    whole_constructor = constructor and find_matching_paren(rhs, constructor.end()) == len(rhs) - 1
    if whole_constructor or re.fullmatch(r'[a-zA-Z_]\w*', rhs):
        return rhs + swizzle_for(target.arity)
    return None


def join_continuation_lines(lines: List[str]) -> List[str]:
    """
    Join expressions that continue on the following line.

    A line is folded into the previous one when the previous line leaves a
    parenthesis open and the next one starts with an operator or a closing
    bracket, or when the previous line ends without a terminator and the
    next one starts with a binary arithmetic operator.
    """
    joined = list(lines)
    for i in range(len(joined) - 1, 0, -1):
        prev = joined[i - 1]
        next_trimmed = joined[i].strip()
        if not next_trimmed or '//' in prev:
            continue
        balance = paren_balance(prev)
        prev_trimmed = prev.rstrip()

        if balance > 0:
            is_control_flow = re.search(r'\b(?:for|if|while)\s*\(', prev)
            if re.match(r'\)\s*\{', next_trimmed) and not is_control_flow:
                continue
            if re.match(r'[-+*/,.)&|?:]', next_trimmed):
                joined[i - 1] = prev + ' ' + next_trimmed
                del joined[i]
                continue

        if balance == 0 and prev_trimmed and not re.search(r'[;{}]$', prev_trimmed):
            if prev_trimmed.lstrip().startswith('#'):
                continue
            if re.match(r'[*/+\-][\s(]', next_trimmed) or re.match(r'[*/+\-];', next_trimmed):
                joined[i - 1] = prev + ' ' + next_trimmed
                del joined[i]
    return joined
