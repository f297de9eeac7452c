"""
Source text helpers - header/body partitioning and bracket-aware scanning.

The dialect has no real grammar here; everything works on raw text.
The one structural landmark is the `shader_body` marker: text before it is
the header (free declarations and helper functions), text inside the braces
that follow it is the body executed by the runtime's entry point.

Design:
- split_shader() and ShaderParts.join() are exact inverses, so callers can
  split, edit header or body lines, and rebuild without drifting line counts
- The partition is always derived from the current text, never stored
  alongside it
- Scanning helpers understand nested parentheses but not strings or comments
"""

import re
from dataclasses import dataclass
from typing import Callable, List, Optional

SHADER_BODY_MARKER = 'shader_body'


@dataclass(frozen=True)
class ShaderParts:
    """
    A shader split around its `shader_body` block.

    Attributes:
        header: Text before the marker ('' when there is no marker)
        opening: Marker through the opening brace, e.g. 'shader_body\\n{'
        body: Text between the opening brace and the last closing brace
        closing: Last closing brace through the end of the text
    """
    header: str = ''
    opening: str = ''
    body: str = ''
    closing: str = ''

    @property
    def has_marker(self) -> bool:
        return bool(self.opening)

    @property
    def header_lines(self) -> List[str]:
        return self.header.split('\n') if self.header else []

    @property
    def body_lines(self) -> List[str]:
        return self.body.split('\n')

    def join(self) -> str:
        """Rebuild the full shader text."""
        return self.header + self.opening + self.body + self.closing

    def with_lines(self, header_lines: List[str], body_lines: List[str]) -> 'ShaderParts':
        """Return a copy with header and body replaced by the given lines."""
        return ShaderParts(
            header='\n'.join(header_lines),
            opening=self.opening,
            body='\n'.join(body_lines),
            closing=self.closing,
        )


def split_shader(text: str) -> ShaderParts:
    """
    Partition shader text into header, body block and surrounding syntax.

    Args:
        text: Full shader text (dialect or candidate)

    Returns:
        ShaderParts whose join() reproduces text exactly
    """
    marker = text.find(SHADER_BODY_MARKER)
    if marker < 0:
        return ShaderParts(body=text)

    header = text[:marker]
    after = text[marker:]
    open_brace = after.find('{')
    close_brace = after.rfind('}')
    if open_brace < 0 or close_brace < open_brace:
        return ShaderParts(header=header, body=after)

    return ShaderParts(
        header=header,
        opening=after[:open_brace + 1],
        body=after[open_brace + 1:close_brace],
        closing=after[close_brace:],
    )


# ============================================================================
# Bracket-aware scanning
# ============================================================================

def find_matching_paren(text: str, start: int) -> int:
    """
    Find the ')' closing a '(' whose contents begin at `start`.

    Args:
        text: Text to scan
        start: Index just after the opening parenthesis

    Returns:
        Index of the matching ')' or -1 if unbalanced
    """
    depth = 1
    for i in range(start, len(text)):
        ch = text[i]
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth == 0:
                return i
    return -1


def split_top_level_commas(text: str, strip: bool = True) -> List[str]:
    """
    Split an argument list on commas that are not nested in brackets.

    Parts are stripped of surrounding whitespace unless strip is False, in
    which case `','.join(parts)` gives back the original text.
    """
    parts = []
    depth = 0
    start = 0
    for i, ch in enumerate(text):
        if ch in '([':
            depth += 1
        elif ch in ')]':
            depth -= 1
        elif ch == ',' and depth == 0:
            parts.append(text[start:i])
            start = i + 1
    parts.append(text[start:])
    if strip:
        return [part.strip() for part in parts]
    return parts


def replace_func_call(text: str, func_name: str, replacer: Callable[[str], str]) -> str:
    """
    Replace every call `func_name(...)` with replacer(inner_arguments).

    Calls are matched on word boundaries with balanced parentheses; nested
    calls inside the arguments are left for the replacer to handle. An
    unbalanced call stops the scan and leaves the remaining text untouched.

    Args:
        text: Source text
        func_name: Function name (regex-escaped by the caller if needed)
        replacer: Callable receiving the raw argument text

    Returns:
        Rewritten text
    """
    pattern = re.compile(r'\b' + func_name + r'\s*\(')
    result = []
    pos = 0
    while pos < len(text):
        match = pattern.search(text, pos)
        if not match:
            break
        paren_open = match.end()
        paren_close = find_matching_paren(text, paren_open)
        if paren_close < 0:
            break
        result.append(text[pos:match.start()])
        result.append(replacer(text[paren_open:paren_close]))
        pos = paren_close + 1
    result.append(text[pos:])
    return ''.join(result)


def top_level_semicolons(line: str) -> List[int]:
    """
    Positions of statement-terminating semicolons on a line.

    Semicolons nested in brackets (for-loop headers) and anything after a
    '//' comment are ignored.
    """
    positions = []
    depth = 0
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '/' and line[i + 1:i + 2] == '/':
            break
        if ch in '([{':
            depth += 1
        elif ch in ')]}':
            depth -= 1
        elif ch == ';' and depth == 0:
            positions.append(i)
        i += 1
    return positions


def statement_end(text: str) -> int:
    """Index of the first ';' at bracket depth 0, or -1."""
    depth = 0
    for i, ch in enumerate(text):
        if ch in '([':
            depth += 1
        elif ch in ')]':
            depth -= 1
        elif ch == ';' and depth == 0:
            return i
    return -1


def paren_balance(text: str) -> int:
    """Number of '(' minus number of ')'."""
    return text.count('(') - text.count(')')


def is_inside_vec_constructor(line: str, pos: int, target_n: int) -> bool:
    """
    True when `pos` sits inside a vecN(...) constructor with N > target_n.

    Used to leave alone variables that legitimately feed components into a
    larger constructor.
    """
    for match in re.finditer(r'\bvec([234])\s*\(', line):
        if int(match.group(1)) <= target_n:
            continue
        paren_start = match.end()
        if paren_start > pos:
            break
        paren_end = find_matching_paren(line, paren_start)
        if paren_end < 0 or paren_end >= pos:
            return True
    return False


def leading_indent(line: str) -> str:
    match = re.match(r'\s*', line)
    return match.group(0) if match else ''


def brace_depths(lines: List[str]) -> List[int]:
    """Brace depth at the start of each line."""
    depths = []
    depth = 0
    for line in lines:
        depths.append(depth)
        depth += line.count('{') - line.count('}')
    return depths


def find_enclosing_signature(lines: List[str], index: int, pattern: str,
                             limit: Optional[int] = None) -> Optional[re.Match]:
    """
    Scan upwards from `index` for the first line matching `pattern`.

    Args:
        lines: Lines to scan
        index: Starting line (inclusive)
        pattern: Regex applied with re.match
        limit: Maximum number of lines to look back

    Returns:
        The match, or None
    """
    stop = -1 if limit is None else max(-1, index - limit - 1)
    for j in range(index, stop, -1):
        match = re.match(pattern, lines[j])
        if match:
            return match
    return None
