"""
Fix context and shared line patterns for autofix handlers.

A handler receives a FixContext describing where the diagnostic points and
the regex match of the diagnostic template it was registered for. It edits
the context's line lists in place and returns True, or leaves everything
untouched and returns False so the next handler can try.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from ..analysis.source_text import find_matching_paren
from ..runtime.tables import DEFAULT_TABLES, ConversionTables
from ..validation.diagnostics import Diagnostic

# Whole-line statement shapes. The last group keeps a trailing // comment.
TRAIL = r'(\s*(?://.*)?)?$'
FLOAT_DECLARATION = re.compile(r'^(\s*)float\s+([a-zA-Z_]\w*)\s*=\s*(.*?)\s*;' + TRAIL)
VECTOR_DECLARATION = re.compile(r'^(\s*)(vec[234])\s+([a-zA-Z_]\w*)\s*=\s*(.*?)\s*;' + TRAIL)
ASSIGNMENT = re.compile(r'^(\s*)([a-zA-Z_]\w*)\s*=\s*(.*?)\s*;' + TRAIL)
SWIZZLED_ASSIGNMENT = re.compile(r'^(\s*)([a-zA-Z_]\w*(?:\.[xyzwrgba]+)?)\s*=\s*(.*?)\s*;' + TRAIL)
COMPOUND_ASSIGNMENT = re.compile(
    r'^(\s*)([a-zA-Z_]\w*(?:\.[xyzwrgba]+)?)\s*([+\-*/])=\s*(.*?)\s*;' + TRAIL
)
COMPARISON = re.compile(r'>=|<=|!=|==|(?<!=)>(?!=)|(?<!=)<(?!=)|&&|\|\|')
CONTROL_KEYWORD_BEFORE = re.compile(r'\b(?:if|while)\s*$')


@dataclass
class FixContext:
    """
    Mutable view of one candidate during an autofix pass.

    Attributes:
        diagnostic: Diagnostic being handled
        header_lines: Candidate header lines (shared across the pass)
        body_lines: Candidate body lines (shared across the pass)
        in_header: True when the diagnostic points into the header
        index: 0-based index into the addressed line list
        tables: Dialect/runtime name tables
    """
    diagnostic: Diagnostic
    header_lines: List[str]
    body_lines: List[str]
    in_header: bool
    index: int
    tables: ConversionTables = field(default=DEFAULT_TABLES)

    @property
    def lines(self) -> List[str]:
        return self.header_lines if self.in_header else self.body_lines

    @property
    def line(self) -> str:
        return self.lines[self.index]

    def replace(self, new_line: Optional[str]) -> bool:
        """Store a new version of the addressed line; False if nothing changed."""
        if new_line is None or new_line == self.line:
            return False
        self.lines[self.index] = new_line
        return True


def is_wrapped(expr: str, callee: str) -> bool:
    """True when expr is exactly `callee(...)` with one balanced call."""
    text = expr.strip()
    match = re.match(re.escape(callee) + r'\s*\(', text)
    if not match:
        return False
    return find_matching_paren(text, match.end()) == len(text) - 1


def selects(expr: str, swizzle: str) -> bool:
    """True when expr already ends in `(...)<swizzle>`, e.g. '(v * 2.0).x'."""
    text = expr.strip()
    if not text.endswith(')' + swizzle) or not text.startswith('('):
        return False
    return find_matching_paren(text, 1) == len(text) - len(swizzle) - 1
