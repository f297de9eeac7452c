"""
Autofix Engine - repairs a candidate from one batch of validator diagnostics.

One pass works like this:
1. Split the candidate into header and body lines
2. For each diagnostic, in validator order, map its line into the header or
   the body (lines outside both are skipped)
3. Try the handlers registered for the diagnostic's kinds, in kind order;
   the first handler that reports a change wins
4. Rebuild the candidate from the edited lines

Design:
- Dispatch table (DiagnosticKind -> handler), one case per message shape
- Handlers edit lines in place and return True only for real changes
- Line counts stay fixed except for hoisting handlers, which insert lines;
  the header length is re-read for every diagnostic so header lines keep
  mapping correctly, and body lines inserted earlier in the pass shift the
  body lines of later diagnostics

Usage:
    engine = AutofixEngine()
    result = engine.apply_fixes(candidate, diagnostics)
    if result.applied_count == 0:
        ...  # nothing more this engine can do
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from ..analysis.source_text import split_shader
from ..runtime.tables import DEFAULT_TABLES, ConversionTables
from ..validation.diagnostics import Diagnostic, DiagnosticKind
from ..validation.program_builder import locate_line
from .context import FixContext
from .handlers import HANDLERS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixResult:
    """
    Output of one autofix pass.

    Attributes:
        candidate: Candidate text after the pass
        applied_count: Number of diagnostics a handler changed something for
    """
    candidate: str
    applied_count: int


class AutofixEngine:
    """
    Applies registered handlers to validator diagnostics.

    The engine is stateless between passes; the same instance can be shared
    by every shader of a batch.
    """

    def __init__(self, tables: ConversionTables = DEFAULT_TABLES,
                 handlers: Optional[Dict[DiagnosticKind, Callable]] = None):
        """
        Initialize the engine.

        Args:
            tables: Dialect/runtime name tables passed to every handler
            handlers: Kind -> handler mapping (defaults to HANDLERS)
        """
        self.tables = tables
        self.handlers = HANDLERS if handlers is None else handlers

    def apply_fixes(self, candidate: str, diagnostics: List[Diagnostic]) -> FixResult:
        """
        Run one autofix pass.

        Args:
            candidate: Candidate shader text
            diagnostics: Diagnostics from validating exactly this candidate

        Returns:
            FixResult with the edited candidate and the number of fixes
        """
        parts = split_shader(candidate)
        header_lines = parts.header_lines
        body_lines = parts.body_lines

        body_count = len(body_lines)
        applied = 0
        for diagnostic in diagnostics:
            body_shift = len(body_lines) - body_count
            if self.fix_one(diagnostic, header_lines, body_lines, body_shift):
                applied += 1

        if applied == 0:
            return FixResult(candidate, 0)
        return FixResult(parts.with_lines(header_lines, body_lines).join(), applied)

    def fix_one(self, diagnostic: Diagnostic, header_lines: List[str], body_lines: List[str],
                body_shift: int = 0) -> bool:
        """
        Try the handlers for one diagnostic.

        Args:
            diagnostic: Diagnostic to repair
            header_lines: Header lines, edited in place
            body_lines: Body lines, edited in place
            body_shift: Lines inserted at the top of the body since the
                diagnostics were produced

        Returns:
            True if a handler changed a line
        """
        if not diagnostic.kinds:
            return False

        location = locate_line(diagnostic.line, len(header_lines))
        if location is None:
            return False
        section, index = location
        in_header = section == 'header'
        if not in_header:
            index += body_shift
        lines = header_lines if in_header else body_lines
        if not 0 <= index < len(lines):
            return False

        ctx = FixContext(
            diagnostic=diagnostic,
            header_lines=header_lines,
            body_lines=body_lines,
            in_header=in_header,
            index=index,
            tables=self.tables,
        )
        for kind in diagnostic.kinds:
            handler = self.handlers.get(kind)
            if handler is None:
                continue
            match = diagnostic.match(kind)
            if match is None:
                continue
            if handler(ctx, match):
                logger.debug(f"{handler.__name__} fixed {section} line {index + 1}: {diagnostic.message}")
                return True
        return False
