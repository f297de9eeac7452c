"""
Iteration Controller - rewrite once, then validate and autofix until done.

State machine per shader:

    REWRITING -> VALIDATING -> FIXING -> VALIDATING -> ... -> DONE_*

- VALIDATING with no diagnostics          -> DONE_CLEAN
- VALIDATING without a validator          -> DONE_UNFIXED (unvalidated)
- VALIDATING after max_iterations passes  -> DONE_UNFIXED
- FIXING that applied nothing             -> DONE_UNFIXED
- FIXING that applied something           -> VALIDATING

Every outcome carries the candidate's current text, complete and untruncated.
Only validated shaders that still have errors are flagged with warnings;
a missing validator degrades to rewritten-but-unvalidated output.

Usage:
    converter = ShaderConverter()
    outcome = converter.convert(warp_source, slot='warp', name='my preset')
    if outcome.warnings:
        ...  # route to the review bucket
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..analysis.source_text import SHADER_BODY_MARKER, split_shader
from ..autofix.autofix_engine import AutofixEngine
from ..config import ConverterConfig
from ..rewriter.hlsl_rewriter import HLSLRewriter
from ..runtime.tables import DEFAULT_TABLES, ConversionTables
from ..validation.diagnostics import Diagnostic
from ..validation.glslang import GlslangValidator

logger = logging.getLogger(__name__)

WARP_SLOT = 'warp'
COMP_SLOT = 'comp'
SLOTS = (WARP_SLOT, COMP_SLOT)


class ConversionState(Enum):
    REWRITING = 'rewriting'
    VALIDATING = 'validating'
    FIXING = 'fixing'
    DONE_CLEAN = 'done_clean'
    DONE_UNFIXED = 'done_unfixed'


@dataclass(frozen=True)
class ConversionOutcome:
    """
    Result of converting one shader slot.

    Attributes:
        shader: Final target-language text ('' for empty input)
        warnings: True when validated errors remain
        state: Terminal state (DONE_CLEAN or DONE_UNFIXED)
        iterations: Autofix passes that ran
        diagnostics: Diagnostics left after the last validation
        validated: False when no validation took place
    """
    shader: str
    warnings: bool
    state: ConversionState = ConversionState.DONE_CLEAN
    iterations: int = 0
    diagnostics: Tuple[Diagnostic, ...] = ()
    validated: bool = False


def make_warp_uv_writable(shader: str) -> str:
    """
    Give a warp body its own writable copy of `uv`.

    The runtime's warp entry point receives `uv` read-only, yet presets
    assign to it. Body references to `uv` (not `uv1`, `uv_orig`, ...)
    become `_uv`, declared from `uv` at the top of the body.
    """
    parts = split_shader(shader)
    renamed = re.sub(r'\buv\b', '_uv', parts.body)
    return parts.header + f'{SHADER_BODY_MARKER}\n{{' + '\nvec2 _uv = uv;\n' + renamed + '\n}'


class ShaderConverter:
    """
    Drives rewriting, validation and autofix for single shaders.

    Collaborators are injectable so tests can script the validator.
    A converter keeps no per-shader state and can convert any number of
    shaders in sequence.
    """

    def __init__(self, config: Optional[ConverterConfig] = None,
                 tables: ConversionTables = DEFAULT_TABLES,
                 rewriter: Optional[HLSLRewriter] = None,
                 validator=None,
                 autofix: Optional[AutofixEngine] = None):
        """
        Initialize the converter.

        Args:
            config: Run settings (defaults to ConverterConfig())
            tables: Dialect/runtime name tables
            rewriter: Rewrite Engine (defaults to HLSLRewriter(tables))
            validator: Object with validate(candidate) -> list | None
                (defaults to a GlslangValidator built from config)
            autofix: Autofix Engine (defaults to AutofixEngine(tables))
        """
        self.config = config or ConverterConfig()
        self.rewriter = rewriter or HLSLRewriter(tables)
        self.autofix = autofix or AutofixEngine(tables)
        if validator is None and self.config.validate:
            validator = GlslangValidator(
                executable=self.config.validator_executable,
                timeout=self.config.validator_timeout,
            )
        self.validator = validator

    def convert(self, source: Optional[str], slot: str = COMP_SLOT, name: str = '?') -> ConversionOutcome:
        """
        Convert one dialect shader.

        Args:
            source: Dialect shader text (may be empty or None)
            slot: 'warp' or 'comp'
            name: Preset name used in log messages

        Returns:
            ConversionOutcome; never raises for malformed shader text
        """
        if slot not in SLOTS:
            raise ValueError(f"Unknown shader slot '{slot}', expected one of {SLOTS}")
        if not source:
            return ConversionOutcome('', False)

        state = ConversionState.REWRITING
        candidate = self.rewriter.transform(source)

        state = ConversionState.VALIDATING
        iterations = 0
        diagnostics: List[Diagnostic] = []
        validated = False
        while True:
            result = self._validate(candidate)
            if result is None:
                state = ConversionState.DONE_UNFIXED
                break
            validated = True
            diagnostics = result
            if not diagnostics:
                state = ConversionState.DONE_CLEAN
                break
            if iterations >= self.config.max_iterations:
                logger.debug(f"[{name}] {slot}: gave up after {iterations} autofix passes")
                state = ConversionState.DONE_UNFIXED
                break

            state = ConversionState.FIXING
            fix = self.autofix.apply_fixes(candidate, diagnostics)
            iterations += 1
            logger.debug(
                f"[{name}] {slot}: pass {iterations} fixed {fix.applied_count} "
                f"of {len(diagnostics)} error(s)"
            )
            if fix.applied_count == 0:
                state = ConversionState.DONE_UNFIXED
                break
            candidate = fix.candidate
            state = ConversionState.VALIDATING

        warnings = validated and state is ConversionState.DONE_UNFIXED
        if warnings:
            summary = '\n'.join(f'  {d.summary()}' for d in diagnostics)
            logger.warning(f"[{name}] {slot}: {len(diagnostics)} unfixed GLSL error(s):\n{summary}")

        if slot == WARP_SLOT and self.config.writable_warp_uv:
            candidate = make_warp_uv_writable(candidate)

        return ConversionOutcome(
            shader=candidate,
            warnings=warnings,
            state=state,
            iterations=iterations,
            diagnostics=tuple(diagnostics) if warnings else (),
            validated=validated,
        )

    def _validate(self, candidate: str) -> Optional[List[Diagnostic]]:
        if not self.config.validate or self.validator is None:
            return None
        return self.validator.validate(candidate)
