"""
glslangValidator runner.

Each validation writes the program to its own temporary .frag file, runs the
validator on it with a hard timeout and deletes the file on every exit path.
Distinct file names make concurrent validations from several processes or
threads safe.

Outcomes of validate():
- None: no validator available, or it could not be launched
- []: clean compile (exit status 0)
- [Diagnostic, ...]: parsed errors; a timeout yields whatever partial output
  was captured, usually nothing
"""

import logging
import os
import shutil
import subprocess
import tempfile
from typing import List, Optional, Tuple

from .diagnostics import Diagnostic, DiagnosticParser
from .program_builder import ValidationProgramBuilder

logger = logging.getLogger(__name__)

VALIDATOR_NAME = 'glslangValidator'
FALLBACK_LOCATIONS = ('/opt/homebrew/bin/glslangValidator',)
DEFAULT_TIMEOUT = 5.0


class ValidatorError(Exception):
    """Raised when the validator process cannot be run."""
    def __init__(self, message: str, executable: Optional[str] = None):
        self.message = message
        self.executable = executable
        if executable:
            super().__init__(f"{message} ({executable})")
        else:
            super().__init__(message)


def locate_validator() -> Optional[str]:
    """
    Find a glslangValidator executable.

    Returns:
        Path from PATH lookup, else the first existing fallback location,
        else None
    """
    found = shutil.which(VALIDATOR_NAME)
    if found:
        return found
    for candidate in FALLBACK_LOCATIONS:
        if os.path.isfile(candidate) and os.access(candidate, os.X_OK):
            return candidate
    return None


def _decode(stream) -> str:
    if stream is None:
        return ''
    if isinstance(stream, bytes):
        return stream.decode('utf-8', errors='replace')
    return stream


class GlslangValidator:
    """
    Validates candidates with an external glslangValidator process.

    Usage:
        validator = GlslangValidator()
        diagnostics = validator.validate(candidate)
        if diagnostics is None:
            ...  # no validator, skip the repair loop
    """

    def __init__(self, executable: Optional[str] = None, timeout: float = DEFAULT_TIMEOUT,
                 builder: Optional[ValidationProgramBuilder] = None,
                 parser: Optional[DiagnosticParser] = None):
        """
        Initialize the validator.

        Args:
            executable: Validator path; located automatically when None
            timeout: Seconds before the process is killed
            builder: Program builder (default: runtime preamble)
            parser: Diagnostic parser (default: built-in templates)
        """
        self.executable = executable if executable is not None else locate_validator()
        self.timeout = timeout
        self.builder = builder or ValidationProgramBuilder()
        self.parser = parser or DiagnosticParser()
        self._reported_missing = False

    @property
    def available(self) -> bool:
        return bool(self.executable)

    def validate(self, candidate: str) -> Optional[List[Diagnostic]]:
        """
        Validate a candidate.

        Args:
            candidate: Candidate shader text

        Returns:
            None when validation is unavailable, otherwise the diagnostics
            (empty on a clean compile)
        """
        if not self.available:
            if not self._reported_missing:
                logger.warning(f"{VALIDATOR_NAME} not found, shaders will not be validated")
                self._reported_missing = True
            return None

        program = self.builder.build(candidate)
        try:
            returncode, output = self.run(program.program)
        except ValidatorError as e:
            logger.warning(f"Validation skipped: {e}")
            return None

        if returncode == 0:
            return []
        diagnostics = self.parser.parse(output, program.body_line_offset)
        logger.debug(f"Validator reported {len(diagnostics)} error(s)")
        return diagnostics

    def run(self, program: str) -> Tuple[Optional[int], str]:
        """
        Run the validator on program text.

        Args:
            program: Complete fragment shader

        Returns:
            (exit status, combined stdout and stderr); the exit status is
            None when the process timed out

        Raises:
            ValidatorError: The process could not be started
        """
        fd, path = tempfile.mkstemp(prefix='milkdrop-validate-', suffix='.frag')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(program)
            try:
                completed = subprocess.run(
                    [self.executable, path],
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as e:
                logger.warning(f"{VALIDATOR_NAME} timed out after {self.timeout}s")
                return None, _decode(e.stdout) + _decode(e.stderr)
            except OSError as e:
                raise ValidatorError(str(e), self.executable) from e
            return completed.returncode, (completed.stdout or '') + (completed.stderr or '')
        finally:
            try:
                os.unlink(path)
            except OSError as e:
                logger.debug(f"Could not remove {path}: {e}")
