"""
Validation Program Builder - wraps a candidate in a complete fragment shader.

The external validator only accepts whole programs. The candidate is placed
between the synthetic runtime preamble and a synthetic main() so the
validator sees exactly the declarations the browser runtime would provide:

    GLSL_PREAMBLE
    <candidate header>
    void main(void) { ... runtime locals ...
    <candidate body>
      fragColor = vec4(ret, 1.0) * vColor;
    }

Line mapping:
- body_line_offset is the number of program lines before the first body line
- program line L maps to candidate line L - body_line_offset
- results <= 0 point into the header; ValidationProgram.locate() turns them
  into header indexes counted back from the end of the header
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..analysis.source_text import split_shader
from ..runtime.preamble import (
    ENTRY_POINT_LINE_COUNT,
    ENTRY_POINT_LINES,
    EPILOGUE,
    GLSL_PREAMBLE,
)


@dataclass(frozen=True)
class ValidationProgram:
    """
    A complete fragment shader ready for the validator.

    Attributes:
        program: Full program text
        body_line_offset: Program lines preceding the candidate body
        header_line_count: Lines in the candidate header (0 without a header)
    """
    program: str
    body_line_offset: int
    header_line_count: int = 0

    def locate(self, line: int) -> Optional[Tuple[str, int]]:
        """
        Map a body-relative diagnostic line to a candidate section.

        Args:
            line: Program line minus body_line_offset

        Returns:
            ('header', index) or ('body', index) with a 0-based index,
            or None when the line falls inside the preamble
        """
        return locate_line(line, self.header_line_count)


def locate_line(line: int, header_line_count: int) -> Optional[Tuple[str, int]]:
    """
    Map a body-relative line to ('header' | 'body', 0-based index).

    Lines <= 0 count back from the end of the header; the entry point lines
    sit between the header and the body. Returns None for preamble lines.
    """
    if line <= 0 and header_line_count:
        index = line - 1 + header_line_count + ENTRY_POINT_LINE_COUNT
        if index < 0:
            return None
        return ('header', index)
    return ('body', line - 1)


class ValidationProgramBuilder:
    """
    Builds validation programs from candidates.

    Usage:
        builder = ValidationProgramBuilder()
        program = builder.build(candidate)
        # diagnostic at program line 212 -> candidate line 212 - program.body_line_offset
    """

    def __init__(self, preamble: str = GLSL_PREAMBLE):
        """
        Initialize the builder.

        Args:
            preamble: Runtime preamble text, must end with a newline
        """
        self.preamble = preamble
        self.preamble_line_count = preamble.count('\n')
        self.entry_point = '\n'.join(ENTRY_POINT_LINES)

    def build(self, candidate: str) -> ValidationProgram:
        """
        Wrap a candidate in preamble, entry point and epilogue.

        Args:
            candidate: Candidate shader text

        Returns:
            ValidationProgram with the program text and line offsets
        """
        parts = split_shader(candidate)
        header = parts.header
        header_part = header + '\n' if header else ''

        program = (
            self.preamble
            + header_part
            + self.entry_point + '\n'
            + parts.body + '\n'
            + EPILOGUE + '\n'
        )

        header_line_count = len(header.split('\n')) if header else 0
        body_line_offset = self.preamble_line_count + header_line_count + ENTRY_POINT_LINE_COUNT
        return ValidationProgram(program, body_line_offset, header_line_count)
