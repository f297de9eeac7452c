"""
Diagnostic Parser - turns validator output into structured records.

glslangValidator reports one problem per line:

    ERROR: 0:214: '=' :  cannot convert from ' temp mediump 3-component vector of float' to ' temp mediump float'

Each record keeps the body-relative line, the quoted token and the message.
The message is also classified against a fixed, ordered list of templates
mirroring the validator's wording. A diagnostic can match several templates;
its `kinds` tuple lists every match in template order, which is the order the
autofix engine tries its handlers in. Messages that match nothing are still
reported, they simply have no kinds.

Type fragments in the templates are anchored on the quoted type text so that
'float' never matches a vector-of-float type and vice versa.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Pattern, Tuple

# Quoted validator type names, e.g. ' temp mediump 3-component vector of float'
FLOAT_TYPE = r"'[\w ]*float'"
VECTOR_TYPE = r"'[\w ]*?(\d)-component vector of float'"
INT_TYPE = r"'[\w ]*int'"
IVECTOR_TYPE = r"'[\w ]*?(\d)-component vector of int'"
BOOL_TYPE = r"'[\w ]*bool'"

DIAGNOSTIC_LINE = re.compile(r"ERROR:\s*\d+:(\d+):\s*(?:'([^']*)'\s*:\s*)?(.+)")


class DiagnosticKind(Enum):
    """Message shapes the autofix engine knows how to repair."""
    VECTOR_TO_FLOAT = 'vector_to_float'
    FLOAT_TO_VECTOR = 'float_to_vector'
    FLOAT_LITERAL_FOR_INT = 'float_literal_for_int'
    VECTOR_DIMENSION_MISMATCH = 'vector_dimension_mismatch'
    VECTOR_SCALAR_COMPARISON = 'vector_scalar_comparison'
    BOOLEAN_EXPECTED = 'boolean_expected'
    INT_FLOAT_OPERATION = 'int_float_operation'
    INT_TO_FLOAT = 'int_to_float'
    BOOL_OPERATION = 'bool_operation'
    BOOL_CONVERSION = 'bool_conversion'
    VECTOR_RESIZE = 'vector_resize'
    NO_MATCHING_OVERLOAD = 'no_matching_overload'
    INTEGER_INDEX_REQUIRED = 'integer_index_required'
    CONSTRUCTOR_TOO_FEW = 'constructor_too_few'
    INT_OPERAND = 'int_operand'
    FLOAT_TO_INT = 'float_to_int'
    RETURN_TYPE_MISMATCH = 'return_type_mismatch'
    MISSING_RETURN = 'missing_return'
    TOO_MANY_ARGUMENTS = 'too_many_arguments'
    NON_CONSTANT_INITIALIZER = 'non_constant_initializer'
    UNSUPPORTED_IN_VERSION = 'unsupported_in_version'
    SWIZZLE_OUT_OF_RANGE = 'swizzle_out_of_range'
    EXTRANEOUS_SEMICOLON = 'extraneous_semicolon'
    SCALAR_SWIZZLE = 'scalar_swizzle'
    UNDECLARED_IDENTIFIER = 'undeclared_identifier'


@dataclass(frozen=True)
class DiagnosticTemplate:
    """
    One recognizable message shape.

    Attributes:
        kind: Kind assigned on match
        pattern: Compiled regex searched in the message
        includes_token: Search "'token' : message" instead of the message
            alone (some messages only make sense together with their token)
    """
    kind: DiagnosticKind
    pattern: Pattern
    includes_token: bool = False

    def search(self, token: str, message: str) -> Optional[re.Match]:
        text = f"'{token}' : {message}" if self.includes_token else message
        return self.pattern.search(text)


def _template(kind: DiagnosticKind, pattern: str, includes_token: bool = False) -> DiagnosticTemplate:
    return DiagnosticTemplate(kind, re.compile(pattern), includes_token)


def _operands(left: str, right: str) -> str:
    return (
        r"no operation '([^']+)' exists that takes a left-hand operand of type "
        + left + r' and a right operand of type ' + right
    )


# Template order is handler priority order.
DIAGNOSTIC_TEMPLATES: Tuple[DiagnosticTemplate, ...] = (
    _template(DiagnosticKind.VECTOR_TO_FLOAT,
              r'cannot convert from ' + VECTOR_TYPE + r' to ' + FLOAT_TYPE),
    _template(DiagnosticKind.FLOAT_TO_VECTOR,
              r'cannot convert from ' + FLOAT_TYPE + r' to ' + VECTOR_TYPE),
    _template(DiagnosticKind.FLOAT_LITERAL_FOR_INT,
              r"to ' ?temp highp int'"),
    _template(DiagnosticKind.VECTOR_DIMENSION_MISMATCH,
              _operands(VECTOR_TYPE, VECTOR_TYPE)),
    _template(DiagnosticKind.VECTOR_SCALAR_COMPARISON,
              r"no operation '(>=|>|<=|<)' exists that takes a left-hand operand of type "
              + VECTOR_TYPE + r' and a right operand of type ' + FLOAT_TYPE),
    _template(DiagnosticKind.BOOLEAN_EXPECTED,
              r'boolean expression expected'),
    _template(DiagnosticKind.INT_FLOAT_OPERATION,
              r'(?:' + _operands(FLOAT_TYPE, INT_TYPE) + r'|' + _operands(INT_TYPE, FLOAT_TYPE) + r')'),
    _template(DiagnosticKind.INT_TO_FLOAT,
              r'cannot convert from ' + INT_TYPE + r' to ' + FLOAT_TYPE),
    _template(DiagnosticKind.BOOL_OPERATION,
              r'(?:' + _operands(BOOL_TYPE, FLOAT_TYPE) + r'|' + _operands(FLOAT_TYPE, BOOL_TYPE)
              + r'|' + _operands(BOOL_TYPE, BOOL_TYPE) + r')'),
    _template(DiagnosticKind.BOOL_CONVERSION,
              r'cannot convert from ' + BOOL_TYPE + r" to '[\w -]*float'"),
    _template(DiagnosticKind.VECTOR_RESIZE,
              r'cannot convert from ' + VECTOR_TYPE + r' to ' + VECTOR_TYPE),
    _template(DiagnosticKind.NO_MATCHING_OVERLOAD,
              r'no matching overloaded function found'),
    _template(DiagnosticKind.INTEGER_INDEX_REQUIRED,
              r'scalar integer expression required'),
    _template(DiagnosticKind.CONSTRUCTOR_TOO_FEW,
              r'not enough data provided for construction'),
    _template(DiagnosticKind.INT_OPERAND,
              r"'\s*(?:const|temp highp|temp mediump) int'"),
    _template(DiagnosticKind.FLOAT_TO_INT,
              r"cannot convert from '[^']*float' to '[^']*int'"),
    _template(DiagnosticKind.RETURN_TYPE_MISMATCH,
              r'cannot convert return value to function return type'),
    _template(DiagnosticKind.MISSING_RETURN,
              r'function does not return a value:\s*(\w+)'),
    _template(DiagnosticKind.TOO_MANY_ARGUMENTS,
              r'(?i)too many arguments'),
    _template(DiagnosticKind.NON_CONSTANT_INITIALIZER,
              r'(?i)non-constant (?:global |expression: )?initializer'),
    _template(DiagnosticKind.UNSUPPORTED_IN_VERSION,
              r'(?i)not supported for this version'),
    _template(DiagnosticKind.SWIZZLE_OUT_OF_RANGE,
              r'(?i)vector swizzle selection out of range'),
    _template(DiagnosticKind.EXTRANEOUS_SEMICOLON,
              r'extraneous semicolon.*not supported|not supported.*extraneous semicolon',
              includes_token=True),
    _template(DiagnosticKind.SCALAR_SWIZZLE,
              r'scalar swizzle.*not supported|not supported.*scalar swizzle',
              includes_token=True),
    _template(DiagnosticKind.UNDECLARED_IDENTIFIER,
              r'undeclared identifier'),
)

_TEMPLATES_BY_KIND = {template.kind: template for template in DIAGNOSTIC_TEMPLATES}


@dataclass(frozen=True)
class Diagnostic:
    """
    One validator error.

    Attributes:
        line: Line relative to the candidate body (<= 0 means header)
        token: Quoted token the validator blamed ('' if none)
        message: Message text after the token
        kinds: Every template the message matched, in priority order
    """
    line: int
    token: str
    message: str
    kinds: Tuple[DiagnosticKind, ...] = ()

    def match(self, kind: DiagnosticKind) -> Optional[re.Match]:
        """Re-run the template for `kind` to get at its captured groups."""
        return _TEMPLATES_BY_KIND[kind].search(self.token, self.message)

    def summary(self) -> str:
        return f'L{self.line}: {self.message}'


class DiagnosticParser:
    """
    Parses validator output into Diagnostic records.

    Usage:
        parser = DiagnosticParser()
        diagnostics = parser.parse(output, program.body_line_offset)
    """

    def __init__(self, templates: Tuple[DiagnosticTemplate, ...] = DIAGNOSTIC_TEMPLATES):
        self.templates = templates

    def parse(self, output: str, body_line_offset: int = 0) -> List[Diagnostic]:
        """
        Extract every ERROR line from validator output.

        Args:
            output: Combined stdout/stderr of the validator
            body_line_offset: Program lines before the candidate body

        Returns:
            Diagnostics in the order the validator reported them
        """
        diagnostics = []
        for match in DIAGNOSTIC_LINE.finditer(output):
            line_text, token, message = match.groups()
            if 'compilation terminated' in message:
                continue
            token = token or ''
            message = message.strip()
            diagnostics.append(Diagnostic(
                line=int(line_text) - body_line_offset,
                token=token,
                message=message,
                kinds=self.classify(token, message),
            ))
        return diagnostics

    def classify(self, token: str, message: str) -> Tuple[DiagnosticKind, ...]:
        """All kinds whose template matches, in template order."""
        return tuple(t.kind for t in self.templates if t.search(token, message))
