"""
Autofix handlers, one per diagnostic kind.

Every handler has the signature `handler(ctx, match) -> bool` where `match`
is the diagnostic template's regex match. It returns True only when it
changed the candidate.
"""

from typing import Callable, Dict

from ...validation.diagnostics import DiagnosticKind
from . import calls, conversions, declarations, operators

HANDLERS: Dict[DiagnosticKind, Callable] = {
    DiagnosticKind.VECTOR_TO_FLOAT: conversions.fix_vector_to_float,
    DiagnosticKind.FLOAT_TO_VECTOR: conversions.fix_float_to_vector,
    DiagnosticKind.FLOAT_LITERAL_FOR_INT: conversions.fix_float_literal_for_int,
    DiagnosticKind.VECTOR_DIMENSION_MISMATCH: operators.fix_vector_dimension_mismatch,
    DiagnosticKind.VECTOR_SCALAR_COMPARISON: operators.fix_vector_scalar_comparison,
    DiagnosticKind.BOOLEAN_EXPECTED: operators.fix_boolean_expected,
    DiagnosticKind.INT_FLOAT_OPERATION: conversions.fix_int_float_operation,
    DiagnosticKind.INT_TO_FLOAT: conversions.fix_int_to_float,
    DiagnosticKind.BOOL_OPERATION: conversions.fix_bool_operation,
    DiagnosticKind.BOOL_CONVERSION: conversions.fix_bool_operation,
    DiagnosticKind.VECTOR_RESIZE: conversions.fix_vector_resize,
    DiagnosticKind.NO_MATCHING_OVERLOAD: calls.fix_no_matching_overload,
    DiagnosticKind.INTEGER_INDEX_REQUIRED: conversions.fix_integer_index,
    DiagnosticKind.CONSTRUCTOR_TOO_FEW: calls.fix_constructor_too_few,
    DiagnosticKind.INT_OPERAND: conversions.fix_int_operand,
    DiagnosticKind.FLOAT_TO_INT: conversions.fix_float_to_int,
    DiagnosticKind.RETURN_TYPE_MISMATCH: declarations.fix_return_type_mismatch,
    DiagnosticKind.MISSING_RETURN: declarations.fix_missing_return,
    DiagnosticKind.TOO_MANY_ARGUMENTS: calls.fix_too_many_arguments,
    DiagnosticKind.NON_CONSTANT_INITIALIZER: declarations.fix_non_constant_initializer,
    DiagnosticKind.UNSUPPORTED_IN_VERSION: declarations.fix_unsupported_in_header,
    DiagnosticKind.SWIZZLE_OUT_OF_RANGE: operators.fix_swizzle_out_of_range,
    DiagnosticKind.EXTRANEOUS_SEMICOLON: operators.fix_extraneous_semicolon,
    DiagnosticKind.SCALAR_SWIZZLE: operators.fix_scalar_swizzle,
    DiagnosticKind.UNDECLARED_IDENTIFIER: declarations.fix_undeclared_identifier,
}

__all__ = ['HANDLERS']
