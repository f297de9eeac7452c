"""Text partitioning, scanning helpers and heuristic type inference."""

from .source_text import (
    SHADER_BODY_MARKER,
    ShaderParts,
    find_matching_paren,
    replace_func_call,
    split_shader,
    split_top_level_commas,
)
from .type_inference import (
    TypeSymbol,
    collect_declarations,
    infer_expression_type,
    is_scalar_expression,
)

__all__ = [
    'SHADER_BODY_MARKER',
    'ShaderParts',
    'find_matching_paren',
    'replace_func_call',
    'split_shader',
    'split_top_level_commas',
    'TypeSymbol',
    'collect_declarations',
    'infer_expression_type',
    'is_scalar_expression',
]
