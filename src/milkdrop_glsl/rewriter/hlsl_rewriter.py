"""
HLSL Rewriter - converts dialect shader text into a GLSL ES 3.00 candidate.

This module handles the text-level translation of preset shaders:
1. Comment stripping (block comments)
2. Type and keyword substitution: float4x4 -> mat4, float3 -> vec3, half -> float
3. Storage qualifiers: static removal, header const stripping, uniform prefixes
4. Call-site rewrites: saturate -> clamp, lerp -> mix, mul(A, B) -> (B * A),
   GetBlurN/GetPixel -> explicit texture reads, a % b -> mod(a, b)
5. Component selection after texture reads: texture(s, uv) -> texture(s, uv).xyz
6. Numeric normalization: int declarations -> float, 2 -> 2.0 in arithmetic
7. Uniform aliasing: narrowed vec4 uniforms, preamble duplicates commented out,
   user variables shadowing built-in functions renamed
8. Free variables: q1..q32 in the header -> packed uniform components
9. Continuation lines joined
10. Statement layout: one statement per line, declaration-time type fixes
11. Non-constant global initializers moved into the shader body

Design:
- String-based processing (no AST, the validator is the real type checker)
- Fixed step order; several steps depend on earlier ones
- Pure and deterministic; running it on its own output changes nothing
- Unrecognized constructs pass through untouched

Usage:
    rewriter = HLSLRewriter()
    candidate = rewriter.transform(dialect_source)
"""

import re
from typing import List

from ..analysis.source_text import (
    ShaderParts,
    brace_depths,
    paren_balance,
    split_shader,
    split_top_level_commas,
    statement_end,
)
from ..runtime.tables import DEFAULT_TABLES, ConversionTables
from . import call_rewrites
from .statement_layout import fix_declaration_types, join_continuation_lines, split_statements


class HLSLRewriter:
    """
    Rewrites dialect shader text into a target-language candidate.

    Every step is a method taking and returning the full shader text, run in
    the order listed by `steps`. The rewriter holds no state between calls.
    """

    def __init__(self, tables: ConversionTables = DEFAULT_TABLES):
        """
        Initialize the rewriter.

        Args:
            tables: Dialect/runtime name tables
        """
        self.tables = tables

        # Widest names first: float4x4 must not be seen as float4 + 'x4'
        self.type_substitutions = [
            (r'\bfloat4x4\b', 'mat4'),
            (r'\bfloat3x3\b', 'mat3'),
            (r'\bfloat2x2\b', 'mat2'),
            (r'\bfloat(\d)x(\d)\b', r'mat\1x\2'),
            (r'\bdouble4x4\b', 'mat4'),
            (r'\bdouble3x3\b', 'mat3'),
            (r'\bdouble2x2\b', 'mat2'),
            (r'\bfloat4\b', 'vec4'),
            (r'\bfloat3\b', 'vec3'),
            (r'\bfloat2\b', 'vec2'),
            (r'\bfloat1\b', 'float'),
            (r'\bhalf4\b', 'vec4'),
            (r'\bhalf3\b', 'vec3'),
            (r'\bhalf2\b', 'vec2'),
            (r'\bhalf\b', 'float'),
            (r'\bdouble4\b', 'vec4'),
            (r'\bdouble3\b', 'vec3'),
            (r'\bdouble2\b', 'vec2'),
            (r'\bdouble\b', 'float'),
            (r'\bint4\b', 'ivec4'),
            (r'\bint3\b', 'ivec3'),
            (r'\bint2\b', 'ivec2'),
            (r'\bbool4\b', 'bvec4'),
            (r'\bbool3\b', 'bvec3'),
            (r'\bbool2\b', 'bvec2'),
            (r'\bM_PI\b', 'PI'),
            (r'\bsampler\b(?![\d_])', 'sampler2D'),
        ]

        self.steps = [
            self.strip_comments,
            self.substitute_types,
            self.normalize_qualifiers,
            self.rewrite_calls,
            self.insert_texture_swizzles,
            self.normalize_numbers,
            self.alias_uniforms,
            self.rename_shadowed_builtins,
            self.rewrite_free_variables,
            self.join_lines,
            self.layout_statements,
            self.relocate_global_initializers,
        ]

    def transform(self, source: str) -> str:
        """
        Rewrite dialect shader text.

        Args:
            source: Dialect shader text (may be empty)

        Returns:
            Target-language candidate text
        """
        if not source:
            return ''
        text = source.replace('\r\n', '\n')
        for step in self.steps:
            text = step(text)
        return text

    # ========================================================================
    # Lexical steps
    # ========================================================================

    def strip_comments(self, text: str) -> str:
        """Remove /* ... */ block comments. Line comments are kept."""
        return re.sub(r'/\*[\s\S]*?\*/', '', text)

    def substitute_types(self, text: str) -> str:
        """Map dialect type names and keywords to target names."""
        for pattern, replacement in self.type_substitutions:
            text = re.sub(pattern, replacement, text)
        return text

    def normalize_qualifiers(self, text: str) -> str:
        """
        Normalize storage qualifiers.

        'static const' becomes 'const' and bare 'static' disappears: every
        file-scope variable is already shader-local in the target. Header
        'const' is stripped because the dialect's static const is really an
        initialized variable, and its initializer often reads uniforms.
        Sampler and texsize declarations get the 'uniform' qualifier.
        """
        text = re.sub(r'\bstatic\s+const\b', 'const', text)
        text = re.sub(r'\bstatic\b[ \t]*', '', text)

        parts = split_shader(text)
        if parts.has_marker:
            header = re.sub(r'^([ \t]*)const\s+(?=\w)', r'\1', parts.header, flags=re.MULTILINE)
            text = ShaderParts(header, parts.opening, parts.body, parts.closing).join()

        text = re.sub(r'^([ \t]*)(?!uniform\s)(sampler[23]D\s)', r'\1uniform \2', text, flags=re.MULTILINE)
        text = re.sub(r'^([ \t]*)(?!uniform\s)(vec4\s+texsize_)', r'\1uniform \2', text, flags=re.MULTILINE)
        return text

    def rewrite_calls(self, text: str) -> str:
        """Rewrite dialect built-ins that have no 1:1 target equivalent."""
        text = re.sub(r'#define\s+sat\s+saturate\b', '#define sat(x) clamp(x, 0.0, 1.0)', text)
        for pattern, replacement in self.tables.function_renames:
            text = re.sub(r'\b' + pattern + r'\b', replacement, text)
        text = call_rewrites.convert_mod_operator(text)
        text = call_rewrites.expand_saturate(text)
        text = call_rewrites.swap_mul_operands(text)
        text = call_rewrites.expand_helper_aliases(text)
        return call_rewrites.expand_texture_helpers(text)

    def insert_texture_swizzles(self, text: str) -> str:
        return call_rewrites.add_texture_swizzle(text)

    # ========================================================================
    # Numeric normalization
    # ========================================================================

    def normalize_numbers(self, text: str) -> str:
        """
        Use float consistently where the dialect mixes int and float.

        All int variable declarations (loop counters included) become float,
        and bare integer literals in arithmetic positions gain '.0'.
        Preprocessor lines and array subscripts are left alone.
        """
        text = re.sub(r'^(\s*)int\b(?=\s+[a-zA-Z_])', r'\1float', text, flags=re.MULTILINE)
        text = re.sub(r'(\bfor\s*\(\s*)int\b', r'\1float', text)
        return '\n'.join(self._float_literals(line) for line in text.split('\n'))

    def _float_literals(self, line: str) -> str:
        if re.match(r'^\s*(#|shader_body)', line):
            return line

        def after_operator(match):
            start = match.start(2)
            # Exponent of a float literal such as 1e-5
            if start >= 2 and line[start - 1] in '+-' and line[start - 2] in 'eE':
                if start >= 3 and (line[start - 3].isdigit() or line[start - 3] == '.'):
                    return match.group(0)
            return match.group(1) + match.group(2) + '.0'

        line = re.sub(r'([*/+\-=<>,(&|?:]\s*)(\d+)(?![\d.xyzwfueE\]])', after_operator, line)
        line = re.sub(r'(\breturn\s+)(\d+)(?![\d.xyzwfueE\[])', r'\1\2.0', line)
        line = re.sub(r'(\s)(\d+)(\s*[-+*/><])(?![.\dxyzwfu])', r'\1\2.0\3', line)
        return line

    # ========================================================================
    # Uniform aliasing
    # ========================================================================

    def alias_uniforms(self, text: str) -> str:
        """
        Align uniform usage with the runtime preamble.

        Bare references to vec4 uniforms that presets use as 2-component
        values get '.xy'. Declarations of names the preamble already
        provides are commented out so line numbers stay put.
        """
        lines = text.split('\n')
        for i, line in enumerate(lines):
            match = re.match(r'^\s*uniform\s+\w+\s+(\w+)\s*;', line)
            if match and match.group(1) in self.tables.uniform_types:
                lines[i] = '// (built-in) ' + line.strip()
        text = '\n'.join(lines)

        for name in self.tables.narrowed_vec4_uniforms:
            text = re.sub(r'\b' + name + r'\b(?!\s*[.\[])', name + '.xy', text)
        return text

    def rename_shadowed_builtins(self, text: str) -> str:
        """
        Rename user variables named like target built-in functions.

        `vec3 mod;` is legal in the dialect but reserved in the target. The
        variable becomes `_mod` everywhere; calls `mod(` stay untouched.
        """
        for name in self.tables.shadowable_builtins:
            declaration = re.compile(
                r'\b(?:float|vec[234]|mat[234]|int|bool)\b[^;(]*\b' + name + r'\b\s*[,;=)]'
            )
            if not declaration.search(text):
                continue
            text = re.sub(r'(?<![\w.])' + name + r'\b(?!\s*\()', '_' + name, text)
        return text

    def rewrite_free_variables(self, text: str) -> str:
        """
        Translate runtime-provided channels referenced from the header.

        The entry point declares q1..q32 as locals; helper functions in the
        header cannot see them and read the packed uniforms instead.
        """
        parts = split_shader(text)
        if not parts.has_marker:
            return text
        channels = self.tables.q_channels
        header = re.sub(r'\bq\d{1,2}\b', lambda m: channels.get(m.group(0), m.group(0)), parts.header)
        return ShaderParts(header, parts.opening, parts.body, parts.closing).join()

    # ========================================================================
    # Statement layout
    # ========================================================================

    def join_lines(self, text: str) -> str:
        return '\n'.join(join_continuation_lines(text.split('\n')))

    def layout_statements(self, text: str) -> str:
        """One statement per line, then declaration-time type fixes."""
        lines = split_statements(text.split('\n'))
        return '\n'.join(fix_declaration_types(lines, self.tables))

    def relocate_global_initializers(self, text: str) -> str:
        """
        Move non-constant global initializers into the shader body.

        The target requires constant expressions for global initializers.
        `vec3 cam = vec3(_qa.w, _qb.x, 0.0);` stays declared on the same
        header line as `vec3 cam;` and `cam = vec3(...);` is inserted at the
        start of the body. Only declarations at brace depth 0 are touched.
        """
        parts = split_shader(text)
        if not parts.has_marker or not parts.opening:
            return text

        header_lines = parts.header.split('\n')
        depths = brace_depths(header_lines)
        moved: List[str] = []
        for i, line in enumerate(header_lines):
            if depths[i] != 0:
                continue
            match = re.match(r'^(\s*)(float|vec[234]|mat[234]|int)\s+(.+)', line)
            if not match:
                continue
            indent, type_name, rest = match.groups()
            if re.match(r'\s*\w+\s*\(', rest) or '=' not in rest or '{' in rest:
                continue
            if statement_end(rest) < 0 or paren_balance(rest) != 0:
                continue
            initializer = rest[rest.index('=') + 1:]
            if not self._is_non_constant(initializer):
                continue

            names = []
            for declarator in split_top_level_commas(re.sub(r';\s*$', '', rest)):
                if '=' in declarator:
                    name, init = declarator.split('=', 1)
                    names.append(name.strip())
                    moved.append(f'{name.strip()} = {init.strip()};')
                else:
                    names.append(declarator.strip())
            header_lines[i] = f'{indent}{type_name} {", ".join(names)};'

        if not moved:
            return text
        body = '\n' + '\n'.join(moved) + parts.body
        return ShaderParts('\n'.join(header_lines), parts.opening, body, parts.closing).join()

    def _is_non_constant(self, initializer: str) -> bool:
        # Any identifier other than a constructor or literal keyword
        return bool(re.search(
            r'\b(?!vec[234]\b|mat[234]\b|float\b|int\b|bool\b|uint\b|true\b|false\b)[a-zA-Z_]\w*',
            initializer,
        ))
