"""
Heuristic type inference for dialect and target expressions.

This is not a type checker. Arity is guessed from syntax alone: constructor
names, swizzle lengths, declarations seen so far and known runtime names.
Wrong guesses are expected; the external validator is the final arbiter and
the autofix loop corrects what slips through.
"""

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from ..runtime.tables import DEFAULT_TABLES, ConversionTables

TYPE_NAME_PATTERN = r'(?:[biu]?vec[234]|mat[234](?:x[234])?|float|int|bool|uint)'

_NUMBER = re.compile(r'^[+-]?\s*\d*\.?\d+(?:[eE][+-]?\d+)?$')
_MULTI_SWIZZLE = re.compile(r'\.(?:[xyzw]{2,}|[rgba]{2,}|[stpq]{2,})\b')
_TRAILING_SWIZZLE = re.compile(r'\.([xyzw]{2,4}|[rgba]{2,4}|[stpq]{2,4})\s*$')
_SCALAR_RETURNING = ('length', 'distance', 'dot')


@dataclass(frozen=True)
class TypeSymbol:
    """
    Inferred shape of a value.

    Attributes:
        base: Scalar kind - 'float', 'int', 'uint' or 'bool'
        rows: Component count for vectors (1 for scalars)
        cols: Column count for matrices (1 for scalars and vectors)
    """
    base: str = 'float'
    rows: int = 1
    cols: int = 1

    @property
    def arity(self) -> int:
        return self.rows * self.cols

    @property
    def is_scalar(self) -> bool:
        return self.rows == 1 and self.cols == 1

    @property
    def is_vector(self) -> bool:
        return self.rows > 1 and self.cols == 1

    @property
    def is_matrix(self) -> bool:
        return self.cols > 1

    @property
    def name(self) -> str:
        """GLSL type name, e.g. 'vec3', 'ivec2', 'mat4', 'mat2x3'."""
        if self.is_matrix:
            if self.rows == self.cols:
                return f'mat{self.cols}'
            return f'mat{self.cols}x{self.rows}'
        if self.is_scalar:
            return self.base
        prefix = {'float': '', 'int': 'i', 'uint': 'u', 'bool': 'b'}[self.base]
        return f'{prefix}vec{self.rows}'

    @classmethod
    def from_type_name(cls, type_name: str) -> Optional['TypeSymbol']:
        """
        Build a symbol from a target type name.

        Examples:
            'vec3' -> TypeSymbol('float', 3)
            'ivec2' -> TypeSymbol('int', 2)
            'mat3' -> TypeSymbol('float', 3, 3)
            'mat2x4' -> TypeSymbol('float', 4, 2)
        """
        if type_name in ('float', 'int', 'uint', 'bool'):
            return cls(type_name)
        match = re.fullmatch(r'([biu]?)vec([234])', type_name)
        if match:
            base = {'': 'float', 'i': 'int', 'u': 'uint', 'b': 'bool'}[match.group(1)]
            return cls(base, int(match.group(2)))
        match = re.fullmatch(r'mat([234])(?:x([234]))?', type_name)
        if match:
            cols = int(match.group(1))
            rows = int(match.group(2) or cols)
            return cls('float', rows, cols)
        return None


FLOAT = TypeSymbol('float')
VEC_COMPONENTS = 'xyzw'


def swizzle_for(arity: int) -> str:
    """'.x', '.xy', '.xyz' or '.xyzw' for a component count."""
    return '.' + VEC_COMPONENTS[:arity]


def collect_declarations(text: str, into: Optional[Dict[str, TypeSymbol]] = None) -> Dict[str, TypeSymbol]:
    """
    Record `type name` declarations found in text.

    Handles `vec3 a;`, `vec3 a = ...;` and the first name of
    `vec3 a, b;` lists; later declarations override earlier ones.
    """
    symbols = {} if into is None else into
    for match in re.finditer(r'\b(vec[234]|float|mat[234]|int)\s+([a-zA-Z_]\w*)\s*[=;,]', text):
        symbol = TypeSymbol.from_type_name(match.group(1))
        if symbol is not None:
            symbols[match.group(2)] = symbol
    return symbols


def strip_scalar_function_args(expr: str) -> str:
    """
    Replace calls to scalar-returning built-ins with a placeholder so their
    vector arguments do not look like vector results.
    """
    result = expr
    for fn in _SCALAR_RETURNING:
        pattern = re.compile(r'\b' + fn + r'\s*\(')
        pos = 0
        while True:
            match = pattern.search(result, pos)
            if not match:
                break
            depth = 1
            end = match.end()
            while end < len(result) and depth > 0:
                if result[end] == '(':
                    depth += 1
                elif result[end] == ')':
                    depth -= 1
                end += 1
            result = result[:match.start()] + '_S_' + result[end:]
            pos = match.start() + 3
    return result


def detect_vector_length(expr: str) -> int:
    """
    Longest multi-component swizzle in an expression (2..4), else 0.

    Swizzles inside length()/distance()/dot() arguments are ignored.
    """
    stripped = strip_scalar_function_args(expr)
    longest = 0
    for match in re.finditer(r'\.([xyzw]+|[rgba]+|[stpq]+)\b', stripped):
        size = len(match.group(1))
        if size > 1:
            longest = max(longest, size)
    return longest


def is_scalar_expression(expr: str, declared: Mapping[str, TypeSymbol],
                         tables: ConversionTables = DEFAULT_TABLES) -> bool:
    """
    Heuristic: is this expression definitely scalar-valued?

    True for number literals and for expressions that mention no vector
    constructor, no multi-component swizzle and no identifier declared with
    a non-scalar type (single-component swizzles count as scalar).
    """
    text = expr.strip()
    if _NUMBER.match(text):
        return True
    if re.search(r'\b(?:vec[234]|mat[234])\b', text):
        return False
    if _MULTI_SWIZZLE.search(text):
        return False

    single_swizzled = set(
        re.findall(r'\b([a-zA-Z_]\w*)\.[xyzwrgba](?![xyzwrgba\w])', text)
    )
    for ref in re.findall(r'\b[a-zA-Z_]\w*\b', text):
        if ref in tables.scalar_names or ref in single_swizzled:
            continue
        symbol = declared.get(ref)
        if symbol is not None and not symbol.is_scalar:
            return False
        arity = tables.uniform_arity(ref)
        if arity is not None and arity > 1:
            return False
    return True


def is_likely_scalar(expr: str) -> bool:
    """Looser check used for call arguments: no vector syntax at all."""
    text = expr.strip()
    if _NUMBER.match(text):
        return True
    if re.search(r'\bvec[234]\b', text):
        return False
    return not _MULTI_SWIZZLE.search(text)


def arg_vector_size(expr: str) -> int:
    """
    Vector size suggested by an expression (2..4), or 0 when unknown.

    A trailing swizzle wins; otherwise the largest constructor or
    multi-component swizzle anywhere in the expression.
    """
    text = expr.strip()
    trailing = _TRAILING_SWIZZLE.search(text)
    if trailing:
        return len(trailing.group(1))
    size = 0
    for match in re.finditer(r'\bvec([234])\s*\(', text):
        size = max(size, int(match.group(1)))
    for match in re.finditer(r'\.([xyzw]{2,4}|[rgba]{2,4}|[stpq]{2,4})(?!\w)', text):
        size = max(size, len(match.group(1)))
    return size


def scalar_score(expr: str) -> int:
    """
    How strongly an argument looks scalar; higher means more scalar.

    Literals score 10, explicit constructors -10, multi-swizzles and
    texture reads -5, expressions containing a number 3, single-component
    swizzles 5, bare identifiers 0.
    """
    text = expr.strip()
    if _NUMBER.match(text):
        return 10
    if re.search(r'\bvec[234]\s*\(', text):
        return -10
    if re.search(r'\.(?:[xyzw]{2,}|[rgba]{2,})\b', text):
        return -5
    if re.search(r'\btexture\s*\(', text):
        return -5
    if re.search(r'\d+\.?\d*', text):
        return 3
    if re.search(r'\.[xyzwrgba](?![xyzwrgba\w])', text):
        return 5
    return 0


def infer_expression_type(expr: str, declared: Mapping[str, TypeSymbol],
                          tables: ConversionTables = DEFAULT_TABLES) -> Optional[TypeSymbol]:
    """
    Best-effort type of an expression.

    Returns:
        TypeSymbol, or None when nothing conclusive was found
    """
    text = expr.strip()
    if not text:
        return None
    if is_scalar_expression(text, declared, tables):
        return FLOAT

    constructor = re.fullmatch(r'(' + TYPE_NAME_PATTERN + r')\s*\((.*)\)', text, re.DOTALL)
    if constructor and _balanced(constructor.group(2)):
        return TypeSymbol.from_type_name(constructor.group(1))

    trailing = re.search(r'\.([xyzw]{1,4}|[rgba]{1,4})\s*$', text)
    if trailing:
        return TypeSymbol('float', len(trailing.group(1)))

    identifier = re.fullmatch(r'[a-zA-Z_]\w*', text)
    if identifier:
        if text in declared:
            return declared[text]
        type_name = tables.uniform_types.get(text)
        if type_name:
            return TypeSymbol.from_type_name(type_name)
        return None

    size = detect_vector_length(text)
    if size:
        return TypeSymbol('float', size)
    return None


def _balanced(text: str) -> bool:
    depth = 0
    for ch in text:
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
            if depth < 0:
                return False
    return depth == 0
