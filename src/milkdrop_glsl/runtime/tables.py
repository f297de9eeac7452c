"""
Read-only lookup tables shared by the rewriter, the autofix engine and the
validation program builder.

Tables are grouped in one frozen dataclass so that callers (and tests) can
pass an explicit instance instead of relying on module globals. The default
instance is derived from the synthetic preamble so uniform names only need
to be maintained in one place.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import FrozenSet, Mapping, Optional, Tuple

from .preamble import COMPONENTS, Q_PACKS, preamble_uniforms


def _q_channels() -> Mapping[str, str]:
    channels = {}
    for i in range(32):
        channels[f'q{i + 1}'] = f'{Q_PACKS[i // 4]}.{COMPONENTS[i % 4]}'
    return MappingProxyType(channels)


_SCALAR_BUILTINS = frozenset({
    'sin', 'cos', 'tan', 'asin', 'acos', 'atan', 'pow', 'sqrt', 'abs', 'sign',
    'floor', 'ceil', 'fract', 'mod', 'min', 'max', 'clamp', 'mix', 'step',
    'smoothstep', 'length', 'distance', 'dot', 'log', 'log2', 'exp', 'exp2',
    'inversesqrt', 'radians', 'degrees', 'dFdx', 'dFdy', 'fwidth',
})

_SCALAR_RUNTIME_NAMES = frozenset({
    'time', 'fps', 'frame', 'progress', 'decay', 'bass', 'mid', 'treb', 'vol',
    'bass_att', 'mid_att', 'treb_att', 'vol_att', 'rad', 'ang',
})


@dataclass(frozen=True)
class ConversionTables:
    """
    Immutable name tables describing the dialect and the target runtime.

    Attributes:
        uniform_types: Uniforms the runtime preamble declares (name -> type)
        narrowed_vec4_uniforms: vec4 uniforms presets use as 2-component
            values; bare references get a '.xy' suffix during rewriting
        truncatable_vec4_uniforms: vec4 uniforms that may receive a swizzle
            when a binary operation mixes vector sizes
        builtin_samplers: Sampler names the runtime always provides
        scalar_names: Names known to evaluate to a scalar (built-in
            functions, scalar uniforms, q-channel locals, rad/ang)
        q_channels: q1..q32 -> packed uniform component ('_qa.x' ...)
        shadowable_builtins: Target built-in function names that user
            variables must not reuse
        entry_point_locals: Locals the runtime declares in main() before
            the body runs (name -> type)
        function_renames: Dialect function name -> target function name
    """
    uniform_types: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(preamble_uniforms())
    )
    narrowed_vec4_uniforms: Tuple[str, ...] = (
        'rand_frame', 'rand_preset', 'roam_cos', 'roam_sin',
        'slow_roam_cos', 'slow_roam_sin',
    )
    truncatable_vec4_uniforms: Tuple[str, ...] = (
        'rand_frame', 'rand_preset', 'roam_cos', 'roam_sin',
        'slow_roam_cos', 'slow_roam_sin', 'aspect',
        '_qa', '_qb', '_qc', '_qd', '_qe', '_qf', '_qg', '_qh',
        'texsize', 'texsize_noise_lq', 'texsize_noise_mq', 'texsize_noise_hq',
        'texsize_noise_lq_lite', 'texsize_noisevol_lq', 'texsize_noisevol_hq',
    )
    builtin_samplers: FrozenSet[str] = frozenset({
        'sampler_main', 'sampler_fw_main', 'sampler_fc_main',
        'sampler_pw_main', 'sampler_pc_main',
        'sampler_blur1', 'sampler_blur2', 'sampler_blur3',
        'sampler_noise_lq', 'sampler_noise_lq_lite', 'sampler_noise_mq',
        'sampler_noise_hq', 'sampler_pw_noise_lq',
        'sampler_noisevol_lq', 'sampler_noisevol_hq',
    })
    scalar_names: FrozenSet[str] = field(
        default_factory=lambda: _SCALAR_BUILTINS | _SCALAR_RUNTIME_NAMES
        | frozenset(f'q{i}' for i in range(1, 33))
    )
    q_channels: Mapping[str, str] = field(default_factory=_q_channels)
    shadowable_builtins: Tuple[str, ...] = (
        'mod', 'cross', 'step', 'dot', 'sign', 'normalize', 'reflect',
        'length', 'distance', 'abs', 'min', 'max', 'exp', 'log', 'pow',
        'sqrt', 'floor', 'ceil', 'fract', 'sample', 'input', 'output',
    )
    entry_point_locals: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({
            'uv': 'vec2', 'ret': 'vec3', 'rad': 'float', 'ang': 'float',
        })
    )
    function_renames: Tuple[Tuple[str, str], ...] = (
        (r'tex2[dD]', 'texture'),
        (r'tex3[dD]', 'texture'),
        (r'lerp', 'mix'),
        (r'frac', 'fract'),
        (r'rsqrt', 'inversesqrt'),
        (r'atan2', 'atan'),
        (r'ddx', 'dFdx'),
        (r'ddy', 'dFdy'),
    )

    def uniform_arity(self, name: str) -> Optional[int]:
        """
        Component count of a preamble uniform, or None if unknown.

        Samplers and non-float types report None.
        """
        type_name = self.uniform_types.get(name)
        if type_name is None:
            return None
        if type_name in ('float', 'int'):
            return 1
        if type_name.startswith('vec'):
            return int(type_name[3])
        return None


DEFAULT_TABLES = ConversionTables()
