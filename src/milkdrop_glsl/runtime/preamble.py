"""
Synthetic GLSL ES 3.00 preamble mirroring the visualizer runtime.

The validator never sees the real runtime template, so this module carries a
copy of everything the runtime declares before user code: precision
statements, the lum() helpers, varyings, samplers and uniforms. When the
runtime's own shader template changes, PREAMBLE_VERSION must be bumped and
this text updated, otherwise validation drifts from what the browser compiles.

Layout of a validation program:
    GLSL_PREAMBLE          (this module)
    user header            (candidate text before the shader_body marker)
    ENTRY_POINT_LINES      (void main() + the locals the runtime declares)
    user body              (candidate text inside the shader_body braces)
    EPILOGUE               (writes fragColor and closes main)
"""

import re
from typing import Dict, List

PREAMBLE_VERSION = 3

GLSL_PREAMBLE = """#version 300 es
precision mediump float;
precision highp int;
precision mediump sampler2D;
precision mediump sampler3D;

vec3 lum(vec3 v){ return vec3(dot(v, vec3(0.32,0.49,0.29))); }
vec3 lum(vec2 v){ return vec3(dot(vec3(v,0.0), vec3(0.32,0.49,0.29))); }
float lum(float v){ return v; }

in vec2 _uv_in;
in vec2 uv_orig;
in vec4 vColor;
out vec4 fragColor;

uniform sampler2D sampler_main;
uniform sampler2D sampler_fw_main;
uniform sampler2D sampler_fc_main;
uniform sampler2D sampler_pw_main;
uniform sampler2D sampler_pc_main;
uniform sampler2D sampler_blur1;
uniform sampler2D sampler_blur2;
uniform sampler2D sampler_blur3;
uniform sampler2D sampler_noise_lq;
uniform sampler2D sampler_noise_lq_lite;
uniform sampler2D sampler_noise_mq;
uniform sampler2D sampler_noise_hq;
uniform sampler2D sampler_pw_noise_lq;
uniform sampler3D sampler_noisevol_lq;
uniform sampler3D sampler_noisevol_hq;

uniform float time;
uniform float decay;
uniform float gammaAdj;
uniform float echo_zoom;
uniform float echo_alpha;
uniform float echo_orientation;
uniform int invert;
uniform int brighten;
uniform int darken;
uniform int solarize;
uniform float fShader;
uniform float progress;
uniform vec2 resolution;
uniform vec4 aspect;
uniform vec4 texsize;
uniform vec4 texsize_noise_lq;
uniform vec4 texsize_noise_mq;
uniform vec4 texsize_noise_hq;
uniform vec4 texsize_noise_lq_lite;
uniform vec4 texsize_noisevol_lq;
uniform vec4 texsize_noisevol_hq;

uniform float bass;
uniform float mid;
uniform float treb;
uniform float vol;
uniform float bass_att;
uniform float mid_att;
uniform float treb_att;
uniform float vol_att;

uniform float frame;
uniform float fps;

uniform vec4 _qa;
uniform vec4 _qb;
uniform vec4 _qc;
uniform vec4 _qd;
uniform vec4 _qe;
uniform vec4 _qf;
uniform vec4 _qg;
uniform vec4 _qh;

// q1..q32 are declared as writable locals inside main() (see ENTRY_POINT_LINES)
// so presets can both read and write them.

uniform vec4 slow_roam_cos;
uniform vec4 roam_cos;
uniform vec4 slow_roam_sin;
uniform vec4 roam_sin;

uniform float blur1_min;
uniform float blur1_max;
uniform float blur2_min;
uniform float blur2_max;
uniform float blur3_min;
uniform float blur3_max;

uniform float scale1;
uniform float scale2;
uniform float scale3;
uniform float bias1;
uniform float bias2;
uniform float bias3;

uniform vec4 rand_frame;
uniform vec4 rand_preset;
uniform vec3 hue_shader;

float PI = 3.141592653589793;
float M_PI = 3.141592653589793;
float M_PI_2 = 1.5707963267948966;
float M_2PI = 6.283185307179586;
float M_INV_PI_2 = 0.15915494309189535;
"""

Q_PACKS = ('_qa', '_qb', '_qc', '_qd', '_qe', '_qf', '_qg', '_qh')
COMPONENTS = 'xyzw'


def _q_local_lines() -> List[str]:
    lines = []
    for pack_index, pack in enumerate(Q_PACKS):
        first = pack_index * 4 + 1
        decls = ','.join(
            f'q{first + i}={pack}.{COMPONENTS[i]}' for i in range(4)
        )
        lines.append(f'  float {decls};')
    return lines


# Locals the runtime declares at the top of main() before running user code.
ENTRY_POINT_LINES = [
    'void main(void) {',
    '  vec2 uv = _uv_in;',
    '  vec3 ret;',
    '  float rad = length(uv_orig - 0.5);',
    '  float ang = atan(uv_orig.x - 0.5, uv_orig.y - 0.5);',
] + _q_local_lines()

EPILOGUE = '  fragColor = vec4(ret, 1.0) * vColor;\n}'

# Number of full lines GLSL_PREAMBLE contributes to a program.
PREAMBLE_LINE_COUNT = GLSL_PREAMBLE.count('\n')

ENTRY_POINT_LINE_COUNT = len(ENTRY_POINT_LINES)

_UNIFORM_DECL = re.compile(r'^uniform\s+(\w+)\s+(\w+)\s*;', re.MULTILINE)


def preamble_uniforms() -> Dict[str, str]:
    """
    Map every uniform name declared by the preamble to its type name.

    Returns:
        Dict of uniform name -> GLSL type name (e.g. 'texsize' -> 'vec4')
    """
    return {name: type_name for type_name, name in _UNIFORM_DECL.findall(GLSL_PREAMBLE)}
