"""
Per-preset helpers around the shader converter.

A preset has two independent shader slots, warp and comp. Presets whose
shaders could not be fixed are written under a `_broken_` prefix so they
land in a separate review bucket.
"""

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ..runtime.preamble import preamble_uniforms
from .converter import COMP_SLOT, WARP_SLOT, ConversionOutcome, ShaderConverter

BROKEN_PREFIX = '_broken_'

_UNIFORM_LINE = re.compile(r'^[ \t]*uniform\s+\S+\s+(\w+)\s*;[ \t]*(?:\r?\n)?', re.MULTILINE)


@dataclass(frozen=True)
class PresetShaderResult:
    """
    Both converted shader slots of one preset.

    Attributes:
        warp: Outcome for the warp slot
        comp: Outcome for the comp slot
    """
    warp: ConversionOutcome
    comp: ConversionOutcome

    @property
    def warnings(self) -> bool:
        return self.warp.warnings or self.comp.warnings


def convert_preset_shaders(warp: Optional[str], comp: Optional[str], name: str = '?',
                           converter: Optional[ShaderConverter] = None) -> PresetShaderResult:
    """
    Convert the warp and comp shaders of one preset.

    Args:
        warp: Dialect warp shader (may be empty)
        comp: Dialect comp shader (may be empty)
        name: Preset name for log messages
        converter: Converter to use (defaults to ShaderConverter())

    Returns:
        PresetShaderResult with both outcomes
    """
    converter = converter or ShaderConverter()
    return PresetShaderResult(
        warp=converter.convert(warp, WARP_SLOT, name),
        comp=converter.convert(comp, COMP_SLOT, name),
    )


def output_filename(base_name: str, warnings: bool) -> Tuple[str, str]:
    """
    File names for a converted preset.

    Args:
        base_name: Clean file name, e.g. 'preset.json'
        warnings: Whether the preset was flagged

    Returns:
        (name to write, stale counterpart to remove)
    """
    broken = BROKEN_PREFIX + base_name
    if warnings:
        return broken, base_name
    return base_name, broken


def strip_preamble_uniforms(text: Optional[str], names: Optional[Iterable[str]] = None) -> Optional[str]:
    """
    Remove `uniform <type> <name>;` lines the runtime preamble already declares.

    Used on already converted presets; a second declaration is a compile
    error in the runtime. Other uniform lines are kept.

    Args:
        text: Converted shader text (None and '' pass through)
        names: Declared names (defaults to the preamble's uniforms)
    """
    if not text:
        return text
    declared = set(preamble_uniforms() if names is None else names)
    return _UNIFORM_LINE.sub(lambda m: '' if m.group(1) in declared else m.group(0), text)
