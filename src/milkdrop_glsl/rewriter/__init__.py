"""Rewrite Engine: dialect shader text -> GLSL ES 3.00 candidate."""

from .hlsl_rewriter import HLSLRewriter

__all__ = ['HLSLRewriter']
