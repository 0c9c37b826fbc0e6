"""
Models package for stencil

Contains data structures and type definitions for the compilation pipeline.
"""

from .state import ProgramState, CompileState, pipeline
from .config import SyntaxDefinition, EscaperRule, WhitespaceHandling, RawConfig
from .template import Print, TemplateArgs
from .parser import Parsed, Ws

__all__ = [
    "ProgramState",
    "CompileState",
    "pipeline",
    "SyntaxDefinition",
    "EscaperRule",
    "WhitespaceHandling",
    "RawConfig",
    "Print",
    "TemplateArgs",
    "Parsed",
    "Ws",
]
