"""
stencil - Ahead-of-time template compiler

Configuration resolution, template lookup and the compilation pipeline.
"""

__version__ = "1.0.0"

from .config import Configuration, config_fileRead, config_resolve
from .locator import SearchPath
from .errors import CompileFailure, SourceLocation
from .compiler import DeriveResult, build_template, build_skeleton, template_derive, declaration_derive
from .log import LOG, state_connectToLogger

__all__ = [
    "Configuration",
    "config_fileRead",
    "config_resolve",
    "SearchPath",
    "CompileFailure",
    "SourceLocation",
    "DeriveResult",
    "build_template",
    "build_skeleton",
    "template_derive",
    "declaration_derive",
    "LOG",
    "state_connectToLogger",
    "__version__",
]
