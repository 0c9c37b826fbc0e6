"""
stencil - Ahead-of-time template compiler

Resolves per-project template configuration (delimiter sets, escapers,
search directories), locates template files and compiles a template and
everything it extends or includes into a Python module.
"""

__version__ = "1.0.0"

from .lib import (
    CompileFailure,
    Configuration,
    DeriveResult,
    LOG,
    build_template,
    config_resolve,
    declaration_derive,
    state_connectToLogger,
    template_derive,
)
from .models import TemplateArgs

__all__ = [
    "CompileFailure",
    "Configuration",
    "DeriveResult",
    "LOG",
    "TemplateArgs",
    "build_template",
    "config_resolve",
    "declaration_derive",
    "state_connectToLogger",
    "template_derive",
    "__version__",
]
