"""
Template declaration models

A declaration names the template to compile and carries per-template
overrides (syntax, escaper key, configuration document, whitespace policy,
diagnostic print mode, block selector).
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional


class Print(Enum):
    """Diagnostic print mode"""
    NONE = "none"
    AST = "ast"
    CODE = "code"
    ALL = "all"

    def ast_wanted(self) -> bool:
        return self in (Print.AST, Print.ALL)

    def code_wanted(self) -> bool:
        return self in (Print.CODE, Print.ALL)


@dataclass(frozen=True)
class TemplateArgs:
    """
    Arguments of one template declaration

    Exactly one of `path` and `source` is set; `ext` is required with
    `source` and names the extension used for escaper selection.

    Attributes:
        name: Identifier of the generated artifact (e.g., "HelloTemplate")
        path: Template file name, located through the search path
        source: Inline template text
        ext: Extension of inline text (e.g., "html")
        syntax: Named delimiter set; None selects the configured default
        escape: Explicit escaper key overriding the file extension
        config: Configuration document path relative to the project root
        whitespace: Whitespace policy override ("preserve", "suppress", "minimize")
        print: Diagnostic print mode
        block: Render only this named block
    """
    name: str = "Template"
    path: Optional[str] = None
    source: Optional[str] = None
    ext: Optional[str] = None
    syntax: Optional[str] = None
    escape: Optional[str] = None
    config: Optional[str] = None
    whitespace: Optional[str] = None
    print: Print = Print.NONE
    block: Optional[str] = None

    @classmethod
    def fallback(cls, name: str = "Template") -> "TemplateArgs":
        """Placeholder arguments used by the degraded pipeline"""
        return cls(name=name, source="", ext="txt")
