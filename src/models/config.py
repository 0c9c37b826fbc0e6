"""
Configuration data models

Immutable records produced by configuration resolution (SyntaxDefinition,
EscaperRule, WhitespaceHandling) and the pydantic schema of the raw
configuration document they are resolved from.

Document layout (YAML):

    general:
      dirs: [templates, shared]
      default_syntax: angle
      whitespace: suppress
    syntax:
      - name: angle
        block_start: "<%"
        block_end: "%>"
    escaper:
      - path: "myproject.escapers:js"
        extensions: [js]
"""

from enum import Enum
from dataclasses import dataclass
from typing import Any, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class WhitespaceHandling(Enum):
    """
    Whitespace policy applied to literal text around template tags

    PRESERVE leaves whitespace as written (the default), SUPPRESS removes all
    of it, MINIMIZE keeps a single character (a newline if the trimmed run
    contained one).
    """
    PRESERVE = "preserve"
    SUPPRESS = "suppress"
    MINIMIZE = "minimize"

    @classmethod
    def parse(cls, value: str) -> "WhitespaceHandling":
        """
        Parse a policy name case-insensitively

        Raises:
            ValueError: If value names no policy
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            choices = ", ".join(member.value for member in cls)
            raise ValueError(f"invalid whitespace policy {value!r}, expected one of: {choices}")


@dataclass(frozen=True)
class SyntaxDefinition:
    """
    One named delimiter set

    Attributes:
        block_start / block_end: Statement tag delimiters ("{%", "%}")
        expr_start / expr_end: Expression delimiters ("{{", "}}")
        comment_start / comment_end: Comment delimiters ("{#", "#}")
    """
    block_start: str = "{%"
    block_end: str = "%}"
    expr_start: str = "{{"
    expr_end: str = "}}"
    comment_start: str = "{#"
    comment_end: str = "#}"

    def delimiters(self) -> List[str]:
        """All six delimiters, openers first"""
        return [
            self.block_start,
            self.expr_start,
            self.comment_start,
            self.block_end,
            self.expr_end,
            self.comment_end,
        ]


@dataclass(frozen=True)
class EscaperRule:
    """
    Maps a set of file extensions (lowercase, no leading dot) to an
    escaper identifier
    """
    extensions: FrozenSet[str]
    escaper: str

    def matches(self, extension: str) -> bool:
        return extension in self.extensions


# --------------------------------------------------------------------------
# Raw document schema
# --------------------------------------------------------------------------

class General(BaseModel):
    """The `general` section"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    dirs: Optional[List[str]] = None
    default_syntax: Optional[str] = None
    whitespace: Optional[WhitespaceHandling] = None

    @field_validator("whitespace", mode="before")
    @classmethod
    def whitespace_normalize(cls, value: Any) -> Any:
        if isinstance(value, str):
            return WhitespaceHandling.parse(value)
        return value


class RawSyntax(BaseModel):
    """One entry of the `syntax` list; absent delimiters inherit defaults"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    name: str
    block_start: Optional[str] = None
    block_end: Optional[str] = None
    expr_start: Optional[str] = None
    expr_end: Optional[str] = None
    comment_start: Optional[str] = None
    comment_end: Optional[str] = None


class RawEscaper(BaseModel):
    """One entry of the `escaper` list"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str
    extensions: List[str]


class RawConfig(BaseModel):
    """Whole configuration document, every section optional"""
    model_config = ConfigDict(extra="forbid", frozen=True)

    general: Optional[General] = None
    syntax: Optional[List[RawSyntax]] = None
    escaper: Optional[List[RawEscaper]] = None
