"""
Parser-specific data models

Node types produced by the template parser. Every node records the character
offset of its first delimiter so errors can be located in the file text.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Union

# Whitespace markers written right inside a delimiter
WS_SUPPRESS = "-"
WS_PRESERVE = "+"
WS_MINIMIZE = "~"
WS_MARKERS = (WS_SUPPRESS, WS_PRESERVE, WS_MINIMIZE)


@dataclass(frozen=True)
class Ws:
    """
    Whitespace markers of one tag

    Attributes:
        before: Marker after the opening delimiter (applies to text before the tag)
        after: Marker before the closing delimiter (applies to text after the tag)

    Example:
        "{%- block body ~%}" -> Ws(before="-", after="~")
    """
    before: Optional[str] = None
    after: Optional[str] = None


@dataclass
class Lit:
    """Literal text between tags"""
    offset: int
    text: str


@dataclass
class Expr:
    """Expression tag, e.g. {{ user.name }}"""
    offset: int
    ws: Ws
    expr: str


@dataclass
class Comment:
    offset: int
    ws: Ws


@dataclass
class Extends:
    """{% extends "base.html" %}"""
    offset: int
    ws: Ws
    path: str


@dataclass
class Include:
    """{% include "footer.html" %}"""
    offset: int
    ws: Ws
    path: str


@dataclass
class Import:
    """{% import "macros.html" as m %}"""
    offset: int
    ws: Ws
    path: str
    scope: str


@dataclass
class BlockDef:
    """
    Named block, {% block name %} ... {% endblock %}

    Attributes:
        ws1: Markers of the opening tag
        ws2: Markers of the endblock tag
    """
    offset: int
    ws1: Ws
    name: str
    nodes: List["Node"] = field(default_factory=list)
    ws2: Ws = field(default_factory=Ws)


@dataclass
class Tag:
    """Any other statement tag, kept verbatim for the code generator"""
    offset: int
    ws: Ws
    name: str
    args: str


Node = Union[Lit, Expr, Comment, Extends, Include, Import, BlockDef, Tag]


@dataclass
class Parsed:
    """Parse result of one template file"""
    source: str
    nodes: List[Node] = field(default_factory=list)
