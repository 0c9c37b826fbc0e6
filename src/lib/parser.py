"""
Template parser

Turns template text into a flat-or-nested node list using one configured
delimiter set. Three kinds of tag are recognised by their opening delimiter:

    {{ expr }}            expression
    {% keyword args %}    statement (extends, include, import, block,
                          endblock, anything else kept as a generic Tag)
    {# text #}            comment

Each tag may carry whitespace markers right inside its delimiters:
"-" suppress, "+" preserve, "~" minimize ("{%- block body ~%}").

Block statements nest; every other node is a leaf. Malformed input raises
DependencyDiscoveryFailure located at the offending tag.

Example:
    >>> parsed = Parser('{% extends "base.html" %}{% block body %}Hi{% endblock %}',
    ...                 SyntaxDefinition()).parse()
    >>> [type(node).__name__ for node in parsed.nodes]
    ['Extends', 'BlockDef']
"""

import re
from pathlib import Path
from typing import List, Optional, Pattern, Tuple

from ..models.config import SyntaxDefinition
from ..models.parser import (
    WS_MARKERS,
    BlockDef,
    Comment,
    Expr,
    Extends,
    Import,
    Include,
    Lit,
    Node,
    Parsed,
    Tag,
    Ws,
)
from .errors import DependencyDiscoveryFailure

_STRING = re.compile(r'''^(?:"([^"]*)"|'([^']*)')$''')
_IMPORT = re.compile(r'''^(?:"([^"]*)"|'([^']*)')\s+as\s+([A-Za-z_]\w*)$''')
_IDENT = re.compile(r'^[A-Za-z_]\w*$')


def string_literal(text: str) -> Optional[str]:
    """Contents of a single- or double-quoted literal, None if text is not one"""
    match = _STRING.match(text.strip())
    if not match:
        return None
    return match.group(1) if match.group(1) is not None else match.group(2)


class Parser:
    """
    Parser for one template file

    Handles:
    - Configurable delimiters (any validated SyntaxDefinition)
    - Whitespace markers on every tag
    - Nested block definitions with optional named endblock
    - Error locations computed from the file text
    """

    def __init__(self, source: str, syntax: SyntaxDefinition, path: Optional[Path] = None):
        """
        Initialize parser with source text

        Args:
            source: Template text
            syntax: Delimiter set to dispatch on
            path: File the text came from, used to locate errors
        """
        self.source = source
        self.syntax = syntax
        self.path = path
        self.opener: Pattern[str] = re.compile(
            "|".join(
                re.escape(delimiter)
                for delimiter in (syntax.comment_start, syntax.block_start, syntax.expr_start)
            )
        )

    def error(self, message: str, offset: int) -> DependencyDiscoveryFailure:
        """Build a failure located at offset"""
        failure = DependencyDiscoveryFailure(message)
        if self.path is not None:
            failure.location_attach(self.path, self.source, offset=offset)
        return failure

    def parse(self) -> Parsed:
        """
        Parse the whole source

        Returns:
            Parsed holding the source and its top-level nodes

        Raises:
            DependencyDiscoveryFailure: On unterminated tags, unbalanced
                                        blocks or malformed statements
        """
        root: List[Node] = []
        stack: List[BlockDef] = []
        position = 0

        while position < len(self.source):
            match = self.opener.search(self.source, position)
            if not match:
                break

            start = match.start()
            nodes = stack[-1].nodes if stack else root
            if start > position:
                nodes.append(Lit(offset=position, text=self.source[position:start]))

            opener = match.group(0)
            if opener == self.syntax.comment_start:
                position = self.comment_parse(start, nodes)
            elif opener == self.syntax.block_start:
                position = self.statement_parse(start, nodes, stack)
            else:
                position = self.expression_parse(start, nodes)

        if position < len(self.source):
            nodes = stack[-1].nodes if stack else root
            nodes.append(Lit(offset=position, text=self.source[position:]))

        if stack:
            block = stack[-1]
            raise self.error(f"unclosed block `{block.name}`", block.offset)

        return Parsed(source=self.source, nodes=root)

    def tag_split(self, start: int, opener: str, closer: str, kind: str) -> Tuple[str, Ws, int]:
        """
        Extract the inside of a tag and its whitespace markers

        Returns:
            (inner text without markers, markers, position after the closer)
        """
        body_start = start + len(opener)
        end = self.source.find(closer, body_start)
        if end < 0:
            raise self.error(f"unterminated {kind}", start)

        inner = self.source[body_start:end]
        before = None
        after = None
        if inner and inner[0] in WS_MARKERS:
            before = inner[0]
            inner = inner[1:]
        if inner and inner[-1] in WS_MARKERS:
            after = inner[-1]
            inner = inner[:-1]
        return inner, Ws(before=before, after=after), end + len(closer)

    def comment_parse(self, start: int, nodes: List[Node]) -> int:
        _, ws, position = self.tag_split(
            start, self.syntax.comment_start, self.syntax.comment_end, "comment"
        )
        nodes.append(Comment(offset=start, ws=ws))
        return position

    def expression_parse(self, start: int, nodes: List[Node]) -> int:
        inner, ws, position = self.tag_split(
            start, self.syntax.expr_start, self.syntax.expr_end, "expression"
        )
        expr = inner.strip()
        if not expr:
            raise self.error("empty expression", start)
        nodes.append(Expr(offset=start, ws=ws, expr=expr))
        return position

    def statement_parse(self, start: int, nodes: List[Node], stack: List[BlockDef]) -> int:
        inner, ws, position = self.tag_split(
            start, self.syntax.block_start, self.syntax.block_end, "statement"
        )
        words = inner.strip().split(None, 1)
        if not words:
            raise self.error("empty statement", start)
        keyword = words[0]
        args = words[1].strip() if len(words) > 1 else ""

        if keyword in ("extends", "include"):
            path = string_literal(args)
            if path is None:
                raise self.error(f"`{keyword}` expects a quoted template name", start)
            node_type = Extends if keyword == "extends" else Include
            nodes.append(node_type(offset=start, ws=ws, path=path))

        elif keyword == "import":
            match = _IMPORT.match(args)
            if not match:
                raise self.error('`import` expects `"name" as scope`', start)
            path = match.group(1) if match.group(1) is not None else match.group(2)
            nodes.append(Import(offset=start, ws=ws, path=path, scope=match.group(3)))

        elif keyword == "block":
            if not _IDENT.match(args):
                raise self.error("`block` expects a name", start)
            block = BlockDef(offset=start, ws1=ws, name=args)
            nodes.append(block)
            stack.append(block)

        elif keyword == "endblock":
            if not stack:
                raise self.error("`endblock` without matching `block`", start)
            block = stack[-1]
            if args and args != block.name:
                raise self.error(
                    f"`endblock {args}` does not close `block {block.name}`", start
                )
            block.ws2 = ws
            stack.pop()

        else:
            nodes.append(Tag(offset=start, ws=ws, name=keyword, args=args))

        return position
