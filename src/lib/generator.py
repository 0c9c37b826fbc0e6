"""
Python code generator

Emits a self-contained Python module from a root context, the full context
map and an optional Heritage:

    \"\"\"Generated by stencil from hello.html -- do not edit.\"\"\"

    from html import escape as _escape

    TEMPLATE_NAME = 'Hello'
    SOURCE_PATH = '/proj/templates/hello.html'
    SYNTAX = 'default'
    ESCAPER = 'Html'

    _EXPR_0 = compile('name', '/proj/templates/hello.html', 'eval')


    def render(**context):
        _buf = []
        _buf.append('Hello, ')
        _buf.append(_escape(str(eval(_EXPR_0, dict(context)))))
        _buf.append('!')
        return ''.join(_buf)

Literal text honours the whitespace policy: the configured default, replaced
tag by tag by the markers written inside delimiters. Expressions evaluate with a
copy of the context as their globals, nested scopes included. Includes are inlined,
imports only matter to dependency discovery, blocks resolve through the
Heritage. Statement tags other than extends/include/import/block are
rejected.
"""

import re
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from ..models.config import WhitespaceHandling
from ..models.parser import (
    WS_MINIMIZE,
    WS_PRESERVE,
    WS_SUPPRESS,
    BlockDef,
    Comment,
    Expr,
    Extends,
    Import,
    Include,
    Lit,
    Node,
    Tag,
)
from .errors import CompileFailure, GenerationFailure, UnresolvedInheritedBlock
from .heritage import Context, Heritage
from .input import TemplateInput
from .log import LOG

_DOTTED = re.compile(r'^[A-Za-z_]\w*(?:\.[A-Za-z_]\w*)*$')

# Marks the edge of a node list with no tag next to it
_NO_TAG = object()

_MARKER_POLICY = {
    WS_SUPPRESS: WhitespaceHandling.SUPPRESS,
    WS_PRESERVE: WhitespaceHandling.PRESERVE,
    WS_MINIMIZE: WhitespaceHandling.MINIMIZE,
}

Marker = Union[str, None, object]


def escaper_binding(escaper: str) -> str:
    """
    Import statement binding `_escape` for an escaper identifier

    Raises:
        GenerationFailure: If the identifier is not Html, Text or "module:callable"
    """
    if escaper == "Html":
        return "from html import escape as _escape"
    if escaper == "Text":
        return "_escape = str"
    module, _, attr = escaper.partition(":")
    if attr and _DOTTED.match(module) and _DOTTED.match(attr) and "." not in attr:
        return f"from {module} import {attr} as _escape"
    raise GenerationFailure(
        f"escaper {escaper!r} is neither Html, Text nor a 'module:callable' reference"
    )


def whitespace_trim(text: str, policy: Optional[WhitespaceHandling], leading: bool) -> str:
    """Apply one policy to the leading or trailing whitespace run of text"""
    if policy is None or policy is WhitespaceHandling.PRESERVE:
        return text
    stripped = text.lstrip() if leading else text.rstrip()
    if policy is WhitespaceHandling.SUPPRESS:
        return stripped
    run = text[: len(text) - len(stripped)] if leading else text[len(stripped):]
    if not run:
        return text
    kept = "\n" if "\n" in run else " "
    return kept + stripped if leading else stripped + kept


def marker_after(node: Node) -> Marker:
    """Marker governing the text that follows node"""
    if isinstance(node, Lit):
        return _NO_TAG
    if isinstance(node, BlockDef):
        return node.ws2.after
    return node.ws.after


def marker_before(node: Node) -> Marker:
    """Marker governing the text that precedes node"""
    if isinstance(node, Lit):
        return _NO_TAG
    if isinstance(node, BlockDef):
        return node.ws1.before
    return node.ws.before


class Generator:
    """
    Generates the Python module of one template declaration

    Attributes:
        input: Root template identity
        contexts: Every discovered context by path
        heritage: Merged block graph, None when the root uses no inheritance
    """

    def __init__(
        self,
        input: TemplateInput,
        contexts: Dict[Path, Context],
        heritage: Optional[Heritage] = None,
    ) -> None:
        self.input = input
        self.contexts = contexts
        self.heritage = heritage
        self.whitespace = input.config.whitespace
        self.lines: List[str] = []
        self.expressions: List[Tuple[str, Path]] = []
        self.includes: List[Path] = []

    def build(self, ctx: Context) -> str:
        """
        Generate the module for the root context

        Raises:
            GenerationFailure: On unsupported tags, invalid expressions,
                               include cycles or an unknown escaper
            UnresolvedInheritedBlock: If the selected block does not exist
        """
        block = self.input.block
        if block is not None:
            found = self.heritage.block_get(block) if self.heritage is not None else None
            if found is None:
                raise UnresolvedInheritedBlock(block).location_attach(ctx.path)
            def_ctx, definition = found
            self.nodes_write(def_ctx, definition.nodes, definition.ws1.after, definition.ws2.before)
        elif self.heritage is not None:
            root = self.heritage.root
            self.nodes_write(root, root.nodes)
        else:
            self.nodes_write(ctx, ctx.nodes)

        code = self.module_assemble()
        LOG(f"Generated {len(code.splitlines())} lines for {self.input.args.name}", level=2)
        return code

    def module_assemble(self) -> str:
        args = self.input.args
        origin = args.path if args.path is not None else f"inline {args.ext} source"
        parts = [
            f'"""Generated by stencil from {origin} -- do not edit."""',
            "",
            escaper_binding(self.input.escaper),
            "",
            f"TEMPLATE_NAME = {args.name!r}",
            f"SOURCE_PATH = {str(self.input.path)!r}",
            f"SYNTAX = {self.input.syntax_name!r}",
            f"ESCAPER = {self.input.escaper!r}",
            "",
        ]
        for index, (expr, path) in enumerate(self.expressions):
            parts.append(f"_EXPR_{index} = compile({expr!r}, {str(path)!r}, 'eval')")
        parts.extend(["", "", "def render(**context):", "    _buf = []"])
        parts.extend(f"    {line}" for line in self.lines)
        parts.append("    return ''.join(_buf)")
        return "\n".join(parts) + "\n"

    def policy_of(self, marker: Marker) -> Optional[WhitespaceHandling]:
        if marker is _NO_TAG:
            return None
        if marker is None:
            return self.whitespace
        return _MARKER_POLICY[marker]

    def nodes_write(
        self,
        ctx: Context,
        nodes: List[Node],
        lead: Marker = _NO_TAG,
        trail: Marker = _NO_TAG,
    ) -> None:
        """
        Emit code for a node list

        Args:
            ctx: Context the nodes belong to
            nodes: Nodes to emit
            lead: Marker of the tag right before the list (_NO_TAG if none)
            trail: Marker of the tag right after the list (_NO_TAG if none)
        """
        last = len(nodes) - 1
        for index, node in enumerate(nodes):
            if isinstance(node, Lit):
                before = lead if index == 0 else marker_after(nodes[index - 1])
                after = trail if index == last else marker_before(nodes[index + 1])
                self.literal_write(node.text, before, after)
            elif isinstance(node, Expr):
                self.expression_write(ctx, node)
            elif isinstance(node, (Comment, Extends, Import)):
                continue
            elif isinstance(node, Include):
                self.include_write(ctx, node)
            elif isinstance(node, BlockDef):
                self.block_write(ctx, node)
            elif isinstance(node, Tag):
                raise self.error(ctx, f"unsupported tag `{node.name}`", node.offset)

    def literal_write(self, text: str, before: Marker, after: Marker) -> None:
        text = whitespace_trim(text, self.policy_of(before), leading=True)
        text = whitespace_trim(text, self.policy_of(after), leading=False)
        if text:
            self.lines.append(f"_buf.append({text!r})")

    def expression_write(self, ctx: Context, node: Expr) -> None:
        try:
            compile(node.expr, str(ctx.path), "eval")
        except SyntaxError as e:
            raise self.error(ctx, f"invalid expression `{node.expr}`: {e.msg}", node.offset) from e
        index = len(self.expressions)
        self.expressions.append((node.expr, ctx.path))
        self.lines.append(f"_buf.append(_escape(str(eval(_EXPR_{index}, dict(context)))))")

    def include_write(self, ctx: Context, node: Include) -> None:
        try:
            path = self.input.config.template_find(node.path, self.input.caller_for(ctx.path))
        except CompileFailure as e:
            raise e.location_attach(ctx.path, ctx.source, offset=node.offset)
        if path in self.includes or path == ctx.path:
            raise self.error(ctx, f"include cycle through {node.path!r}", node.offset)

        included = self.contexts[path]
        self.includes.append(path)
        self.nodes_write(included, included.nodes)
        self.includes.pop()

    def block_write(self, ctx: Context, node: BlockDef) -> None:
        def_ctx, definition = ctx, node
        if self.heritage is not None:
            found = self.heritage.block_get(node.name)
            if found is not None:
                def_ctx, definition = found
        self.nodes_write(def_ctx, definition.nodes, definition.ws1.after, definition.ws2.before)

    def error(self, ctx: Context, message: str, offset: int) -> GenerationFailure:
        failure = GenerationFailure(message)
        failure.location_attach(ctx.path, ctx.source, offset=offset)
        return failure
