"""
Per-file parse contexts and the block inheritance graph

A Context holds what the code generator needs from one template file: its
nodes, its located parent (extends) and every block it defines. A Heritage
merges the blocks of a template with those of every ancestor it extends.
"""

from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, TYPE_CHECKING

from ..models.parser import BlockDef, Extends, Node, Parsed
from .errors import CompileFailure, DependencyDiscoveryFailure

if TYPE_CHECKING:
    from .config import Configuration


@dataclass
class Context:
    """
    Parse context of one template file

    Attributes:
        path: File the context was built from
        source: File text, used to locate errors
        nodes: Top-level nodes
        extends: Located parent template, None when the file extends nothing
        blocks: Every block defined in the file, nested ones included
    """
    path: Path
    source: str
    nodes: List[Node] = field(default_factory=list)
    extends: Optional[Path] = None
    blocks: Dict[str, BlockDef] = field(default_factory=dict)

    @classmethod
    def empty(cls, path: Path, parsed: Optional[Parsed] = None) -> "Context":
        """Context with no nodes, used by the fallback pipeline"""
        parsed = parsed or Parsed(source="")
        return cls(path=path, source=parsed.source, nodes=list(parsed.nodes))

    @classmethod
    def build(
        cls,
        config: "Configuration",
        path: Path,
        parsed: Parsed,
        caller: Optional[Path] = None,
    ) -> "Context":
        """
        Build the context of one parsed file

        Args:
            config: Configuration used to locate the parent template
            path: File path (key of the context map)
            parsed: Parse result of the file
            caller: File relative lookups start from; None for inline sources

        Raises:
            DependencyDiscoveryFailure: On misplaced or repeated extends,
                                        or a block defined twice
            TemplateNotFound: If the parent template cannot be located
        """
        ctx = cls(path=path, source=parsed.source, nodes=list(parsed.nodes))

        for node in parsed.nodes:
            if isinstance(node, Extends):
                if ctx.extends is not None:
                    raise ctx.error(DependencyDiscoveryFailure("multiple extend blocks found"), node.offset)
                try:
                    ctx.extends = config.template_find(node.path, caller)
                except CompileFailure as e:
                    raise ctx.error(e, node.offset)

        ctx.blocks_collect(parsed.nodes, top_level=True)
        return ctx

    def blocks_collect(self, nodes: List[Node], top_level: bool) -> None:
        for node in nodes:
            if isinstance(node, Extends) and not top_level:
                raise self.error(
                    DependencyDiscoveryFailure("extends blocks are not allowed below top level"),
                    node.offset,
                )
            if isinstance(node, BlockDef):
                if node.name in self.blocks:
                    raise self.error(
                        DependencyDiscoveryFailure(f"block `{node.name}` is defined more than once"),
                        node.offset,
                    )
                self.blocks[node.name] = node
                self.blocks_collect(node.nodes, top_level=False)

    def error(self, failure: CompileFailure, offset: int) -> CompileFailure:
        """Attach the location of the node at offset to failure"""
        return failure.location_attach(self.path, self.source, offset=offset)


BlockAncestry = Dict[str, List[Tuple[Context, BlockDef]]]


class Heritage:
    """
    Merged block overrides of a template and its ancestors

    Attributes:
        root: Base-most context; its nodes drive generation
        blocks: Block name -> (context, definition) pairs, most derived first

    Example:
        page.html extends base.html, both define `body`:
            heritage.root is the base.html context
            heritage.blocks["body"][0] is page.html's definition
    """

    def __init__(self, ctx: Context, contexts: Dict[Path, Context]):
        blocks: BlockAncestry = {name: [(ctx, block)] for name, block in ctx.blocks.items()}
        seen = {ctx.path}

        while ctx.extends is not None:
            parent = ctx.extends
            if parent in seen:
                raise DependencyDiscoveryFailure(
                    f"template {str(parent)!r} extends itself through {str(ctx.path)!r}"
                ).location_attach(ctx.path)
            seen.add(parent)
            ctx = contexts[parent]
            for name, block in ctx.blocks.items():
                blocks.setdefault(name, []).append((ctx, block))

        self.root = ctx
        self.blocks = blocks

    def block_get(self, name: str) -> Optional[Tuple[Context, BlockDef]]:
        """Most derived definition of a block"""
        ancestry = self.blocks.get(name)
        return ancestry[0] if ancestry else None
