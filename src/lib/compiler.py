"""
Compilation orchestrator

Sequences one template compilation as a linear pipeline of stages over a
CompileState:

    config_load         read + resolve the configuration document
    input_resolve       locate the root template, pick syntax and escaper
    templates_discover  parse every template reachable from the root
    contexts_build      one Context per discovered file
    heritage_build      block graph, only when the root uses inheritance
    ast_print           optional diagnostic dump of the root template
    code_generate       emit the Python module
    code_print          optional diagnostic dump of the generated module

The first failing stage stops the pipeline; nothing is retried. After a
failure, template_derive() runs a degraded pipeline over placeholder
arguments (empty configuration, empty inline source, no dependencies, no
heritage) so callers still get an importable module next to the primary
error. Failures of the degraded pipeline are logged and dropped.
"""

import sys
import pprint
from pathlib import Path
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from pygments import highlight
from pygments.formatter import Formatter
from pygments.formatters import NullFormatter, TerminalFormatter
from pygments.lexers import PythonLexer

from ..config import appsettings
from ..models.parser import Parsed
from ..models.state import CompileState, pipeline
from ..models.template import TemplateArgs
from .config import config_fileRead, config_resolve
from .errors import CompileFailure, UnresolvedInheritedBlock
from .generator import Generator
from .heritage import Context, Heritage
from .input import TemplateInput, templateArgs_parse
from .lexer import lexer_forSyntax
from .log import LOG, state_connectToLogger


@dataclass
class DeriveResult:
    """
    Outcome of template_derive()

    Attributes:
        code: Generated module; the fallback module when error is set;
              None if even the fallback failed
        error: The primary failure, None on success
    """
    code: Optional[str]
    error: Optional[CompileFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def diagnostic_formatter() -> Formatter:
    """Colour only when stderr is a terminal"""
    return TerminalFormatter() if sys.stderr.isatty() else NullFormatter()


def config_load(inputstate: CompileState) -> CompileState:
    """
    Read and resolve the configuration document.

    Returns:
        CompileState with `config` set

    Raises:
        ConfigFileMissingExplicit, SourceReadFailure, ConfigDocumentMalformed,
        DuplicateSyntaxName, UnknownDefaultSyntax, InvalidDelimiterLength,
        AmbiguousDelimiterSet, InvalidDeclaration
    """
    state = inputstate.copy()
    args = state.args

    LOG("Loading configuration...", level=2)
    text = config_fileRead(state.root, args.config)
    file_name = args.config or appsettings.config_file_name
    state.config = config_resolve(text, state.root, args.whitespace, file_name=file_name)
    return state


def input_resolve(inputstate: CompileState) -> CompileState:
    """Resolve the root template identity (path, syntax, escaper)."""
    state = inputstate.copy()
    state.input = TemplateInput.build(state.args, state.config)
    LOG(f"Root template: {state.input.path}", level=1)
    return state


def templates_discover(inputstate: CompileState) -> CompileState:
    """Parse the root template and everything it extends, includes or imports."""
    state = inputstate.copy()
    state.templates = state.input.templates_find()
    LOG(f"Discovered {len(state.templates)} template(s)", level=2)
    return state


def contexts_build(inputstate: CompileState) -> CompileState:
    state = inputstate.copy()
    state.contexts = {
        path: Context.build(state.config, path, parsed, state.input.caller_for(path))
        for path, parsed in state.templates.items()
    }
    return state


def heritage_build(inputstate: CompileState) -> CompileState:
    """
    Build the block graph when the root template uses inheritance.

    Raises:
        UnresolvedInheritedBlock: If the declaration selects a block the
                                  merged graph does not contain
    """
    state = inputstate.copy()
    ctx = state.contexts[state.input.path]

    if not ctx.blocks and ctx.extends is None:
        state.heritage = None
        return state

    heritage = Heritage(ctx, state.contexts)
    block = state.input.block
    if block is not None and block not in heritage.blocks:
        raise UnresolvedInheritedBlock(block).location_attach(state.input.path)

    LOG(f"Heritage: {len(heritage.blocks)} block(s), base {heritage.root.path}", level=2)
    state.heritage = heritage
    return state


def ast_print(inputstate: CompileState) -> CompileState:
    """Print mode ast/all: highlighted root source and its nodes to stderr."""
    state = inputstate.copy()
    if state.input.print.ast_wanted():
        parsed = state.templates.get(state.input.path) or Parsed(source="")
        lexer = lexer_forSyntax(state.input.syntax)
        print(highlight(parsed.source, lexer, diagnostic_formatter()), file=sys.stderr)
        print(pprint.pformat(parsed.nodes), file=sys.stderr)
    return state


def code_generate(inputstate: CompileState) -> CompileState:
    state = inputstate.copy()
    ctx = state.contexts[state.input.path]
    state.code = Generator(state.input, state.contexts, state.heritage).build(ctx)
    return state


def code_print(inputstate: CompileState) -> CompileState:
    """Print mode code/all: highlighted generated module to stderr."""
    state = inputstate.copy()
    if state.input.print.code_wanted():
        print(highlight(state.code, PythonLexer(), diagnostic_formatter()), file=sys.stderr)
    return state


def skeleton_prepare(inputstate: CompileState) -> CompileState:
    """Fallback stand-ins for config_load through heritage_build."""
    state = inputstate.copy()
    state.config = config_resolve("", state.root)
    state.input = TemplateInput.build(state.args, state.config)
    state.templates = {}
    state.contexts = {state.input.path: Context.empty(state.input.path)}
    state.heritage = None
    return state


PRIMARY_STAGES = (
    config_load,
    input_resolve,
    templates_discover,
    contexts_build,
    heritage_build,
    ast_print,
    code_generate,
    code_print,
)

FALLBACK_STAGES = (
    skeleton_prepare,
    code_generate,
)


def build_template(args: TemplateArgs, root: Union[str, Path], verbosity: int = 1) -> str:
    """
    Run the primary pipeline

    Args:
        args: Declaration arguments
        root: Project root (holds the configuration document)
        verbosity: Logging verbosity for this compilation

    Returns:
        Generated module source

    Raises:
        CompileFailure: From the first failing stage
    """
    state = CompileState(root=Path(root), args=args, verbosity=verbosity)
    state_connectToLogger(state)
    final: CompileState = pipeline(state, *PRIMARY_STAGES)
    return final.code


def build_skeleton(name: str, root: Union[str, Path], verbosity: int = 1) -> str:
    """
    Run the degraded pipeline

    Produces a module exposing the same names as a real one (TEMPLATE_NAME,
    render, ...) whose render() returns "".

    Raises:
        CompileFailure: If even the placeholder compilation fails
    """
    state = CompileState(root=Path(root), args=TemplateArgs.fallback(name), verbosity=verbosity)
    state_connectToLogger(state)
    final: CompileState = pipeline(state, *FALLBACK_STAGES)
    return final.code


def skeleton_tryBuild(name: str, root: Union[str, Path], verbosity: int) -> Optional[str]:
    try:
        return build_skeleton(name, root, verbosity)
    except Exception as e:
        LOG(f"Fallback compilation failed too: {e}", level=2)
        return None


def template_derive(
    args: TemplateArgs, root: Union[str, Path], verbosity: int = 1
) -> DeriveResult:
    """
    Compile a declaration, falling back to a skeleton module on failure

    Never raises CompileFailure: the primary failure is returned in
    DeriveResult.error alongside the fallback module.

    Example:
        >>> result = template_derive(TemplateArgs(name="Hello", path="hello.html"), "/proj")
        >>> if not result.ok:
        ...     print(result.error)
    """
    try:
        return DeriveResult(code=build_template(args, root, verbosity))
    except CompileFailure as error:
        LOG(f"Compilation of {args.name} failed: {error.message}", level=1)
        return DeriveResult(code=skeleton_tryBuild(args.name, root, verbosity), error=error)


def declaration_derive(
    name: str, mapping: Mapping[str, Any], root: Union[str, Path], verbosity: int = 1
) -> DeriveResult:
    """
    Parse raw declaration arguments, then template_derive()

    An invalid declaration is reported like any other failure, with the
    fallback module alongside.
    """
    try:
        args = templateArgs_parse(name, mapping)
    except CompileFailure as error:
        return DeriveResult(code=skeleton_tryBuild(name, root, verbosity), error=error)
    return template_derive(args, root, verbosity)
