"""
Template declaration input

Turns declaration arguments plus a Configuration into the identity of the
root template (its path, delimiter set and escaper), and walks every
template reachable from it through extends/include/import.
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from ..models.config import SyntaxDefinition, WhitespaceHandling
from ..models.parser import BlockDef, Extends, Import, Include, Node, Parsed
from ..models.template import Print, TemplateArgs
from .config import Configuration
from .errors import CompileFailure, InvalidDeclaration, SourceReadFailure
from .log import LOG
from .parser import Parser

JINJA_EXTENSIONS = ("j2", "jinja", "jinja2")

_ARG_KEYS = {"path", "source", "ext", "syntax", "escape", "config", "whitespace", "print", "block"}


def templateArgs_parse(name: str, mapping: Mapping[str, Any]) -> TemplateArgs:
    """
    Validate raw declaration arguments

    Args:
        name: Identifier of the generated artifact
        mapping: Raw key/value arguments, e.g. {"path": "hello.html", "print": "code"}

    Returns:
        TemplateArgs

    Raises:
        InvalidDeclaration: On unknown keys, non-string values, both or
                            neither of path/source, source without ext,
                            or an unknown print/whitespace value
    """
    unknown = sorted(set(mapping) - _ARG_KEYS)
    if unknown:
        raise InvalidDeclaration(f"unsupported argument(s) {', '.join(unknown)}")

    for key, value in mapping.items():
        if value is not None and not isinstance(value, str):
            raise InvalidDeclaration(f"argument `{key}` must be a string")

    has_path = mapping.get("path") is not None
    has_source = mapping.get("source") is not None
    if has_path == has_source:
        raise InvalidDeclaration("exactly one of `path` and `source` is required")
    if has_source and not mapping.get("ext"):
        raise InvalidDeclaration("`ext` is required when using `source`")

    try:
        print_mode = Print(mapping.get("print") or "none")
    except ValueError:
        choices = ", ".join(mode.value for mode in Print)
        raise InvalidDeclaration(f"invalid value for `print`, expected one of: {choices}") from None

    whitespace = mapping.get("whitespace")
    if whitespace is not None:
        try:
            WhitespaceHandling.parse(whitespace)
        except ValueError as e:
            raise InvalidDeclaration(str(e)) from e

    return TemplateArgs(
        name=name,
        path=mapping.get("path"),
        source=mapping.get("source"),
        ext=mapping.get("ext"),
        syntax=mapping.get("syntax"),
        escape=mapping.get("escape"),
        config=mapping.get("config"),
        whitespace=whitespace,
        print=print_mode,
        block=mapping.get("block"),
    )


def extension_of(file_name: str) -> str:
    """
    Escaper key of a file name

    A trailing Jinja extension defers to the extension before it:
    "page.html.j2" -> "html", "page.j2" -> "j2", "README" -> "".
    """
    path = Path(file_name)
    ext = path.suffix[1:].lower()
    if ext in JINJA_EXTENSIONS:
        inner = Path(path.stem).suffix[1:].lower()
        return inner or ext
    return ext


def template_sourceRead(path: Path) -> str:
    """
    Read a template file, dropping one trailing newline

    Raises:
        SourceReadFailure: If the file cannot be read
    """
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceReadFailure(path, str(e)) from e
    if source.endswith("\n"):
        source = source[:-1]
    return source


def dependencies_of(nodes: List[Node]) -> List[Node]:
    """Every extends/include/import node, blocks searched recursively"""
    found: List[Node] = []
    for node in nodes:
        if isinstance(node, (Extends, Include, Import)):
            found.append(node)
        elif isinstance(node, BlockDef):
            found.extend(dependencies_of(node.nodes))
    return found


@dataclass
class TemplateInput:
    """
    Identity of the root template of one declaration

    Attributes:
        args: Declaration arguments
        config: Resolved configuration
        path: Root template path (synthetic for inline sources)
        syntax_name: Selected delimiter set name
        escaper: Escaper identifier for the root template
    """
    args: TemplateArgs
    config: Configuration
    path: Path
    syntax_name: str
    escaper: str

    @classmethod
    def build(cls, args: TemplateArgs, config: Configuration) -> "TemplateInput":
        """
        Resolve the root template of a declaration

        Raises:
            TemplateNotFound, UnknownSyntax, UnknownEscaper, InvalidDeclaration
        """
        if args.source is not None:
            if not args.ext:
                raise InvalidDeclaration("`ext` is required when using `source`")
            file_name = f"{args.name}.{args.ext}"
            path = config.dirs[0] / file_name if config.dirs else Path(file_name)
            extension = extension_of(path.name)
        elif args.path is not None:
            path = config.template_find(args.path)
            extension = extension_of(args.path)
        else:
            raise InvalidDeclaration("exactly one of `path` and `source` is required")

        syntax_name = args.syntax if args.syntax is not None else config.default_syntax
        config.syntax_get(syntax_name)

        key = args.escape.lower().lstrip(".") if args.escape is not None else extension
        escaper = config.escaper_lookup(key)

        LOG(f"Template {args.name}: {path} (syntax {syntax_name}, escaper {escaper})", level=2)
        return cls(args=args, config=config, path=path, syntax_name=syntax_name, escaper=escaper)

    @property
    def syntax(self) -> SyntaxDefinition:
        return self.config.syntax_get(self.syntax_name)

    @property
    def inline(self) -> bool:
        return self.args.source is not None

    @property
    def print(self) -> Print:
        return self.args.print

    @property
    def block(self) -> Optional[str]:
        return self.args.block

    def caller_for(self, path: Path) -> Optional[Path]:
        """Start of relative lookups from path; inline roots have none"""
        if self.inline and path == self.path:
            return None
        return path

    def source_get(self, path: Path) -> str:
        if self.inline and path == self.path:
            return self.args.source or ""
        return template_sourceRead(path)

    def templates_find(self) -> Dict[Path, Parsed]:
        """
        Parse the root template and every template reachable from it

        References are located relative to the referencing file first.

        Returns:
            File path -> parse result, the root included

        Raises:
            DependencyDiscoveryFailure: On parse errors
            TemplateNotFound: If a referenced template cannot be located
            SourceReadFailure: If a template cannot be read
        """
        templates: Dict[Path, Parsed] = {}
        pending = [self.path]

        while pending:
            path = pending.pop()
            if path in templates:
                continue

            source = self.source_get(path)
            parsed = Parser(source, self.syntax, path).parse()
            caller = self.caller_for(path)

            for node in dependencies_of(parsed.nodes):
                try:
                    found = self.config.template_find(node.path, caller)
                except CompileFailure as e:
                    raise e.location_attach(path, source, offset=node.offset)
                pending.append(found)

            templates[path] = parsed
            LOG(f"Parsed {path} ({len(parsed.nodes)} top-level nodes)", level=3)

        return templates
