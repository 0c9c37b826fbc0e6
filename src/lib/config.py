"""
Project configuration: loading, resolution and validation

The project configuration document (stencil.yaml at the project root by
default) is merged over built-in defaults into an immutable Configuration:

    - search path: general.dirs joined onto the project root, or root/templates
    - syntax table: built-in "default" plus every declared syntax
    - default syntax name: general.default_syntax, or "default"
    - escaper rules: declared rules first, then the built-in rules
    - whitespace policy: call-site override, then general.whitespace,
      then PRESERVE

Nothing is cached. Each compilation reads the document fresh from disk and
resolves its own Configuration, so concurrent compilations share no state.
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple, Union

import yaml
from pydantic import ValidationError

from ..config import appsettings
from ..models.config import (
    EscaperRule,
    RawConfig,
    RawSyntax,
    SyntaxDefinition,
    WhitespaceHandling,
)
from .errors import (
    AmbiguousDelimiterSet,
    ConfigDocumentMalformed,
    ConfigFileMissingExplicit,
    DuplicateSyntaxName,
    InvalidDeclaration,
    InvalidDelimiterLength,
    SourceReadFailure,
    UnknownDefaultSyntax,
    UnknownEscaper,
    UnknownSyntax,
)
from .locator import SearchPath
from .log import LOG

DEFAULT_SYNTAX_NAME = "default"

# Appended after user-declared rules, in this order
DEFAULT_ESCAPERS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("html", "htm", "xml"), "Html"),
    (("md", "none", "txt", "yml", ""), "Text"),
    (("j2", "jinja", "jinja2"), "Html"),
)


@dataclass(frozen=True)
class Configuration:
    """
    Resolved, immutable configuration of one compilation

    Attributes:
        root: Project root every relative directory was joined onto
        search_path: Directories consulted when locating templates
        syntaxes: Delimiter sets by name, always holding "default"
        default_syntax: Key of syntaxes used when a declaration names none
        escapers: Escaper rules, first match wins
        whitespace: Default whitespace policy
    """
    root: Path
    search_path: SearchPath
    syntaxes: Dict[str, SyntaxDefinition]
    default_syntax: str
    escapers: Tuple[EscaperRule, ...]
    whitespace: WhitespaceHandling = WhitespaceHandling.PRESERVE

    @property
    def dirs(self) -> Tuple[Path, ...]:
        return self.search_path.dirs

    def template_find(self, name: str, caller_file: Optional[Path] = None) -> Path:
        """Locate a template; see SearchPath.template_find"""
        return self.search_path.template_find(name, caller_file)

    def syntax_get(self, name: Optional[str] = None) -> SyntaxDefinition:
        """
        Delimiter set by name, the default one when name is None

        Raises:
            UnknownSyntax: If name is not in the syntax table
        """
        key = self.default_syntax if name is None else name
        try:
            return self.syntaxes[key]
        except KeyError:
            raise UnknownSyntax(key) from None

    def escaper_lookup(self, extension: str) -> str:
        """
        Escaper identifier of the first rule containing extension

        Raises:
            UnknownEscaper: If no rule contains extension
        """
        for rule in self.escapers:
            if rule.matches(extension):
                return rule.escaper
        available = [ext for rule in self.escapers for ext in rule.extensions]
        raise UnknownEscaper(extension, available)


def syntax_validate(raw: RawSyntax) -> SyntaxDefinition:
    """
    Build a delimiter set from a raw declaration

    Absent delimiters inherit the default ones. The three opening
    delimiters must all share their first character or all share their
    second, so a lexer can tell them apart at one fixed position.

    Args:
        raw: Declared syntax entry

    Returns:
        Fully populated SyntaxDefinition

    Raises:
        InvalidDelimiterLength: If any delimiter is not exactly two bytes
        AmbiguousDelimiterSet: If the opening delimiters share neither position
    """
    default = SyntaxDefinition()
    syntax = SyntaxDefinition(
        block_start=raw.block_start if raw.block_start is not None else default.block_start,
        block_end=raw.block_end if raw.block_end is not None else default.block_end,
        expr_start=raw.expr_start if raw.expr_start is not None else default.expr_start,
        expr_end=raw.expr_end if raw.expr_end is not None else default.expr_end,
        comment_start=raw.comment_start if raw.comment_start is not None else default.comment_start,
        comment_end=raw.comment_end if raw.comment_end is not None else default.comment_end,
    )

    encoded = [delimiter.encode("utf-8") for delimiter in syntax.delimiters()]
    if any(len(delimiter) != 2 for delimiter in encoded):
        raise InvalidDelimiterLength()

    bs, be = syntax.block_start.encode("utf-8")
    cs, ce = syntax.comment_start.encode("utf-8")
    es, ee = syntax.expr_start.encode("utf-8")
    if not ((bs == cs and bs == es) or (be == ce and be == ee)):
        raise AmbiguousDelimiterSet(syntax.block_start, syntax.comment_start, syntax.expr_start)

    return syntax


def document_parse(document_text: str, file_name: Optional[str] = None) -> RawConfig:
    """
    Parse the configuration document into its raw schema

    Empty text, or text holding only comments, is the all-absent document.

    Raises:
        ConfigDocumentMalformed: On YAML errors or schema violations
    """
    if not document_text.strip():
        return RawConfig()

    try:
        data = yaml.safe_load(document_text)
    except yaml.YAMLError as e:
        raise ConfigDocumentMalformed(str(e), file_name) from e

    if data is None:
        return RawConfig()
    if not isinstance(data, dict):
        raise ConfigDocumentMalformed(
            f"expected a mapping at top level, got {type(data).__name__}", file_name
        )

    try:
        return RawConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigDocumentMalformed(str(e), file_name) from e


def whitespace_resolve(
    override: Union[str, WhitespaceHandling, None],
    declared: Optional[WhitespaceHandling],
) -> WhitespaceHandling:
    """Call-site override, then the document's policy, then PRESERVE"""
    if isinstance(override, WhitespaceHandling):
        return override
    if override is not None:
        try:
            return WhitespaceHandling.parse(override)
        except ValueError as e:
            raise InvalidDeclaration(str(e)) from e
    if declared is not None:
        return declared
    return WhitespaceHandling.PRESERVE


def escapers_build(raw: RawConfig) -> Tuple[EscaperRule, ...]:
    """User-declared rules in document order, then the built-in rules"""
    rules: List[EscaperRule] = []
    for escaper in raw.escaper or []:
        extensions = frozenset(ext.lower().lstrip(".") for ext in escaper.extensions)
        rules.append(EscaperRule(extensions=extensions, escaper=escaper.path))

    builtin = [EscaperRule(frozenset(exts), path) for exts, path in DEFAULT_ESCAPERS]
    builtin_extensions = {ext for rule in builtin for ext in rule.extensions}
    for rule in rules:
        shadowed = sorted(rule.extensions & builtin_extensions)
        if shadowed:
            LOG(f"Escaper {rule.escaper} takes precedence for {shadowed}", level=2)

    return tuple(rules + builtin)


def config_resolve(
    document_text: str,
    root: Union[str, Path],
    whitespace_override: Union[str, WhitespaceHandling, None] = None,
    file_name: Optional[str] = None,
) -> Configuration:
    """
    Merge a configuration document over the built-in defaults

    Args:
        document_text: Raw document text, "" when there is no document
        root: Project root relative directories are joined onto
        whitespace_override: Policy given at the call site, wins over the document
        file_name: Document name used in error messages

    Returns:
        Validated Configuration

    Raises:
        ConfigDocumentMalformed, DuplicateSyntaxName, UnknownDefaultSyntax,
        InvalidDelimiterLength, AmbiguousDelimiterSet, InvalidDeclaration

    Example:
        >>> config = config_resolve("", "/proj")
        >>> config.dirs
        (PosixPath('/proj/templates'),)
        >>> config.default_syntax
        'default'
    """
    root = Path(root)
    raw = document_parse(document_text, file_name)
    general = raw.general

    if general is not None and general.dirs is not None:
        dirs = tuple(root / directory for directory in general.dirs)
    else:
        dirs = (root / appsettings.templates_dir,)

    default_syntax = DEFAULT_SYNTAX_NAME
    if general is not None and general.default_syntax is not None:
        default_syntax = general.default_syntax

    whitespace = whitespace_resolve(
        whitespace_override, general.whitespace if general is not None else None
    )

    syntaxes: Dict[str, SyntaxDefinition] = {DEFAULT_SYNTAX_NAME: SyntaxDefinition()}
    for raw_syntax in raw.syntax or []:
        syntax = syntax_validate(raw_syntax)
        if raw_syntax.name in syntaxes:
            raise DuplicateSyntaxName(raw_syntax.name)
        syntaxes[raw_syntax.name] = syntax

    if default_syntax not in syntaxes:
        raise UnknownDefaultSyntax(default_syntax)

    config = Configuration(
        root=root,
        search_path=SearchPath(dirs),
        syntaxes=syntaxes,
        default_syntax=default_syntax,
        escapers=escapers_build(raw),
        whitespace=whitespace,
    )
    LOG(f"Search path: {[str(d) for d in config.dirs]}", level=2)
    LOG(f"Syntaxes: {sorted(config.syntaxes)} (default {config.default_syntax})", level=2)
    return config


def config_fileRead(root: Union[str, Path], config_path: Optional[str] = None) -> str:
    """
    Read the configuration document text

    Args:
        root: Project root
        config_path: Explicit document path relative to root; None selects
                     the default document name

    Returns:
        Document text, or "" when the default document does not exist

    Raises:
        ConfigFileMissingExplicit: If an explicitly named document does not exist
        SourceReadFailure: If the document exists but cannot be read
    """
    root = Path(root)
    file_name = config_path if config_path is not None else appsettings.config_file_name
    filename = root / file_name

    if not filename.exists():
        if config_path is not None:
            raise ConfigFileMissingExplicit(root, config_path)
        LOG(f"No {file_name} in {root}, using defaults", level=2)
        return ""

    try:
        return filename.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise SourceReadFailure(filename, str(e)) from e
