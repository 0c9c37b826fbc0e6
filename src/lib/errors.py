"""
Compile failures and source-location reporting

Every failure leaving the compiler is a CompileFailure. Each kind of failure
is its own subclass carrying the structured data its message is built from,
so callers can match on the class and still read the pieces.

A failure may carry a SourceLocation. When the enclosing file's text and the
offending node's offset (or sub-text) are known, the location holds a row,
a column and an excerpt; otherwise it degrades to the file path alone. Rendering:

    template "missing.html" not found in directories ['/proj/templates']

    unsupported tag `for`
      --> templates/page.html:3:5
    '{% for item in items %}\\n  <li>{{ item }}...'

    cannot find block `sidebar`
     --> templates/page.html
"""

from pathlib import Path
from dataclasses import dataclass
from typing import Iterable, List, Optional, Union

from ..config import appsettings

PathLike = Union[str, Path]


@dataclass(frozen=True)
class SourceLocation:
    """
    Where a failure happened

    Attributes:
        path: File the failure refers to
        row: Zero-based row, None when no text was available
        column: Zero-based column, None when no text was available
        excerpt: Quoted text following the offending position
    """
    path: Path
    row: Optional[int] = None
    column: Optional[int] = None
    excerpt: Optional[str] = None

    def located(self) -> bool:
        return self.row is not None and self.column is not None

    def render(self) -> str:
        """Render as the trailer appended to a failure message"""
        if self.located():
            return f"\n  --> {path_display(self.path)}:{self.row + 1}:{self.column + 1}\n{self.excerpt}"
        return f"\n --> {path_display(self.path)}"


def path_display(path: PathLike) -> str:
    """
    Path relative to the current working directory when it lies beneath it,
    else the path as given
    """
    raw = str(path)
    try:
        cwd = Path.cwd().resolve()
        resolved = Path(path).resolve()
    except OSError:
        return raw
    try:
        relative = resolved.relative_to(cwd)
    except ValueError:
        return raw
    return relative.as_posix() if relative.parts else raw


def location_find(
    path: PathLike,
    source: Optional[str] = None,
    node_source: Optional[str] = None,
    offset: Optional[int] = None,
) -> SourceLocation:
    """
    Locate node_source inside source

    A known offset into source is used as is. Otherwise the first occurrence
    of node_source wins.

    Args:
        path: File holding source
        source: Full text of the file
        node_source: Offending sub-text
        offset: Position of the offending node in source, when known

    Returns:
        SourceLocation with row/column/excerpt, or path only when source is
        missing or neither offset nor node_source locates the node
    """
    path = Path(path)
    if source is None:
        return SourceLocation(path=path)

    if offset is None or not 0 <= offset <= len(source):
        if node_source is None:
            return SourceLocation(path=path)
        offset = source.find(node_source)
        if offset < 0:
            return SourceLocation(path=path)

    before = source[:offset]
    row = before.count("\n")
    column = offset - (before.rfind("\n") + 1)

    after = source[offset:]
    limit = appsettings.excerpt_length
    if len(after) > limit:
        excerpt = f"{after[:limit]!r}..."
    else:
        excerpt = f"{after!r}"
    return SourceLocation(path=path, row=row, column=column, excerpt=excerpt)


def failure_restore(cls: type, args: tuple) -> "CompileFailure":
    """Rebuild a failure for copy/pickle without running its __init__"""
    return cls.__new__(cls, *args)


class CompileFailure(Exception):
    """
    The unified failure raised by every stage of the compiler

    Args:
        message: Human-readable description
        location: Optional SourceLocation
    """

    def __init__(self, message: str, location: Optional[SourceLocation] = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location

    def location_attach(
        self,
        path: PathLike,
        source: Optional[str] = None,
        node_source: Optional[str] = None,
        offset: Optional[int] = None,
    ) -> "CompileFailure":
        """Attach a location unless one is already set; returns self"""
        if self.location is None:
            self.location = location_find(path, source, node_source, offset)
        return self

    def __str__(self) -> str:
        if self.location is None:
            return self.message
        return f"{self.message}{self.location.render()}"

    def __reduce__(self):
        # Subclass constructors take structured fields, not the message
        return (failure_restore, (type(self), self.args), self.__dict__)


class ConfigDocumentMalformed(CompileFailure):
    """Raised when the configuration document is not valid YAML or has the wrong shape"""

    def __init__(self, detail: str, file_name: Optional[str] = None) -> None:
        self.detail = detail
        self.file_name = file_name or appsettings.config_file_name
        super().__init__(f"invalid configuration in {self.file_name}: {detail}")


class DuplicateSyntaxName(CompileFailure):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'syntax "{name}" is already defined')


class UnknownDefaultSyntax(CompileFailure):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'default syntax "{name}" not found')


class UnknownSyntax(CompileFailure):
    """Raised when a declaration selects a syntax the configuration lacks"""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'syntax "{name}" does not exist')


class InvalidDelimiterLength(CompileFailure):
    def __init__(self) -> None:
        super().__init__("length of delimiters must be two")


class AmbiguousDelimiterSet(CompileFailure):
    def __init__(self, block_start: str, comment_start: str, expr_start: str) -> None:
        self.block_start = block_start
        self.comment_start = comment_start
        self.expr_start = expr_start
        super().__init__(
            f"bad delimiters block_start: {block_start}, comment_start: {comment_start}, "
            f"expr_start: {expr_start}, needs one of the two characters in common"
        )


class ConfigFileMissingExplicit(CompileFailure):
    """Raised when an explicitly requested configuration document is absent"""

    def __init__(self, root: PathLike, file_name: str) -> None:
        self.root = Path(root)
        self.file_name = file_name
        super().__init__(f"`{file_name}` does not exist in `{self.root}`")


class TemplateNotFound(CompileFailure):
    def __init__(self, name: str, dirs: Iterable[PathLike]) -> None:
        self.name = name
        self.dirs: List[Path] = [Path(d) for d in dirs]
        listed = [str(d) for d in self.dirs]
        super().__init__(f"template {name!r} not found in directories {listed}")


class SourceReadFailure(CompileFailure):
    def __init__(self, path: PathLike, reason: str = "") -> None:
        self.path = Path(path)
        self.reason = reason
        suffix = f": {reason}" if reason else ""
        super().__init__(f"unable to read file '{self.path}'{suffix}")


class UnknownEscaper(CompileFailure):
    """Raised when no escaper rule covers a template's extension"""

    def __init__(self, extension: str, available: Iterable[str]) -> None:
        self.extension = extension
        self.available = sorted(set(available))
        listed = ", ".join(repr(ext) for ext in self.available)
        super().__init__(
            f"no escaper defined for extension {extension!r}; declare one in "
            f"{appsettings.config_file_name}. Available extensions: {listed}"
        )


class UnresolvedInheritedBlock(CompileFailure):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"cannot find block `{name}`")


class InvalidDeclaration(CompileFailure):
    """Raised when template declaration arguments are inconsistent"""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"invalid template declaration: {detail}")


class DependencyDiscoveryFailure(CompileFailure):
    """Raised by the template parser and while collecting referenced templates"""


class GenerationFailure(CompileFailure):
    """Raised by the code generator"""
