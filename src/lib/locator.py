"""
Template file lookup

A template name is resolved against the directory of the template that
references it first, then against each search directory in order. Only
existence is checked; nothing is read. Candidates are normalised, so
"../sub/a.html" seen from sub/ names the same file as "a.html".
"""

import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import TemplateNotFound
from .log import LOG


def path_exists(path: Path) -> bool:
    """Existence check; paths the OS rejects (e.g. too long) do not exist"""
    try:
        return path.exists()
    except OSError:
        return False


@dataclass(frozen=True)
class SearchPath:
    """
    Ordered directories consulted when locating a template by name

    Attributes:
        dirs: Absolute directories, highest priority first
    """
    dirs: Tuple[Path, ...]

    def template_find(self, name: str, caller_file: Optional[Path] = None) -> Path:
        """
        Resolve a template name to an existing file

        A sibling of caller_file takes priority over every search directory,
        so templates can include their neighbours regardless of configuration.

        Args:
            name: Template name, possibly with subdirectories ("sub/b.html")
            caller_file: File whose directory is tried first

        Returns:
            Path of the first existing candidate

        Raises:
            TemplateNotFound: If no candidate exists

        Example:
            >>> search = SearchPath((Path("/proj/templates"),))
            >>> search.template_find("c.html", Path("/proj/templates/sub/b.html"))
            PosixPath('/proj/templates/sub/c.html')
        """
        if caller_file is not None:
            sibling = Path(os.path.normpath(Path(caller_file).parent / name))
            if path_exists(sibling):
                LOG(f"Found {name} next to {caller_file}", level=3)
                return sibling

        for directory in self.dirs:
            candidate = Path(os.path.normpath(directory / name))
            if path_exists(candidate):
                LOG(f"Found {name} in {directory}", level=3)
                return candidate

        raise TemplateNotFound(name, self.dirs)
