"""
Shared fixtures: lay out a project root with templates on disk
"""

from pathlib import Path
from typing import Callable, Dict

import pytest


@pytest.fixture
def project(tmp_path: Path) -> Callable[[Dict[str, str]], Path]:
    """
    Write files under a fresh project root and return the root

    Example:
        root = project({"templates/hello.html": "Hello {{ name }}"})
    """
    def write(files: Dict[str, str]) -> Path:
        for relative, text in files.items():
            target = tmp_path / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        return tmp_path

    return write
