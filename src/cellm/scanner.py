"""Markdown file discovery under a context root."""

import os
from pathlib import Path
from typing import Iterable, List, Optional


def find_markdown_files(root: Path, ignored_dirs: Optional[Iterable[str]] = None) -> List[Path]:
    """Recursively collect markdown files under ``root``.

    Args:
        root: Directory to walk
        ignored_dirs: Directory names to prune while descending

    Returns:
        Absolute paths sorted by their POSIX path relative to ``root``.
        A missing root yields an empty list.
    """
    root = Path(root)
    if not root.is_dir():
        return []

    ignored = set(ignored_dirs or ())
    files: List[Path] = []

    for current, dirs, filenames in os.walk(root):
        # Prune directories before descending further
        dirs[:] = sorted(d for d in dirs if d not in ignored)

        current_path = Path(current)
        for filename in filenames:
            if filename.endswith(".md"):
                files.append(current_path / filename)

    return sorted(files, key=lambda p: p.relative_to(root).as_posix())
