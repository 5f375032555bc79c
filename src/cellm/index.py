"""Parsing of the index manifest that declares context loading rules.

The manifest is a markdown file with three sections, recognized by heading
text in English or Portuguese::

    ## Always Load
    - rules/core/conventions.md

    ## By Command
    | Command | Agent | Workflow |
    |---------|-------|----------|
    | /implement | implementer | workflows/implement.md |

    ## By Path
    | Pattern | Rule |
    |---------|------|
    | app/**/*.vue | domain/frontend |
"""

import logging
import re
from pathlib import Path, PurePosixPath
from typing import List, Optional

from pathspec import PathSpec
from pathspec.patterns.gitwildmatch import GitWildMatchPattern

from .models import IndexConfig

logger = logging.getLogger(__name__)

_HEADING_RE = re.compile(r"^#{2,}\s+(.*)$")
_BULLET_RE = re.compile(r"^[-*]\s+`?([^\s`]+\.md)")

_SECTION_ALIASES = {
    "always": ("always load", "sempre carregar"),
    "command": ("by command", "por comando"),
    "path": ("by path", "por path"),
}


def normalize_relative_path(path: str) -> str:
    """Normalize a manifest path to a POSIX path without leading ``./``."""
    cleaned = path.strip().strip("`").replace("\\", "/")
    return PurePosixPath(cleaned).as_posix() if cleaned else ""


def _section_for(heading: str) -> Optional[str]:
    text = heading.strip().lower()
    for section, aliases in _SECTION_ALIASES.items():
        if any(text.startswith(alias) for alias in aliases):
            return section
    return None


def _table_cells(line: str) -> List[str]:
    return [cell.strip().strip("`") for cell in line.split("|") if cell.strip()]


def _is_table_row(line: str) -> bool:
    return line.startswith("|") and "---" not in line


def find_index_file(root: Path, index_filename: str = "index.md") -> Optional[Path]:
    """Locate the manifest directly under ``root``, matching case-insensitively."""
    root = Path(root)
    exact = root / index_filename
    if exact.is_file():
        return exact
    if not root.is_dir():
        return None

    wanted = index_filename.lower()
    for candidate in sorted(root.iterdir()):
        if candidate.is_file() and candidate.name.lower() == wanted:
            return candidate
    return None


def parse_index_content(content: str) -> IndexConfig:
    """Parse manifest text into an IndexConfig."""
    config = IndexConfig()
    section: Optional[str] = None

    for line in content.splitlines():
        trimmed = line.strip()

        heading = _HEADING_RE.match(trimmed)
        if heading:
            section = _section_for(heading.group(1))
            continue

        if section == "always":
            match = _BULLET_RE.match(trimmed)
            if match:
                path = normalize_relative_path(match.group(1))
                if path and path not in config.always_load:
                    config.always_load.append(path)

        elif section == "command" and _is_table_row(trimmed):
            cells = _table_cells(trimmed)
            if len(cells) >= 3 and cells[0].startswith("/"):
                command = cells[0][1:]
                files = [normalize_relative_path(cells[2])]  # workflow file
                if cells[1]:
                    files.append(f"agents/{cells[1]}.md")
                config.by_command[command] = files

        elif section == "path" and _is_table_row(trimmed):
            cells = _table_cells(trimmed)
            if cells and "*" in cells[0]:
                files = []
                if len(cells) > 1:
                    ref = normalize_relative_path(cells[1])
                    files.append(ref if ref.endswith(".md") else f"rules/{ref}.md")
                config.by_path[cells[0]] = files

    return config


def parse_index_file(index_path: Optional[Path]) -> IndexConfig:
    """Parse a manifest file; a missing file yields an empty IndexConfig."""
    if index_path is None or not Path(index_path).is_file():
        return IndexConfig()

    try:
        content = Path(index_path).read_text(encoding="utf-8")
    except UnicodeDecodeError:
        logger.warning("Index file %s is not valid UTF-8, ignoring it", index_path)
        return IndexConfig()

    return parse_index_content(content)


def paths_for_source_file(config: IndexConfig, source_path: str) -> List[str]:
    """Return the files referenced by every by-path glob matching ``source_path``.

    Globs use gitignore-style wildcard semantics. Results follow manifest
    order with duplicates removed.
    """
    candidate = normalize_relative_path(source_path)
    referenced: List[str] = []

    for pattern, files in config.by_path.items():
        spec = PathSpec.from_lines(GitWildMatchPattern, [pattern])
        if not spec.match_file(candidate):
            continue
        for file in files:
            if file not in referenced:
                referenced.append(file)

    return referenced
