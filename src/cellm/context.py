"""Context classification: which files load, when, and at what cost.

Every markdown file under a context root is assigned a layer (from its path)
and a load trigger (from the index manifest). Triggers are resolved by a
one-shot evaluation in the order always > command > path > default, shared by
``analyze_context`` and ``trace_rule_loading`` so that a trace always agrees
with the analysis.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from .config import Config
from .frontmatter import parse_frontmatter
from .index import find_index_file, normalize_relative_path, parse_index_file
from .models import (
    ContextAnalysis,
    ContextFile,
    ContextLayer,
    IndexConfig,
    LoadTraceResult,
    LoadTrigger,
    TriggerMatch,
)
from .scanner import find_markdown_files
from .tokens import estimate_tokens, parse_budget

logger = logging.getLogger(__name__)

_LAYER_MARKERS = (
    ("rules/core/", "core"),
    ("rules/domain/", "domain"),
    ("patterns/", "patterns"),
    ("session/", "session"),
)

# Locations whose files are treated as path-triggered once any by-path rule exists
_PATH_TRIGGER_LOCATIONS = ("patterns/", "rules/domain/")


def get_context_layer(file_path: str) -> ContextLayer:
    """Determine the budget layer of a file from its path."""
    path = str(file_path).replace("\\", "/").lower()
    for marker, layer in _LAYER_MARKERS:
        if marker in path:
            return layer
    return "project"


def get_layer_label(layer: ContextLayer) -> str:
    return layer.upper()


def _references(rel_path: str, referenced: List[str]) -> bool:
    for ref in referenced:
        stem = ref[:-3] if ref.endswith(".md") else ref
        if stem and stem in rel_path:
            return True
    return False


def classify_trigger(
    rel_path: str,
    index: IndexConfig,
    check_always: bool = True,
    strict_path_triggers: bool = False,
) -> TriggerMatch:
    """Resolve the load trigger for a file relative to its context root.

    Args:
        rel_path: POSIX path relative to the context root
        index: Parsed manifest
        check_always: Whether to consult the always-load list
        strict_path_triggers: Only accept by-path triggers whose rule list
            references the file, instead of any file under a path-triggered
            location

    Returns:
        The first trigger that applies
    """
    rel_path = normalize_relative_path(rel_path)

    if check_always and rel_path in index.always_load:
        return TriggerMatch(trigger="always", source="always")

    for command, paths in index.by_command.items():
        if _references(rel_path, paths):
            return TriggerMatch(trigger="command", pattern=command, source="command")

    for pattern, paths in index.by_path.items():
        if _references(rel_path, paths):
            return TriggerMatch(trigger="path", pattern=pattern, source="path-reference")

    if not strict_path_triggers and index.by_path:
        if any(location in rel_path for location in _PATH_TRIGGER_LOCATIONS):
            first_pattern = next(iter(index.by_path))
            return TriggerMatch(trigger="path", pattern=first_pattern, source="path-location")

    return TriggerMatch(trigger="path", source="default")


def parse_context_file(
    file_path: Path,
    base_path: Path,
    trigger: LoadTrigger,
    trigger_pattern: Optional[str] = None,
) -> ContextFile:
    """Read a markdown file and build its ContextFile entry."""
    file_path = Path(file_path)
    content = file_path.read_text(encoding="utf-8", errors="replace")
    frontmatter = parse_frontmatter(content)
    relative_path = file_path.relative_to(base_path).as_posix()

    return ContextFile(
        path=str(file_path.resolve()),
        relative_path=relative_path,
        name=file_path.name,
        trigger=trigger,
        trigger_pattern=trigger_pattern,
        tokens=estimate_tokens(content),
        budget=parse_budget(frontmatter.get("budget")) or None,
        layer=get_context_layer(relative_path),
        frontmatter=frontmatter or None,
    )


def analyze_context(root_dir: Path, config: Optional[Config] = None) -> ContextAnalysis:
    """Classify every markdown file under a context root.

    Args:
        root_dir: The context root (e.g. a project's ``.claude`` directory)
        config: Optional configuration; defaults are used when omitted

    Returns:
        ContextAnalysis covering each file exactly once. A missing root
        yields an empty analysis.
    """
    config = config or Config()
    root = Path(root_dir)

    index_path = find_index_file(root, config.index_filename)
    index = parse_index_file(index_path)

    files: Dict[str, ContextFile] = {}

    # Process always-load files
    for rel_path in index.always_load:
        full_path = root / rel_path
        if rel_path in files:
            continue
        if ".." in Path(rel_path).parts:
            logger.debug("Always-load entry %s points outside %s, skipping", rel_path, root)
            continue
        if full_path.is_file():
            files[rel_path] = parse_context_file(full_path, root, "always")
        else:
            logger.debug("Always-load entry %s not found under %s", rel_path, root)

    # Process all remaining markdown files
    for md_file in find_markdown_files(root, config.ignored_dirs):
        if index_path is not None and md_file == index_path:
            continue

        rel_path = md_file.relative_to(root).as_posix()
        if rel_path in files:
            continue

        match = classify_trigger(
            rel_path,
            index,
            check_always=False,
            strict_path_triggers=config.strict_path_triggers,
        )
        files[rel_path] = parse_context_file(md_file, root, match.trigger, match.pattern)

    return ContextAnalysis(files=list(files.values()), total_budget=config.total_budget)


def _find_matching_file(root: Path, files: List[Path], identifier: str) -> Optional[Path]:
    """Pick the file that best matches ``identifier``.

    Precedence: exact relative path, ``/<id>.md`` suffix, bare filename,
    then substring. Each tier is tried over all files before the next.
    """
    entries = [(f, f.relative_to(root).as_posix().lower()) for f in files]

    tiers = (
        lambda f, rel: rel == f"{identifier}.md",
        lambda f, rel: rel.endswith(f"/{identifier}.md"),
        lambda f, rel: f.stem.lower() == identifier,
        lambda f, rel: identifier in rel,
    )
    for predicate in tiers:
        for md_file, rel in entries:
            if predicate(md_file, rel):
                return md_file
    return None


def trace_rule_loading(
    root_dir: Path, rule_name: str, config: Optional[Config] = None
) -> LoadTraceResult:
    """Explain why a specific rule or file gets loaded.

    Args:
        root_dir: The context root
        rule_name: File identifier, with or without ``.md``

    Returns:
        LoadTraceResult with the trigger and a human-readable load chain
    """
    config = config or Config()
    root = Path(root_dir)
    index_name = "INDEX.md"

    index_path = find_index_file(root, config.index_filename)
    index = parse_index_file(index_path)
    if index_path is not None:
        index_name = index_path.name

    normalized = rule_name.strip()
    if normalized.lower().endswith(".md"):
        normalized = normalized[:-3]
    normalized = normalized.lower()

    # The manifest itself is never a loadable context file
    candidates = [
        md_file
        for md_file in find_markdown_files(root, config.ignored_dirs)
        if index_path is None or md_file != index_path
    ]

    matching_file = None
    if normalized:
        matching_file = _find_matching_file(root, candidates, normalized)

    if matching_file is None:
        return LoadTraceResult(
            found=False,
            reason=f'File "{rule_name}" not found in {root.name or root}/',
        )

    rel_path = matching_file.relative_to(root).as_posix()
    match = classify_trigger(
        rel_path, index, check_always=True, strict_path_triggers=config.strict_path_triggers
    )
    context_file = parse_context_file(matching_file, root, match.trigger, match.pattern)

    if match.source == "always":
        return LoadTraceResult(
            found=True,
            file=context_file,
            reason=f'Listed in {index_name} "Always Load" section',
            trigger="always",
            chain=[f"{index_name} (always)", f"-> {rel_path}"],
        )

    if match.source == "command":
        return LoadTraceResult(
            found=True,
            file=context_file,
            reason=f"Loaded when /{match.pattern} command is executed",
            trigger="command",
            pattern=match.pattern,
            chain=[f"{index_name} (by command)", f"-> /{match.pattern}", f"-> {rel_path}"],
        )

    if match.source in ("path-reference", "path-location"):
        return LoadTraceResult(
            found=True,
            file=context_file,
            reason=f"Loaded when working with files matching: {match.pattern}",
            trigger="path",
            pattern=match.pattern,
            chain=[f"{index_name} (by path)", f"-> Pattern: {match.pattern}", f"-> {rel_path}"],
        )

    # Default: project-level
    return LoadTraceResult(
        found=True,
        file=context_file,
        reason="Available as project-level context",
        trigger="path",
        chain=[f"{root.name or root}/ directory", f"-> {rel_path}"],
    )
