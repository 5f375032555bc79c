"""Profile compilation: resolve a profile into concrete files and a budget."""

from __future__ import annotations

import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional

import yaml

from .config import Config
from .frontmatter import parse_frontmatter
from .models import CompilationResult, CompiledFile, FileCategory
from .profiles import ProfileRegistry, resolve_profile
from .scanner import find_markdown_files
from .tokens import check_budget, estimate_tokens

logger = logging.getLogger(__name__)

COMPILER_VERSION = "v0.20.0"
SUMMARY_ID = "COMPILED-CONTEXT"

_CATEGORY_TITLES = (
    ("rules", "Rules"),
    ("patterns", "Patterns"),
    ("skills", "Skills"),
)


class ContentRootError(OSError):
    """Raised when the content root cannot be read at all."""

    pass


def _check_content_root(content_root: Path) -> None:
    if not content_root.exists():
        raise ContentRootError(f"Content root not found: {content_root}")
    if not content_root.is_dir():
        raise ContentRootError(f"Content root is not a directory: {content_root}")
    if not os.access(content_root, os.R_OK | os.X_OK):
        raise ContentRootError(f"Content root is not readable: {content_root}")


def _compile_file(source: Path, relative_path: str, category: FileCategory) -> CompiledFile:
    content = source.read_text(encoding="utf-8", errors="replace")
    frontmatter = parse_frontmatter(content)
    return CompiledFile(
        source=str(source),
        relative_path=relative_path,
        category=category,
        tokens=estimate_tokens(content),
        frontmatter=frontmatter or None,
    )


def _pattern_sources(content_root: Path, pattern: str) -> Iterator[tuple[Path, str]]:
    """Yield (source, relative path) pairs for one pattern identifier.

    Anti-patterns are single files. Any other pattern may be a single file,
    a directory of files, or both.
    """
    patterns_dir = content_root / "patterns"
    single = patterns_dir / f"{pattern}.md"
    if single.is_file():
        yield single, f"patterns/{pattern}.md"
    else:
        logger.debug("Pattern file %s not found", single)

    if pattern.startswith("anti/"):
        return

    pattern_dir = patterns_dir / pattern
    if pattern_dir.is_dir():
        for md_file in find_markdown_files(pattern_dir):
            yield md_file, f"patterns/{md_file.relative_to(patterns_dir).as_posix()}"


def compile_profile(
    profile_name: str,
    content_root: Optional[Path] = None,
    registry: Optional[ProfileRegistry] = None,
    config: Optional[Config] = None,
) -> Optional[CompilationResult]:
    """Compile a profile against a content root.

    Args:
        profile_name: Name of the profile to compile
        content_root: Directory holding ``rules/``, ``patterns/`` and ``skills/``;
            defaults to ``config.core_path``
        registry: Profile table; the default registry when omitted
        config: Budget and core path settings; read from the environment
            when omitted

    Returns:
        CompilationResult, or None if the profile is unknown. Files named by
        the profile but absent from the content root are skipped.

    Raises:
        ContentRootError: If the content root is unset, missing or unreadable
    """
    profile = resolve_profile(profile_name, registry)
    if profile is None:
        return None

    config = config or Config.from_env()
    if content_root is None:
        if config.core_path is None:
            raise ContentRootError("No content root given and CELLM_CORE_PATH is not set")
        content_root = config.core_path

    content_root = Path(content_root)
    _check_content_root(content_root)

    files: Dict[str, CompiledFile] = {}

    def add(source: Path, relative_path: str, category: FileCategory) -> None:
        if relative_path not in files:
            files[relative_path] = _compile_file(source, relative_path, category)

    for rule in profile.rules:
        rule_path = content_root / "rules" / f"{rule}.md"
        if rule_path.is_file():
            add(rule_path, f"rules/{rule}.md", "rules")
        else:
            logger.debug("Rule %s not found in %s", rule, content_root)

    for pattern in profile.patterns:
        for source, relative_path in _pattern_sources(content_root, pattern):
            add(source, relative_path, "patterns")

    for skill in profile.skills:
        skill_path = content_root / "skills" / f"{skill}.md"
        if skill_path.is_file():
            add(skill_path, f"skills/{skill}.md", "skills")
        else:
            logger.debug("Skill %s not found in %s", skill, content_root)

    compiled = list(files.values())
    total_tokens = sum(f.tokens for f in compiled)

    return CompilationResult(
        profile=profile,
        files=compiled,
        total_tokens=total_tokens,
        budget=check_budget(total_tokens, config.total_budget),
    )


def write_compiled_profile(result: CompilationResult, dest_path: Path) -> Path:
    """Copy compiled files under ``dest_path/.claude`` and write a summary.

    Returns:
        Path to the generated ``compiled/context.md``
    """
    claude_dir = Path(dest_path) / ".claude"
    compiled_dir = claude_dir / "compiled"
    compiled_dir.mkdir(parents=True, exist_ok=True)

    for file in result.files:
        dest_file = claude_dir / file.relative_path
        dest_file.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(file.source, dest_file)

    context_path = compiled_dir / "context.md"
    context_path.write_text(generate_context_summary(result), encoding="utf-8")
    result.output_path = str(context_path)

    logger.info(
        "Compiled profile %s (%d files) into %s",
        result.profile.name,
        len(result.files),
        context_path,
    )
    return context_path


def _file_table(files: List[CompiledFile]) -> List[str]:
    lines = ["| File | Tokens |", "|------|--------|"]
    lines.extend(f"| {f.relative_path} | {f.tokens} |" for f in files)
    return lines


def generate_context_summary(result: CompilationResult) -> str:
    """Render the compiled context summary document."""
    profile = result.profile
    budget = result.budget

    frontmatter = yaml.dump(
        {
            "id": SUMMARY_ID,
            "version": COMPILER_VERSION,
            "profile": profile.name,
            "generated": datetime.now(timezone.utc).isoformat(),
            "status": "OK",
            "budget": f"~{result.total_tokens} tokens",
        },
        default_flow_style=False,
        sort_keys=False,
    )

    lines = [
        f"---\n{frontmatter}---",
        "",
        "# Compiled Context",
        "",
        f"> Generated from profile: **{profile.name}**",
        "",
    ]

    if len(profile.inheritance_chain) > 1:
        lines += ["## Inheritance", "", "```", " -> ".join(profile.inheritance_chain), "```", ""]

    percentage = round(budget.percentage * 100)
    lines += [
        "## Budget Summary",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Total Tokens | {result.total_tokens} |",
        f"| Budget | {budget.total} |",
        f"| Usage | {percentage}% |",
        f"| Status | {budget.status.upper()} |",
        "",
    ]

    for category, title in _CATEGORY_TITLES:
        category_files = [f for f in result.files if f.category == category]
        if category_files:
            lines += [f"## {title}", ""] + _file_table(category_files) + [""]

    lines += ["---", "", f"*Generated by CELLM CLI {COMPILER_VERSION}*", ""]
    return "\n".join(lines)
