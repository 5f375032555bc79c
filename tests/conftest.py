"""Pytest configuration and shared fixtures."""

import pytest
from pathlib import Path
from cellm.config import Config


INDEX_CONTENT = """\
# Context Index

## Always Load

- rules/core/conventions.md
- `rules/core/limits.md`

## By Command

| Command | Agent | Workflow |
|---------|-------|----------|
| /implement | implementer | workflows/implement.md |
| /verify | reviewer | workflows/verify.md |

## By Path

| Pattern | Rule |
|---------|------|
| app/**/*.vue | domain/frontend |
| server/** | domain/backend |

## Notes

- ignored.md
"""


def write(path: Path, content: str) -> Path:
    """Write ``content`` to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture
def context_root(tmp_path: Path) -> Path:
    """Create a temporary .claude context tree with an index manifest."""
    root = tmp_path / "project" / ".claude"

    write(root / "index.md", INDEX_CONTENT)
    write(
        root / "rules" / "core" / "conventions.md",
        "---\nid: CORE-CONVENTIONS\nbudget: ~300 tokens\n---\n\n# Conventions\n\nUse kebab-case.\n",
    )
    write(root / "rules" / "core" / "limits.md", "# Limits\n\nKeep files small.\n")
    write(root / "rules" / "domain" / "frontend.md", "# Frontend\n\nVue components.\n")
    write(root / "rules" / "domain" / "backend.md", "# Backend\n\nNitro handlers.\n")
    write(root / "patterns" / "vue.md", "# Vue patterns\n")
    write(root / "workflows" / "implement.md", "# Implement workflow\n")
    write(root / "agents" / "reviewer.md", "# Reviewer agent\n")
    write(root / "session" / "state.md", "# Session state\n")
    write(root / "notes.md", "# Notes\n")

    return root


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """Create a temporary content source for profile compilation."""
    root = tmp_path / "cellm-core"

    write(root / "rules" / "core" / "conventions.md", "---\nid: CORE-CONVENTIONS\n---\n# Conventions\n")
    write(root / "rules" / "core" / "limits.md", "# Limits\n")
    write(root / "rules" / "domain" / "frontend.md", "# Frontend\n")
    write(root / "patterns" / "anti" / "prohibited-libs.md", "# Prohibited libs\n")
    write(root / "patterns" / "typescript.md", "# TypeScript\n")
    write(root / "patterns" / "vue" / "components.md", "# Components\n")
    write(root / "patterns" / "vue" / "composables" / "state.md", "# Composable state\n")
    write(root / "skills" / "tailwind.md", "# Tailwind\n")

    return root


@pytest.fixture
def config() -> Config:
    """Provide a test configuration."""
    return Config()
