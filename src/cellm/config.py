"""Configuration management for cellm context loading."""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .tokens import BUDGET_LIMITS


load_dotenv()


DEFAULT_IGNORED_DIRS = [
    ".git",
    "node_modules",
    "__pycache__",
    ".venv",
    "venv",
    "dist",
    "build",
    ".pytest_cache",
]

_TRUTHY = {"1", "true", "yes", "on"}


class Config(BaseModel):
    """Context loading configuration."""

    # Content Settings
    core_path: Optional[Path] = Field(default=None)
    context_dir: str = Field(default=".claude")
    index_filename: str = Field(default="index.md")
    profiles_file: Optional[Path] = Field(default=None)

    # Budget Settings
    total_budget: int = Field(default=BUDGET_LIMITS["CORE"])

    # Classification Settings
    strict_path_triggers: bool = Field(default=False)
    ignored_dirs: list[str] = Field(default_factory=lambda: DEFAULT_IGNORED_DIRS.copy())

    def context_root(self, project_path: Path) -> Path:
        """Return the context directory inside a project."""
        return Path(project_path) / self.context_dir

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        def _parse_int(value: Optional[str], fallback: int) -> int:
            try:
                return int(value) if value is not None else fallback
            except ValueError:
                return fallback

        def _parse_bool(value: Optional[str]) -> bool:
            return value is not None and value.strip().lower() in _TRUTHY

        ignored_dirs = DEFAULT_IGNORED_DIRS.copy()
        extra_ignored = os.getenv("IGNORED_DIRS")
        if extra_ignored:
            ignored_dirs.extend(
                [entry.strip() for entry in extra_ignored.split(",") if entry.strip()]
            )

        core_path_env = os.getenv("CELLM_CORE_PATH")
        profiles_file_env = os.getenv("CELLM_PROFILES_FILE")

        return cls(
            core_path=Path(core_path_env) if core_path_env else None,
            context_dir=os.getenv("CELLM_CONTEXT_DIR", ".claude"),
            index_filename=os.getenv("CELLM_INDEX_FILE", "index.md"),
            profiles_file=Path(profiles_file_env) if profiles_file_env else None,
            total_budget=_parse_int(os.getenv("CELLM_BUDGET"), BUDGET_LIMITS["CORE"]),
            strict_path_triggers=_parse_bool(os.getenv("CELLM_STRICT_PATH_TRIGGERS")),
            ignored_dirs=ignored_dirs,
        )
