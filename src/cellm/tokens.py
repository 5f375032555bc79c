"""Token estimation and budget thresholds for context files.

Token counts are a character-length heuristic (~4 characters per token for
English text), not a real tokenizer. They are good enough to keep always-loaded
context under a fixed budget.
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from types import MappingProxyType
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, computed_field

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4

BUDGET_LIMITS = MappingProxyType(
    {
        "CORE": 2200,
        "FILE_MAX": 500,
        "WARNING_THRESHOLD": 0.90,
        "CRITICAL_THRESHOLD": 0.95,
    }
)

BudgetState = Literal["ok", "warning", "critical", "exceeded"]

_WHITESPACE_RE = re.compile(r"\s+")
_BUDGET_RE = re.compile(r"~?(\d+)")


def budget_state(percentage: float) -> BudgetState:
    """Map a usage ratio onto the ok/warning/critical/exceeded ladder."""
    if percentage > 1:
        return "exceeded"
    if percentage >= BUDGET_LIMITS["CRITICAL_THRESHOLD"]:
        return "critical"
    if percentage >= BUDGET_LIMITS["WARNING_THRESHOLD"]:
        return "warning"
    return "ok"


def usage_state(used: int, total: int) -> BudgetState:
    """Classify ``used`` tokens against ``total``; any use of a zero budget overflows it."""
    if total <= 0:
        return "exceeded" if used > 0 else "ok"
    return budget_state(used / total)


class BudgetStatus(BaseModel):
    """Usage measured against a token budget.

    ``percentage`` and ``status`` are derived from ``used`` and ``total`` on
    every access, so they can never drift from the counts.
    """

    model_config = ConfigDict(frozen=True)

    used: int
    total: int = BUDGET_LIMITS["CORE"]

    @computed_field
    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.used / self.total

    @computed_field
    @property
    def status(self) -> BudgetState:
        return usage_state(self.used, self.total)


def estimate_tokens(text: str) -> int:
    """Approximate the token count of ``text``.

    Whitespace runs are collapsed before counting, so strings that differ only
    in whitespace run-length estimate identically.
    """
    normalized = _WHITESPACE_RE.sub(" ", text).strip()
    return math.ceil(len(normalized) / CHARS_PER_TOKEN)


def estimate_file_tokens(file_path: Union[str, Path]) -> int:
    """Estimate tokens in a file, returning 0 if it cannot be read."""
    try:
        content = Path(file_path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        logger.debug("Could not read %s for token estimation", file_path)
        return 0
    return estimate_tokens(content)


def parse_budget(budget: object) -> int:
    """Parse a declared budget such as ``"~500 tokens"``, ``"500"`` or ``500``.

    Returns 0 for missing or unparseable values; never raises.
    """
    if budget is None or isinstance(budget, bool):
        return 0
    if isinstance(budget, int):
        return budget
    if isinstance(budget, float):
        return int(budget) if math.isfinite(budget) else 0
    if not isinstance(budget, str):
        return 0

    match = _BUDGET_RE.search(budget)
    return int(match.group(1)) if match else 0


def check_budget(used: int, total: int = BUDGET_LIMITS["CORE"]) -> BudgetStatus:
    """Measure ``used`` tokens against ``total``."""
    return BudgetStatus(used=used, total=total)


def format_tokens(tokens: int) -> str:
    """Format a token count for display."""
    if tokens < 1000:
        return f"{tokens} tokens"
    return f"{tokens / 1000:.1f}k tokens"


def create_progress_bar(percentage: float, width: int = 30) -> str:
    """Render an ASCII progress bar, clamped to ``width``."""
    filled = max(0, min(round(percentage * width), width))
    return "[" + "=" * filled + " " * (width - filled) + "]"


def format_budget_status(status: BudgetStatus) -> str:
    """Format a budget status as ``used/total tokens (P%) [bar]``."""
    percentage = round(status.percentage * 100)
    bar = create_progress_bar(status.percentage, 30)
    return f"{status.used}/{status.total} tokens ({percentage}%) {bar}"
