"""cellm: token budgeting and rule loading for AI assistant context files.

Markdown rules, patterns and skills are grouped into layers, sized with a
character-based token estimate, and checked against a fixed context budget.
"""

__version__ = "0.20.0"

from .compiler import ContentRootError, compile_profile, write_compiled_profile
from .config import Config
from .context import analyze_context, trace_rule_loading
from .profiles import (
    ProfileConfigError,
    ProfileRegistry,
    get_available_profiles,
    resolve_inheritance_chain,
    resolve_profile,
)
from .tokens import BUDGET_LIMITS, check_budget, estimate_tokens, parse_budget

__all__ = [
    "BUDGET_LIMITS",
    "Config",
    "ContentRootError",
    "ProfileConfigError",
    "ProfileRegistry",
    "analyze_context",
    "check_budget",
    "compile_profile",
    "estimate_tokens",
    "get_available_profiles",
    "parse_budget",
    "resolve_inheritance_chain",
    "resolve_profile",
    "trace_rule_loading",
    "write_compiled_profile",
]
