"""Model tier suggestions for workflow commands."""

from types import MappingProxyType
from typing import List, Literal, Mapping

ModelTier = Literal["haiku", "sonnet", "opus"]

DEFAULT_MODEL: ModelTier = "sonnet"

MODEL_MAP: Mapping[str, ModelTier] = MappingProxyType(
    {
        "status": "haiku",
        "metrics": "haiku",
        "reuse-check": "haiku",
        "implement": "sonnet",
        "verify": "sonnet",
        "create-tasks": "sonnet",
        "orchestrate-tasks": "sonnet",
        "plan-product": "opus",
        "write-spec": "opus",
        "shape-spec": "opus",
        "spec": "opus",
    }
)

_DESCRIPTIONS: Mapping[ModelTier, str] = MappingProxyType(
    {
        "haiku": "Fast, cost-effective for simple tasks",
        "sonnet": "Balanced performance and quality",
        "opus": "Maximum capability for complex reasoning",
    }
)


def suggest_model(command: str) -> ModelTier:
    """Suggest a model tier for a command, with or without the leading ``/``."""
    normalized = command.strip().lstrip("/").lower()
    return MODEL_MAP.get(normalized, DEFAULT_MODEL)


def get_model_description(model: ModelTier) -> str:
    return _DESCRIPTIONS[model]


def get_commands_for_model(model: ModelTier) -> List[str]:
    """List the ``/``-prefixed commands assigned to a tier."""
    return [f"/{cmd}" for cmd, tier in MODEL_MAP.items() if tier == model]
