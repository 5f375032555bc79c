"""Core data models for context loading and profile compilation."""

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, computed_field

from .tokens import BUDGET_LIMITS, BudgetState, BudgetStatus, usage_state


LoadTrigger = Literal["always", "path", "command"]
ContextLayer = Literal["core", "domain", "patterns", "project", "session"]
FileCategory = Literal["rules", "patterns", "skills"]

LAYER_ORDER: tuple = ("core", "domain", "patterns", "project", "session")


class ContextFile(BaseModel):
    """One markdown artifact found under a context root."""

    model_config = ConfigDict(frozen=True)

    path: str
    relative_path: str
    name: str
    trigger: LoadTrigger
    trigger_pattern: Optional[str] = None
    tokens: int
    budget: Optional[int] = None  # declared in frontmatter, display only
    layer: ContextLayer
    frontmatter: Optional[Dict[str, Any]] = None


class IndexConfig(BaseModel):
    """Loading rules parsed from a context root's index manifest."""

    always_load: List[str] = Field(default_factory=list)
    by_command: Dict[str, List[str]] = Field(default_factory=dict)
    by_path: Dict[str, List[str]] = Field(default_factory=dict)


class LayerBudget(BaseModel):
    """Token usage of a single context layer."""

    layer: ContextLayer
    label: str
    tokens: int
    percentage: float
    files: int


class ByTrigger(BaseModel):
    """Context files partitioned by load trigger."""

    always: List[ContextFile] = Field(default_factory=list)
    path: List[ContextFile] = Field(default_factory=list)
    command: List[ContextFile] = Field(default_factory=list)


class ContextAnalysis(BaseModel):
    """Classification of every context file under a root.

    Only ``files`` and ``total_budget`` are stored; every aggregate is
    recomputed from them.
    """

    model_config = ConfigDict(frozen=True)

    files: List[ContextFile] = Field(default_factory=list)
    total_budget: int = BUDGET_LIMITS["CORE"]

    @computed_field
    @property
    def by_trigger(self) -> ByTrigger:
        return ByTrigger(
            always=[f for f in self.files if f.trigger == "always"],
            path=[f for f in self.files if f.trigger == "path"],
            command=[f for f in self.files if f.trigger == "command"],
        )

    @computed_field
    @property
    def by_layer(self) -> List[LayerBudget]:
        layers = []
        for layer in LAYER_ORDER:
            layer_files = [f for f in self.files if f.layer == layer]
            tokens = sum(f.tokens for f in layer_files)
            layers.append(
                LayerBudget(
                    layer=layer,
                    label=layer.upper(),
                    tokens=tokens,
                    percentage=tokens / self.total_budget if self.total_budget > 0 else 0.0,
                    files=len(layer_files),
                )
            )
        return layers

    @computed_field
    @property
    def total_tokens(self) -> int:
        return sum(f.tokens for f in self.files)

    @computed_field
    @property
    def percentage(self) -> float:
        if self.total_budget <= 0:
            return 0.0
        return self.total_tokens / self.total_budget

    @computed_field
    @property
    def status(self) -> BudgetState:
        return usage_state(self.total_tokens, self.total_budget)


class ProfileDefinition(BaseModel):
    """A named bundle of rules, patterns and skills, optionally inheriting."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    extends: Optional[str] = None
    rules: tuple[str, ...] = ()
    patterns: tuple[str, ...] = ()
    skills: tuple[str, ...] = ()


class ResolvedProfile(BaseModel):
    """A profile with its inheritance chain flattened."""

    name: str
    description: str
    inheritance_chain: List[str]
    rules: List[str]
    patterns: List[str]
    skills: List[str]


class CompiledFile(BaseModel):
    """A content file selected by a resolved profile."""

    source: str
    relative_path: str
    category: FileCategory
    tokens: int
    frontmatter: Optional[Dict[str, Any]] = None


class CompilationResult(BaseModel):
    """Files and budget produced by compiling a profile."""

    profile: ResolvedProfile
    files: List[CompiledFile] = Field(default_factory=list)
    total_tokens: int = 0
    budget: BudgetStatus
    output_path: Optional[str] = None


class TriggerMatch(BaseModel):
    """Outcome of the trigger state machine for one file."""

    trigger: LoadTrigger
    pattern: Optional[str] = None
    source: Literal["always", "command", "path-reference", "path-location", "default"]


class LoadTraceResult(BaseModel):
    """Why (and whether) a context file gets loaded."""

    found: bool
    file: Optional[ContextFile] = None
    reason: str
    trigger: Optional[LoadTrigger] = None
    pattern: Optional[str] = None
    chain: List[str] = Field(default_factory=list)


__all__ = [
    "BudgetStatus",
    "ByTrigger",
    "CompilationResult",
    "CompiledFile",
    "ContextAnalysis",
    "ContextFile",
    "ContextLayer",
    "FileCategory",
    "IndexConfig",
    "LAYER_ORDER",
    "LayerBudget",
    "LoadTraceResult",
    "LoadTrigger",
    "ProfileDefinition",
    "ResolvedProfile",
    "TriggerMatch",
]
