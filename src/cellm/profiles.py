"""Profile definitions and inheritance resolution.

A profile names the rules, patterns and skills that should be active for a
project type. Profiles form a single-inheritance tree through ``extends``;
resolving one walks the chain from the root down and merges the three lists,
keeping each identifier at its first (most ancestral) position.
"""

from __future__ import annotations

import functools
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional

import yaml
from pydantic import ValidationError

from .config import Config
from .models import ProfileDefinition, ResolvedProfile

logger = logging.getLogger(__name__)


class ProfileConfigError(ValueError):
    """Raised when a profile table is internally inconsistent."""

    pass


_BUILTIN_PROFILES = (
    ProfileDefinition(
        name="base",
        description="Base profile with core rules only",
        rules=("core/conventions", "core/limits", "core/protocols"),
        patterns=(
            "anti/prohibited-patterns",
            "anti/prohibited-libs",
            "anti/prohibited-code",
            "anti/prohibited-nav",
        ),
    ),
    ProfileDefinition(
        name="typescript",
        description="TypeScript project with core patterns",
        extends="base",
        patterns=("typescript",),
    ),
    ProfileDefinition(
        name="web",
        description="Web frontend with TypeScript",
        extends="typescript",
        rules=("domain/frontend",),
        skills=("tailwind",),
    ),
    ProfileDefinition(
        name="vue",
        description="Vue 3 application",
        extends="web",
        patterns=("vue",),
        skills=("vue",),
    ),
    ProfileDefinition(
        name="nuxt",
        description="Nuxt 4 application",
        extends="vue",
        rules=("domain/backend",),
        patterns=("nuxt",),
        skills=("nuxt", "nuxt-ui"),
    ),
    ProfileDefinition(
        name="nuxt-fullstack",
        description="Nuxt 4 full-stack with Drizzle, Nuxt UI, Pinia",
        extends="nuxt",
        patterns=("drizzle", "pinia"),
        skills=("drizzle", "pinia"),
    ),
    ProfileDefinition(
        name="nuxt-saas",
        description="Nuxt 4 SaaS with payment integration",
        extends="nuxt",
        patterns=("drizzle", "stripe"),
        skills=("drizzle", "stripe"),
    ),
    ProfileDefinition(
        name="vue-spa",
        description="Vue 3 single-page application",
        extends="vue",
        patterns=("pinia",),
        skills=("pinia",),
    ),
    ProfileDefinition(
        name="minimal",
        description="Minimal setup with core rules only",
        extends="base",
        patterns=("typescript",),
    ),
)

PROFILES: Mapping[str, ProfileDefinition] = MappingProxyType(
    {profile.name: profile for profile in _BUILTIN_PROFILES}
)


def _unique(items: Iterable[str]) -> List[str]:
    """Drop duplicates, keeping first-occurrence order."""
    return list(dict.fromkeys(items))


class ProfileRegistry:
    """An immutable, validated table of profiles.

    The table is checked once at construction: every ``extends`` target must
    exist and the inheritance graph must be acyclic. Lookups afterwards never
    fail on structure, only on unknown names.
    """

    def __init__(self, definitions: Iterable[ProfileDefinition]):
        table: Dict[str, ProfileDefinition] = {}
        for definition in definitions:
            table[definition.name] = definition
        self._profiles: Mapping[str, ProfileDefinition] = MappingProxyType(table)
        self._validate()

    @property
    def profiles(self) -> Mapping[str, ProfileDefinition]:
        return self._profiles

    def __contains__(self, name: object) -> bool:
        return name in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)

    def get(self, name: str) -> Optional[ProfileDefinition]:
        return self._profiles.get(name)

    def _validate(self) -> None:
        for name, profile in self._profiles.items():
            if profile.extends and profile.extends not in self._profiles:
                raise ProfileConfigError(
                    f"Profile '{name}' extends undefined profile '{profile.extends}'"
                )
        for name in self._profiles:
            self.inheritance_chain(name)

    def inheritance_chain(self, name: str) -> List[str]:
        """Return the chain of profile names from the root down to ``name``.

        Unknown names yield an empty list.

        Raises:
            ProfileConfigError: If the chain loops back on itself
        """
        chain: List[str] = []
        visited: set = set()
        current: Optional[str] = name

        while current and current in self._profiles:
            if current in visited:
                cycle = " -> ".join([current, *chain])
                raise ProfileConfigError(f"Profile inheritance cycle detected: {cycle}")
            visited.add(current)
            chain.insert(0, current)
            current = self._profiles[current].extends

        return chain

    def resolve(self, name: str) -> Optional[ResolvedProfile]:
        """Flatten a profile's inheritance chain.

        Returns:
            The resolved profile, or None if ``name`` is unknown
        """
        target = self._profiles.get(name)
        if target is None:
            return None

        chain = self.inheritance_chain(name)
        rules: List[str] = []
        patterns: List[str] = []
        skills: List[str] = []

        # Merge from base to derived
        for link in chain:
            profile = self._profiles[link]
            rules.extend(profile.rules)
            patterns.extend(profile.patterns)
            skills.extend(profile.skills)

        return ResolvedProfile(
            name=name,
            description=target.description,
            inheritance_chain=chain,
            rules=_unique(rules),
            patterns=_unique(patterns),
            skills=_unique(skills),
        )

    def available(self) -> List[str]:
        return list(self._profiles)

    @classmethod
    def builtin(cls) -> "ProfileRegistry":
        return cls(PROFILES.values())

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], include_builtin: bool = True) -> "ProfileRegistry":
        """Build a registry from a ``{name: {description, extends, ...}}`` mapping.

        Entries override built-in profiles of the same name.
        """
        definitions: Dict[str, ProfileDefinition] = dict(PROFILES) if include_builtin else {}

        for name, body in data.items():
            body = body or {}
            if not isinstance(body, Mapping):
                raise ProfileConfigError(f"Profile '{name}' must be a mapping")
            items = {}
            for key in ("rules", "patterns", "skills"):
                value = body.get(key) or ()
                if not isinstance(value, (list, tuple)):
                    raise ProfileConfigError(
                        f"Profile '{name}': '{key}' must be a list, got {type(value).__name__}"
                    )
                items[key] = tuple(value)
            try:
                definitions[str(name)] = ProfileDefinition(
                    name=str(name),
                    description=body.get("description", ""),
                    extends=body.get("extends"),
                    **items,
                )
            except ValidationError as exc:
                raise ProfileConfigError(f"Invalid profile '{name}': {exc}") from exc

        return cls(definitions.values())

    @classmethod
    def from_yaml(cls, file_path: Path, include_builtin: bool = True) -> "ProfileRegistry":
        """Load profiles from a YAML file."""
        with open(file_path, "r", encoding="utf-8") as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as exc:
                raise ProfileConfigError(f"Malformed profiles file {file_path}: {exc}") from exc

        profiles = data.get("profiles", data) if isinstance(data, Mapping) else None
        if not isinstance(profiles, Mapping):
            raise ProfileConfigError(f"Profiles file {file_path} must contain a mapping")

        logger.debug("Loaded %d profile(s) from %s", len(profiles), file_path)
        return cls.from_dict(profiles, include_builtin=include_builtin)


@functools.lru_cache(maxsize=1)
def default_registry() -> ProfileRegistry:
    """Return the process-wide registry, built on first use.

    Honors ``CELLM_PROFILES_FILE``. Call ``default_registry.cache_clear()``
    to rebuild it after the environment changes.
    """
    config = Config.from_env()
    if config.profiles_file:
        return ProfileRegistry.from_yaml(config.profiles_file)
    return ProfileRegistry.builtin()


def _registry(registry: Optional[ProfileRegistry]) -> ProfileRegistry:
    return registry if registry is not None else default_registry()


def resolve_inheritance_chain(
    profile_name: str, registry: Optional[ProfileRegistry] = None
) -> List[str]:
    """Resolve a profile's inheritance chain, root first."""
    return _registry(registry).inheritance_chain(profile_name)


def resolve_profile(
    profile_name: str, registry: Optional[ProfileRegistry] = None
) -> Optional[ResolvedProfile]:
    """Resolve a profile with all inherited items merged."""
    return _registry(registry).resolve(profile_name)


def get_available_profiles(registry: Optional[ProfileRegistry] = None) -> List[str]:
    """Get list of available profile names."""
    return _registry(registry).available()


def get_profile_info(profile_name: str, registry: Optional[ProfileRegistry] = None) -> Dict[str, Any]:
    """Describe a profile for display."""
    profile = _registry(registry).get(profile_name)
    if profile is None:
        return {"exists": False}
    return {
        "exists": True,
        "description": profile.description,
        "inherits": profile.extends,
    }
