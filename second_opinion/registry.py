"""
Model catalog for the second-opinion router.

Defines the fixed set of models the router can select, which provider
serves each one, and where each sits inside its provider's tier line.
The catalog is static: models are never added or removed at runtime.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

PROVIDER_OPENAI = "openai"
PROVIDER_GEMINI = "gemini"

PROVIDERS = (PROVIDER_OPENAI, PROVIDER_GEMINI)

# Tier labels within a provider's line
TIER_CHEAP = "cheap"
TIER_MID = "mid"
TIER_LIGHT = "light"
TIER_HEAVY = "heavy"

FAMILY_GENERAL = "general"
FAMILY_MULTIMODAL = "multimodal"


@dataclass(frozen=True)
class ModelInfo:
    """Information about a model in the catalog."""
    name: str
    provider: str
    family: str
    tier: str
    capabilities: Tuple[str, ...] = field(default_factory=tuple)
    description: str = ""

    @property
    def is_heavy(self) -> bool:
        return self.tier == TIER_HEAVY

    def has_capability(self, capability: str) -> bool:
        """Check if model has a specific capability.

        Args:
            capability: Capability to check (e.g., 'vision', 'code')

        Returns:
            True if model has the capability
        """
        return capability in self.capabilities


CATALOG: Tuple[ModelInfo, ...] = (
    ModelInfo(
        name="gemini-3-flash-preview",
        provider=PROVIDER_GEMINI,
        family=FAMILY_MULTIMODAL,
        tier=TIER_LIGHT,
        capabilities=("text", "vision", "audio", "video", "documents"),
        description="Fast multimodal model",
    ),
    ModelInfo(
        name="gemini-3-pro-preview",
        provider=PROVIDER_GEMINI,
        family=FAMILY_MULTIMODAL,
        tier=TIER_HEAVY,
        capabilities=("text", "vision", "audio", "video", "documents", "reasoning"),
        description="Multimodal model for complex or high-stakes reasoning",
    ),
    ModelInfo(
        name="gpt-5-nano",
        provider=PROVIDER_OPENAI,
        family=FAMILY_GENERAL,
        tier=TIER_CHEAP,
        capabilities=("text",),
        description="Cheapest tier for high-volume pipeline tasks",
    ),
    ModelInfo(
        name="gpt-5-mini",
        provider=PROVIDER_OPENAI,
        family=FAMILY_GENERAL,
        tier=TIER_MID,
        capabilities=("text", "code"),
        description="General-purpose text and code",
    ),
    ModelInfo(
        name="gpt-5.2",
        provider=PROVIDER_OPENAI,
        family=FAMILY_GENERAL,
        tier=TIER_HEAVY,
        capabilities=("text", "code", "reasoning"),
        description="Complex reasoning, ambiguous or high-stakes requests",
    ),
)

MODEL_IDS: Tuple[str, ...] = tuple(m.name for m in CATALOG)

# Strongest overall option; every escalation chain ends here
GLOBAL_CEILING = "gpt-5.2"

# Used when a classifier hands back something we can't trust
SAFE_DEFAULT_MODEL = "gpt-5-mini"

_BY_NAME: Dict[str, ModelInfo] = {m.name: m for m in CATALOG}


def get_model(name: str) -> Optional[ModelInfo]:
    """Return the catalog entry for *name*, or None when unknown."""
    return _BY_NAME.get(name)


def is_known(name: str) -> bool:
    return name in _BY_NAME


def provider_of(name: str) -> str:
    """Return the provider serving *name*.

    Raises:
        KeyError: If *name* is not in the catalog.
    """
    model = _BY_NAME.get(name)
    if model is None:
        raise KeyError(f"Unknown model {name!r}")
    return model.provider


class ModelRegistry:
    """Read-only view over the model catalog."""

    def __init__(self, models: Tuple[ModelInfo, ...] = CATALOG):
        self.models: Dict[str, ModelInfo] = {m.name: m for m in models}

    def get_model(self, name: str) -> Optional[ModelInfo]:
        """Get model by name.

        Args:
            name: Model name

        Returns:
            ModelInfo if found, None otherwise
        """
        return self.models.get(name)

    def is_known(self, name: str) -> bool:
        return name in self.models

    def provider_of(self, name: str) -> str:
        """Return the provider serving *name*.

        Raises:
            KeyError: If *name* is not registered.
        """
        model = self.models.get(name)
        if model is None:
            raise KeyError(f"Unknown model {name!r}")
        return model.provider

    def list_models(self) -> List[ModelInfo]:
        """Get all catalog models, in catalog order."""
        return list(self.models.values())

    def models_for_provider(self, provider: str) -> List[ModelInfo]:
        """Get models served by *provider*, heaviest tier first."""
        models = [m for m in self.models.values() if m.provider == provider]
        return sorted(models, key=lambda m: (not m.is_heavy, m.name))

    def models_with_capability(self, capability: str) -> List[str]:
        """Names of catalog models that have *capability*."""
        return [m.name for m in self.models.values() if m.has_capability(capability)]

    def get_providers(self) -> List[str]:
        """Get providers that serve at least one registered model."""
        return [p for p in PROVIDERS if any(m.provider == p for m in self.models.values())]
