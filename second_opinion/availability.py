"""
Availability resolution.

Maps a chosen model onto one whose provider actually holds credentials.
When the chosen provider is missing, the model is remapped to the other
provider: heavy tier to heavy tier, anything else to the fast tier.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict

from .config import NoProviderConfiguredError, ProviderAvailability
from .registry import get_model, provider_of

if TYPE_CHECKING:
    from .classifier import RoutingDecision

_log = logging.getLogger(__name__)

# Model -> same-purpose model on the other provider
CROSS_PROVIDER_EQUIVALENTS: Dict[str, str] = {
    "gemini-3-pro-preview": "gpt-5.2",
    "gemini-3-flash-preview": "gpt-5-mini",
    "gpt-5.2": "gemini-3-pro-preview",
    "gpt-5-mini": "gemini-3-flash-preview",
    "gpt-5-nano": "gemini-3-flash-preview",
}


def resolve_model(model: str, availability: ProviderAvailability) -> str:
    """Return *model* if its provider is available, else its cross-provider equivalent.

    Raises:
        NoProviderConfiguredError: If no provider is available at all.
        KeyError: If *model* is not in the catalog.
    """
    if not availability.any:
        raise NoProviderConfiguredError()
    if availability.is_available(provider_of(model)):
        return model
    return CROSS_PROVIDER_EQUIVALENTS[model]


def resolve(decision: "RoutingDecision", availability: ProviderAvailability) -> "RoutingDecision":
    """Remap *decision* onto an available provider.

    Modifies and returns the decision. A remap appends a
    ``"remapped: <provider> not available"`` clause to the reason.

    Raises:
        NoProviderConfiguredError: If no provider is available at all.
    """
    original = decision.selected_model
    resolved = resolve_model(original, availability)
    if resolved == original:
        return decision

    missing = provider_of(original)
    decision.selected_model = resolved
    decision.add_reason(f"remapped: {missing} not available ({original} -> {resolved})")
    _log.info(
        "Remapped %s -> %s (%s tier, %s not configured)",
        original, resolved, get_model(original).tier, missing,
    )
    return decision
