"""
Escalation policy for the second-opinion router.

A deterministic total order over the catalog's tiers: two independent
chains (general: nano -> mini -> 5.2, multimodal: flash -> pro). The top
of either chain escalates to the global ceiling, which is a fixed point.

Used for low-confidence upgrades after classification and for the single
retry after an invocation failure.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List

from .registry import GLOBAL_CEILING

if TYPE_CHECKING:
    from .classifier import RoutingDecision

_log = logging.getLogger(__name__)

# Decisions below this confidence escalate once
CONFIDENCE_THRESHOLD = 0.65

ESCALATION_CHAINS: Dict[str, tuple] = {
    "general": ("gpt-5-nano", "gpt-5-mini", "gpt-5.2"),
    "multimodal": ("gemini-3-flash-preview", "gemini-3-pro-preview"),
}

_SUCCESSOR: Dict[str, str] = {}
for _chain in ESCALATION_CHAINS.values():
    for _lower, _upper in zip(_chain, _chain[1:]):
        _SUCCESSOR[_lower] = _upper


def escalate(model: str) -> str:
    """Return the next model up from *model*.

    The top of a chain (and anything unknown) maps to the global ceiling,
    and the ceiling maps to itself.
    """
    return _SUCCESSOR.get(model, GLOBAL_CEILING)


def escalation_path(model: str) -> List[str]:
    """Return *model* followed by each escalation step until the fixed point."""
    path = [model]
    while True:
        nxt = escalate(path[-1])
        if nxt == path[-1]:
            return path
        path.append(nxt)


def apply_confidence_escalation(
    decision: "RoutingDecision",
    threshold: float = CONFIDENCE_THRESHOLD,
) -> "RoutingDecision":
    """Escalate *decision* once when its confidence is below *threshold*.

    Modifies and returns the decision. ``fallback_model`` is recomputed
    for the new selection.
    """
    if decision.confidence >= threshold:
        return decision

    original = decision.selected_model
    decision.selected_model = escalate(original)
    decision.fallback_model = escalate(decision.selected_model)
    decision.add_reason(f"escalated: confidence {decision.confidence:.2f}")
    _log.info(
        "Escalated %s -> %s (confidence %.2f < %.2f)",
        original, decision.selected_model, decision.confidence, threshold,
    )
    return decision
