"""
Request classification for the second-opinion router.

Two interchangeable strategies produce a :class:`RoutingDecision`:

* :class:`HeuristicClassifier` applies the rule table to locally extracted
  signals, with no model call.
* :class:`DelegatedClassifier` asks a cheap model to apply the same rule
  table and return a JSON decision. Bad output is defaulted at the parse
  boundary; a failed call falls back to the heuristic classifier.
"""

import json
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

from .availability import resolve_model
from .config import DEFAULT_CLASSIFIER_MODEL, ProviderAvailability
from .escalation import escalate
from .registry import MODEL_IDS, SAFE_DEFAULT_MODEL, is_known, provider_of
from .rules import ROUTING_RULES_TEXT, select_model
from .signals import (
    AMBIGUITY_LEVELS,
    COMPLEXITY_LEVELS,
    CONTEXT_SIZES,
    QUERY_TYPES,
    STAKES_LEVELS,
    TASK_TYPES,
    RoutingSignals,
    extract_signals,
)

_log = logging.getLogger(__name__)

STRATEGY_DELEGATED = "delegated"
STRATEGY_HEURISTIC = "heuristic"

DEFAULTED_CONFIDENCE = 0.5
UNKNOWN_MODEL_REASON = "unknown model downgraded"


@dataclass
class RoutingDecision:
    """The routing decision passed through the pipeline and returned to the caller.

    Attributes:
        selected_model: Catalog model chosen for the request.
        confidence: Routing confidence 0.0-1.0.
        signals: Signals the decision was based on.
        fallback_model: Escalation successor of ``selected_model``.
        reason: Audit trail. Each stage appends a clause; nothing is overwritten.
        strategy: ``"delegated"`` or ``"heuristic"``.
        rule: Rule-table row that matched (0 when the classifier model chose).
    """

    selected_model: str
    confidence: float
    signals: RoutingSignals
    fallback_model: str
    reason: str
    strategy: str = STRATEGY_HEURISTIC
    rule: int = 0

    def __post_init__(self):
        self.confidence = max(0.0, min(1.0, float(self.confidence)))

    @property
    def provider(self) -> str:
        return provider_of(self.selected_model)

    def add_reason(self, clause: str) -> None:
        """Append *clause* to the audit trail."""
        self.reason = f"{self.reason}; {clause}" if self.reason else clause

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to plain dict."""
        return {
            "selected_model": self.selected_model,
            "provider": self.provider,
            "confidence": self.confidence,
            "signals": self.signals.to_dict(),
            "fallback_model": self.fallback_model,
            "reason": self.reason,
            "strategy": self.strategy,
            "rule": self.rule,
        }


class Classifier(ABC):
    """Common interface of both classification strategies."""

    strategy: str = ""

    @abstractmethod
    def classify(
        self,
        prompt: str,
        context: Optional[str],
        availability: ProviderAvailability,
    ) -> RoutingDecision:
        """Produce a routing decision for the request. Never raises for bad input text."""
        ...


class HeuristicClassifier(Classifier):
    """Local classification: signal extraction plus the rule table."""

    strategy = STRATEGY_HEURISTIC

    def classify(
        self,
        prompt: str,
        context: Optional[str],
        availability: ProviderAvailability,
    ) -> RoutingDecision:
        signals = extract_signals(prompt, context)
        match = select_model(signals)
        return RoutingDecision(
            selected_model=match.model,
            confidence=heuristic_confidence(signals),
            signals=signals,
            fallback_model=escalate(match.model),
            reason=f"rule {match.rule}: {match.reason}",
            strategy=self.strategy,
            rule=match.rule,
        )


def heuristic_confidence(signals: RoutingSignals) -> float:
    """Confidence of a heuristic decision: vaguer signals mean lower confidence."""
    confidence = 0.9
    if signals.task_type == "other":
        confidence -= 0.15
    if signals.ambiguity == "high":
        confidence -= 0.1
    elif signals.ambiguity == "medium":
        confidence -= 0.05
    return round(confidence, 2)


ROUTER_SYSTEM_PROMPT = f"""You are a model router. Return ONLY valid JSON matching the schema.
Choose selected_model from:
{json.dumps(list(MODEL_IDS))}.

{ROUTING_RULES_TEXT}

Schema:
{{
  "selected_model": "...",
  "confidence": 0.0-1.0,
  "signals": {{
    "multimodal": true/false,
    "stakes": "low"|"medium"|"high",
    "ambiguity": "low"|"medium"|"high",
    "context_size": "short"|"medium"|"long",
    "strict_output": true/false,
    "task_type": "classify"|"extract"|"summarize"|"write"|"code"|"plan"|"reason"|"other"
  }},
  "fallback_model": "...",
  "reason": "one short sentence"
}}

Return ONLY the JSON object. No markdown, no explanation."""


def build_router_input(
    prompt: str,
    context: Optional[str],
    multimodal: bool,
    availability: ProviderAvailability,
) -> str:
    """Build the user message for the classifier model."""
    router_input = json.dumps({
        "userRequest": prompt,
        "additionalContext": context or None,
        "multimodalDetected": multimodal,
    })
    if multimodal:
        router_input += (
            "\nNOTE: The request appears to involve multimodal content "
            "(images/PDF/audio/video)."
        )
    if not availability.has_gemini:
        router_input += (
            "\nCONSTRAINT: Only OpenAI models are available "
            "(gpt-5-nano, gpt-5-mini, gpt-5.2)."
        )
    elif not availability.has_openai:
        router_input += (
            "\nCONSTRAINT: Only Gemini models are available "
            "(gemini-3-flash-preview, gemini-3-pro-preview)."
        )
    return router_input


def _strip_fences(raw: str) -> str:
    content = raw.strip()
    if "```json" in content:
        content = content.split("```json", 1)[1].split("```", 1)[0]
    elif "```" in content:
        content = content.split("```", 1)[1].split("```", 1)[0]
    return content.strip()


def _parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    return None


def _parse_signals(raw: Any, fallback: RoutingSignals) -> RoutingSignals:
    """Validate model-provided signals; invalid or missing fields keep the local value."""
    if not isinstance(raw, dict):
        return fallback

    updates: Dict[str, Any] = {}
    for name in ("multimodal", "strict_output"):
        value = _parse_bool(raw.get(name))
        if value is not None:
            updates[name] = value
    for name, allowed in (
        ("stakes", STAKES_LEVELS),
        ("ambiguity", AMBIGUITY_LEVELS),
        ("context_size", CONTEXT_SIZES),
        ("task_type", TASK_TYPES),
        ("complexity", COMPLEXITY_LEVELS),
        ("query_type", QUERY_TYPES),
    ):
        value = raw.get(name)
        if isinstance(value, str) and value.lower() in allowed:
            updates[name] = value.lower()
    return replace(fallback, **updates)


def parse_decision(raw: str, fallback_signals: RoutingSignals) -> RoutingDecision:
    """Turn classifier model output into a validated RoutingDecision.

    This is the only place raw model output is trusted. Malformed JSON or
    an out-of-catalog model yields the safe default model with confidence
    0.5 and an ``"unknown model downgraded"`` clause.

    Args:
        raw: Text returned by the classifier model.
        fallback_signals: Locally extracted signals, used for any field
            the model omitted or got wrong.

    Returns:
        RoutingDecision with ``strategy="delegated"``.
    """
    try:
        data = json.loads(_strip_fences(raw))
        if not isinstance(data, dict):
            raise ValueError("decision is not a JSON object")
    except ValueError as e:
        _log.warning("Unparseable classifier output (%s): %.200s", e, raw)
        return RoutingDecision(
            selected_model=SAFE_DEFAULT_MODEL,
            confidence=DEFAULTED_CONFIDENCE,
            signals=fallback_signals,
            fallback_model=escalate(SAFE_DEFAULT_MODEL),
            reason=f"classifier output unparseable; {UNKNOWN_MODEL_REASON}",
            strategy=STRATEGY_DELEGATED,
        )

    signals = _parse_signals(data.get("signals"), fallback_signals)
    reason = data.get("reason")
    reason = reason.strip() if isinstance(reason, str) and reason.strip() else "classified by model"

    model = data.get("selected_model")
    if not isinstance(model, str) or not is_known(model):
        _log.warning("Classifier chose unknown model %r; using %s", model, SAFE_DEFAULT_MODEL)
        decision = RoutingDecision(
            selected_model=SAFE_DEFAULT_MODEL,
            confidence=DEFAULTED_CONFIDENCE,
            signals=signals,
            fallback_model=escalate(SAFE_DEFAULT_MODEL),
            reason=reason,
            strategy=STRATEGY_DELEGATED,
        )
        decision.add_reason(UNKNOWN_MODEL_REASON)
        return decision

    try:
        confidence = float(data.get("confidence"))
    except (TypeError, ValueError):
        confidence = None
    if confidence is None or not math.isfinite(confidence):
        confidence = DEFAULTED_CONFIDENCE
        reason += "; confidence missing, assumed 0.5"

    return RoutingDecision(
        selected_model=model,
        confidence=confidence,
        signals=signals,
        fallback_model=escalate(model),
        reason=reason,
        strategy=STRATEGY_DELEGATED,
    )


class DelegatedClassifier(Classifier):
    """Classification by one call to a cheap model through the gateway.

    Args:
        gateway: Object with ``invoke(model, prompt, system_prompt) -> str``.
        classifier_model: Catalog model that performs classification.
        fallback: Classifier used when the model call itself fails.
    """

    strategy = STRATEGY_DELEGATED

    def __init__(
        self,
        gateway: Any,
        classifier_model: str = DEFAULT_CLASSIFIER_MODEL,
        fallback: Optional[Classifier] = None,
    ):
        self.gateway = gateway
        self.classifier_model = classifier_model
        self.fallback = fallback if fallback is not None else HeuristicClassifier()

    def classify(
        self,
        prompt: str,
        context: Optional[str],
        availability: ProviderAvailability,
    ) -> RoutingDecision:
        signals = extract_signals(prompt, context)
        model = resolve_model(self.classifier_model, availability)
        router_input = build_router_input(prompt, context, signals.multimodal, availability)

        try:
            raw = self.gateway.invoke(model, router_input, ROUTER_SYSTEM_PROMPT)
        except Exception as e:
            _log.warning("Delegated classification via %s failed: %s", model, e)
            decision = self.fallback.classify(prompt, context, availability)
            decision.add_reason(f"delegated classifier failed ({e}); used heuristic fallback")
            return decision

        return parse_decision(raw, signals)
