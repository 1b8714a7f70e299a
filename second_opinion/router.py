"""
Main routing interface for the second-opinion router.

Sequences classification, availability resolution and confidence
escalation into a single decision, invokes the selected model, and on a
failed call escalates once and retries. At most one classification call
and two invocation calls happen per request, strictly in sequence.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .availability import resolve, resolve_model
from .classifier import (
    Classifier,
    DelegatedClassifier,
    HeuristicClassifier,
    RoutingDecision,
)
from .config import MODE_DELEGATED, Config, NoProviderConfiguredError
from .escalation import apply_confidence_escalation, escalate
from .gateway import ProviderGateway
from .registry import PROVIDER_GEMINI, PROVIDER_OPENAI, ModelRegistry
from .rules import ROUTING_RULES_TEXT

_log = logging.getLogger(__name__)

ADVISOR_SYSTEM_PROMPT = """You are a helpful AI advisor providing a second opinion. Another AI assistant is working on a task and has come to you for help. You should:

- Be concise and direct in your response
- Focus on the specific question or problem presented
- Offer alternative approaches if you see them
- Point out potential issues or edge cases
- If reviewing code, be specific about what could be improved and why
- If asked to verify reasoning, clearly state whether you agree or disagree and why"""

PROVIDER_ROUTING_NOTES = {
    PROVIDER_OPENAI: "General text and code: pipeline tasks, clear instructions, complex reasoning",
    PROVIDER_GEMINI: "Multimodal input: images, PDFs, audio and video",
}


class EscalationFailedError(RuntimeError):
    """Both the selected model and its escalated retry failed."""

    def __init__(self, first_model: str, first_error: str, second_model: str, second_error: str):
        super().__init__(
            f"Both attempts failed: {first_model}: {first_error}; "
            f"{second_model} (escalated retry): {second_error}"
        )
        self.first_model = first_model
        self.first_error = first_error
        self.second_model = second_model
        self.second_error = second_error


@dataclass
class SecondOpinion:
    """Result of an answered request."""
    decision: RoutingDecision
    model_used: str
    response_text: str
    attempts: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        signals = self.decision.signals
        return {
            "selected_model": self.decision.selected_model,
            "provider": self.decision.provider,
            "task_type": signals.task_type,
            "stakes": signals.stakes,
            "ambiguity": signals.ambiguity,
            "confidence": round(self.decision.confidence, 4),
            "reason": self.decision.reason,
            "fallback_model": self.decision.fallback_model,
            "model_used": self.model_used,
            "attempts": list(self.attempts),
            "response": self.response_text,
        }


def build_prompt(prompt: str, context: Optional[str] = None) -> str:
    """Combine the request and its optional context into one user message."""
    if context:
        return f"{prompt}\n\nAdditional context:\n{context}"
    return prompt


def build_classifier(config: Config, gateway: Any) -> Classifier:
    """Pick the classification strategy configured by ``config.mode``."""
    if config.mode == MODE_DELEGATED:
        return DelegatedClassifier(gateway, classifier_model=config.classifier_model)
    return HeuristicClassifier()


class SecondOpinionRouter:
    """Decides which model answers a request, then asks it.

    Args:
        config: Immutable runtime configuration.
        gateway: Object with ``invoke(model, prompt, system_prompt) -> str``.
            Defaults to a :class:`ProviderGateway` over ``config``.
        classifier: Classification strategy. Defaults to the one named by
            ``config.mode``.
    """

    def __init__(
        self,
        config: Config,
        gateway: Optional[Any] = None,
        classifier: Optional[Classifier] = None,
    ):
        self.config = config
        self.availability = config.availability
        self.gateway = gateway if gateway is not None else ProviderGateway(config)
        self.classifier = classifier if classifier is not None else build_classifier(config, self.gateway)
        self.registry = ModelRegistry()

    # ── Routing ───────────────────────────────────────────────────────────

    def route(self, prompt: str, context: Optional[str] = None) -> RoutingDecision:
        """Decide which model should answer the request.

        Args:
            prompt: The request text (required).
            context: Optional additional context.

        Returns:
            RoutingDecision whose provider is configured.

        Raises:
            ValueError: If *prompt* is missing or blank.
            NoProviderConfiguredError: If no provider is configured.
        """
        if not isinstance(prompt, str) or not prompt.strip():
            raise ValueError("prompt is required")
        if context is not None and not isinstance(context, str):
            raise ValueError("context must be a string")
        if not self.availability.any:
            raise NoProviderConfiguredError()

        decision = self.classifier.classify(prompt, context, self.availability)
        decision = resolve(decision, self.availability)

        threshold = self.config.confidence_threshold
        if decision.confidence < threshold:
            decision = apply_confidence_escalation(decision, threshold)
            # Escalating off a provider's ceiling can land on the other provider
            decision = resolve(decision, self.availability)

        decision.fallback_model = escalate(decision.selected_model)
        _log.info(
            "Route: %s via %s (confidence %.2f) | %s",
            decision.selected_model, decision.strategy, decision.confidence, decision.reason,
        )
        return decision

    # ── Invocation ────────────────────────────────────────────────────────

    def ask(self, prompt: str, context: Optional[str] = None) -> SecondOpinion:
        """Route the request, invoke the chosen model, and escalate once on failure.

        Returns:
            SecondOpinion with the decision, the model that answered, and its text.

        Raises:
            ValueError: If *prompt* is missing or blank.
            NoProviderConfiguredError: If no provider is configured.
            EscalationFailedError: If the selected model and the escalated
                retry both fail.
        """
        decision = self.route(prompt, context)
        full_prompt = build_prompt(prompt, context)

        first_model = decision.selected_model
        try:
            text = self.gateway.invoke(first_model, full_prompt, ADVISOR_SYSTEM_PROMPT)
            return SecondOpinion(decision, first_model, text, attempts=[first_model])
        except Exception as first_error:
            retry_model = resolve_model(decision.fallback_model, self.availability)
            _log.warning(
                "Invocation of %s failed: %s; retrying with %s",
                first_model, first_error, retry_model,
            )
            decision.add_reason(f"{first_model} failed ({first_error}); retried with {retry_model}")

            try:
                text = self.gateway.invoke(retry_model, full_prompt, ADVISOR_SYSTEM_PROMPT)
            except Exception as second_error:
                _log.error(
                    "Escalated retry with %s failed: %s", retry_model, second_error,
                )
                raise EscalationFailedError(
                    first_model, str(first_error), retry_model, str(second_error),
                ) from second_error

        return SecondOpinion(decision, retry_model, text, attempts=[first_model, retry_model])

    # ── Introspection ─────────────────────────────────────────────────────

    def describe(self) -> Dict[str, Any]:
        """Describe configured providers, their models, and the routing rules."""
        providers: Dict[str, Any] = {}
        vision = self.registry.models_with_capability("vision")
        for provider in self.availability.providers():
            models = self.registry.models_for_provider(provider)
            providers[provider] = {
                "configured": True,
                "models": [m.name for m in models],
                "descriptions": {m.name: m.description for m in models},
                "multimodal": any(m.name in vision for m in models),
                "routing": PROVIDER_ROUTING_NOTES[provider],
            }
        return {
            "providers": providers,
            "classification": self.classifier.strategy,
            "confidence_threshold": self.config.confidence_threshold,
            "routing": (
                "Provider and model are auto-selected from the request's modality, "
                "task type, stakes, ambiguity and complexity. Low-confidence decisions "
                "and failed calls escalate one tier."
            ),
            "routing_rules": ROUTING_RULES_TEXT,
        }

    def explain(self, decision: RoutingDecision) -> str:
        """Generate a human-readable explanation of a routing decision.

        Args:
            decision: The :class:`RoutingDecision` to explain.

        Returns:
            Multi-line explanation string.
        """
        conf_pct = int(round(decision.confidence * 100))
        signals = decision.signals
        lines: List[str] = [
            f"Model selected: {decision.selected_model} "
            f"({decision.provider}, confidence: {conf_pct}%)",
            f"Classified by: {decision.strategy}"
            + (f" (rule {decision.rule})" if decision.rule else ""),
            "Signals:",
            f"  task type: {signals.task_type}, complexity: {signals.complexity}, "
            f"query type: {signals.query_type}",
            f"  stakes: {signals.stakes}, ambiguity: {signals.ambiguity}, "
            f"context: {signals.context_size}",
            f"  multimodal: {signals.multimodal}, strict output: {signals.strict_output}",
            f"Reason: {decision.reason}",
            f"Fallback: {decision.fallback_model}",
        ]
        return "\n".join(lines)
