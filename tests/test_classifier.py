"""
Tests for the classification strategies.

Covers:
  1. HeuristicClassifier decisions and confidence
  2. parse_decision: fences, validation, defaulting
  3. DelegatedClassifier: prompt construction, parse, transport-failure fallback
  4. RoutingDecision audit trail
"""

import json

import pytest
from unittest.mock import MagicMock

from second_opinion.classifier import (
    ROUTER_SYSTEM_PROMPT,
    UNKNOWN_MODEL_REASON,
    DelegatedClassifier,
    HeuristicClassifier,
    RoutingDecision,
    build_router_input,
    heuristic_confidence,
    parse_decision,
)
from second_opinion.config import ProviderAvailability
from second_opinion.escalation import apply_confidence_escalation
from second_opinion.signals import RoutingSignals, extract_signals


BOTH = ProviderAvailability(has_openai=True, has_gemini=True)
OPENAI_ONLY = ProviderAvailability(has_openai=True, has_gemini=False)
GEMINI_ONLY = ProviderAvailability(has_openai=False, has_gemini=True)


def _decision_json(model="gpt-5-mini", confidence=0.8, **extra):
    payload = {
        "selected_model": model,
        "confidence": confidence,
        "signals": {
            "multimodal": False,
            "stakes": "medium",
            "ambiguity": "low",
            "context_size": "short",
            "strict_output": False,
            "task_type": "code",
        },
        "fallback_model": "gpt-5.2",
        "reason": "clear code question",
    }
    payload.update(extra)
    return json.dumps(payload)


# ---------------------------------------------------------------------------
# 1. HeuristicClassifier
# ---------------------------------------------------------------------------

class TestHeuristicClassifier:

    @pytest.fixture
    def classifier(self):
        return HeuristicClassifier()

    def test_screenshot_routes_to_multimodal_light_tier(self, classifier):
        decision = classifier.classify(
            "Here is a screenshot of the login page, what looks off?", None, BOTH,
        )
        assert decision.selected_model == "gemini-3-flash-preview"
        assert decision.signals.multimodal is True
        assert decision.rule == 1

    def test_short_classification_routes_to_cheapest(self, classifier):
        decision = classifier.classify(
            "Classify this support ticket as a bug or a feature request", None, BOTH,
        )
        assert decision.selected_model == "gpt-5-nano"
        assert decision.signals.task_type == "classify"

    def test_clear_code_request_routes_to_mid_tier(self, classifier):
        decision = classifier.classify(
            "Write a short docstring for a function that merges two sorted lists", None, BOTH,
        )
        assert decision.selected_model == "gpt-5-mini"

    def test_high_stakes_routes_to_heaviest(self, classifier):
        decision = classifier.classify(
            "Is it safe to run this in production against customer data?", None, BOTH,
        )
        assert decision.selected_model == "gpt-5.2"

    def test_decision_metadata(self, classifier):
        decision = classifier.classify("Classify this ticket as a bug", None, BOTH)
        assert decision.strategy == "heuristic"
        assert decision.fallback_model == "gpt-5-mini"
        assert decision.reason.startswith("rule 2")

    def test_confidence_drops_for_vague_signals(self):
        clear = RoutingSignals(task_type="code", ambiguity="low")
        vague = RoutingSignals(task_type="other", ambiguity="high")
        assert heuristic_confidence(clear) == 0.9
        assert heuristic_confidence(vague) == pytest.approx(0.65)
        assert heuristic_confidence(vague) < heuristic_confidence(clear)


# ---------------------------------------------------------------------------
# 2. parse_decision
# ---------------------------------------------------------------------------

class TestParseDecision:

    @pytest.fixture
    def local(self):
        return extract_signals("Is this loop correct?")

    def test_valid_json(self, local):
        decision = parse_decision(_decision_json(), local)
        assert decision.selected_model == "gpt-5-mini"
        assert decision.confidence == 0.8
        assert decision.signals.task_type == "code"
        assert decision.strategy == "delegated"
        assert decision.reason == "clear code question"

    def test_markdown_fences_are_stripped(self, local):
        raw = "```json\n" + _decision_json(model="gpt-5.2") + "\n```"
        assert parse_decision(raw, local).selected_model == "gpt-5.2"

    def test_unknown_model_is_downgraded(self, local):
        decision = parse_decision(_decision_json(model="gpt-9-ultra", confidence=0.99), local)
        assert decision.selected_model == "gpt-5-mini"
        assert decision.confidence == 0.5
        assert UNKNOWN_MODEL_REASON in decision.reason

    def test_malformed_output_is_downgraded(self, local):
        decision = parse_decision("I think gpt-5.2 would be best!", local)
        assert decision.selected_model == "gpt-5-mini"
        assert decision.confidence == 0.5
        assert UNKNOWN_MODEL_REASON in decision.reason
        assert decision.signals == local

    def test_non_object_json_is_downgraded(self, local):
        decision = parse_decision("[1, 2, 3]", local)
        assert decision.selected_model == "gpt-5-mini"

    def test_invalid_signal_fields_keep_local_values(self, local):
        raw = _decision_json(signals={"stakes": "extreme", "task_type": "REASON", "multimodal": "true"})
        decision = parse_decision(raw, local)
        assert decision.signals.stakes == local.stakes
        assert decision.signals.task_type == "reason"
        assert decision.signals.multimodal is True
        assert decision.signals.complexity == local.complexity

    def test_confidence_is_clamped(self, local):
        assert parse_decision(_decision_json(confidence=7), local).confidence == 1.0
        assert parse_decision(_decision_json(confidence=-1), local).confidence == 0.0

    def test_missing_confidence_defaults(self, local):
        decision = parse_decision(_decision_json(confidence="high"), local)
        assert decision.confidence == 0.5
        assert "confidence missing" in decision.reason

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_confidence_defaults(self, local, literal):
        raw = '{"selected_model": "gpt-5-nano", "confidence": %s, "reason": "x"}' % literal
        decision = parse_decision(raw, local)
        assert decision.confidence == 0.5
        assert decision.reason == "x; confidence missing, assumed 0.5"

    def test_non_finite_confidence_still_escalates(self, local):
        raw = '{"selected_model": "gpt-5-nano", "confidence": NaN, "reason": "x"}'
        decision = apply_confidence_escalation(parse_decision(raw, local))
        assert decision.selected_model == "gpt-5-mini"

    def test_complexity_and_query_type_are_validated(self, local):
        raw = _decision_json(signals={"complexity": "Complex", "query_type": "poetry"})
        decision = parse_decision(raw, local)
        assert decision.signals.complexity == "complex"
        assert decision.signals.query_type == local.query_type

    def test_fallback_is_recomputed_not_trusted(self, local):
        raw = _decision_json(model="gpt-5-nano", fallback_model="gemini-3-pro-preview")
        assert parse_decision(raw, local).fallback_model == "gpt-5-mini"


# ---------------------------------------------------------------------------
# 3. DelegatedClassifier
# ---------------------------------------------------------------------------

class TestDelegatedClassifier:

    def test_single_call_to_classifier_model(self):
        gateway = MagicMock()
        gateway.invoke.return_value = _decision_json(model="gpt-5.2", confidence=0.9)
        decision = DelegatedClassifier(gateway).classify("Why is this slow?", None, BOTH)

        gateway.invoke.assert_called_once()
        model, router_input, system_prompt = gateway.invoke.call_args[0]
        assert model == "gpt-5-nano"
        assert system_prompt == ROUTER_SYSTEM_PROMPT
        assert json.loads(router_input.splitlines()[0])["userRequest"] == "Why is this slow?"
        assert decision.selected_model == "gpt-5.2"

    def test_classifier_model_follows_availability(self):
        gateway = MagicMock()
        gateway.invoke.return_value = _decision_json(model="gemini-3-pro-preview")
        DelegatedClassifier(gateway).classify("Why is this slow?", None, GEMINI_ONLY)
        assert gateway.invoke.call_args[0][0] == "gemini-3-flash-preview"

    def test_transport_failure_falls_back_to_heuristic(self):
        gateway = MagicMock()
        gateway.invoke.side_effect = ConnectionError("connection reset")
        decision = DelegatedClassifier(gateway).classify(
            "Classify this ticket as a bug or a feature", None, BOTH,
        )
        assert decision.selected_model == "gpt-5-nano"
        assert decision.strategy == "heuristic"
        assert "delegated classifier failed (connection reset)" in decision.reason
        assert decision.reason.startswith("rule 2")

    def test_garbage_output_is_defaulted_not_raised(self):
        gateway = MagicMock()
        gateway.invoke.return_value = "sorry, I can't do that"
        decision = DelegatedClassifier(gateway).classify("Why is this slow?", None, BOTH)
        assert decision.selected_model == "gpt-5-mini"
        assert decision.confidence == 0.5


class TestRouterInput:

    def test_multimodal_hint(self):
        text = build_router_input("see image", None, True, BOTH)
        assert "multimodal content" in text
        assert json.loads(text.splitlines()[0])["multimodalDetected"] is True

    def test_openai_only_constraint(self):
        assert "Only OpenAI models" in build_router_input("x", None, False, OPENAI_ONLY)

    def test_gemini_only_constraint(self):
        assert "Only Gemini models" in build_router_input("x", None, False, GEMINI_ONLY)

    def test_no_constraint_with_both(self):
        assert "CONSTRAINT" not in build_router_input("x", "ctx", False, BOTH)


# ---------------------------------------------------------------------------
# 4. RoutingDecision
# ---------------------------------------------------------------------------

class TestRoutingDecision:

    def test_reason_is_append_only(self):
        decision = RoutingDecision("gpt-5-mini", 0.8, RoutingSignals(), "gpt-5.2", "first")
        decision.add_reason("second")
        decision.add_reason("third")
        assert decision.reason == "first; second; third"

    def test_provider_and_to_dict(self):
        decision = RoutingDecision("gemini-3-pro-preview", 0.7, RoutingSignals(), "gpt-5.2", "r")
        assert decision.provider == "gemini"
        d = decision.to_dict()
        assert d["provider"] == "gemini"
        assert d["signals"]["task_type"] == "other"
