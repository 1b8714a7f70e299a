"""
Second Opinion Router: ask another model, picked per request.

Classifies each request (modality, task type, stakes, ambiguity,
complexity), routes it to an OpenAI or Gemini model tier, validates the
choice against the configured providers, and escalates one tier on low
confidence or when the call fails.

Usage:
    from second_opinion import Config, SecondOpinionRouter

    router = SecondOpinionRouter(Config.load())
    decision = router.route("Classify this ticket as bug or feature")
    print(f"Use {decision.selected_model} (confidence: {decision.confidence:.2f})")

    opinion = router.ask("Is this retry loop safe?", context=code)
    print(opinion.model_used, opinion.response_text)

MCP server:
    python -m second_opinion.mcp_server
"""

__version__ = "1.0.0"

from .config import (
    Config,
    ProviderAvailability,
    ProviderCredentials,
    NoProviderConfiguredError,
    MODE_DELEGATED,
    MODE_HEURISTIC,
)
from .registry import ModelRegistry, ModelInfo, CATALOG, GLOBAL_CEILING
from .signals import RoutingSignals, extract_signals
from .rules import RuleMatch, ROUTING_RULES_TEXT, select_model
from .classifier import (
    Classifier,
    DelegatedClassifier,
    HeuristicClassifier,
    RoutingDecision,
    parse_decision,
)
from .availability import resolve, resolve_model
from .escalation import CONFIDENCE_THRESHOLD, escalate, escalation_path
from .gateway import ProviderGateway, ProviderError
from .router import SecondOpinionRouter, SecondOpinion, EscalationFailedError

__all__ = [
    # configuration
    "Config",
    "ProviderAvailability",
    "ProviderCredentials",
    "NoProviderConfiguredError",
    "MODE_DELEGATED",
    "MODE_HEURISTIC",

    # catalog
    "ModelRegistry",
    "ModelInfo",
    "CATALOG",
    "GLOBAL_CEILING",

    # classification
    "RoutingSignals",
    "extract_signals",
    "RuleMatch",
    "ROUTING_RULES_TEXT",
    "select_model",
    "Classifier",
    "DelegatedClassifier",
    "HeuristicClassifier",
    "RoutingDecision",
    "parse_decision",

    # resolution & escalation
    "resolve",
    "resolve_model",
    "CONFIDENCE_THRESHOLD",
    "escalate",
    "escalation_path",

    # invocation
    "ProviderGateway",
    "ProviderError",
    "SecondOpinionRouter",
    "SecondOpinion",
    "EscalationFailedError",
]
