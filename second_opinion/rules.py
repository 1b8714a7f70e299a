"""
Routing rule table.

Four rules evaluated in priority order, first match wins. Both the local
heuristic classifier and the delegated (model-based) classifier use this
table: the heuristic one evaluates :func:`select_model` directly, the
delegated one ships :data:`ROUTING_RULES_TEXT` to the classifier model.
"""

from dataclasses import dataclass

from .signals import RoutingSignals

PIPELINE_TASKS = {"classify", "extract"}
DEEP_MULTIMODAL_TASKS = {"reason", "plan"}


@dataclass(frozen=True)
class RuleMatch:
    """Outcome of evaluating the rule table."""
    model: str
    rule: int
    reason: str


ROUTING_RULES_TEXT = """MODEL ROUTING RULES (first match wins):

1) Multimodal input (PDF/image/audio/video):
   - Default: gemini-3-flash-preview (fast multimodal)
   - If complex reasoning / high stakes / multi-step: gemini-3-pro-preview

2) High-volume pipeline tasks (classify/tag/extract/short summary), low stakes:
   - gpt-5-nano

3) General-purpose text/code with clear instructions:
   - gpt-5-mini

4) Complex reasoning / ambiguous requests / multi-doc synthesis / high-stakes:
   - gpt-5.2"""


def _is_pipeline_task(signals: RoutingSignals) -> bool:
    if signals.task_type in PIPELINE_TASKS:
        return True
    return signals.task_type == "summarize" and signals.context_size == "short"


def select_model(signals: RoutingSignals) -> RuleMatch:
    """Evaluate the rule table against *signals*.

    Args:
        signals: Signals extracted from the request.

    Returns:
        RuleMatch naming the model, the rule number and a short reason.
    """
    if signals.multimodal:
        if (
            signals.stakes == "high"
            or signals.task_type in DEEP_MULTIMODAL_TASKS
            or signals.complexity == "complex"
        ):
            return RuleMatch("gemini-3-pro-preview", 1, "multimodal input needing deep reasoning")
        return RuleMatch("gemini-3-flash-preview", 1, "multimodal input")

    clear = signals.stakes != "high" and signals.ambiguity != "high"

    if clear and _is_pipeline_task(signals):
        return RuleMatch("gpt-5-nano", 2, f"low-stakes {signals.task_type} pipeline task")

    if clear and signals.complexity != "complex" and signals.context_size != "long":
        return RuleMatch("gpt-5-mini", 3, f"{signals.complexity} {signals.query_type} request with clear instructions")

    return RuleMatch("gpt-5.2", 4, _heavy_reason(signals))


def _heavy_reason(signals: RoutingSignals) -> str:
    causes = []
    if signals.stakes == "high":
        causes.append("high stakes")
    if signals.ambiguity == "high":
        causes.append("ambiguous request")
    if signals.complexity == "complex":
        causes.append("complex reasoning")
    if signals.context_size == "long":
        causes.append("long context")
    return ", ".join(causes) or "complex request"
