"""
Signal extraction for the second-opinion router.

Derives routing signals (modality, stakes, ambiguity, size, output
strictness, task type, complexity) from the raw request text using
deterministic keyword matching and simple structural counts. Never calls
a model and never fails: anything unclear lands on the ``medium`` /
``other`` defaults.
"""

import re
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

STAKES_LEVELS = ("low", "medium", "high")
AMBIGUITY_LEVELS = ("low", "medium", "high")
CONTEXT_SIZES = ("short", "medium", "long")
TASK_TYPES = ("classify", "extract", "summarize", "write", "code", "plan", "reason", "other")
COMPLEXITY_LEVELS = ("simple", "moderate", "complex")
QUERY_TYPES = ("code", "reasoning", "general")

MULTIMODAL_KEYWORDS = (
    "image", "picture", "photo", "screenshot", "diagram",
    "pdf", "document", "attachment",
    "audio", "sound", "recording", "voice",
    "video", "clip", "footage",
    "base64", "data:image", "data:audio",
)

COMPLEX_KEYWORDS = (
    "architect", "design", "refactor", "debug", "security", "performance",
    "optimize", "tradeoff", "trade-off", "compare", "review", "analyze",
    "complex", "system", "infrastructure", "migration", "strategy",
)

CODE_KEYWORDS = (
    "code", "function", "class", "bug", "error", "stack trace", "syntax",
    "compile", "runtime", "api", "endpoint", "database", "query", "sql",
    "regex", "algorithm", "data structure", "typescript", "javascript",
    "python", "rust", "go ", "java", "```",
)

REASONING_KEYWORDS = (
    "explain", "why", "how does", "what if", "compare", "pros and cons",
    "tradeoff", "trade-off", "should i", "best practice", "approach",
    "architecture", "design pattern", "strategy", "plan",
)

HIGH_STAKES_KEYWORDS = (
    "production", "security", "vulnerab", "critical", "legal", "medical",
    "financial", "compliance", "outage", "data loss", "irreversible",
    "customer data", "payment", "high stakes", "high-stakes",
)

LOW_STAKES_KEYWORDS = (
    "quick", "just curious", "brainstorm", "rough idea", "toy", "casual",
    "for fun", "low stakes", "low-stakes", "throwaway",
)

AMBIGUITY_MARKERS = (
    "not sure", "unsure", "somehow", "something like", "any ideas",
    "what do you think", "maybe", "i don't know", "unclear", "confused",
    "vague", "no idea",
)

STRICT_OUTPUT_KEYWORDS = (
    "json", "yaml", "csv", "xml", "schema", "exactly", "only return",
    "return only", "one word", "single word", "format:", "table",
)

TASK_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "classify": ("classify", "categorize", "categorise", "label", "tag ", "tagging",
                 "sentiment", "which category"),
    "extract": ("extract", "pull out", "parse", "find all", "list all", "entities"),
    "summarize": ("summarize", "summarise", "summary", "tl;dr", "tldr", "condense",
                  "key points"),
    "write": ("write a", "draft", "rewrite", "compose", "email", "essay", "blog post",
              "proofread", "wording"),
    "code": ("code", "function", "bug", "stack trace", "compile", "refactor",
             "implement", "```", "exception", "traceback", "unit test"),
    "plan": ("plan", "roadmap", "steps to", "migration", "schedule", "milestone"),
    "reason": ("why", "prove", "explain", "reason", "tradeoff", "trade-off", "compare",
               "should i", "pros and cons", "what if"),
}

# An imperative first word settles the task type outright
LEADING_VERBS: Dict[str, str] = {
    "classify": "classify", "categorize": "classify", "categorise": "classify",
    "tag": "classify", "label": "classify",
    "extract": "extract", "parse": "extract",
    "summarize": "summarize", "summarise": "summarize", "condense": "summarize",
    "write": "write", "draft": "write", "rewrite": "write", "compose": "write",
    "proofread": "write",
    "implement": "code", "fix": "code", "debug": "code", "refactor": "code",
    "plan": "plan", "outline": "plan",
    "explain": "reason", "why": "reason", "prove": "reason", "compare": "reason",
}

SHORT_CONTEXT_MAX_WORDS = 200
MEDIUM_CONTEXT_MAX_WORDS = 1000


@dataclass(frozen=True)
class RoutingSignals:
    """Classification features derived once per request."""
    multimodal: bool = False
    stakes: str = "medium"
    ambiguity: str = "medium"
    context_size: str = "medium"
    strict_output: bool = False
    task_type: str = "other"
    complexity: str = "moderate"
    query_type: str = "general"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _full_text(prompt: str, context: Optional[str] = None) -> str:
    return f"{prompt} {context}" if context else prompt


def _count_hits(text_lower: str, keywords) -> int:
    return sum(1 for kw in keywords if kw in text_lower)


def detect_multimodal(prompt: str, context: Optional[str] = None) -> bool:
    """Check for image/document/audio/video hints in the request."""
    text = f"{prompt} {context or ''}".lower()
    return any(kw in text for kw in MULTIMODAL_KEYWORDS)


def analyze_complexity(prompt: str, context: Optional[str] = None) -> str:
    """Bucket the request as ``simple``, ``moderate`` or ``complex``.

    Uses word count, fenced code block count, multiple questions, and
    hits against :data:`COMPLEX_KEYWORDS`.
    """
    text = _full_text(prompt, context)
    word_count = len(text.split())
    code_blocks = text.count("```") / 2
    multiple_questions = text.count("?") > 1
    complex_hits = _count_hits(text.lower(), COMPLEX_KEYWORDS)

    if word_count < 50 and code_blocks == 0 and complex_hits == 0 and not multiple_questions:
        return "simple"
    if word_count < 200 and code_blocks <= 1 and complex_hits <= 1:
        return "moderate"
    return "complex"


def detect_query_type(prompt: str, context: Optional[str] = None) -> str:
    """Bucket the request as ``code``, ``reasoning`` or ``general``.

    A bucket wins only with strictly more hits than the other and at
    least two hits; anything else is ``general``.
    """
    lower = _full_text(prompt, context).lower()
    code_hits = _count_hits(lower, CODE_KEYWORDS)
    reasoning_hits = _count_hits(lower, REASONING_KEYWORDS)

    if code_hits > reasoning_hits and code_hits >= 2:
        return "code"
    if reasoning_hits > code_hits and reasoning_hits >= 2:
        return "reasoning"
    return "general"


def _leading_verb(prompt: str) -> Optional[str]:
    match = re.match(r"\s*([A-Za-z]+)", prompt)
    if not match:
        return None
    return LEADING_VERBS.get(match.group(1).lower())


def detect_task_type(prompt: str, context: Optional[str] = None) -> str:
    """Pick the task type from the leading verb, else by unique keyword majority."""
    verb_task = _leading_verb(prompt)
    if verb_task:
        return verb_task

    lower = _full_text(prompt, context).lower()
    hits = {task: _count_hits(lower, kws) for task, kws in TASK_KEYWORDS.items()}
    best = max(hits.values())
    if best == 0:
        return "other"
    winners = [task for task, n in hits.items() if n == best]
    return winners[0] if len(winners) == 1 else "other"


def detect_stakes(prompt: str, context: Optional[str] = None) -> str:
    lower = _full_text(prompt, context).lower()
    if _count_hits(lower, HIGH_STAKES_KEYWORDS):
        return "high"
    if _count_hits(lower, LOW_STAKES_KEYWORDS):
        return "low"
    return "medium"


def detect_strict_output(prompt: str, context: Optional[str] = None) -> bool:
    return _count_hits(_full_text(prompt, context).lower(), STRICT_OUTPUT_KEYWORDS) > 0


def detect_ambiguity(prompt: str, context: Optional[str] = None) -> str:
    """Vague phrasing or a pile of questions is ``high``; a clear imperative is ``low``."""
    text = _full_text(prompt, context)
    if _count_hits(text.lower(), AMBIGUITY_MARKERS) or text.count("?") > 2:
        return "high"
    if _leading_verb(prompt) or detect_strict_output(prompt, context):
        return "low"
    return "medium"


def detect_context_size(prompt: str, context: Optional[str] = None) -> str:
    word_count = len(_full_text(prompt, context).split())
    if word_count < SHORT_CONTEXT_MAX_WORDS:
        return "short"
    if word_count < MEDIUM_CONTEXT_MAX_WORDS:
        return "medium"
    return "long"


def extract_signals(prompt: str, context: Optional[str] = None) -> RoutingSignals:
    """Derive all routing signals for a request.

    Args:
        prompt: The request text.
        context: Optional additional context (code, errors, prior attempts).

    Returns:
        RoutingSignals for the request.
    """
    prompt = prompt or ""
    return RoutingSignals(
        multimodal=detect_multimodal(prompt, context),
        stakes=detect_stakes(prompt, context),
        ambiguity=detect_ambiguity(prompt, context),
        context_size=detect_context_size(prompt, context),
        strict_output=detect_strict_output(prompt, context),
        task_type=detect_task_type(prompt, context),
        complexity=analyze_complexity(prompt, context),
        query_type=detect_query_type(prompt, context),
    )
