"""
Configuration management for the second-opinion router.

Loads provider credentials and routing settings from an optional JSON
config file, then lets environment variables override it. The result is
an immutable :class:`Config` built once at startup and passed explicitly
to every component.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .registry import MODEL_IDS, PROVIDER_GEMINI, PROVIDER_OPENAI

_log = logging.getLogger(__name__)

MODE_DELEGATED = "delegated"
MODE_HEURISTIC = "heuristic"

VALID_MODES = {MODE_DELEGATED, MODE_HEURISTIC}

DEFAULT_CLASSIFIER_MODEL = "gpt-5-nano"
DEFAULT_CONFIDENCE_THRESHOLD = 0.65
DEFAULT_CONFIG_FILENAME = "config.json"

NO_PROVIDER_MESSAGE = "No providers configured. Set OPENAI_API_KEY and/or GEMINI_API_KEY."


class NoProviderConfiguredError(RuntimeError):
    """Raised when neither provider has credentials. Fatal, never retried."""

    def __init__(self, message: str = NO_PROVIDER_MESSAGE):
        super().__init__(message)


@dataclass(frozen=True)
class ProviderCredentials:
    """Credentials for one provider."""
    api_key: str
    base_url: Optional[str] = None


@dataclass(frozen=True)
class ProviderAvailability:
    """Which providers hold credentials. Read-only for the process lifetime."""
    has_openai: bool = False
    has_gemini: bool = False

    @property
    def any(self) -> bool:
        return self.has_openai or self.has_gemini

    def is_available(self, provider: str) -> bool:
        if provider == PROVIDER_OPENAI:
            return self.has_openai
        if provider == PROVIDER_GEMINI:
            return self.has_gemini
        return False

    def providers(self) -> List[str]:
        """Configured providers, OpenAI first."""
        return [p for p in (PROVIDER_OPENAI, PROVIDER_GEMINI) if self.is_available(p)]


@dataclass(frozen=True)
class Config:
    """Immutable runtime configuration.

    Attributes:
        openai: OpenAI credentials, or None when not configured.
        gemini: Gemini credentials, or None when not configured.
        mode: ``"delegated"`` (classify with a cheap model call) or
            ``"heuristic"`` (local rules only).
        classifier_model: Catalog model used for delegated classification.
        confidence_threshold: Decisions below this confidence escalate once.
    """
    openai: Optional[ProviderCredentials] = None
    gemini: Optional[ProviderCredentials] = None
    mode: str = MODE_DELEGATED
    classifier_model: str = DEFAULT_CLASSIFIER_MODEL
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD

    def __post_init__(self):
        if self.mode not in VALID_MODES:
            raise ValueError(
                f"mode must be one of {sorted(VALID_MODES)}, got {self.mode!r}"
            )
        if self.classifier_model not in MODEL_IDS:
            raise ValueError(f"classifier_model {self.classifier_model!r} is not a known model")
        if not 0.0 <= self.confidence_threshold <= 1.0:
            raise ValueError(
                f"confidence_threshold must be within [0, 1], got {self.confidence_threshold!r}"
            )

    @property
    def availability(self) -> ProviderAvailability:
        return ProviderAvailability(
            has_openai=bool(self.openai and self.openai.api_key),
            has_gemini=bool(self.gemini and self.gemini.api_key),
        )

    def credentials_for(self, provider: str) -> Optional[ProviderCredentials]:
        if provider == PROVIDER_OPENAI:
            return self.openai
        if provider == PROVIDER_GEMINI:
            return self.gemini
        return None

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """Build configuration from the config file and the environment.

        Args:
            config_path: Path to a JSON config file. Defaults to
                ``$MCP_CONFIG_PATH`` or ``./config.json``.
            environ: Environment mapping. Defaults to ``os.environ``.

        Returns:
            A validated, immutable Config.

        Raises:
            ValueError: If a routing setting is invalid.
        """
        env = os.environ if environ is None else environ
        path = config_path or env.get("MCP_CONFIG_PATH") or os.path.join(
            os.getcwd(), DEFAULT_CONFIG_FILENAME
        )
        file_config = _read_config_file(path)

        openai = _credentials_from(file_config.get("openai"))
        gemini = _credentials_from(file_config.get("gemini"))
        routing = file_config.get("routing") or {}
        if not isinstance(routing, dict):
            _log.warning("Ignoring 'routing' section in %s: not an object", path)
            routing = {}

        # Environment variables override the config file
        if env.get("OPENAI_API_KEY"):
            openai = ProviderCredentials(
                api_key=env["OPENAI_API_KEY"],
                base_url=env.get("OPENAI_BASE_URL") or None,
            )
        if env.get("GEMINI_API_KEY"):
            gemini = ProviderCredentials(api_key=env["GEMINI_API_KEY"])

        mode = env.get("SECOND_OPINION_MODE") or routing.get("mode") or MODE_DELEGATED
        classifier_model = (
            env.get("SECOND_OPINION_CLASSIFIER_MODEL")
            or _first(routing, "classifierModel", "classifier_model")
            or DEFAULT_CLASSIFIER_MODEL
        )
        threshold = env.get("SECOND_OPINION_CONFIDENCE_THRESHOLD")
        if threshold is None:
            threshold = _first(routing, "confidenceThreshold", "confidence_threshold")
        try:
            confidence_threshold = (
                DEFAULT_CONFIDENCE_THRESHOLD if threshold is None else float(threshold)
            )
        except (TypeError, ValueError):
            raise ValueError(f"confidence_threshold must be a number, got {threshold!r}") from None

        config = cls(
            openai=openai,
            gemini=gemini,
            mode=mode,
            classifier_model=classifier_model,
            confidence_threshold=confidence_threshold,
        )
        _log.debug(
            "Loaded config: providers=%s mode=%s classifier=%s threshold=%.2f",
            config.availability.providers(), config.mode,
            config.classifier_model, config.confidence_threshold,
        )
        return config


def _read_config_file(path: str) -> Dict[str, Any]:
    """Load the JSON config file. Missing is fine; malformed is logged and skipped."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        _log.warning("Ignoring unreadable config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        _log.warning("Ignoring config file %s: top level is not an object", path)
        return {}
    return data


def _first(section: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if section.get(key) is not None:
            return section[key]
    return None


def _credentials_from(section: Any) -> Optional[ProviderCredentials]:
    if not isinstance(section, dict):
        return None
    api_key = _first(section, "apiKey", "api_key")
    if not api_key:
        return None
    return ProviderCredentials(
        api_key=str(api_key),
        base_url=_first(section, "baseUrl", "base_url"),
    )
