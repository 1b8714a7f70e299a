"""
Provider gateway: one call shape for every catalog model.

``invoke(model, prompt, system_prompt)`` returns the model's text. Which
backend serves the model is looked up in the catalog; the request itself
goes through LiteLLM so OpenAI and Gemini share a single code path.
"""

import logging
from typing import Any, Dict, List, Optional

import litellm

from .config import Config
from .registry import provider_of

_log = logging.getLogger(__name__)

EMPTY_RESPONSE_TEXT = "No response generated"

# Catalog provider -> LiteLLM model prefix
LITELLM_PREFIXES = {
    "openai": "openai",
    "gemini": "gemini",
}


class ProviderError(RuntimeError):
    """A provider call failed (network, auth, quota, missing credentials)."""

    def __init__(self, model: str, message: str):
        super().__init__(f"{model}: {message}")
        self.model = model
        self.message = message


class ProviderGateway:
    """Invokes catalog models through LiteLLM using configured credentials."""

    def __init__(
        self,
        config: Config,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.config = config
        self.temperature = temperature
        self.max_tokens = max_tokens

        # Quiet LiteLLM and let it drop params a model rejects
        litellm.suppress_debug_info = True
        litellm.drop_params = True

    def invoke(self, model: str, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Send *prompt* to *model* and return the text of its reply.

        Args:
            model: Catalog model id, e.g. ``"gpt-5-mini"``.
            prompt: User message.
            system_prompt: Optional system instructions.

        Returns:
            The response text (never empty).

        Raises:
            ProviderError: If the model is unknown, its provider has no
                credentials, or the call itself fails.
        """
        try:
            provider = provider_of(model)
        except KeyError as e:
            raise ProviderError(model, str(e)) from e

        credentials = self.config.credentials_for(provider)
        if credentials is None:
            raise ProviderError(model, f"provider {provider!r} is not configured")

        messages: List[Dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        kwargs: Dict[str, Any] = {
            "model": f"{LITELLM_PREFIXES[provider]}/{model}",
            "messages": messages,
            "api_key": credentials.api_key,
        }
        if credentials.base_url:
            kwargs["api_base"] = credentials.base_url
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens

        _log.debug("Invoking %s (%d chars)", kwargs["model"], len(prompt))
        try:
            response = litellm.completion(**kwargs)
        except Exception as e:
            raise ProviderError(model, str(e)) from e

        return _response_text(response)


def _response_text(response: Any) -> str:
    choices = getattr(response, "choices", None) or []
    if not choices:
        return EMPTY_RESPONSE_TEXT
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    return content or EMPTY_RESPONSE_TEXT
