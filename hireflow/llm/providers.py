"""
LLM provider abstractions.

This module defines a common interface for the large language model
(LLM) providers used by the sourcing core.  A provider turns a system
instruction and a user prompt into raw response text; prompt design and
response parsing belong to the calling stage.  Concrete implementations
are provided for OpenAI‑compatible chat completion APIs (OpenAI itself,
xAI Grok and OpenRouter, which differ only in base URL and model name)
and for Gemini (Google Generative AI).

Providers are built from explicit arguments.  A missing API key is a
configuration error raised by the constructor, so a misconfigured run
fails before any query is issued.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    #: Short label used in logs and error reports.
    name: str = "llm"

    #: Whether the provider honours a structured JSON response mode.
    supports_json_mode: bool = False

    @abstractmethod
    def generate(
        self,
        system: str,
        prompt: str,
        *,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        """Send one request and return the raw response text.

        Args:
            system: System instruction.
            prompt: User prompt.
            max_tokens: Maximum number of output tokens.
            temperature: Sampling temperature.
            json_mode: Request a JSON object response when supported.

        Returns:
            The model's text response (possibly empty).

        Raises:
            Exception: Any transport or API error is propagated to the
                caller, which decides whether to fall back.
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"


class OpenAICompatibleProvider(LLMProvider):
    """Provider that uses the OpenAI chat completions API.

    The same class serves xAI Grok and OpenRouter by pointing
    ``base_url`` at their OpenAI‑compatible endpoints.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        *,
        name: str = "openai",
        base_url: Optional[str] = None,
        supports_json_mode: bool = True,
        timeout: float = 60.0,
        env_var: str = "OPENAI_API_KEY",
    ) -> None:
        if not api_key:
            raise ConfigurationError(f"{name} provider", [env_var])
        try:
            import openai
        except ImportError as exc:
            raise RuntimeError(
                "openai package is required for OpenAICompatibleProvider. Install it via pip."
            ) from exc
        self.name = name
        self.model = model
        self.supports_json_mode = supports_json_mode
        kwargs = {"api_key": api_key, "timeout": timeout}
        if base_url:
            kwargs["base_url"] = base_url
        self.client = openai.OpenAI(**kwargs)

    def generate(
        self,
        system: str,
        prompt: str,
        *,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        request = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode and self.supports_json_mode:
            request["response_format"] = {"type": "json_object"}
        logger.debug("Sending prompt to %s (%s): %s", self.name, self.model, prompt[:200])
        response = self.client.chat.completions.create(**request)
        return response.choices[0].message.content or ""


class GeminiProvider(LLMProvider):
    """Provider that uses Google Generative AI (Gemini) via google‑generativeai."""

    name = "gemini"
    supports_json_mode = True

    def __init__(self, api_key: Optional[str], model: str = "gemini-1.5-pro") -> None:
        if not api_key:
            raise ConfigurationError("gemini provider", ["GEMINI_API_KEY/GOOGLE_API_KEY"])
        try:
            import google.generativeai as genai  # type: ignore
        except ImportError as exc:
            raise RuntimeError(
                "google-generativeai package is required for GeminiProvider. Install it via pip."
            ) from exc
        self.genai = genai
        self.model_name = model
        self.genai.configure(api_key=api_key)

    def generate(
        self,
        system: str,
        prompt: str,
        *,
        max_tokens: int = 2000,
        temperature: float = 0.7,
        json_mode: bool = False,
    ) -> str:
        config = {"max_output_tokens": max_tokens, "temperature": temperature}
        if json_mode:
            config["response_mime_type"] = "application/json"
        model = self.genai.GenerativeModel(self.model_name, system_instruction=system)
        logger.debug("Sending prompt to Gemini (%s): %s", self.model_name, prompt[:200])
        response = model.generate_content(prompt, generation_config=config)
        return response.text or ""
