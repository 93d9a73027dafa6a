"""
Run configuration and provider factories.

`Settings` is built once at process start, either from the environment
(optionally seeded from a ``.env`` file) or from a YAML file, and then
passed explicitly to the factories below.  Every factory checks its
credentials before returning, so a missing key surfaces as a
`ConfigurationError` before the first paid call of a run.

Example YAML::

    credentials:
      serpapi_api_key: ...
      openrouter_api_key: ...
    models:
      strategy: deepseek/deepseek-chat
      fallback: grok-2-1212
    costs:
      search_call: 0.003
      enrichment_per_profile: 0.50
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import load_dotenv

from .collect.search import SerpApiSearchProvider
from .errors import ConfigurationError
from .llm.chain import ProviderChain
from .llm.providers import GeminiProvider, LLMProvider, OpenAICompatibleProvider

logger = logging.getLogger(__name__)

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
XAI_BASE_URL = "https://api.x.ai/v1"

# Settings attribute -> environment variables, first non-empty wins
ENV_VARS: Dict[str, tuple] = {
    "serpapi_api_key": ("SERPAPI_API_KEY",),
    "xai_api_key": ("XAI_API_KEY",),
    "openrouter_api_key": ("OPENROUTER_API_KEY",),
    "openai_api_key": ("OPENAI_API_KEY",),
    "gemini_api_key": ("GEMINI_API_KEY", "GOOGLE_API_KEY"),
    "strategy_model": ("HIREFLOW_STRATEGY_MODEL",),
    "fallback_model": ("HIREFLOW_FALLBACK_MODEL",),
    "scoring_model": ("HIREFLOW_SCORING_MODEL",),
    "request_timeout": ("HIREFLOW_REQUEST_TIMEOUT",),
}

# YAML section/key -> Settings attribute
YAML_KEYS = {
    "credentials": {
        "serpapi_api_key": "serpapi_api_key",
        "xai_api_key": "xai_api_key",
        "openrouter_api_key": "openrouter_api_key",
        "openai_api_key": "openai_api_key",
        "gemini_api_key": "gemini_api_key",
    },
    "models": {
        "strategy": "strategy_model",
        "fallback": "fallback_model",
        "scoring": "scoring_model",
        "openai": "openai_model",
        "gemini": "gemini_model",
    },
    "costs": {
        "search_call": "search_cost_per_call",
        "scoring_call": "scoring_call_cost",
        "query_generation": "query_generation_cost",
        "enrichment_per_profile": "enrichment_cost_per_profile",
    },
    "search": {
        "site_filter": "site_filter",
        "request_timeout": "request_timeout",
        "skill_budget": "skill_budget",
    },
}


@dataclass(frozen=True)
class Settings:
    """Credentials, model names and unit prices for one process."""

    serpapi_api_key: Optional[str] = None
    xai_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None

    strategy_model: str = "deepseek/deepseek-chat"
    fallback_model: str = "grok-2-1212"
    scoring_model: str = "grok-2-1212"
    openai_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-1.5-pro"

    request_timeout: float = 60.0
    site_filter: str = "linkedin.com/in"
    skill_budget: int = 70

    search_cost_per_call: float = 0.003
    scoring_call_cost: float = 0.08
    query_generation_cost: float = 0.02
    enrichment_cost_per_profile: float = 0.50

    @classmethod
    def from_env(cls, dotenv_path: Optional[Union[str, Path]] = None, **overrides: Any) -> "Settings":
        """Build settings from environment variables.

        ``load_dotenv`` never overrides variables already set in the
        process environment.
        """
        load_dotenv(dotenv_path)
        values = _env_values()
        values.update(overrides)
        return cls(**_coerce(values))

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "Settings":
        """Build settings from a YAML file; credentials in the environment win."""
        with open(path, "r", encoding="utf-8") as f:
            document = yaml.safe_load(f) or {}
        if not isinstance(document, dict):
            raise ValueError(f"{path}: expected a mapping at the top level")

        values: Dict[str, Any] = {}
        for section, keys in YAML_KEYS.items():
            block = document.get(section) or {}
            for key, attribute in keys.items():
                if key in block and block[key] is not None:
                    values[attribute] = block[key]
        for attribute, value in _env_values().items():
            if attribute.endswith("_api_key") or attribute not in values:
                values[attribute] = value
        logger.debug("Loaded settings from %s", path)
        return cls(**_coerce(values))

    def with_overrides(self, **changes: Any) -> "Settings":
        return replace(self, **changes)

    def configured_llm_providers(self) -> List[str]:
        names = []
        for name, key in (
            ("openrouter", self.openrouter_api_key),
            ("grok", self.xai_api_key),
            ("openai", self.openai_api_key),
            ("gemini", self.gemini_api_key),
        ):
            if key:
                names.append(name)
        return names


def _env_values() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for attribute, names in ENV_VARS.items():
        for name in names:
            value = os.getenv(name)
            if value:
                values[attribute] = value
                break
    return values


def _coerce(values: Dict[str, Any]) -> Dict[str, Any]:
    types = {f.name: f.type for f in fields(Settings)}
    coerced: Dict[str, Any] = {}
    for name, value in values.items():
        if name not in types:
            raise ValueError(f"unknown setting: {name}")
        kind = types[name]
        try:
            if kind == "float":
                value = float(value)
            elif kind == "int":
                value = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"invalid value for {name}: {value!r}") from exc
        coerced[name] = value
    return coerced


def build_search_provider(settings: Settings) -> SerpApiSearchProvider:
    """SerpAPI provider scoped to the profile site filter."""
    return SerpApiSearchProvider(
        settings.serpapi_api_key,
        site_filter=settings.site_filter,
        timeout=settings.request_timeout,
    )


def _openrouter(settings: Settings, model: str) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        settings.openrouter_api_key,
        model,
        name="openrouter",
        base_url=OPENROUTER_BASE_URL,
        timeout=settings.request_timeout,
        env_var="OPENROUTER_API_KEY",
    )


def _grok(settings: Settings, model: str) -> OpenAICompatibleProvider:
    return OpenAICompatibleProvider(
        settings.xai_api_key,
        model,
        name="grok",
        base_url=XAI_BASE_URL,
        timeout=settings.request_timeout,
        env_var="XAI_API_KEY",
    )


def build_strategy_chain(settings: Settings, *, stage: str = "query strategy") -> ProviderChain:
    """DeepSeek through OpenRouter first, Grok as the single fallback.

    Unconfigured providers are left out of the chain; at least one must
    be configured.
    """
    providers: List[LLMProvider] = []
    if settings.openrouter_api_key:
        providers.append(_openrouter(settings, settings.strategy_model))
    if settings.xai_api_key:
        providers.append(_grok(settings, settings.fallback_model))
    if not providers:
        raise ConfigurationError(stage, ["OPENROUTER_API_KEY", "XAI_API_KEY"])
    if len(providers) == 1:
        logger.warning("%s has no fallback provider configured; using %s only", stage, providers[0].name)
    return ProviderChain(providers, stage=stage)


def build_scoring_provider(settings: Settings) -> LLMProvider:
    """Provider for the single batch scoring call.

    Grok is preferred; OpenAI and Gemini are accepted when no xAI key is
    present.
    """
    if settings.xai_api_key:
        return _grok(settings, settings.scoring_model)
    if settings.openai_api_key:
        return OpenAICompatibleProvider(
            settings.openai_api_key, settings.openai_model, name="openai", timeout=settings.request_timeout
        )
    if settings.gemini_api_key:
        return GeminiProvider(settings.gemini_api_key, settings.gemini_model)
    raise ConfigurationError("snippet scorer", ["XAI_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY"])
