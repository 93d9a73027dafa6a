"""
Language‑model provider subsystem.

Stages that need a model (skill extraction, query generation and snippet
scoring) depend only on the small `LLMProvider` interface defined here.
Concrete implementations speak to OpenAI‑compatible endpoints (OpenAI,
xAI Grok, OpenRouter) and to Google Gemini.  `ProviderChain` expresses
primary/fallback selection as an ordered list of providers.
"""

from .providers import GeminiProvider, LLMProvider, OpenAICompatibleProvider  # noqa: F401
from .chain import ProviderChain  # noqa: F401
