"""
Ordered provider fallback.

A `ProviderChain` holds providers in priority order.  A request goes to
the first provider; if it raises, or its text cannot be parsed by the
caller's parser, the next provider is tried with the identical prompt.
The first successful result is final.  When every provider fails the
chain raises `ProviderChainError` listing each attempt.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Callable, List, Sequence, Tuple, TypeVar

from ..errors import ProviderChainError
from .providers import LLMProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ProviderChain:
    """Try providers in order until one returns a usable response."""

    def __init__(self, providers: Sequence[LLMProvider], *, stage: str = "llm") -> None:
        self.providers: List[LLMProvider] = list(providers)
        self.stage = stage

    def __len__(self) -> int:
        return len(self.providers)

    def generate_parsed(
        self,
        system: str,
        prompt: str,
        parse: Callable[[str], T],
        **options,
    ) -> Tuple[T, LLMProvider]:
        """Generate and parse, falling back on provider or parse errors.

        Args:
            system: System instruction shared by every provider.
            prompt: User prompt shared by every provider.
            parse: Callable turning response text into a result; raising
                marks the attempt as failed.
            **options: Passed to `LLMProvider.generate`.

        Returns:
            Tuple of (parsed result, provider that produced it).

        Raises:
            ProviderChainError: If every provider failed.
        """
        attempts: List[Tuple[str, Exception]] = []
        for position, provider in enumerate(self.providers):
            if position:
                logger.warning(
                    "[%s] %s failed, falling back to %s", self.stage, attempts[-1][0], provider.name
                )
            try:
                text = provider.generate(system, prompt, **options)
                return parse(text), provider
            except Exception as exc:  # noqa: BLE001
                logger.error("[%s] provider %s failed: %s", self.stage, provider.name, exc)
                attempts.append((provider.name, exc))
        raise ProviderChainError(self.stage, attempts)

    def generate(self, system: str, prompt: str, **options) -> Tuple[str, LLMProvider]:
        """Return raw text from the first provider that does not raise."""
        return self.generate_parsed(system, prompt, lambda text: text, **options)

    async def agenerate_parsed(
        self,
        system: str,
        prompt: str,
        parse: Callable[[str], T],
        **options,
    ) -> Tuple[T, LLMProvider]:
        """Async wrapper running the blocking SDK calls in the default executor."""
        loop = asyncio.get_running_loop()
        call = functools.partial(self.generate_parsed, system, prompt, parse, **options)
        return await loop.run_in_executor(None, call)
