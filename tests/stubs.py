"""
In‑process stand‑ins for the network providers.

The stubs record every call so tests can assert on call counts, prompt
contents and observed concurrency without touching the network.
"""

from __future__ import annotations

import asyncio
import json
from typing import Callable, Dict, List, Optional, Sequence, Union

from hireflow.collect.search import SearchProvider, SearchResult
from hireflow.llm.providers import LLMProvider

Response = Union[List[SearchResult], Exception]


def profile(slug: str, title: str = "", snippet: str = "", host: str = "https://www.linkedin.com") -> SearchResult:
    return SearchResult(
        title=title or f"{slug.replace('-', ' ').title()} - CFO - Acme Capital | LinkedIn",
        url=f"{host}/in/{slug}",
        snippet=snippet or f"{slug} snippet",
    )


def noise(path: str) -> SearchResult:
    return SearchResult(title="Acme Capital | LinkedIn", url=f"https://www.linkedin.com/{path}", snippet="")


class StubSearchProvider(SearchProvider):
    """Returns canned results per query; an Exception value is raised instead."""

    name = "stub-search"

    def __init__(
        self,
        responses: Optional[Dict[str, Response]] = None,
        default: Optional[Response] = None,
        responder: Optional[Callable[[str], Response]] = None,
    ):
        self.responses = responses or {}
        self.default = default if default is not None else []
        self.responder = responder
        self.calls: List[Dict[str, object]] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def search(self, query: str, result_count: int, location: Optional[str] = None) -> List[SearchResult]:
        self.calls.append({"query": query, "result_count": result_count, "location": location})
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            # let sibling queries of the same wave start
            await asyncio.sleep(0)
            if self.responder is not None:
                response = self.responder(query)
            else:
                response = self.responses.get(query, self.default)
            if isinstance(response, Exception):
                raise response
            return list(response)
        finally:
            self.in_flight -= 1

    @property
    def queries(self) -> List[str]:
        return [str(call["query"]) for call in self.calls]


class StubLLM(LLMProvider):
    """Replays queued responses (the last one repeats); a queued Exception is raised."""

    supports_json_mode = True

    def __init__(self, responses: Sequence[Union[str, Exception, Callable[[str], str]]], name: str = "stub-llm"):
        self.name = name
        self.responses = list(responses)
        self.prompts: List[str] = []

    def generate(self, system, prompt, *, max_tokens=2000, temperature=0.7, json_mode=False):
        self.prompts.append(prompt)
        if not self.responses:
            raise RuntimeError(f"{self.name}: no response queued")
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(prompt)
        return response


def batch_prompt_ids(prompt: str) -> List[int]:
    """Candidate ids embedded in a batch scoring prompt."""
    marker = "**CANDIDATES TO SCORE:**"
    body = prompt.split(marker, 1)[1].split("REMEMBER:", 1)[0]
    return [entry["id"] for entry in json.loads(body)]


def scores_for(points: Callable[[int], float]) -> Callable[[str], str]:
    """Batch scoring responder giving each candidate ``points(id)``."""

    def respond(prompt: str) -> str:
        return json.dumps(
            [
                {"id": i, "predictedScore": points(i), "signals": ["M&A"], "confidence": "high", "rationale": "stub"}
                for i in batch_prompt_ids(prompt)
            ]
        )

    return respond
