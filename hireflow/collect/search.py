"""
Search provider adapters.

The collector stages only need one capability from a search provider:
run a query and return an ordered list of ``(title, url, snippet)``
results.  `SerpApiSearchProvider` implements it on top of SerpAPI's
Google engine, scoping every query to profile pages with a ``site:``
filter so plain keyword queries yield profile URLs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import aiohttp

from ..errors import ConfigurationError, SearchProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchResult:
    """One organic search result, in provider rank order."""

    title: str
    url: str
    snippet: str = ""


class SearchProvider(ABC):
    """Abstract base class for search providers."""

    name: str = "search"

    @abstractmethod
    async def search(self, query: str, result_count: int, location: Optional[str] = None) -> List[SearchResult]:
        """Run one query.

        Args:
            query: Keyword query as produced by the strategy stage.
            result_count: Number of results to request.
            location: Optional location filter.

        Returns:
            Results in provider order.

        Raises:
            Exception: Any failure; collectors isolate it per query.
        """
        raise NotImplementedError


class SerpApiSearchProvider(SearchProvider):
    """Google search through SerpAPI, restricted to ``site:<site_filter>``."""

    name = "serpapi"
    endpoint = "https://serpapi.com/search.json"
    max_results = 100

    def __init__(
        self,
        api_key: Optional[str],
        *,
        site_filter: str = "linkedin.com/in",
        timeout: float = 30.0,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("SerpAPI search provider", ["SERPAPI_API_KEY"])
        self.api_key = api_key
        self.site_filter = site_filter
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self._session = session
        self._owns_session = False

    async def __aenter__(self) -> "SerpApiSearchProvider":
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
            self._session = None
            self._owns_session = False

    def _params(self, query: str, result_count: int, location: Optional[str]) -> dict:
        params = {
            "api_key": self.api_key,
            "engine": "google",
            "q": f"site:{self.site_filter} {query}" if self.site_filter else query,
            "num": str(min(max(result_count, 1), self.max_results)),
        }
        if location:
            params["location"] = location
        return params

    async def _fetch(self, session: aiohttp.ClientSession, params: dict) -> dict:
        async with session.get(self.endpoint, params=params) as response:
            if response.status != 200:
                body = await response.text()
                raise SearchProviderError(f"SerpAPI request failed: {response.status} {body[:200]}")
            return await response.json(content_type=None)

    async def search(self, query: str, result_count: int, location: Optional[str] = None) -> List[SearchResult]:
        params = self._params(query, result_count, location)
        logger.debug("SerpAPI query: %s", params["q"])
        if self._session is not None:
            data = await self._fetch(self._session, params)
        else:
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                data = await self._fetch(session, params)
        if data.get("error"):
            raise SearchProviderError(f"SerpAPI error: {data['error']}")
        results = [
            SearchResult(
                title=item.get("title") or "",
                url=item.get("link") or "",
                snippet=item.get("snippet") or "",
            )
            for item in data.get("organic_results") or []
        ]
        logger.debug("SerpAPI returned %d results for %r", len(results), query)
        return results
