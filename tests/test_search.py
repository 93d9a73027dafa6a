"""
Unittest suite for the SerpAPI search adapter.

The aiohttp session is replaced with a mock so no request leaves the
process.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest import mock

from hireflow.collect.search import SerpApiSearchProvider
from hireflow.errors import ConfigurationError, SearchProviderError


def _session(payload: dict, status: int = 200) -> mock.MagicMock:
    response = mock.MagicMock()
    response.status = status
    response.json = mock.AsyncMock(return_value=payload)
    response.text = mock.AsyncMock(return_value="upstream failure")
    session = mock.MagicMock()
    session.get.return_value.__aenter__.return_value = response
    return session


class TestSerpApiSearchProvider(unittest.TestCase):
    def test_requires_api_key(self) -> None:
        with self.assertRaises(ConfigurationError):
            SerpApiSearchProvider(None)

    def test_query_is_site_scoped(self) -> None:
        provider = SerpApiSearchProvider("key", site_filter="linkedin.com/in")
        params = provider._params("CFO M&A", 250, "Hong Kong")
        self.assertEqual(params["q"], "site:linkedin.com/in CFO M&A")
        self.assertEqual(params["num"], "100")
        self.assertEqual(params["location"], "Hong Kong")
        self.assertNotIn("location", provider._params("CFO", 10, None))

    def test_organic_results_are_mapped(self) -> None:
        session = _session(
            {
                "organic_results": [
                    {"title": "Jane Doe - CFO - Acme", "link": "https://www.linkedin.com/in/jane", "snippet": "M&A"},
                    {"title": "No link"},
                ]
            }
        )
        provider = SerpApiSearchProvider("key", session=session)
        results = asyncio.run(provider.search("CFO", 10))
        self.assertEqual(len(results), 2)
        self.assertEqual(results[0].url, "https://www.linkedin.com/in/jane")
        self.assertEqual(results[1].url, "")
        _, kwargs = session.get.call_args
        self.assertEqual(kwargs["params"]["engine"], "google")

    def test_error_payload_raises(self) -> None:
        provider = SerpApiSearchProvider("key", session=_session({"error": "Invalid API key."}))
        with self.assertRaises(SearchProviderError):
            asyncio.run(provider.search("CFO", 10))

    def test_http_error_raises(self) -> None:
        provider = SerpApiSearchProvider("key", session=_session({}, status=429))
        with self.assertRaises(SearchProviderError) as ctx:
            asyncio.run(provider.search("CFO", 10))
        self.assertIn("429", str(ctx.exception))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
