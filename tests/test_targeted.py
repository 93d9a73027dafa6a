"""Tests for targeted query execution, the relevance filter and URL merging."""

from __future__ import annotations

import asyncio
import unittest
from unittest import mock

from hireflow.collect.relevance import assess_relevance, normalize_search_text, sanitize_signals
from hireflow.collect.targeted import execute_targeted_queries, merge_url_sources
from hireflow.errors import SearchProviderError
from hireflow.schema import CandidateFingerprint

from .stubs import StubSearchProvider, profile


def _fingerprint(title: str = "", snippet: str = "", company: str = "", url: str = "https://www.linkedin.com/in/x") -> CandidateFingerprint:
    return CandidateFingerprint(url, "X", title, company, "Unknown", snippet, "q")


class TestTargetedExecution(unittest.TestCase):
    def test_batches_bound_concurrency(self) -> None:
        provider = StubSearchProvider(default=[profile("p")])
        queries = [f"firm {i} CFO" for i in range(7)]
        result = asyncio.run(
            execute_targeted_queries(queries, provider, batch_size=3, delay_between_batches=0)
        )
        self.assertEqual(provider.max_in_flight, 3)
        self.assertEqual(provider.queries, queries)
        self.assertEqual(result.summary.api_calls_made, 7)
        self.assertEqual(result.summary.total_queries, 7)

    def test_delay_only_between_batches(self) -> None:
        provider = StubSearchProvider(default=[profile("p")])
        queries = [f"firm {i} CFO" for i in range(7)]
        with mock.patch("hireflow.collect.targeted.asyncio.sleep", new_callable=mock.AsyncMock) as sleep:
            asyncio.run(execute_targeted_queries(queries, provider, batch_size=3, delay_between_batches=2.0))
        pauses = [call for call in sleep.await_args_list if call.args == (2.0,)]
        self.assertEqual(len(pauses), 2)

    def test_per_query_and_total_caps(self) -> None:
        provider = StubSearchProvider(
            {
                "a": [profile(f"a-{i}") for i in range(30)],
                "b": [profile(f"b-{i}") for i in range(30)],
                "c": [profile("a-0"), profile("c-0")],
            }
        )
        result = asyncio.run(
            execute_targeted_queries(
                ["a", "b", "c"], provider, max_urls_per_query=12, max_total_urls=20, delay_between_batches=0
            )
        )
        self.assertEqual([r.urls_found for r in result.summary.query_results], [12, 12, 2])
        self.assertEqual(result.summary.total_urls_found, 26)
        self.assertEqual(result.summary.unique_urls_after_dedupe, 25)
        self.assertEqual(result.summary.final_url_count, 20)
        self.assertEqual(len(result.urls), 20)
        self.assertTrue(result.urls[0].endswith("/in/a-0"))
        self.assertEqual(provider.calls[0]["result_count"], 30)

    def test_failed_query_is_recorded(self) -> None:
        provider = StubSearchProvider({"bad": SearchProviderError("quota exhausted")}, default=[profile("ok")])
        result = asyncio.run(execute_targeted_queries(["good", "bad"], provider, delay_between_batches=0))
        self.assertEqual(result.summary.failed_queries, 1)
        self.assertEqual(result.summary.successful_queries, 1)
        self.assertEqual(result.summary.query_results[1].error, "quota exhausted")
        self.assertEqual(len(result.urls), 1)

    def test_relevance_filter_applies_when_signals_given(self) -> None:
        provider = StubSearchProvider(
            default=[
                profile("jane", title="Jane - CFO - Hillhouse | LinkedIn", snippet="Led M&A for PE portfolio"),
                profile("john", title="John - Barista - Cafe | LinkedIn", snippet="Coffee"),
            ]
        )
        result = asyncio.run(
            execute_targeted_queries(
                ["Hillhouse CFO"], provider, priority_signals=["M&A"], delay_between_batches=0
            )
        )
        self.assertEqual(len(result.urls), 1)
        self.assertEqual(result.summary.query_results[0].filtered_out, 1)

    def test_invalid_batch_size(self) -> None:
        with self.assertRaises(ValueError):
            asyncio.run(execute_targeted_queries(["q"], StubSearchProvider(), batch_size=0))


class TestRelevance(unittest.TestCase):
    def test_abbreviations_expand(self) -> None:
        self.assertEqual(normalize_search_text("PE & M&A"), "private equity mergers and acquisitions")
        self.assertIn("financial planning and analysis", normalize_search_text("Head of FP&A"))

    def test_generic_signals_are_dropped(self) -> None:
        self.assertEqual(sanitize_signals(["10+ years", "CFO experience", "Mandarin"]), ["mandarin"])

    def test_confidence_levels(self) -> None:
        fp = _fingerprint(title="CFO", snippet="private equity background, Mandarin speaker")
        self.assertEqual(assess_relevance(fp, ["PE"], ["Mandarin"]).confidence, 100)
        self.assertEqual(assess_relevance(fp, ["PE"], ["Cantonese"]).confidence, 80)
        self.assertEqual(assess_relevance(fp, ["IPO"], ["Mandarin"]).confidence, 60)
        verdict = assess_relevance(fp, ["IPO"], ["Cantonese"])
        self.assertFalse(verdict.is_relevant)
        self.assertEqual(verdict.confidence, 0)

    def test_url_slug_counts(self) -> None:
        fp = _fingerprint(url="https://www.linkedin.com/in/jane-cfa-doe")
        self.assertTrue(assess_relevance(fp, ["CFA"], []).is_relevant)


class TestMergeUrlSources(unittest.TestCase):
    def test_first_seen_source_wins(self) -> None:
        u1, u2, u3 = (f"https://www.linkedin.com/in/u{i}" for i in (1, 2, 3))
        merged = merge_url_sources({"A": [u1, u2], "B": [u2 + "/", u3 + "?trk=x"]})
        self.assertEqual(merged.urls, [u1, u2, u3])
        self.assertEqual(merged.provenance[u2], "A")
        self.assertEqual(merged.provenance[u3], "B")
        self.assertEqual(merged.source_breakdown, {"A": 2, "B": 1})
        self.assertEqual(merged.total_input, 4)

    def test_malformed_url_is_skipped(self) -> None:
        u1 = "https://www.linkedin.com/in/u1"
        with self.assertLogs("hireflow.collect.targeted", level="WARNING"):
            merged = merge_url_sources({"targeted": [u1], "manual": ["http://[linkedin.com/in/u2", u1]})
        self.assertEqual(merged.urls, [u1])
        self.assertEqual(merged.provenance[u1], "targeted")
        self.assertEqual(merged.source_breakdown, {"targeted": 1, "manual": 0})
        self.assertEqual(merged.total_input, 3)
        self.assertEqual(merged.invalid, 1)

    def test_empty_sources(self) -> None:
        merged = merge_url_sources({"manual": []})
        self.assertEqual(merged.urls, [])
        self.assertEqual(merged.source_breakdown, {"manual": 0})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
