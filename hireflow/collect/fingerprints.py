"""
Fingerprint collection (full fan‑out).

Every query of the primary plan is sent to the search provider at the
same time.  A query that fails is recorded on its own outcome entry and
contributes zero fingerprints; it never aborts the batch.  Results are
merged only after all calls complete, in the original query order and
then in provider rank order, which makes deduplication and the total
cap reproducible even though network completion order is not.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..schema import CandidateFingerprint
from ..utils import canonical_profile_url, is_profile_url
from .parse import UNKNOWN, parse_result_title
from .search import SearchProvider, SearchResult

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_PER_QUERY = 50
DEFAULT_COST_PER_CALL = 0.003


@dataclass
class QueryOutcome:
    """Telemetry for one executed query."""

    index: int
    query: str
    results_returned: int = 0
    profiles_found: int = 0
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class FingerprintBatch:
    """Deduplicated fingerprints plus run telemetry."""

    fingerprints: List[CandidateFingerprint]
    query_outcomes: List[QueryOutcome]
    api_calls_made: int
    estimated_cost: float
    total_urls_found: int
    unique_urls_after_dedupe: int
    duplicates_by_source: Dict[str, int] = field(default_factory=dict)

    @property
    def queries_executed(self) -> int:
        return len(self.query_outcomes)

    @property
    def successful_queries(self) -> int:
        return sum(1 for outcome in self.query_outcomes if outcome.ok)

    @property
    def failed_queries(self) -> List[QueryOutcome]:
        return [outcome for outcome in self.query_outcomes if not outcome.ok]

    @property
    def total_unique(self) -> int:
        return len(self.fingerprints)


def fingerprints_from_results(
    results: Iterable[SearchResult],
    *,
    source_tag: str,
    location: Optional[str] = None,
    profile_path: str = "linkedin.com/in",
) -> List[CandidateFingerprint]:
    """Convert raw search results into fingerprints, discarding non‑profile URLs.

    URLs are canonicalised (query string and trailing slash removed)
    and duplicates within the same result list are dropped.
    """
    fingerprints: List[CandidateFingerprint] = []
    seen = set()
    for result in results:
        if not result.url or not is_profile_url(result.url, profile_path):
            logger.debug("Discarding non-profile URL %s", result.url)
            continue
        url = canonical_profile_url(result.url)
        if url in seen:
            continue
        seen.add(url)
        name, title, company = parse_result_title(result.title)
        fingerprints.append(
            CandidateFingerprint(
                url=url,
                name=name,
                title=title,
                company=company,
                location=location or UNKNOWN,
                snippet=result.snippet,
                source_tag=source_tag,
            )
        )
    return fingerprints


async def run_query(
    provider: SearchProvider,
    index: int,
    query: str,
    *,
    result_count: int,
    location: Optional[str],
    profile_path: str,
) -> Tuple[QueryOutcome, List[CandidateFingerprint]]:
    """Execute one query; any exception becomes an error on the outcome."""
    outcome = QueryOutcome(index=index, query=query)
    try:
        results = await provider.search(query, result_count, location)
    except Exception as exc:  # noqa: BLE001
        outcome.error = str(exc) or exc.__class__.__name__
        logger.warning("Query %d failed (%r): %s", index + 1, query, outcome.error)
        return outcome, []
    results = list(results)[:result_count]
    fingerprints = fingerprints_from_results(
        results, source_tag=query, location=location, profile_path=profile_path
    )
    outcome.results_returned = len(results)
    outcome.profiles_found = len(fingerprints)
    logger.debug("Query %d (%r): %d results, %d profiles", index + 1, query, len(results), len(fingerprints))
    return outcome, fingerprints


def dedupe_fingerprints(
    per_query: Sequence[List[CandidateFingerprint]],
) -> Tuple[List[CandidateFingerprint], Dict[str, int]]:
    """Merge per‑query lists in order; the first occurrence of a URL wins.

    Returns:
        Tuple of (unique fingerprints in merge order, count of dropped
        duplicates keyed by the source that lost them).
    """
    unique: Dict[str, CandidateFingerprint] = {}
    duplicates: Dict[str, int] = {}
    for fingerprints in per_query:
        for fingerprint in fingerprints:
            if fingerprint.url in unique:
                duplicates[fingerprint.source_tag] = duplicates.get(fingerprint.source_tag, 0) + 1
                continue
            unique[fingerprint.url] = fingerprint
    return list(unique.values()), duplicates


async def collect_fingerprints(
    queries: Sequence[str],
    provider: SearchProvider,
    *,
    location: Optional[str] = None,
    results_per_query: int = DEFAULT_RESULTS_PER_QUERY,
    total_limit: Optional[int] = None,
    cost_per_call: float = DEFAULT_COST_PER_CALL,
    profile_path: str = "linkedin.com/in",
) -> FingerprintBatch:
    """Run every query concurrently and return deduplicated fingerprints.

    Args:
        queries: Query strings, in plan order.
        provider: Search provider to call once per query.
        location: Optional location filter passed to the provider and
            recorded on each fingerprint.
        results_per_query: Results to request (and keep) per query.
        total_limit: Optional cap on the number of unique fingerprints;
            the first ``total_limit`` in merge order are kept.
        cost_per_call: Unit price of one search call.
        profile_path: ``host/prefix`` shape of accepted profile URLs.

    Returns:
        A `FingerprintBatch`.  Failed queries appear in
        ``query_outcomes`` with their error and still count as API calls.
    """
    logger.info("Collecting fingerprints for %d queries (%d results each)", len(queries), results_per_query)
    runs = await asyncio.gather(
        *(
            run_query(
                provider,
                index,
                query,
                result_count=results_per_query,
                location=location,
                profile_path=profile_path,
            )
            for index, query in enumerate(queries)
        )
    )
    outcomes = [outcome for outcome, _ in runs]
    per_query = [fingerprints for _, fingerprints in runs]
    total_found = sum(len(fingerprints) for fingerprints in per_query)
    unique, duplicates = dedupe_fingerprints(per_query)
    unique_count = len(unique)
    if total_limit is not None and unique_count > total_limit:
        logger.info("Capping fingerprints from %d to %d", unique_count, total_limit)
        unique = unique[:total_limit]

    api_calls = len(queries)
    batch = FingerprintBatch(
        fingerprints=unique,
        query_outcomes=outcomes,
        api_calls_made=api_calls,
        estimated_cost=round(api_calls * cost_per_call, 6),
        total_urls_found=total_found,
        unique_urls_after_dedupe=unique_count,
        duplicates_by_source=duplicates,
    )
    logger.info(
        "Fingerprinting finished: %d/%d queries ok, %d URLs -> %d unique -> %d kept, est. cost $%.3f",
        batch.successful_queries,
        batch.queries_executed,
        total_found,
        unique_count,
        len(unique),
        batch.estimated_cost,
    )
    return batch
