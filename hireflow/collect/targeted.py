"""
Targeted query execution (batched fan‑out with cool‑down).

Competitor mapping produces a handful of high‑value queries such as
``Hillhouse Capital CFO``.  They are executed in fixed‑size batches:
queries inside a batch run concurrently, batches run one after another
with a pause in between to respect the provider's rate limit.  Each
query's URLs can be passed through the relevance pre‑filter and are
capped per query; the merged list is deduplicated in order and capped in
total.

`merge_url_sources` combines URL lists from several sourcing strategies
and remembers which source first produced each URL.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from ..schema import CandidateFingerprint
from ..utils import canonical_profile_url
from .fingerprints import DEFAULT_COST_PER_CALL, run_query
from .relevance import assess_relevance
from .search import SearchProvider

logger = logging.getLogger(__name__)

RAW_FETCH_LIMIT = 30


@dataclass
class TargetedQueryResult:
    """Per‑query telemetry for a targeted search."""

    query: str
    urls_found: int
    urls: List[str]
    filtered_out: int = 0
    error: Optional[str] = None


@dataclass
class ExecutionSummary:
    total_queries: int
    successful_queries: int
    failed_queries: int
    total_urls_found: int
    unique_urls_after_dedupe: int
    final_url_count: int
    api_calls_made: int
    estimated_cost: float
    execution_time_ms: int
    query_results: List[TargetedQueryResult] = field(default_factory=list)


@dataclass
class TargetedExecution:
    """Capped URL list, the fingerprints behind it and the run summary."""

    urls: List[str]
    fingerprints: List[CandidateFingerprint]
    summary: ExecutionSummary


@dataclass
class MergedUrls:
    urls: List[str]
    provenance: Dict[str, str]
    source_breakdown: Dict[str, int]
    total_input: int
    invalid: int = 0


def _apply_relevance(
    fingerprints: List[CandidateFingerprint],
    priority_signals: Sequence[str],
    required_keywords: Sequence[str],
) -> List[CandidateFingerprint]:
    if not priority_signals and not required_keywords:
        return fingerprints
    kept = []
    for fingerprint in fingerprints:
        verdict = assess_relevance(fingerprint, priority_signals, required_keywords)
        logger.debug(
            "%s [%d%%] %s - %s | %s",
            "ACCEPT" if verdict.is_relevant else "REJECT",
            verdict.confidence,
            fingerprint.name,
            fingerprint.title,
            verdict.reason,
        )
        if verdict.is_relevant:
            kept.append(fingerprint)
    return kept


async def execute_targeted_queries(
    queries: Sequence[str],
    provider: SearchProvider,
    *,
    max_urls_per_query: int = 12,
    max_total_urls: int = 150,
    batch_size: int = 3,
    delay_between_batches: float = 2.0,
    priority_signals: Sequence[str] = (),
    required_keywords: Sequence[str] = (),
    location: Optional[str] = None,
    raw_fetch_limit: int = RAW_FETCH_LIMIT,
    cost_per_call: float = DEFAULT_COST_PER_CALL,
    profile_path: str = "linkedin.com/in",
) -> TargetedExecution:
    """Execute targeted queries in sequential, rate‑limited batches.

    Args:
        queries: Targeted queries in priority order.
        provider: Search provider.
        max_urls_per_query: URLs kept per query after filtering.
        max_total_urls: Cap on the merged, deduplicated URL list.
        batch_size: Queries executed concurrently per batch.
        delay_between_batches: Pause in seconds between batches (not
            applied after the last batch).
        priority_signals: Optional relevance signals.
        required_keywords: Optional relevance keywords.  The relevance
            pre‑filter runs only when signals or keywords are given.
        location: Optional location filter.
        raw_fetch_limit: Raw results requested per query, giving the
            filter headroom before the per‑query cap.
        cost_per_call: Unit price of one search call.
        profile_path: ``host/prefix`` shape of accepted profile URLs.

    Returns:
        A `TargetedExecution` with the capped URL list and telemetry.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    started = time.monotonic()
    total_batches = (len(queries) + batch_size - 1) // batch_size
    logger.info(
        "Executing %d targeted queries in %d batch(es) of %d (max %d per query, %d total)",
        len(queries),
        total_batches,
        batch_size,
        max_urls_per_query,
        max_total_urls,
    )

    query_results: List[TargetedQueryResult] = []
    collected: List[CandidateFingerprint] = []
    for batch_index in range(total_batches):
        offset = batch_index * batch_size
        batch = queries[offset:offset + batch_size]
        logger.info("Batch %d/%d: %d searches", batch_index + 1, total_batches, len(batch))
        runs = await asyncio.gather(
            *(
                run_query(
                    provider,
                    offset + position,
                    query,
                    result_count=max(raw_fetch_limit, max_urls_per_query),
                    location=location,
                    profile_path=profile_path,
                )
                for position, query in enumerate(batch)
            )
        )
        for outcome, fingerprints in runs:
            relevant = _apply_relevance(fingerprints, priority_signals, required_keywords)
            capped = relevant[:max_urls_per_query]
            query_results.append(
                TargetedQueryResult(
                    query=outcome.query,
                    urls_found=len(capped),
                    urls=[fp.url for fp in capped],
                    filtered_out=len(fingerprints) - len(relevant),
                    error=outcome.error,
                )
            )
            collected.extend(capped)
        if batch_index < total_batches - 1 and delay_between_batches > 0:
            logger.debug("Waiting %.1fs before next batch", delay_between_batches)
            await asyncio.sleep(delay_between_batches)

    unique: Dict[str, CandidateFingerprint] = {}
    for fingerprint in collected:
        unique.setdefault(fingerprint.url, fingerprint)
    unique_fingerprints = list(unique.values())
    capped_fingerprints = unique_fingerprints[:max_total_urls]
    if len(unique_fingerprints) > max_total_urls:
        logger.info("Capped targeted URLs from %d to %d", len(unique_fingerprints), max_total_urls)

    failed = sum(1 for result in query_results if result.error)
    summary = ExecutionSummary(
        total_queries=len(queries),
        successful_queries=len(query_results) - failed,
        failed_queries=failed,
        total_urls_found=len(collected),
        unique_urls_after_dedupe=len(unique_fingerprints),
        final_url_count=len(capped_fingerprints),
        api_calls_made=len(queries),
        estimated_cost=round(len(queries) * cost_per_call, 6),
        execution_time_ms=int((time.monotonic() - started) * 1000),
        query_results=query_results,
    )
    logger.info(
        "Targeted execution finished in %dms: %d/%d queries ok, %d URLs -> %d unique -> %d final",
        summary.execution_time_ms,
        summary.successful_queries,
        summary.total_queries,
        summary.total_urls_found,
        summary.unique_urls_after_dedupe,
        summary.final_url_count,
    )
    return TargetedExecution(
        urls=[fp.url for fp in capped_fingerprints],
        fingerprints=capped_fingerprints,
        summary=summary,
    )


def merge_url_sources(sources: Mapping[str, Sequence[str]]) -> MergedUrls:
    """Merge named URL lists, keeping the first source seen for every URL.

    Sources are visited in mapping order and URLs in list order.  URLs
    that differ only by query string or trailing slash are treated as
    the same profile.  Malformed URLs are logged, skipped and counted
    in ``invalid``.

    >>> merged = merge_url_sources({"A": ["https://x.com/in/u1", "https://x.com/in/u2"],
    ...                             "B": ["https://x.com/in/u2", "https://x.com/in/u3"]})
    >>> merged.urls
    ['https://x.com/in/u1', 'https://x.com/in/u2', 'https://x.com/in/u3']
    >>> merged.provenance["https://x.com/in/u2"]
    'A'
    """
    provenance: Dict[str, str] = {}
    total = 0
    invalid = 0
    for source, urls in sources.items():
        for url in urls:
            total += 1
            try:
                key = canonical_profile_url(url)
            except ValueError as exc:
                invalid += 1
                logger.warning("Skipping malformed URL %r from %s: %s", url, source, exc)
                continue
            provenance.setdefault(key, source)
    breakdown: Dict[str, int] = {source: 0 for source in sources}
    for source in provenance.values():
        breakdown[source] += 1
    logger.info(
        "Merged %d URLs from %d sources into %d unique (%d invalid): %s",
        total,
        len(sources),
        len(provenance),
        invalid,
        breakdown,
    )
    return MergedUrls(
        urls=list(provenance),
        provenance=provenance,
        source_breakdown=breakdown,
        total_input=total,
        invalid=invalid,
    )
