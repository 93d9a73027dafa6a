"""
Collection subsystem.

The `collect` package turns search queries into candidate fingerprints.
`collect_fingerprints` issues a whole query plan concurrently, while
`execute_targeted_queries` runs a few high‑value competitor queries in
rate‑limited batches with an optional relevance pre‑filter.  Both
isolate per‑query failures and report call counts and estimated cost.
"""

from .search import SearchProvider, SearchResult, SerpApiSearchProvider  # noqa: F401
from .parse import parse_result_title  # noqa: F401
from .fingerprints import FingerprintBatch, QueryOutcome, collect_fingerprints  # noqa: F401
from .targeted import execute_targeted_queries, merge_url_sources  # noqa: F401
