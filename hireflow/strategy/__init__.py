"""
Strategy stage.

* `skills` – Extract a fixed‑budget set of weighted hard skills from a
  free‑text role need.
* `queries` – Generate the multi‑query search plan (primary keyword
  queries, competitor mapping queries and social‑signal queries).
"""

from .skills import extract_hard_skills, rebalance_weights  # noqa: F401
from .queries import generate_query_strategy, sanitize_query  # noqa: F401
