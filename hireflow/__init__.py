"""
Hireflow candidate sourcing core.

This package discovers, filters and ranks candidate profiles for a hiring
need while keeping every sourcing run inside a cost budget.  Each
subpackage implements one stage of the pipeline:

1. **strategy** – Turn a free‑text role need into a weighted set of hard
   skills (70 points in total) and a multi‑query search plan.
2. **collect** – Run the search plan against an external search provider
   and reduce the results to lightweight, deduplicated *fingerprints*.
   A batched variant handles small sets of competitor queries under a
   strict rate limit.
3. **score** – Send every fingerprint of a run to a language model in a
   single call and predict a hard‑skill score for each of them.
4. **rank** – Later in the pipeline, combine five weighted sub‑scores and
   optional learned statistics into a final score and confidence for an
   enriched candidate.

`pipeline` wires stages 1–3 into a budgeted sourcing run and `config`
holds the explicit settings object passed to every component.  Full
profile enrichment, persistence and presentation are the caller's job.
"""

from importlib import metadata

try:
    __version__ = metadata.version("hireflow")
except metadata.PackageNotFoundError:  # running from a source checkout
    __version__ = "0.0.0"
