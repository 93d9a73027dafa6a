"""
Snippet scoring subsystem.

All fingerprints of a sourcing run are scored by a language model in a
single call (`score_snippets`).  The model predicts how many of the
hard‑skill points each candidate would earn using only the visible
snippet, which decides who is worth a paid full‑profile enrichment.
"""

from .snippets import BatchScoringResult, score_snippets  # noqa: F401
