"""
Error types raised by the sourcing core.

Three kinds of failure are distinguished:

* configuration errors – a credential or endpoint is missing.  These are
  raised when a component is built, before any paid call is made.
* per‑unit failures – one query (or one record) failed.  These are not
  raised; they are recorded on the result entry for that unit so sibling
  work continues.
* batch‑integrity errors – an aggregate model call returned output that
  cannot be parsed.  The whole call fails; no partial result is salvaged.
"""

from __future__ import annotations

from typing import List, Sequence, Tuple


class HireflowError(Exception):
    """Base class for all sourcing core errors."""


class ConfigurationError(HireflowError):
    """A required credential or endpoint is not configured."""

    def __init__(self, component: str, missing: Sequence[str]) -> None:
        self.component = component
        self.missing = list(missing)
        super().__init__(
            f"{component} cannot be built; missing configuration: {', '.join(self.missing)}"
        )


class SearchProviderError(HireflowError):
    """A single search request failed (HTTP error or provider error payload)."""


class BatchParseError(HireflowError):
    """An aggregate model response could not be parsed into the expected shape."""

    def __init__(self, stage: str, reason: str, *, expected: int | None = None, received: int | None = None) -> None:
        self.stage = stage
        self.reason = reason
        self.expected = expected
        self.received = received
        detail = reason
        if expected is not None:
            detail += f" (expected {expected} entries, received {received if received is not None else 0})"
        super().__init__(f"{stage}: {detail}")


class ProviderChainError(HireflowError):
    """Every provider in an ordered chain failed."""

    def __init__(self, stage: str, attempts: List[Tuple[str, Exception]]) -> None:
        self.stage = stage
        self.attempts = attempts
        summary = "; ".join(f"{name}: {exc}" for name, exc in attempts) or "no providers configured"
        super().__init__(f"{stage} failed after {len(attempts)} provider attempt(s): {summary}")
