"""
Response schema for batch snippet scoring.

The model must return one entry per fingerprint.  Entries are validated
with pydantic at the boundary so loosely shaped JSON never reaches the
scoring logic.  ``predictedScore`` also accepts the alias ``score``,
and a top‑level object wrapping the list under ``scores``,
``candidates`` or ``results`` is unwrapped.
"""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors import BatchParseError
from ..utils import load_json_payload

WRAPPER_KEYS = ("scores", "candidates", "results")


class SnippetScore(BaseModel):
    """Model verdict for one fingerprint."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", allow_inf_nan=False)

    id: int
    predicted_score: float = Field(alias="predictedScore")
    signals: List[str] = Field(default_factory=list)
    confidence: Literal["high", "medium", "low"] = "medium"
    rationale: str = "No rationale provided"

    @field_validator("confidence", mode="before")
    @classmethod
    def _normalise_confidence(cls, value: object) -> str:
        text = str(value or "medium").strip().lower()
        return text if text in ("high", "medium", "low") else "medium"

    @field_validator("signals", mode="before")
    @classmethod
    def _coerce_signals(cls, value: object) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(item) for item in value]


def _unwrap(payload: object) -> list:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in WRAPPER_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
    raise BatchParseError("snippet scoring", "response is not a JSON array of scores")


def parse_batch_scores(content: str, expected: int) -> List[SnippetScore]:
    """Parse and validate a batch response, ordered by ``id``.

    Raises:
        BatchParseError: If the content is not JSON, not a (wrapped)
            array, an entry fails validation, or the ids do not cover
            ``0..expected-1`` exactly once.
    """
    try:
        payload = load_json_payload(content)
    except ValueError as exc:
        raise BatchParseError("snippet scoring", f"invalid JSON: {exc}", expected=expected) from exc
    entries = _unwrap(payload)
    for entry in entries:
        if isinstance(entry, dict) and "predictedScore" not in entry and "score" in entry:
            entry["predictedScore"] = entry["score"]
    try:
        scores = [SnippetScore.model_validate(entry) for entry in entries]
    except ValidationError as exc:
        raise BatchParseError("snippet scoring", f"invalid score entry: {exc}", expected=expected, received=len(entries)) from exc
    by_id = {score.id: score for score in scores}
    if len(scores) != expected or sorted(by_id) != list(range(expected)):
        raise BatchParseError(
            "snippet scoring", "score ids do not match the submitted batch", expected=expected, received=len(scores)
        )
    return [by_id[index] for index in range(expected)]
