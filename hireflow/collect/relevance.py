"""
Relevance pre‑filter applied before paying for profile enrichment.

A profile passes when any priority signal OR any required keyword
appears in its title, snippet, company or URL slug.  OR logic is used
because search snippets are often too short for an AND gate.  Text is
normalised first (lower‑cased, punctuation removed, common finance
abbreviations expanded) so "PE" matches "private equity".
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Sequence

from ..schema import CandidateFingerprint

_SPECIAL_RE = re.compile(r"[&/\\#,+()$~%.'\":*?<>{}]")
_SPACE_RE = re.compile(r"\s+")

# Applied after punctuation removal, so "M&A" arrives as "m a".
_ABBREVIATIONS = (
    (re.compile(r"\bpe\b"), "private equity"),
    (re.compile(r"\bib\b"), "investment banking"),
    (re.compile(r"\bvc\b"), "venture capital"),
    (re.compile(r"\b(?:m a|ma|m and a)\b"), "mergers and acquisitions"),
    (re.compile(r"\blbo\b"), "leveraged buyout"),
    (re.compile(r"\b(?:fp a|fpa)\b"), "financial planning and analysis"),
)

_USELESS_SIGNALS = (
    re.compile(r"^\d+\+?\s*years?", re.IGNORECASE),
    re.compile(r"experience$", re.IGNORECASE),
    re.compile(r"minimum$", re.IGNORECASE),
)


@dataclass(frozen=True)
class RelevanceVerdict:
    is_relevant: bool
    confidence: int
    reason: str


def normalize_search_text(text: str) -> str:
    text = _SPECIAL_RE.sub(" ", text.lower())
    text = _SPACE_RE.sub(" ", text).strip()
    for pattern, replacement in _ABBREVIATIONS:
        text = pattern.sub(replacement, text)
    return text


def sanitize_signals(signals: Sequence[str]) -> List[str]:
    """Drop generic entries such as "5+ years" and normalise the rest."""
    cleaned = []
    for signal in signals:
        if any(pattern.search(signal.strip()) for pattern in _USELESS_SIGNALS):
            continue
        normalized = normalize_search_text(signal)
        if normalized:
            cleaned.append(normalized)
    return cleaned


def _url_slug(url: str) -> str:
    _, _, tail = url.partition("/in/")
    return tail.split("/")[0].replace("-", " ")


def assess_relevance(
    fingerprint: CandidateFingerprint,
    priority_signals: Sequence[str],
    required_keywords: Sequence[str],
) -> RelevanceVerdict:
    """Judge whether a fingerprint is worth keeping.

    Confidence is 100 when both a signal and a keyword match, 80 for a
    signal only and 60 for a keyword only.
    """
    haystack = normalize_search_text(
        f"{fingerprint.title} {fingerprint.snippet} {fingerprint.company} {_url_slug(fingerprint.url)}"
    )
    signals = sanitize_signals(priority_signals)
    keywords = sanitize_signals(required_keywords)
    matched_signals = [s for s in signals if s in haystack]
    matched_keywords = [k for k in keywords if k in haystack]

    if not matched_signals and not matched_keywords:
        return RelevanceVerdict(
            False,
            0,
            f"No matches (signals: {', '.join(signals[:3])}, keywords: {', '.join(keywords[:3])})",
        )
    if matched_signals and matched_keywords:
        confidence = 100
    elif matched_signals:
        confidence = 80
    else:
        confidence = 60
    matched = [f'signal:"{s}"' for s in matched_signals] + [f'keyword:"{k}"' for k in matched_keywords]
    return RelevanceVerdict(True, confidence, "Matched: " + ", ".join(matched))
