"""
Small helpers shared by the pipeline stages.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any
from urllib.parse import urlsplit, urlunsplit

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (2.5 -> 3)."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def canonical_profile_url(url: str) -> str:
    """Return the deduplication key for a profile URL.

    The query string and fragment are dropped, the host is lower‑cased
    and any trailing slash is removed, so ``.../in/jane/?trk=x`` and
    ``.../in/jane`` collapse to the same key.
    """
    parts = urlsplit(url.strip())
    path = parts.path.rstrip("/")
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), path, "", ""))


def is_profile_url(url: str, profile_path: str = "linkedin.com/in") -> bool:
    """Check whether ``url`` has the expected profile shape (``host/in/<slug>``)."""
    domain, _, prefix = profile_path.partition("/")
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    host = (parts.hostname or "").lower()
    if not host or not (host == domain or host.endswith("." + domain)):
        return False
    segments = [s for s in parts.path.split("/") if s]
    return len(segments) >= 2 and segments[0] == prefix


def load_json_payload(content: str) -> Any:
    """Parse model output as JSON, tolerating a surrounding markdown fence.

    Raises:
        ValueError: If the content is empty or not valid JSON.
    """
    text = (content or "").strip()
    if text.startswith("```"):
        text = _FENCE_RE.sub("", text).strip()
    if not text:
        raise ValueError("empty response")
    return json.loads(text)
