"""
Best‑effort recovery of name, title and company from a result title.

Search engines render profile pages as ``"Name - Title - Company | LinkedIn"``
(with hyphens, en/em dashes or pipes as separators).  Splitting that
string is inherently lossy, so every field has a documented fallback:
``"Unknown"`` for name and company and ``"No title available"`` for the
title.  Separators must be surrounded by whitespace, which keeps
hyphenated names such as "Jean-Luc" intact.
"""

from __future__ import annotations

import re
from typing import NamedTuple

UNKNOWN = "Unknown"
NO_TITLE = "No title available"

_SEPARATOR_RE = re.compile(r"\s+[-–—|·]\s+")
_SITE_SUFFIX_RE = re.compile(r"\s*\blinkedin\b\s*", re.IGNORECASE)
_AT_RE = re.compile(r"\s+at\s+", re.IGNORECASE)


class ParsedTitle(NamedTuple):
    name: str
    title: str
    company: str


def parse_result_title(raw: str) -> ParsedTitle:
    """Split a combined result title into ``(name, title, company)``.

    >>> parse_result_title("Jane Doe - CFO - Acme Capital | LinkedIn")
    ParsedTitle(name='Jane Doe', title='CFO', company='Acme Capital')
    >>> parse_result_title("Jane Doe - CFO at Acme Capital | LinkedIn")
    ParsedTitle(name='Jane Doe', title='CFO', company='Acme Capital')
    >>> parse_result_title("")
    ParsedTitle(name='Unknown', title='No title available', company='Unknown')
    """
    parts = [part.strip() for part in _SEPARATOR_RE.split(raw or "")]
    parts = [_SITE_SUFFIX_RE.sub(" ", part).strip() for part in parts]
    parts = [part for part in parts if part]

    name = parts[0] if parts else UNKNOWN
    title = parts[1] if len(parts) > 1 else NO_TITLE
    company = parts[2] if len(parts) > 2 else UNKNOWN

    if company == UNKNOWN and title != NO_TITLE:
        pieces = _AT_RE.split(title, maxsplit=1)
        if len(pieces) == 2 and pieces[0] and pieces[1]:
            title, company = pieces[0].strip(), pieces[1].strip()
    return ParsedTitle(name, title, company)
