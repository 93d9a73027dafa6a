"""
Multi‑query search strategy generation.

The generator asks a language model for three ordered query lists:

* primary queries (8–15) – short keyword strings issued as
  ``site:<profile host> <query>`` against a consumer search API, so they
  must not contain boolean operators, parentheses or nested grouping;
* competitor queries (0–5) – peer company plus title, only when a
  company or industry context exists;
* social‑signal queries (2–3) – X/Twitter style searches.

Model output is repaired rather than trusted: operators are stripped,
the role title and one of the two highest‑weighted skills are added to
any primary query missing them, duplicates are removed and the list is
padded from deterministic skill combinations when the model returns too
few.  Provider failures fall through the provider chain; when every
provider fails the call raises, because an empty strategy would source
zero candidates without anyone noticing.
"""

from __future__ import annotations

import logging
import re
from itertools import combinations
from typing import Iterable, List, Optional, Sequence

from ..llm.chain import ProviderChain
from ..schema import HardSkillRequirementSet, MultiQueryStrategy, RoleContext
from ..utils import load_json_payload

logger = logging.getLogger(__name__)

MIN_PRIMARY = 8
MAX_PRIMARY = 15
MAX_COMPETITOR = 5
MIN_SOCIAL = 2
MAX_SOCIAL = 3

SYSTEM_PROMPT = (
    "You are an expert executive search consultant. Generate comprehensive, targeted LinkedIn "
    "search queries. Always respond with valid JSON. Generate ONLY simple keyword queries "
    "without Boolean operators, parentheses, or quotes."
)

_OPERATOR_RE = re.compile(r"\b(?:AND|OR|NOT)\b")
_GROUPING_RE = re.compile(r"[()\[\]{}\"]")
_SITE_RE = re.compile(r"\bsite:\S+", re.IGNORECASE)
_SPACE_RE = re.compile(r"\s+")


def _skills_block(skills: HardSkillRequirementSet) -> str:
    if skills.is_empty:
        return "- Extract from NEED above"
    return "\n".join(
        f"- {skill}: {points} points (out of {skills.budget} total)" for skill, points in skills.ranked()
    )


def _build_prompt(role: RoleContext, skills: HardSkillRequirementSet) -> str:
    return f"""You are an expert executive search consultant creating LinkedIn search queries.

**JOB CONTEXT:**
- Role: {role.title}
- Industry: {role.industry or 'Not specified'}
- Location: {role.location or 'Global'}
- Company: {role.company_name or 'Confidential'}

**NEED:** {role.need}
**AUTHORITY:** {role.authority or 'Not specified'}
**PAIN:** {role.pain or 'Not specified'}

**HARD SKILL REQUIREMENTS (what can be found on LinkedIn):**
{_skills_block(skills)}

**YOUR TASK:**
1. PRIMARY GOOGLE-FRIENDLY QUERIES ({MIN_PRIMARY}-{MAX_PRIMARY} variations)
   - Executed as: "site:linkedin.com/in [your keywords]"
   - Include role title variations and the top 2-3 hard skills in EVERY query
   - Simple keywords separated by spaces, NO parentheses, NO AND/OR operators
   - Examples: "CFO M&A Mandarin", "VP Finance Hong Kong PE"
2. COMPETITOR MAPPING QUERIES (3-{MAX_COMPETITOR}, only if industry context is clear)
   - Peer company plus title, e.g. "Hillhouse Capital CFO"
3. X/TWITTER STRATEGIES ({MIN_SOCIAL}-{MAX_SOCIAL} social signal queries)
   - e.g. "from:PE_Asia CFO Mandarin", "CFO job posting Hong Kong"

Each query must be DISTINCT.

Respond in JSON format:
{{
  "booleanQueries": ["query1", "query2"],
  "competitorQueries": ["query1"],
  "xStrategies": ["strategy1", "strategy2"],
  "queryRationale": "<1-2 sentences>",
  "estimatedCoverage": "<expected % of addressable market>"
}}"""


def sanitize_query(query: str) -> str:
    """Strip boolean operators, grouping characters and ``site:`` filters."""
    cleaned = _SITE_RE.sub(" ", query)
    cleaned = _GROUPING_RE.sub(" ", cleaned)
    cleaned = _OPERATOR_RE.sub(" ", cleaned)
    return _SPACE_RE.sub(" ", cleaned).strip()


def _contains(query: str, term: str) -> bool:
    return term.lower() in query.lower()


def _dedupe(queries: Iterable[str]) -> List[str]:
    seen = set()
    unique: List[str] = []
    for query in queries:
        key = query.lower()
        if query and key not in seen:
            seen.add(key)
            unique.append(query)
    return unique


def enforce_primary_rules(query: str, title: str, top_skills: Sequence[str]) -> str:
    """Return ``query`` sanitised and guaranteed to mention the title and a top skill."""
    query = sanitize_query(query)
    if not query:
        return ""
    # model-written labels may carry grouping characters or operators
    title = sanitize_query(title)
    lead = [label for label in (sanitize_query(skill) for skill in top_skills[:2]) if label]
    if title and not _contains(query, title):
        query = f"{title} {query}"
    if lead and not any(_contains(query, skill) for skill in lead):
        query = f"{query} {lead[0]}"
    return query


def synthesize_primary_queries(role: RoleContext, skills: HardSkillRequirementSet) -> List[str]:
    """Deterministic role + skill keyword combinations used to pad a short plan."""
    title = role.title
    top = skills.top(4)
    synthesized: List[str] = []
    if top:
        lead = top[:2]
        synthesized.append(" ".join([title, *lead]))
        synthesized.extend(f"{title} {skill}" for skill in lead)
        for first, second in combinations(top, 2):
            if first in lead or second in lead:
                synthesized.append(f"{title} {first} {second}")
        context = [value for value in (role.location, role.industry, role.company_name) if value]
        for extra in context:
            synthesized.extend(f"{title} {skill} {extra}" for skill in lead)
        synthesized.append(" ".join([title, *top[:3]]))
    else:
        context = [value for value in (role.industry, role.location) if value]
        synthesized.extend(f"{title} {extra}" for extra in context)
        if len(context) == 2:
            synthesized.append(f"{title} {context[0]} {context[1]}")
    return [sanitize_query(query) for query in synthesized]


def _as_list(value: object) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item).strip() for item in value if isinstance(item, (str, int, float)) and str(item).strip()]


def _parse_strategy_payload(content: str) -> dict:
    payload = load_json_payload(content)
    if not isinstance(payload, dict):
        raise ValueError("expected a JSON object")
    if not _as_list(payload.get("booleanQueries")):
        raise ValueError("response contains no booleanQueries")
    return payload


def build_strategy(payload: dict, role: RoleContext, skills: HardSkillRequirementSet) -> MultiQueryStrategy:
    """Apply the query design rules to a parsed model payload."""
    top_skills = skills.top(2)
    primary = _dedupe(
        enforce_primary_rules(query, role.title, top_skills) for query in _as_list(payload.get("booleanQueries"))
    )
    if len(primary) < MIN_PRIMARY:
        padded = _dedupe([*primary, *synthesize_primary_queries(role, skills)])
        logger.info("Padded primary queries from %d to %d", len(primary), min(len(padded), MAX_PRIMARY))
        primary = padded
    if len(primary) < MIN_PRIMARY:
        logger.warning("Only %d primary queries available for %s", len(primary), role.title)
    primary = primary[:MAX_PRIMARY]

    competitor: List[str] = []
    if role.company_name or role.industry:
        competitor = _dedupe(sanitize_query(q) for q in _as_list(payload.get("competitorQueries")))[:MAX_COMPETITOR]

    social = _dedupe(_as_list(payload.get("xStrategies")))
    if len(social) < MIN_SOCIAL:
        anchor = top_skills[0] if top_skills else (role.industry or "")
        fallback = [
            " ".join(part for part in (role.title, anchor, "hiring") if part),
            " ".join(part for part in (role.title, "job posting", role.location) if part),
        ]
        social = _dedupe([*social, *fallback])
    social = social[:MAX_SOCIAL]

    return MultiQueryStrategy(
        primary_queries=tuple(primary),
        competitor_queries=tuple(competitor),
        social_queries=tuple(social),
        rationale=str(payload.get("queryRationale") or "Query strategy generated from role analysis"),
        estimated_coverage=str(payload.get("estimatedCoverage") or "60-80% of addressable market"),
    )


async def generate_query_strategy(
    role: RoleContext,
    skills: HardSkillRequirementSet,
    chain: ProviderChain,
    *,
    temperature: float = 0.7,
) -> MultiQueryStrategy:
    """Generate the multi‑query plan for a sourcing run.

    Args:
        role: Role context (title, industry, location, company, need).
        skills: Weighted hard skills; may be empty.
        chain: Primary and fallback providers sharing one prompt contract.
        temperature: Sampling temperature for the model.

    Returns:
        A `MultiQueryStrategy` obeying the primary query design rules.

    Raises:
        ProviderChainError: If every provider errored or returned an
            unusable response.
    """
    logger.info("Generating multi-query strategy for %s", role.title)
    payload, provider = await chain.agenerate_parsed(
        SYSTEM_PROMPT,
        _build_prompt(role, skills),
        _parse_strategy_payload,
        max_tokens=2000,
        temperature=temperature,
        json_mode=True,
    )
    strategy = build_strategy(payload, role, skills)
    logger.info(
        "Generated %d queries via %s: %d primary, %d competitor, %d social (coverage: %s)",
        strategy.total_queries,
        provider.name,
        len(strategy.primary_queries),
        len(strategy.competitor_queries),
        len(strategy.social_queries),
        strategy.estimated_coverage,
    )
    return strategy


def describe(strategy: MultiQueryStrategy, limit: Optional[int] = None) -> str:
    """Human‑readable multi‑line listing of a strategy, used in run logs."""
    lines = [f"Rationale: {strategy.rationale}", f"Coverage: {strategy.estimated_coverage}"]
    for label, queries in (
        ("primary", strategy.primary_queries),
        ("competitor", strategy.competitor_queries),
        ("social", strategy.social_queries),
    ):
        for query in queries[:limit]:
            lines.append(f"  [{label}] {query}")
    return "\n".join(lines)
