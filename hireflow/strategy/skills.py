"""
Hard skill requirement extraction.

A role need such as "CFO with M&A execution, Mandarin and PE fund
background" is turned into 4–8 weighted hard skills whose points add up
to the run's skill budget (70 by default).  Only observable attributes
are kept: technical skills, certifications, language fluency, domain or
industry background and quantifiable experience.  Soft‑skill language
is discarded even when the model returns it.

Extraction never raises for a bad model response.  When the providers
fail or return something unusable an empty requirement set is returned
and callers fall back to title‑only matching.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Mapping

from ..llm.chain import ProviderChain
from ..schema import (
    DEFAULT_SKILL_BUDGET,
    MAX_SKILLS,
    MIN_SKILLS,
    HardSkillRequirementSet,
    RoleContext,
)
from ..utils import load_json_payload

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at analyzing job requirements and extracting measurable hard skills. "
    "Always respond with valid JSON. Extract only hard skills that appear on LinkedIn profiles."
)

SOFT_SKILL_TERMS = (
    "leadership",
    "culture",
    "cultural fit",
    "communication",
    "teamwork",
    "team player",
    "collaboration",
    "interpersonal",
    "personality",
    "emotional intelligence",
    "work ethic",
    "attitude",
    "motivation",
    "executive presence",
    "soft skill",
)


def _build_prompt(role: RoleContext, budget: int) -> str:
    return f"""You are analyzing a job requirement to extract HARD SKILLS (visible on LinkedIn/resume).

**ROLE:** {role.title}
**INDUSTRY:** {role.industry or 'Not specified'}
**NEED:** {role.need}

**TASK:**
Extract {MIN_SKILLS}-{MAX_SKILLS} HARD SKILL requirements and assign point weights (total must = {budget} points).

**HARD SKILLS = Observable on LinkedIn/Resume:**
- Technical skills (e.g., "Python", "M&A execution", "financial modeling")
- Experience requirements (e.g., "PE fund experience", "scaling SaaS")
- Certifications (e.g., "CFA", "CPA", "AWS certified")
- Industry background (e.g., "fintech experience", "healthcare")
- Language proficiency (e.g., "Mandarin fluency")

**NOT HARD SKILLS (ignore these):**
- Leadership style, cultural fit, communication skills, personality traits, team dynamics

**WEIGHTING RULES:**
- Total points MUST equal exactly {budget}
- Most critical skills: 20-25 points
- Important skills: 12-18 points
- Nice-to-have skills: 5-10 points

Respond in JSON format:
{{
  "hardSkills": {{"Skill name 1": 25, "Skill name 2": 20, "Skill name 3": 15, "Skill name 4": 10}},
  "totalPoints": {budget}
}}"""


def is_soft_skill(label: str) -> bool:
    lowered = label.lower()
    return any(term in lowered for term in SOFT_SKILL_TERMS)


def rebalance_weights(weights: Mapping[str, float], budget: int = DEFAULT_SKILL_BUDGET) -> Dict[str, int]:
    """Scale positive weights to integers that sum exactly to ``budget``.

    Uses the largest‑remainder method so the relative order of the
    weights is preserved.  Every skill keeps at least one point.
    """
    positive = {label: float(w) for label, w in weights.items() if w and float(w) > 0}
    if not positive:
        return {}
    total = sum(positive.values())
    scaled = {label: w * budget / total for label, w in positive.items()}
    result = {label: max(1, math.floor(value)) for label, value in scaled.items()}
    shortfall = budget - sum(result.values())
    by_remainder = sorted(scaled, key=lambda label: scaled[label] - math.floor(scaled[label]), reverse=True)
    index = 0
    while shortfall > 0:
        result[by_remainder[index % len(by_remainder)]] += 1
        shortfall -= 1
        index += 1
    while shortfall < 0:
        heaviest = max(result, key=result.get)
        result[heaviest] -= 1
        shortfall += 1
    return result


def _parse_skills(content: str) -> Dict[str, float]:
    payload = load_json_payload(content)
    if not isinstance(payload, dict):
        raise ValueError("expected a JSON object")
    raw = payload.get("hardSkills") or payload.get("skills") or {}
    if not isinstance(raw, dict):
        raise ValueError("hardSkills is not an object")
    skills: Dict[str, float] = {}
    for label, points in raw.items():
        try:
            value = float(points)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric weight for %s: %r", label, points)
            continue
        if not math.isfinite(value):
            logger.debug("Ignoring non-finite weight for %s: %r", label, points)
            continue
        skills[str(label).strip()] = value
    return skills


def build_requirement_set(raw: Mapping[str, float], budget: int = DEFAULT_SKILL_BUDGET) -> HardSkillRequirementSet:
    """Turn raw model weights into a valid requirement set (or an empty one)."""
    kept = {
        label: points
        for label, points in raw.items()
        if label and points > 0 and not is_soft_skill(label)
    }
    dropped = set(raw) - set(kept)
    if dropped:
        logger.info("Discarded %d non-hard or zero-weight skills: %s", len(dropped), ", ".join(sorted(dropped)))
    ordered: List[str] = sorted(kept, key=lambda label: kept[label], reverse=True)[:MAX_SKILLS]
    if len(ordered) < MIN_SKILLS:
        logger.warning("Only %d usable hard skills extracted; returning empty requirement set", len(ordered))
        return HardSkillRequirementSet.empty(budget)
    weights = rebalance_weights({label: kept[label] for label in ordered}, budget)
    return HardSkillRequirementSet(weights, budget)


async def extract_hard_skills(
    role: RoleContext,
    chain: ProviderChain,
    *,
    budget: int = DEFAULT_SKILL_BUDGET,
) -> HardSkillRequirementSet:
    """Extract weighted hard skills for ``role``.

    Args:
        role: Role title, industry and free‑text need.
        chain: Providers to try in order.
        budget: Total points the weights must sum to.

    Returns:
        A `HardSkillRequirementSet`; empty when no usable skills could be
        extracted.
    """
    logger.info("Extracting hard skills for %s", role.title)
    try:
        raw, provider = await chain.agenerate_parsed(
            SYSTEM_PROMPT,
            _build_prompt(role, budget),
            _parse_skills,
            max_tokens=500,
            temperature=0.3,
            json_mode=True,
        )
    except Exception as exc:  # noqa: BLE001
        logger.warning("Hard skill extraction failed; continuing without skill weights: %s", exc)
        return HardSkillRequirementSet.empty(budget)
    try:
        requirements = build_requirement_set(raw, budget)
    except ValueError as exc:
        logger.warning("Unusable skill weights from %s; continuing without skill weights: %s", provider.name, exc)
        return HardSkillRequirementSet.empty(budget)
    for skill, points in requirements.ranked():
        logger.info("  %s: %d points (via %s)", skill, points, provider.name)
    return requirements
