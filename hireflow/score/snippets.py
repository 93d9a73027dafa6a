"""
Batch snippet scoring.

Takes the few hundred fingerprints of a sourcing run and asks a language
model, in ONE request, to predict each candidate's hard‑skill score from
the snippet alone.  Full‑profile enrichment of the next stage is the
dominant cost of a run, so this stage trades per‑candidate precision for
a near‑zero price: the model is told to score conservatively and award
points only for explicit evidence.

Every fingerprint is returned with its score; which tiers get enriched
is the caller's decision.  A response that cannot be parsed into one
validated entry per fingerprint fails the whole call.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..llm.providers import LLMProvider
from ..schema import (
    CandidateFingerprint,
    HardSkillRequirementSet,
    QualityTier,
    ScoredFingerprint,
)
from ..utils import clamp, round_half_up
from .llm_schema import parse_batch_scores

logger = logging.getLogger(__name__)

MAX_BATCH = 800
DEFAULT_MIN_PERCENTAGE = 68
DEFAULT_CALL_COST = 0.08

SYSTEM_PROMPT = (
    "You are an expert executive search consultant evaluating candidate snippets against hard "
    "skill requirements. Always respond with valid JSON array."
)


def predicted_percentage(score: float, budget: int) -> int:
    """Percentage of the skill budget, rounded half up."""
    return round_half_up(score / budget * 100)


@dataclass
class BatchScoringResult:
    """All scored fingerprints of one call plus aggregate counts."""

    scored_fingerprints: List[ScoredFingerprint]
    min_percentage: int
    estimated_cost: float
    provider_name: str = ""
    quality_distribution: Dict[QualityTier, int] = field(default_factory=dict)

    @property
    def total_evaluated(self) -> int:
        return len(self.scored_fingerprints)

    @property
    def passed(self) -> int:
        return len(self.at_least(self.min_percentage))

    @property
    def filtered(self) -> int:
        return self.total_evaluated - self.passed

    def at_least(self, percentage: int) -> List[ScoredFingerprint]:
        return [fp for fp in self.scored_fingerprints if fp.predicted_percentage >= percentage]

    def by_tier(self, tier: QualityTier) -> List[ScoredFingerprint]:
        return [fp for fp in self.scored_fingerprints if fp.tier is tier]


def _build_prompt(fingerprints: Sequence[CandidateFingerprint], requirements: HardSkillRequirementSet) -> str:
    budget = requirements.budget
    skills = "\n".join(f"- {skill}: {points} points" for skill, points in requirements.ranked())
    batch = [
        {"id": index, "name": fp.name, "title": fp.title, "company": fp.company, "snippet": fp.snippet}
        for index, fp in enumerate(fingerprints)
    ]
    threshold = lambda pct: round_half_up(budget * pct / 100)  # noqa: E731
    return f"""You are evaluating {len(batch)} LinkedIn profile snippets for a specialized recruitment search.

**HARD SKILL REQUIREMENTS ({budget} points total):**
{skills}

**YOUR TASK:**
For EACH of the {len(batch)} candidates below, predict their hard-skill score (0-{budget} points) based ONLY on signals visible in their snippet.

**SCORING RULES:**
1. Award points ONLY if you find CLEAR EVIDENCE in the snippet
2. Partial credit allowed (e.g., a skill merely mentioned earns part of its points)
3. No points if a skill is not mentioned at all; never infer absent information
4. Be CONSERVATIVE - full profiles are verified later
5. Focus on observable facts: job titles, companies, keywords, certifications

**QUALITY THRESHOLDS:**
- Elite (>=85%): >={threshold(85)} points
- Excellent (75-84%): {threshold(75)}-{threshold(85) - 1} points
- Good (68-74%): {threshold(68)}-{threshold(75) - 1} points
- Poor (<68%): <{threshold(68)} points

**OUTPUT FORMAT:**
Respond with a JSON array with exactly one entry per candidate, in the same order:
[
  {{"id": 0, "predictedScore": 58, "signals": ["M&A", "PE fund"], "confidence": "high", "rationale": "Strong M&A and PE signals in title and company"}}
]

**CANDIDATES TO SCORE:**
{json.dumps(batch, indent=2, ensure_ascii=False)}

REMEMBER: Only score based on what you SEE in the snippet. Be conservative. Return the JSON array only."""


async def score_snippets(
    fingerprints: Sequence[CandidateFingerprint],
    requirements: HardSkillRequirementSet,
    provider: LLMProvider,
    *,
    min_percentage: int = DEFAULT_MIN_PERCENTAGE,
    call_cost: float = DEFAULT_CALL_COST,
    max_tokens: int = 8000,
    temperature: float = 0.3,
) -> BatchScoringResult:
    """Score every fingerprint of a run with a single model call.

    Args:
        fingerprints: Up to 800 fingerprints, in run order.
        requirements: Non‑empty weighted hard skills.
        provider: Model provider for the one batch request.
        min_percentage: Quality threshold used for the passed/filtered
            counts; it does not remove anything from the result.
        call_cost: Estimated price of the single call.
        max_tokens: Output token allowance for the whole batch.
        temperature: Sampling temperature.

    Returns:
        A `BatchScoringResult` holding one `ScoredFingerprint` per input.

    Raises:
        ValueError: If the batch exceeds 800 fingerprints or the
            requirement set is empty.
        BatchParseError: If the response cannot be parsed completely.
    """
    if len(fingerprints) > MAX_BATCH:
        raise ValueError(f"at most {MAX_BATCH} fingerprints can be scored per call, got {len(fingerprints)}")
    if requirements.is_empty:
        raise ValueError("cannot score snippets without hard skill requirements")
    if not fingerprints:
        return BatchScoringResult([], min_percentage, 0.0, provider.name, {tier: 0 for tier in QualityTier})

    budget = requirements.budget
    logger.info(
        "Scoring %d snippets in one call via %s (threshold %d%% = %d/%d points)",
        len(fingerprints),
        provider.name,
        min_percentage,
        round_half_up(budget * min_percentage / 100),
        budget,
    )
    loop = asyncio.get_running_loop()
    content = await loop.run_in_executor(
        None,
        lambda: provider.generate(
            SYSTEM_PROMPT,
            _build_prompt(fingerprints, requirements),
            max_tokens=max_tokens,
            temperature=temperature,
            json_mode=True,
        ),
    )
    try:
        scores = parse_batch_scores(content, len(fingerprints))
    except Exception:
        logger.exception("Batch scoring response rejected; no partial scores are kept")
        raise

    distribution = {tier: 0 for tier in QualityTier}
    scored: List[ScoredFingerprint] = []
    for fingerprint, verdict in zip(fingerprints, scores):
        points = clamp(verdict.predicted_score, 0, budget)
        percentage = predicted_percentage(points, budget)
        item = ScoredFingerprint.from_fingerprint(
            fingerprint,
            predicted_score=points,
            predicted_percentage=percentage,
            confidence=verdict.confidence,
            matched_signals=frozenset(verdict.signals),
            rationale=verdict.rationale,
        )
        distribution[item.tier] += 1
        scored.append(item)

    result = BatchScoringResult(scored, min_percentage, call_cost, provider.name, distribution)
    logger.info(
        "Scored %d: %d passed, %d below %d%% | elite %d, excellent %d, good %d, poor %d",
        result.total_evaluated,
        result.passed,
        result.filtered,
        min_percentage,
        distribution[QualityTier.ELITE],
        distribution[QualityTier.EXCELLENT],
        distribution[QualityTier.GOOD],
        distribution[QualityTier.POOR],
    )
    return result
