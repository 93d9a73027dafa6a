"""
Multi‑factor candidate ranking.

Each sub‑score is a small heuristic on a 0–100 scale that answers one
question about the candidate and falls back to a neutral value when the
data it needs is missing.  Confidence starts at 40 and grows with every
sub‑score that is backed by strong evidence (> 70), so a consumer can tell
a well supported low score from a moderate score built on nothing.

Ranking runs in bulk: a missing record or an unexpected error produces a
null ranking for that candidate instead of an exception.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional, Sequence

from ..utils import clamp, round_half_up
from .records import (
    CandidateLearning,
    CandidateRecord,
    CompanyLearning,
    IndustryLearning,
    JobContext,
    RankedCandidate,
    ScoreBreakdown,
)
from .store import RankingDataSource

logger = logging.getLogger(__name__)

WEIGHTS = {
    "prior_company_tier": 0.40,
    "career_path": 0.25,
    "compensation_fit": 0.20,
    "geographic": 0.10,
    "success_factor": 0.05,
}

# (bonus when the sub-score is > 70, bonus otherwise)
CONFIDENCE_STEPS = {
    "prior_company_tier": (15, 5),
    "career_path": (15, 5),
    "compensation_fit": (10, 3),
    "geographic": (8, 2),
    "success_factor": (7, 2),
}
BASE_CONFIDENCE = 40
STRONG_EVIDENCE = 70

TIER_SCORES = {"tier 1": 95, "tier 2": 85, "tier 3": 70, "tier 4": 50}

COMPLIANCE_CERTIFICATIONS = ("FINRA", "CFA", "SOX", "GDPR")
TECH_SKILLS = ("python", "sql", "salesforce", "sap", "tableau")
REMOTE_MARKERS = ("remote", "anywhere")


def null_ranking(candidate_id: int, reason: str) -> RankedCandidate:
    """Neutral, low confidence ranking used when a candidate cannot be scored."""
    return RankedCandidate(
        candidate_id=candidate_id,
        final_score=50,
        confidence_score=10,
        breakdown=ScoreBreakdown(50, 50, 50, 50, 50),
        reasoning=reason,
    )


def combine(breakdown: ScoreBreakdown) -> int:
    """Weighted final score, rounded half up and clipped to 0-100."""
    total = sum(getattr(breakdown, name) * weight for name, weight in WEIGHTS.items())
    return int(clamp(round_half_up(total), 0, 100))


def confidence_for(breakdown: ScoreBreakdown) -> int:
    confidence = BASE_CONFIDENCE
    for name, (strong, weak) in CONFIDENCE_STEPS.items():
        confidence += strong if getattr(breakdown, name) > STRONG_EVIDENCE else weak
    return min(confidence, 100)


def score_prior_company_tier(candidate: CandidateRecord, company: Optional[CompanyLearning]) -> int:
    if company is not None and company.success_rate:
        return int(min(round_half_up(50 + company.success_rate / 2), 100))
    if candidate.prior_companies:
        tier = candidate.prior_companies[0].tier or candidate.company_tier or "Tier 3"
        return TIER_SCORES.get(tier.lower(), 70)
    return 60


def score_career_path(
    candidate: CandidateRecord,
    target_role: str,
    patterns: Sequence[CandidateLearning],
    industry: Optional[IndustryLearning],
) -> int:
    role = target_role.lower()
    title = candidate.current_title.lower()
    if title:
        matching = [p for p in patterns if role in p.pattern.lower() and title in p.pattern.lower()]
        if matching:
            average = sum(p.frequency_observed for p in matching) / len(matching)
            return int(min(round_half_up(50 + average * 5), 100))

    if industry is not None:
        for path in industry.career_paths:
            if any(step.lower() == role for step in path.path):
                frequency = path.frequency if path.frequency is not None else 0.3
                return int(min(round_half_up(60 + frequency * 40), 100))
    return 60


def score_compensation_fit(
    candidate: CandidateRecord,
    target_role: str,
    target_salary: Optional[float],
    company: Optional[CompanyLearning],
    industry: Optional[IndustryLearning],
) -> int:
    if not target_salary:
        return 70
    salary = candidate.salary or 0
    if salary == 0:
        return 65

    low, high = target_salary * 0.8, target_salary * 1.2
    if company is not None and target_role in company.salary_bands:
        band = company.salary_bands[target_role]
        low = band.min or low
        high = band.max or high
    if industry is not None and target_role in industry.salary_benchmarks:
        bench = industry.salary_benchmarks[target_role]
        low = max(low, bench.get("p25") or low)
        high = min(high, bench.get("p75") or high)

    gap = abs(salary - target_salary)
    tolerance = target_salary * 0.15
    if gap <= tolerance:
        return 90
    if gap <= tolerance * 2:
        return 75
    if salary > high * 1.3:
        return 40
    return 60


def score_geographic(
    candidate: CandidateRecord,
    target_location: Optional[str],
    industry: Optional[IndustryLearning],
) -> int:
    if not target_location and not candidate.location:
        return 70
    where = candidate.location.lower()
    target = (target_location or "").lower()

    if industry is not None:
        for hub, weight in industry.geographic_hubs.items():
            hub = hub.lower()
            if hub in where or (target and hub in target):
                return int(clamp(round_half_up(60 + weight * 40), 0, 100))

    if target and target in where:
        return 85
    if any(marker in where for marker in REMOTE_MARKERS):
        return 75
    return 50


def _mentions_any(values: Iterable[str], needles: Sequence[str]) -> bool:
    return any(needle in value.lower() for value in values for needle in needles)


def score_success_factors(
    candidate: CandidateRecord,
    industry: Optional[IndustryLearning],
    company: Optional[CompanyLearning],
) -> int:
    score = 60
    if industry is not None:
        if industry.regulatory_burden == "high" and _mentions_any(
            candidate.certifications, [cert.lower() for cert in COMPLIANCE_CERTIFICATIONS]
        ):
            score += 20
        if (industry.tech_skill_requirement or 0) > 0.6 and _mentions_any(candidate.skills, TECH_SKILLS):
            score += 15
    if company is not None and (company.promotion_rate or 0) > 0.5:
        if candidate.years_experience and candidate.years_experience < 5:
            score += 10
    return min(score, 100)


class CandidateRankingEngine:
    """Ranks enriched candidates against a job and company context."""

    def __init__(self, store: RankingDataSource, *, learning_limit: int = 100):
        self.store = store
        self.learning_limit = learning_limit

    async def rank(self, candidate_id: int, job: JobContext) -> RankedCandidate:
        try:
            return await self._rank(candidate_id, job)
        except Exception as exc:
            logger.exception("Error ranking candidate %s", candidate_id)
            return null_ranking(candidate_id, f"Scoring error: {exc}")

    async def _rank(self, candidate_id: int, job: JobContext) -> RankedCandidate:
        candidate, company, patterns = await asyncio.gather(
            self.store.get_candidate(candidate_id),
            self.store.get_company(job.target_company_id),
            self.store.list_candidate_learning(self.learning_limit),
        )
        if candidate is None:
            return null_ranking(candidate_id, "Candidate not found")

        company_learning: Optional[CompanyLearning] = None
        industry_learning: Optional[IndustryLearning] = None
        if company is not None:
            company_learning, industry_learning = await asyncio.gather(
                self.store.get_company_learning(company.name),
                self.store.get_industry_learning(company.industry),
            )

        breakdown = ScoreBreakdown(
            prior_company_tier=score_prior_company_tier(candidate, company_learning),
            career_path=score_career_path(candidate, job.target_role, patterns, industry_learning),
            compensation_fit=score_compensation_fit(
                candidate, job.target_role, job.target_salary, company_learning, industry_learning
            ),
            geographic=score_geographic(candidate, job.target_location, industry_learning),
            success_factor=score_success_factors(candidate, industry_learning, company_learning),
        )
        reasoning = " | ".join(
            [
                f"Prior company tier: {breakdown.prior_company_tier}/100",
                f"Career path fit: {breakdown.career_path}/100",
                f"Compensation fit: {breakdown.compensation_fit}/100",
                f"Geographic fit: {breakdown.geographic}/100",
                f"Success factors: {breakdown.success_factor}/100",
            ]
        )
        return RankedCandidate(
            candidate_id=candidate_id,
            final_score=combine(breakdown),
            confidence_score=confidence_for(breakdown),
            breakdown=breakdown,
            reasoning=reasoning,
        )

    async def rank_many(self, candidate_ids: Sequence[int], job: JobContext) -> List[RankedCandidate]:
        """Rank every id against one job, best final score first."""
        rankings = await asyncio.gather(*(self.rank(cid, job) for cid in candidate_ids))
        ordered = sorted(rankings, key=lambda r: r.final_score, reverse=True)
        if ordered:
            logger.info(
                "Ranked %d candidates for %s (top score %d)", len(ordered), job.target_role, ordered[0].final_score
            )
        return ordered
