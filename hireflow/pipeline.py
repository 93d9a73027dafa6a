"""
Cost‑bounded sourcing run.

`SourcingPipeline` ties the cheap stages of a run together and repeats
them until a stopping condition is reached:

1. hard skills are extracted once (unless supplied) and a multi‑query
   strategy is generated for every iteration;
2. primary queries are fingerprinted with a full fan‑out, competitor
   queries go through the batched targeted executor; URLs already seen
   in an earlier iteration are skipped;
3. the new fingerprints are scored in one batch call and split into an
   enrichment plan (elite, warm, clue, rejected).

Full‑profile enrichment is left to the caller.  Its projected cost is
part of every budget check so a run never plans more enrichment than it
can pay for.  Social‑signal queries are returned on the strategy but
not executed here, since they target a different network.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set

from .collect.fingerprints import QueryOutcome, collect_fingerprints
from .collect.search import SearchProvider
from .collect.targeted import execute_targeted_queries, merge_url_sources
from .config import Settings, build_scoring_provider, build_search_provider, build_strategy_chain
from .llm.chain import ProviderChain
from .llm.providers import LLMProvider
from .schema import (
    CandidateFingerprint,
    HardSkillRequirementSet,
    MultiQueryStrategy,
    RoleContext,
    ScoredFingerprint,
)
from .score.snippets import MAX_BATCH, score_snippets
from .strategy.queries import describe, generate_query_strategy
from .strategy.skills import extract_hard_skills

logger = logging.getLogger(__name__)

ELITE_MIN = 85
WARM_MIN = 68
CLUE_MIN = 60


@dataclass(frozen=True)
class DepthPreset:
    target_quality_count: int
    min_quality_percentage: int
    max_budget_usd: float
    max_iterations: int


STANDARD_DEPTH = DepthPreset(25, 76, 129.0, 3)

SEARCH_DEPTHS: Dict[str, DepthPreset] = {
    "elite_8": DepthPreset(8, 88, 149.0, 3),
    "elite_15": DepthPreset(15, 84, 199.0, 4),
    "standard_25": STANDARD_DEPTH,
    "deep_60": DepthPreset(60, 66, 149.0, 5),
    "market_scan": DepthPreset(150, 58, 179.0, 10),
}
# older preset names still sent by existing clients
SEARCH_DEPTHS.update(
    {
        "8_elite": SEARCH_DEPTHS["elite_8"],
        "20_standard": SEARCH_DEPTHS["standard_25"],
        "50_at_60": SEARCH_DEPTHS["deep_60"],
        "100_plus": SEARCH_DEPTHS["market_scan"],
    }
)


def depth_preset(name: Optional[str]) -> DepthPreset:
    """Preset for a search depth name; unknown names get the standard preset."""
    preset = SEARCH_DEPTHS.get((name or "").strip().lower())
    if preset is None:
        logger.warning("Unknown search depth %r, using standard_25", name)
        return STANDARD_DEPTH
    return preset


class StoppingReason(str, Enum):
    QUOTA_MET = "quota_met"
    BUDGET_EXCEEDED = "budget_exceeded"
    MAX_ITERATIONS = "max_iterations"
    MARKET_EXHAUSTED = "market_exhausted"


@dataclass
class SourcingRunConfig:
    """Parameters of one sourcing run."""

    role: RoleContext
    target_quality_count: int = STANDARD_DEPTH.target_quality_count
    min_quality_percentage: int = STANDARD_DEPTH.min_quality_percentage
    max_budget_usd: float = STANDARD_DEPTH.max_budget_usd
    max_iterations: int = STANDARD_DEPTH.max_iterations
    hard_skills: Optional[HardSkillRequirementSet] = None
    results_per_query: int = 50
    max_fingerprints_per_iteration: int = MAX_BATCH
    # targeted executor settings for competitor queries
    targeted_batch_size: int = 3
    targeted_delay: float = 2.0
    priority_signals: Sequence[str] = ()
    required_keywords: Sequence[str] = ()

    @classmethod
    def from_depth(cls, role: RoleContext, depth: Optional[str], **overrides) -> "SourcingRunConfig":
        preset = depth_preset(depth)
        values = dict(
            target_quality_count=preset.target_quality_count,
            min_quality_percentage=preset.min_quality_percentage,
            max_budget_usd=preset.max_budget_usd,
            max_iterations=preset.max_iterations,
        )
        values.update(overrides)
        return cls(role=role, **values)


@dataclass
class PhaseCosts:
    """Spend per phase in USD; enrichment is projected, not spent."""

    query_generation: float = 0.0
    fingerprinting: float = 0.0
    scoring: float = 0.0
    enrichment_projected: float = 0.0

    @property
    def spent(self) -> float:
        return round(self.query_generation + self.fingerprinting + self.scoring, 6)

    @property
    def committed(self) -> float:
        return round(self.spent + self.enrichment_projected, 6)


@dataclass
class EnrichmentPlan:
    """Scored fingerprints grouped by what the caller should do with them.

    * elite (>= 85%) and warm (68-84%) are worth a full‑profile enrichment;
    * clues (60-67%) are kept as fingerprint‑only records;
    * everything below 60% is rejected.
    """

    elite: List[ScoredFingerprint] = field(default_factory=list)
    warm: List[ScoredFingerprint] = field(default_factory=list)
    clues: List[ScoredFingerprint] = field(default_factory=list)
    rejected: List[ScoredFingerprint] = field(default_factory=list)

    @classmethod
    def from_scored(cls, scored: Sequence[ScoredFingerprint]) -> "EnrichmentPlan":
        plan = cls()
        plan.add(scored)
        return plan

    def add(self, scored: Sequence[ScoredFingerprint]) -> None:
        for fp in scored:
            if fp.predicted_percentage >= ELITE_MIN:
                self.elite.append(fp)
            elif fp.predicted_percentage >= WARM_MIN:
                self.warm.append(fp)
            elif fp.predicted_percentage >= CLUE_MIN:
                self.clues.append(fp)
            else:
                self.rejected.append(fp)

    @property
    def to_enrich(self) -> List[ScoredFingerprint]:
        return [*self.elite, *self.warm]

    def projected_cost(self, cost_per_profile: float) -> float:
        return round(len(self.to_enrich) * cost_per_profile, 6)

    def counts(self) -> Dict[str, int]:
        return {
            "elite": len(self.elite),
            "warm": len(self.warm),
            "clues": len(self.clues),
            "rejected": len(self.rejected),
        }


@dataclass
class SourcingRunResult:
    hard_skills: HardSkillRequirementSet
    strategies: List[MultiQueryStrategy] = field(default_factory=list)
    fingerprints: List[CandidateFingerprint] = field(default_factory=list)
    scored: List[ScoredFingerprint] = field(default_factory=list)
    plan: EnrichmentPlan = field(default_factory=EnrichmentPlan)
    costs: PhaseCosts = field(default_factory=PhaseCosts)
    provenance: Dict[str, str] = field(default_factory=dict)
    query_errors: List[QueryOutcome] = field(default_factory=list)
    iterations: int = 0
    stopping_reason: StoppingReason = StoppingReason.MARKET_EXHAUSTED

    @property
    def unscored(self) -> List[CandidateFingerprint]:
        """Fingerprints kept without a score (no skill requirements available)."""
        scored_urls = {fp.url for fp in self.scored}
        return [fp for fp in self.fingerprints if fp.url not in scored_urls]

    def quality_count(self, min_percentage: int) -> int:
        if self.hard_skills.is_empty:
            return len(self.fingerprints)
        return sum(1 for fp in self.scored if fp.predicted_percentage >= min_percentage)


class SourcingPipeline:
    """Runs generate → collect → score iterations under a budget."""

    def __init__(
        self,
        search: SearchProvider,
        strategy_chain: ProviderChain,
        scoring_provider: LLMProvider,
        settings: Optional[Settings] = None,
    ) -> None:
        self.search = search
        self.strategy_chain = strategy_chain
        self.scoring_provider = scoring_provider
        self.settings = settings or Settings()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SourcingPipeline":
        """Build every collaborator up front; missing credentials raise here."""
        return cls(
            build_search_provider(settings),
            build_strategy_chain(settings),
            build_scoring_provider(settings),
            settings,
        )

    def _over_budget(self, result: SourcingRunResult, config: SourcingRunConfig, phase: str) -> bool:
        committed = result.costs.committed
        if committed >= config.max_budget_usd:
            logger.warning(
                "Budget exceeded after %s: $%.2f >= $%.2f", phase, committed, config.max_budget_usd
            )
            return True
        return False

    async def _discover(
        self,
        strategy: MultiQueryStrategy,
        config: SourcingRunConfig,
        executed: Set[str],
        result: SourcingRunResult,
    ) -> List[CandidateFingerprint]:
        settings = self.settings
        primary = [q for q in strategy.primary_queries if q.lower() not in executed]
        competitor = [q for q in strategy.competitor_queries if q.lower() not in executed]
        executed.update(q.lower() for q in [*primary, *competitor])

        sources: Dict[str, List[str]] = {}
        found: Dict[str, CandidateFingerprint] = {}
        if primary:
            batch = await collect_fingerprints(
                primary,
                self.search,
                location=config.role.location,
                results_per_query=config.results_per_query,
                cost_per_call=settings.search_cost_per_call,
                profile_path=settings.site_filter,
            )
            result.costs.fingerprinting += batch.estimated_cost
            result.query_errors.extend(batch.failed_queries)
            sources["primary"] = [fp.url for fp in batch.fingerprints]
            for fp in batch.fingerprints:
                found.setdefault(fp.url, fp)
        if competitor:
            targeted = await execute_targeted_queries(
                competitor,
                self.search,
                batch_size=config.targeted_batch_size,
                delay_between_batches=config.targeted_delay,
                priority_signals=config.priority_signals,
                required_keywords=config.required_keywords,
                location=config.role.location,
                cost_per_call=settings.search_cost_per_call,
                profile_path=settings.site_filter,
            )
            result.costs.fingerprinting += targeted.summary.estimated_cost
            result.query_errors.extend(
                QueryOutcome(index=i, query=r.query, error=r.error)
                for i, r in enumerate(targeted.summary.query_results)
                if r.error
            )
            sources["competitor"] = targeted.urls
            for fp in targeted.fingerprints:
                found.setdefault(fp.url, fp)

        merged = merge_url_sources(sources)
        fresh = [url for url in merged.urls if url not in result.provenance]
        for url in fresh:
            result.provenance[url] = merged.provenance[url]
        return [found[url] for url in fresh]

    async def run(self, config: SourcingRunConfig) -> SourcingRunResult:
        """Execute a sourcing run.

        Raises:
            ProviderChainError: If query strategy generation fails on
                every provider.
            BatchParseError: If a batch scoring response is unusable.
        """
        settings = self.settings
        role = config.role
        logger.info(
            "Sourcing run for %s: target %d at >= %d%%, budget $%.2f, max %d iterations",
            role.title,
            config.target_quality_count,
            config.min_quality_percentage,
            config.max_budget_usd,
            config.max_iterations,
        )
        skills = config.hard_skills
        if skills is None:
            skills = await extract_hard_skills(role, self.strategy_chain, budget=settings.skill_budget)
        if skills.is_empty:
            logger.warning("No hard skill requirements for %s; fingerprints will not be scored", role.title)
        result = SourcingRunResult(hard_skills=skills)
        executed: Set[str] = set()

        while result.iterations < config.max_iterations:
            result.iterations += 1
            logger.info("Iteration %d/%d", result.iterations, config.max_iterations)

            strategy = await generate_query_strategy(role, skills, self.strategy_chain)
            result.strategies.append(strategy)
            result.costs.query_generation += settings.query_generation_cost
            logger.debug("Query strategy:\n%s", describe(strategy))
            if self._over_budget(result, config, "query generation"):
                result.stopping_reason = StoppingReason.BUDGET_EXCEEDED
                break

            fresh = await self._discover(strategy, config, executed, result)
            if self._over_budget(result, config, "fingerprinting"):
                result.stopping_reason = StoppingReason.BUDGET_EXCEEDED
                break
            if not fresh:
                logger.info("No new profiles found; market exhausted")
                result.stopping_reason = StoppingReason.MARKET_EXHAUSTED
                break
            if len(fresh) > config.max_fingerprints_per_iteration:
                logger.warning(
                    "Scoring the first %d of %d new fingerprints",
                    config.max_fingerprints_per_iteration,
                    len(fresh),
                )
                for fp in fresh[config.max_fingerprints_per_iteration:]:
                    result.provenance.pop(fp.url, None)
                fresh = fresh[:config.max_fingerprints_per_iteration]
            result.fingerprints.extend(fresh)

            if not skills.is_empty:
                scoring = await score_snippets(
                    fresh,
                    skills,
                    self.scoring_provider,
                    min_percentage=config.min_quality_percentage,
                    call_cost=settings.scoring_call_cost,
                )
                result.costs.scoring += scoring.estimated_cost
                result.scored.extend(scoring.scored_fingerprints)
                result.plan.add(scoring.scored_fingerprints)
                result.costs.enrichment_projected = result.plan.projected_cost(
                    settings.enrichment_cost_per_profile
                )
                logger.info("Enrichment plan so far: %s", result.plan.counts())
                if self._over_budget(result, config, "scoring"):
                    result.stopping_reason = StoppingReason.BUDGET_EXCEEDED
                    break

            found = result.quality_count(config.min_quality_percentage)
            logger.info(
                "Progress: %d/%d quality candidates, $%.2f committed of $%.2f",
                found,
                config.target_quality_count,
                result.costs.committed,
                config.max_budget_usd,
            )
            if found >= config.target_quality_count:
                result.stopping_reason = StoppingReason.QUOTA_MET
                break
            if result.iterations >= config.max_iterations:
                result.stopping_reason = StoppingReason.MAX_ITERATIONS
                break

        logger.info(
            "Sourcing run finished after %d iteration(s): %s, %d fingerprints, spent $%.3f",
            result.iterations,
            result.stopping_reason.value,
            len(result.fingerprints),
            result.costs.spent,
        )
        return result
