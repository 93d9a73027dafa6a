"""
Core data types shared across the sourcing stages.

`HardSkillRequirementSet` and `MultiQueryStrategy` are created once per
sourcing run and read‑only afterwards.  `CandidateFingerprint` is the
cheap, unenriched record of one discovered profile URL and
`ScoredFingerprint` extends it with the predicted hard‑skill score.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple

DEFAULT_SKILL_BUDGET = 70
MIN_SKILLS = 4
MAX_SKILLS = 8


@dataclass(frozen=True)
class RoleContext:
    """The hiring need a sourcing run works from."""

    title: str
    need: str = ""
    industry: Optional[str] = None
    location: Optional[str] = None
    company_name: Optional[str] = None
    authority: str = ""
    pain: str = ""


@dataclass(frozen=True)
class HardSkillRequirementSet:
    """Weighted hard skills whose points add up to ``budget``.

    An empty set is valid and means "no skill‑weighted filtering
    available"; any non‑empty set must hold between 4 and 8 skills whose
    weights sum exactly to the budget.
    """

    weights: Mapping[str, int] = field(default_factory=dict)
    budget: int = DEFAULT_SKILL_BUDGET

    def __post_init__(self) -> None:
        frozen = MappingProxyType(dict(self.weights))
        object.__setattr__(self, "weights", frozen)
        if not frozen:
            return
        if not MIN_SKILLS <= len(frozen) <= MAX_SKILLS:
            raise ValueError(f"expected {MIN_SKILLS}-{MAX_SKILLS} skills, got {len(frozen)}")
        if any(not isinstance(points, int) or points <= 0 for points in frozen.values()):
            raise ValueError("skill weights must be positive integers")
        total = sum(frozen.values())
        if total != self.budget:
            raise ValueError(f"skill weights sum to {total}, expected {self.budget}")

    @classmethod
    def empty(cls, budget: int = DEFAULT_SKILL_BUDGET) -> "HardSkillRequirementSet":
        return cls({}, budget)

    @property
    def is_empty(self) -> bool:
        return not self.weights

    def ranked(self) -> List[Tuple[str, int]]:
        """Skills ordered by weight (descending), ties kept in insertion order."""
        return sorted(self.weights.items(), key=lambda item: item[1], reverse=True)

    def top(self, n: int) -> List[str]:
        return [skill for skill, _ in self.ranked()[:n]]

    def __len__(self) -> int:
        return len(self.weights)


@dataclass(frozen=True)
class MultiQueryStrategy:
    """Ordered multi‑query search plan for one sourcing run."""

    primary_queries: Tuple[str, ...]
    competitor_queries: Tuple[str, ...] = ()
    social_queries: Tuple[str, ...] = ()
    rationale: str = ""
    estimated_coverage: str = ""

    @property
    def total_queries(self) -> int:
        return len(self.primary_queries) + len(self.competitor_queries) + len(self.social_queries)

    def all_queries(self) -> List[str]:
        return [*self.primary_queries, *self.competitor_queries, *self.social_queries]


@dataclass
class CandidateFingerprint:
    """Lightweight record of a discovered profile; ``url`` is the unique key."""

    url: str
    name: str
    title: str
    company: str
    location: str
    snippet: str
    source_tag: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class QualityTier(str, Enum):
    """Quality bucket for a predicted score percentage."""

    ELITE = "elite"          # >= 85%
    EXCELLENT = "excellent"  # 75-84%
    GOOD = "good"            # 68-74%
    POOR = "poor"            # < 68%

    @classmethod
    def for_percentage(cls, percentage: int) -> "QualityTier":
        if percentage >= 85:
            return cls.ELITE
        if percentage >= 75:
            return cls.EXCELLENT
        if percentage >= 68:
            return cls.GOOD
        return cls.POOR


@dataclass
class ScoredFingerprint(CandidateFingerprint):
    """A fingerprint annotated with its predicted hard‑skill score."""

    predicted_score: float = 0.0
    predicted_percentage: int = 0
    confidence: str = "medium"
    matched_signals: frozenset = frozenset()
    rationale: str = ""

    @classmethod
    def from_fingerprint(cls, fingerprint: CandidateFingerprint, **scores) -> "ScoredFingerprint":
        base = {f.name: getattr(fingerprint, f.name) for f in fields(CandidateFingerprint)}
        return cls(**base, **scores)

    @property
    def tier(self) -> QualityTier:
        return QualityTier.for_percentage(self.predicted_percentage)
