"""
Input and output records of the ranking engine.

Candidates, companies and learned statistics are owned by the caller's
persistence layer; these dataclasses describe only the fields the
engine reads.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional


@dataclass
class PriorCompany:
    name: str
    tier: Optional[str] = None  # "Tier 1" .. "Tier 4"


@dataclass
class CandidateRecord:
    id: int
    current_title: str = ""
    current_company: str = ""
    career_summary: str = ""
    location: str = ""
    salary: Optional[float] = None
    skills: List[str] = field(default_factory=list)
    certifications: List[str] = field(default_factory=list)
    years_experience: Optional[float] = None
    prior_companies: List[PriorCompany] = field(default_factory=list)
    company_tier: Optional[str] = None


@dataclass
class CompanyRecord:
    id: int
    name: str
    industry: str = ""


@dataclass
class SalaryBand:
    min: Optional[float] = None
    max: Optional[float] = None


@dataclass
class CompanyLearning:
    """Placement history learned for a target company."""

    company_name: str
    success_rate: Optional[float] = None  # 0-100
    salary_bands: Dict[str, SalaryBand] = field(default_factory=dict)
    promotion_rate: Optional[float] = None  # 0-1


@dataclass
class CareerPathPattern:
    path: List[str]
    frequency: Optional[float] = None  # 0-1


@dataclass
class IndustryLearning:
    """Industry‑level patterns learned across searches."""

    industry: str
    career_paths: List[CareerPathPattern] = field(default_factory=list)
    salary_benchmarks: Dict[str, Dict[str, float]] = field(default_factory=dict)  # role -> {"p25", "p75"}
    geographic_hubs: Dict[str, float] = field(default_factory=dict)  # location -> weight 0-1
    regulatory_burden: Optional[str] = None  # "low" | "medium" | "high"
    tech_skill_requirement: Optional[float] = None  # 0-1


@dataclass
class CandidateLearning:
    """A career pattern observed across placed candidates."""

    pattern: str
    frequency_observed: float = 0.0


@dataclass
class JobContext:
    target_company_id: int
    target_role: str
    target_salary: Optional[float] = None
    target_location: Optional[str] = None
    job_id: Optional[int] = None


@dataclass
class ScoreBreakdown:
    prior_company_tier: int
    career_path: int
    compensation_fit: int
    geographic: int
    success_factor: int


@dataclass
class RankedCandidate:
    candidate_id: int
    final_score: int  # 0-100
    confidence_score: int  # 0-100
    breakdown: ScoreBreakdown
    reasoning: str

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)
