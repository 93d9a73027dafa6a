"""
Ranking subsystem.

`CandidateRankingEngine` scores an enriched candidate against a job and
company context.  Five sub‑scores are combined with fixed weights:

* prior company tier – 40%
* career path fit – 25%
* compensation fit – 20%
* geographic fit – 10%
* success factors – 5%

Learned statistics (company history, industry career paths, candidate
patterns) refine the sub‑scores when a data source provides them; each
sub‑score falls back to a neutral value when they are absent.
"""

from .records import (  # noqa: F401
    CandidateLearning,
    CandidateRecord,
    CareerPathPattern,
    CompanyLearning,
    CompanyRecord,
    IndustryLearning,
    JobContext,
    PriorCompany,
    RankedCandidate,
    SalaryBand,
    ScoreBreakdown,
)
from .store import InMemoryRankingStore, RankingDataSource  # noqa: F401
from .engine import CandidateRankingEngine, null_ranking  # noqa: F401
