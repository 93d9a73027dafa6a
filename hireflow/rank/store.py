"""
Data access for the ranking engine.

The engine reads through the `RankingDataSource` protocol so any
persistence layer can back it.  `InMemoryRankingStore` is a dictionary
backed implementation used by batch jobs that already hold the records
and by the test suite.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Protocol

from .records import (
    CandidateLearning,
    CandidateRecord,
    CompanyLearning,
    CompanyRecord,
    IndustryLearning,
)


class RankingDataSource(Protocol):
    async def get_candidate(self, candidate_id: int) -> Optional[CandidateRecord]: ...

    async def get_company(self, company_id: int) -> Optional[CompanyRecord]: ...

    async def get_company_learning(self, company_name: str) -> Optional[CompanyLearning]: ...

    async def get_industry_learning(self, industry: str) -> Optional[IndustryLearning]: ...

    async def list_candidate_learning(self, limit: int = 100) -> List[CandidateLearning]: ...


class InMemoryRankingStore:
    """`RankingDataSource` over plain dictionaries."""

    def __init__(
        self,
        candidates: Iterable[CandidateRecord] = (),
        companies: Iterable[CompanyRecord] = (),
        company_learning: Iterable[CompanyLearning] = (),
        industry_learning: Iterable[IndustryLearning] = (),
        candidate_learning: Iterable[CandidateLearning] = (),
    ) -> None:
        self.candidates: Dict[int, CandidateRecord] = {c.id: c for c in candidates}
        self.companies: Dict[int, CompanyRecord] = {c.id: c for c in companies}
        self.company_learning: Dict[str, CompanyLearning] = {c.company_name.lower(): c for c in company_learning}
        self.industry_learning: Dict[str, IndustryLearning] = {i.industry.lower(): i for i in industry_learning}
        self.candidate_learning: List[CandidateLearning] = list(candidate_learning)

    async def get_candidate(self, candidate_id: int) -> Optional[CandidateRecord]:
        return self.candidates.get(candidate_id)

    async def get_company(self, company_id: int) -> Optional[CompanyRecord]:
        return self.companies.get(company_id)

    async def get_company_learning(self, company_name: str) -> Optional[CompanyLearning]:
        return self.company_learning.get(company_name.lower())

    async def get_industry_learning(self, industry: str) -> Optional[IndustryLearning]:
        return self.industry_learning.get(industry.lower())

    async def list_candidate_learning(self, limit: int = 100) -> List[CandidateLearning]:
        return self.candidate_learning[:limit]
