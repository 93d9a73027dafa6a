"""Tests for the multi‑query strategy generator."""

from __future__ import annotations

import asyncio
import json
import re

import pytest

from hireflow.errors import ProviderChainError
from hireflow.llm.chain import ProviderChain
from hireflow.schema import HardSkillRequirementSet, RoleContext
from hireflow.strategy.queries import (
    MAX_PRIMARY,
    MIN_PRIMARY,
    build_strategy,
    describe,
    enforce_primary_rules,
    generate_query_strategy,
    sanitize_query,
)

from .stubs import StubLLM

CFO_SKILLS = HardSkillRequirementSet({"M&A": 25, "Mandarin": 15, "PE fund": 15, "FP&A": 15})
CFO_ROLE = RoleContext(title="CFO", industry="Private Equity", location="Hong Kong", need="CFO for a PE-backed group")
BOOLEAN_TOKENS = re.compile(r"\b(?:AND|OR|NOT)\b|[()]")


def _payload(**overrides) -> str:
    payload = {
        "booleanQueries": [
            "CFO M&A Mandarin",
            "(CFO OR \"Chief Financial Officer\") AND M&A",
            "site:linkedin.com/in CFO PE fund Hong Kong",
            "VP Finance Mandarin",
        ],
        "competitorQueries": ["Hillhouse Capital CFO", "PAG CFO"],
        "xStrategies": ["from:PE_Asia CFO Mandarin", "CFO job posting Hong Kong"],
        "queryRationale": "Title plus the two heaviest skills",
        "estimatedCoverage": "70%",
    }
    payload.update(overrides)
    return json.dumps(payload)


def _assert_primary_rules(strategy, title: str, top_two) -> None:
    for query in strategy.primary_queries:
        assert not BOOLEAN_TOKENS.search(query), query
        assert "site:" not in query
        assert title.lower() in query.lower(), query
        assert any(skill.lower() in query.lower() for skill in top_two), query


def test_scenario_cfo_primary_queries() -> None:
    llm = StubLLM([_payload()])
    strategy = asyncio.run(generate_query_strategy(CFO_ROLE, CFO_SKILLS, ProviderChain([llm])))
    assert MIN_PRIMARY <= len(strategy.primary_queries) <= MAX_PRIMARY
    _assert_primary_rules(strategy, "CFO", CFO_SKILLS.top(2))
    assert len({q.lower() for q in strategy.primary_queries}) == len(strategy.primary_queries)
    assert strategy.competitor_queries == ("Hillhouse Capital CFO", "PAG CFO")
    assert 2 <= len(strategy.social_queries) <= 3
    assert strategy.rationale == "Title plus the two heaviest skills"


def test_sanitize_query() -> None:
    assert sanitize_query('(CFO OR "Chief Financial Officer") AND M&A') == "CFO Chief Financial Officer M&A"
    assert sanitize_query("site:linkedin.com/in CFO") == "CFO"


def test_enforce_primary_rules_adds_missing_terms() -> None:
    assert enforce_primary_rules("Mandarin PE fund", "CFO", ["M&A", "Mandarin"]) == "CFO Mandarin PE fund"
    assert enforce_primary_rules("VP Finance", "CFO", ["M&A", "Mandarin"]) == "CFO VP Finance M&A"
    assert enforce_primary_rules("AND OR", "CFO", ["M&A"]) == ""


def test_enforce_primary_rules_cleans_appended_labels() -> None:
    query = enforce_primary_rules(
        "Big4 audit",
        "Financial Controller (APAC)",
        ["CPA (Certified Public Accountant)", "IFRS"],
    )
    assert query == "Financial Controller APAC Big4 audit CPA Certified Public Accountant"
    assert not BOOLEAN_TOKENS.search(query)


def test_parenthesised_skill_labels_never_reach_primary_queries() -> None:
    skills = HardSkillRequirementSet(
        {"CPA (Certified Public Accountant)": 25, "IFRS": 20, "SAP": 15, "Treasury": 10}
    )
    role = RoleContext(title="Financial Controller", need="group reporting")
    payload = _payload(booleanQueries=["Financial Controller Big4 audit"])
    strategy = build_strategy(json.loads(payload), role, skills)
    assert "Financial Controller Big4 audit CPA Certified Public Accountant" in strategy.primary_queries
    for query in strategy.primary_queries:
        assert not BOOLEAN_TOKENS.search(query), query


def test_competitor_queries_need_context() -> None:
    role = RoleContext(title="CFO", need="finance lead")
    strategy = build_strategy(json.loads(_payload()), role, CFO_SKILLS)
    assert strategy.competitor_queries == ()


def test_social_queries_are_padded() -> None:
    strategy = build_strategy(json.loads(_payload(xStrategies=[])), CFO_ROLE, CFO_SKILLS)
    assert len(strategy.social_queries) == 2


def test_empty_skills_still_produce_title_queries() -> None:
    strategy = build_strategy(json.loads(_payload()), CFO_ROLE, HardSkillRequirementSet.empty())
    assert strategy.primary_queries
    assert all("cfo" in q.lower() for q in strategy.primary_queries)


def test_fallback_provider_is_used_once() -> None:
    primary = StubLLM([RuntimeError("503")], name="deepseek")
    fallback = StubLLM([_payload()], name="grok")
    strategy = asyncio.run(generate_query_strategy(CFO_ROLE, CFO_SKILLS, ProviderChain([primary, fallback])))
    assert strategy.primary_queries
    assert len(primary.prompts) == 1
    assert len(fallback.prompts) == 1
    assert primary.prompts == fallback.prompts


def test_unparseable_primary_triggers_fallback() -> None:
    primary = StubLLM(["sorry, I cannot help"], name="deepseek")
    fallback = StubLLM([_payload()], name="grok")
    strategy = asyncio.run(generate_query_strategy(CFO_ROLE, CFO_SKILLS, ProviderChain([primary, fallback])))
    assert strategy.total_queries > 0


def test_both_providers_failing_raises() -> None:
    chain = ProviderChain(
        [StubLLM([RuntimeError("down")], name="deepseek"), StubLLM([_payload(booleanQueries=[])], name="grok")],
        stage="query strategy",
    )
    with pytest.raises(ProviderChainError) as info:
        asyncio.run(generate_query_strategy(CFO_ROLE, CFO_SKILLS, chain))
    assert [name for name, _ in info.value.attempts] == ["deepseek", "grok"]
    assert "query strategy" in str(info.value)


def test_describe_lists_every_query() -> None:
    strategy = build_strategy(json.loads(_payload()), CFO_ROLE, CFO_SKILLS)
    text = describe(strategy)
    assert text.count("[primary]") == len(strategy.primary_queries)
    assert "[competitor] PAG CFO" in text
