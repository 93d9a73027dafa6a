"""Tests for batch snippet scoring."""

from __future__ import annotations

import asyncio
import json

import pytest

from hireflow.errors import BatchParseError
from hireflow.schema import CandidateFingerprint, HardSkillRequirementSet, QualityTier
from hireflow.score.llm_schema import parse_batch_scores
from hireflow.score.snippets import MAX_BATCH, predicted_percentage, score_snippets
from hireflow.utils import round_half_up

from .stubs import StubLLM, batch_prompt_ids, scores_for

SKILLS = HardSkillRequirementSet({"M&A": 25, "Mandarin": 15, "PE fund": 15, "FP&A": 15})


def _fingerprints(n: int):
    return [
        CandidateFingerprint(
            url=f"https://www.linkedin.com/in/c{i}",
            name=f"Candidate {i}",
            title="CFO",
            company="Acme",
            location="Hong Kong",
            snippet="M&A and PE fund experience",
            source_tag="CFO M&A",
        )
        for i in range(n)
    ]


def test_every_fingerprint_is_returned_with_its_tier() -> None:
    points = [70, 60, 58, 53, 48, 50, 0, 90, -3]
    llm = StubLLM([scores_for(lambda i: points[i])])
    result = asyncio.run(score_snippets(_fingerprints(len(points)), SKILLS, llm))

    assert result.total_evaluated == len(points)
    assert len(llm.prompts) == 1
    for fp in result.scored_fingerprints:
        assert 0 <= fp.predicted_score <= 70
        assert fp.predicted_percentage == round_half_up(fp.predicted_score / 70 * 100)
        assert fp.tier is QualityTier.for_percentage(fp.predicted_percentage)
    tiers = [fp.tier for fp in result.scored_fingerprints]
    assert tiers[:6] == [
        QualityTier.ELITE,
        QualityTier.ELITE,
        QualityTier.EXCELLENT,
        QualityTier.EXCELLENT,
        QualityTier.GOOD,
        QualityTier.GOOD,
    ]
    assert result.scored_fingerprints[7].predicted_score == 70
    assert result.scored_fingerprints[8].predicted_score == 0
    assert sum(result.quality_distribution.values()) == len(points)
    assert result.passed + result.filtered == result.total_evaluated
    assert result.passed == 7
    assert result.estimated_cost == pytest.approx(0.08)


def test_scored_fingerprint_keeps_source_fields() -> None:
    llm = StubLLM([scores_for(lambda i: 50)])
    [scored] = asyncio.run(score_snippets(_fingerprints(1), SKILLS, llm)).scored_fingerprints
    assert scored.url == "https://www.linkedin.com/in/c0"
    assert scored.source_tag == "CFO M&A"
    assert scored.matched_signals == frozenset({"M&A"})
    assert scored.confidence == "high"


def test_prompt_lists_skills_and_every_candidate() -> None:
    llm = StubLLM([scores_for(lambda i: 35)])
    asyncio.run(score_snippets(_fingerprints(4), SKILLS, llm))
    prompt = llm.prompts[0]
    assert "M&A: 25 points" in prompt
    assert batch_prompt_ids(prompt) == [0, 1, 2, 3]


def test_wrapped_response_is_accepted() -> None:
    wrapped = json.dumps({"scores": [{"id": 1, "score": 30}, {"id": 0, "predictedScore": 10, "confidence": "HIGH"}]})
    scores = parse_batch_scores(wrapped, 2)
    assert [s.id for s in scores] == [0, 1]
    assert scores[0].confidence == "high"
    assert scores[1].predicted_score == 30


@pytest.mark.parametrize(
    "content",
    [
        "",
        "I could not score these candidates",
        json.dumps({"verdict": "ok"}),
        json.dumps([{"id": 0, "predictedScore": 40}]),
        json.dumps([{"id": 0, "predictedScore": 40}, {"id": 0, "predictedScore": 40}]),
        json.dumps([{"id": 0, "predictedScore": "lots"}, {"id": 1, "predictedScore": 40}]),
        '[{"id": 0, "predictedScore": NaN}, {"id": 1, "predictedScore": 40}]',
        '[{"id": 0, "predictedScore": Infinity}, {"id": 1, "predictedScore": 40}]',
    ],
)
def test_unparseable_batch_fails_whole_call(content: str) -> None:
    llm = StubLLM([content])
    with pytest.raises(BatchParseError) as info:
        asyncio.run(score_snippets(_fingerprints(2), SKILLS, llm))
    assert info.value.stage == "snippet scoring"


def test_batch_limits() -> None:
    llm = StubLLM([scores_for(lambda i: 0)])
    with pytest.raises(ValueError):
        asyncio.run(score_snippets(_fingerprints(MAX_BATCH + 1), SKILLS, llm))
    with pytest.raises(ValueError):
        asyncio.run(score_snippets(_fingerprints(2), HardSkillRequirementSet.empty(), llm))
    assert llm.prompts == []
    empty = asyncio.run(score_snippets([], SKILLS, llm))
    assert empty.total_evaluated == 0
    assert empty.estimated_cost == 0.0


def test_predicted_percentage_rounds_half_up() -> None:
    # 3 / 8 = 37.5%, 1 / 16 = 6.25%
    assert predicted_percentage(3, 8) == 38
    assert predicted_percentage(1, 16) == 6
    assert predicted_percentage(60, 70) == 86
