"""Tests for the shared helpers."""

from __future__ import annotations

import pytest

from hireflow.utils import canonical_profile_url, is_profile_url, load_json_payload, round_half_up


@pytest.mark.parametrize(
    "value, expected",
    [(0.5, 1), (1.5, 2), (2.5, 3), (84.49, 84), (84.5, 85), (0, 0)],
)
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected


def test_canonical_profile_url_collapses_variants() -> None:
    variants = [
        "https://www.linkedin.com/in/jane-doe",
        "https://www.linkedin.com/in/jane-doe/",
        "https://www.linkedin.com/in/jane-doe?trk=public",
        "https://WWW.LinkedIn.com/in/jane-doe/#about",
    ]
    assert {canonical_profile_url(url) for url in variants} == {"https://www.linkedin.com/in/jane-doe"}


def test_is_profile_url() -> None:
    assert is_profile_url("https://hk.linkedin.com/in/jane-doe")
    assert is_profile_url("https://linkedin.com/in/jane-doe/")
    assert not is_profile_url("https://www.linkedin.com/company/acme")
    assert not is_profile_url("https://www.linkedin.com/in/")
    assert not is_profile_url("https://notlinkedin.com/in/jane")
    assert not is_profile_url("")


def test_load_json_payload_strips_fence() -> None:
    assert load_json_payload('```json\n[{"id": 0}]\n```') == [{"id": 0}]
    with pytest.raises(ValueError):
        load_json_payload("   ")
    with pytest.raises(ValueError):
        load_json_payload("not json")
