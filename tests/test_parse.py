"""Tests for result title parsing."""

from __future__ import annotations

import unittest

from hireflow.collect.parse import NO_TITLE, UNKNOWN, parse_result_title


class TestParseResultTitle(unittest.TestCase):
    def test_three_part_title(self) -> None:
        parsed = parse_result_title("Jane Doe – Chief Financial Officer – Acme Capital | LinkedIn")
        self.assertEqual(parsed.name, "Jane Doe")
        self.assertEqual(parsed.title, "Chief Financial Officer")
        self.assertEqual(parsed.company, "Acme Capital")

    def test_title_with_at(self) -> None:
        parsed = parse_result_title("Wei Zhang - CFO at Hillhouse Capital - LinkedIn")
        self.assertEqual((parsed.title, parsed.company), ("CFO", "Hillhouse Capital"))

    def test_hyphenated_name_is_kept(self) -> None:
        parsed = parse_result_title("Jean-Luc Picard - Captain - Starfleet")
        self.assertEqual(parsed.name, "Jean-Luc Picard")

    def test_name_only(self) -> None:
        parsed = parse_result_title("Jane Doe | LinkedIn")
        self.assertEqual(parsed, ("Jane Doe", NO_TITLE, UNKNOWN))

    def test_empty(self) -> None:
        self.assertEqual(parse_result_title(""), (UNKNOWN, NO_TITLE, UNKNOWN))


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
