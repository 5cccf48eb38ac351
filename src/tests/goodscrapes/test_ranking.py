#!/usr/bin/env python3
"""
Tests for similarity metrics and member ranking
"""

import pytest

from goodscrapes.models import User
from goodscrapes.ranking import (
    Match,
    build_match,
    commonality_percent,
    match_score,
    rank_matches,
    ratio_half_up,
    select_candidates,
)


class TestMetrics:
    def test_ratio_half_up(self):
        assert ratio_half_up(5, 2, 1) == 3
        assert ratio_half_up(7, 2, 1) == 4
        assert ratio_half_up(249, 100, 1) == 2

    def test_commonality_and_match_example(self):
        """5 of 100 target authors, 500-book library: 5% and a score of 10."""
        assert commonality_percent(5, 100) == 5
        assert match_score(5, 500) == 10

    def test_commonality_rounds_half_up(self):
        assert commonality_percent(1, 8) == 13  # 12.5
        assert commonality_percent(29, 200) == 15  # 14.5
        assert commonality_percent(7, 40) == 18  # 17.5

    def test_match_rounds_exact_halves_up(self):
        assert match_score(1, 16) == 63  # 62.5
        assert match_score(29, 20000) == 1  # 1.45
        assert match_score(3, 2000) == 2  # 1.5
        assert commonality_percent(1, 3) == 33

    def test_commonality_with_no_target_authors(self):
        assert commonality_percent(3, 0) == 0

    @pytest.mark.parametrize("library_size", [0, None, -1])
    def test_match_not_comparable_without_library(self, library_size):
        assert match_score(5, library_size) is None


class TestSelectCandidates:
    def test_filters_by_minimum_and_excludes_target(self):
        authors_read_by = {
            "target": {"a", "b", "c", "d"},
            "close": {"a", "b"},
            "far": {"a"},
            "none": set(),
        }

        selected = select_candidates(authors_read_by, 4, 30, exclude_user_id="target")

        assert selected == {"close": {"a", "b"}}

    def test_zero_minimum_keeps_everyone_but_target(self):
        selected = select_candidates({"t": {"a"}, "u": set()}, 1, 0, exclude_user_id="t")

        assert list(selected) == ["u"]


class TestBuildMatch:
    def test_scores_public_member(self):
        user = User(id="9", num_books=500, is_private=False)

        match = build_match(user, {str(n) for n in range(5)}, 100)

        assert match.commonality == 5
        assert match.score == 10
        assert match.common_count == 5

    def test_empty_library_excluded(self):
        """A member with an empty library is dropped without dividing by zero."""
        assert build_match(User(id="9", num_books=0), {"a"}, 10) is None

    def test_unknown_library_excluded(self):
        assert build_match(User(id="9"), {"a"}, 10) is None

    def test_private_member_excluded(self):
        assert build_match(User(id="9", num_books=100, is_private=True), {"a"}, 10) is None


def test_rank_matches_orders_by_score_then_common_then_id():
    matches = [
        Match(User(id="b"), {"x"}, score=10),
        Match(User(id="a"), {"x"}, score=10),
        Match(User(id="c"), {"x", "y"}, score=10),
        Match(User(id="d"), {"x"}, score=50),
    ]

    ranked = rank_matches(matches)

    assert [m.user.id for m in ranked] == ["d", "c", "a", "b"]
