"""Tests for responsive / hot thread classification."""

import pytest

from threadsmith.domain.errors import RangeError
from threadsmith.domain.types import ThreadRelevance
from threadsmith.relevance.classifier import evaluate_thread_relevance, get_thread_odds


class TestGetThreadOdds:
    def test_odds_are_probabilities(self) -> None:
        responsive, hot = get_thread_odds(10)
        assert 0.0 < hot <= responsive < 1.0

    def test_odds_grow_with_thread_length(self) -> None:
        previous = get_thread_odds(1)
        for count in range(2, 60):
            current = get_thread_odds(count)
            assert current[0] >= previous[0]
            assert current[1] >= previous[1]
            previous = current

    @pytest.mark.parametrize("count", [0, -1])
    def test_non_positive_count_rejected(self, count: int) -> None:
        with pytest.raises(RangeError):
            get_thread_odds(count)


class TestEvaluateThreadRelevance:
    def test_high_rolls_are_non_responsive(self) -> None:
        assert evaluate_thread_relevance(3, 1.0, 1.0) == (ThreadRelevance.NON_RESPONSIVE, False)

    def test_low_responsive_roll(self) -> None:
        assert evaluate_thread_relevance(3, 0.0, 1.0) == (ThreadRelevance.RESPONSIVE, False)

    def test_hot_implies_responsive(self) -> None:
        relevance, is_hot = evaluate_thread_relevance(3, 1.0, 0.0)
        assert is_hot is True
        assert relevance == ThreadRelevance.RESPONSIVE

    @pytest.mark.parametrize(
        ("responsive_roll", "hot_roll"),
        [(-0.1, 0.5), (0.5, 1.5)],
        ids=["responsive-below-zero", "hot-above-one"],
    )
    def test_roll_out_of_range(self, responsive_roll: float, hot_roll: float) -> None:
        with pytest.raises(RangeError):
            evaluate_thread_relevance(3, responsive_roll, hot_roll)
