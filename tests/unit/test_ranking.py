import pytest

from restodiag.scoring.ranking import rank_factors


def test_top_and_bottom_two():
    normalized = {"a": 100.0, "b": 50.0, "c": 80.0, "d": 10.0}
    weights = {"a": 0.1, "b": 0.4, "c": 0.3, "d": 0.2}
    ranking = rank_factors(normalized, weights)
    # impacts: a=10, b=20, c=24, d=2
    assert [f.name for f in ranking.ranked] == ["c", "b", "a", "d"]
    assert [f.name for f in ranking.top] == ["c", "b"]
    assert [f.name for f in ranking.bottom] == ["d", "a"]
    assert ranking.top[0].impact == pytest.approx(24.0)


def test_ties_keep_evaluation_order():
    normalized = {"first": 50.0, "second": 50.0, "third": 50.0}
    weights = {"first": 0.2, "second": 0.2, "third": 0.2}
    ranking = rank_factors(normalized, weights)
    assert [f.name for f in ranking.ranked] == ["first", "second", "third"]
    assert [f.name for f in ranking.bottom] == ["third", "second"]


def test_empty_input():
    ranking = rank_factors({}, {})
    assert ranking.top == () and ranking.bottom == ()


def test_single_indicator():
    ranking = rank_factors({"only": 70.0}, {"only": 1.0})
    assert [f.name for f in ranking.top] == ["only"]
    assert [f.name for f in ranking.bottom] == ["only"]
