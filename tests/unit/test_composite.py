import numpy as np
import pandas as pd
import pytest

from restodiag.config import default_config
from restodiag.guard import guard_record
from restodiag.kpi import derive_kpis
from restodiag.models import HealthLevel
from restodiag.scoring.composite import assign_level, insufficient_data_result, score_composite
from restodiag.scoring.penalties import evaluate_penalties, resilience_penalty


SCENARIO_A = {
    "monthly_revenue": 200000,
    "food_cost": 60000,
    "labor_cost": 50000,
    "rent_cost": 30000,
    "marketing_cost": 15000,
    "utility_cost": 8000,
}

BANDS = {HealthLevel.EXCELLENT, HealthLevel.GOOD, HealthLevel.WARNING, HealthLevel.DANGER}


def score(raw):
    config = default_config()
    record = guard_record(raw)
    kpis = derive_kpis(record, config.resolver().resolve(record.business_type), config)
    return score_composite(record, kpis, config.scoring)


def test_default_weights_sum_to_one():
    weights = default_config().scoring.weights()
    assert np.isclose(sum(weights.values()), 1.0, atol=0.01)
    assert len(weights) == 7


def test_scenario_a_lands_in_good_band():
    result = score(SCENARIO_A)
    assert result.level is HealthLevel.GOOD
    assert 65 <= result.score < 80
    assert result.score == 68
    assert result.penalty == 0.0
    assert result.indicators["cost_rate"] == pytest.approx(0.815)
    assert result.normalized["cost_rate"] == pytest.approx(72.0)
    assert result.normalized["net_margin"] == pytest.approx(80 + 0.035 / 0.15 * 20)
    assert result.description


def test_scenario_a_factor_ranking():
    result = score(SCENARIO_A)
    assert [f.name for f in result.top_factors] == ["net_margin", "cost_rate"]
    # Both indicators score zero; the later one in config order is reported first
    assert [f.name for f in result.bottom_factors] == ["price_volatility", "online_boost"]


def test_scenario_b_zero_revenue_is_insufficient_data():
    result = score({**SCENARIO_A, "monthly_revenue": 0})
    assert result == insufficient_data_result()
    assert result.score == 0
    assert result.level is HealthLevel.INSUFFICIENT_DATA
    assert result.is_insufficient


def test_missing_kpis_is_insufficient_data():
    config = default_config()
    assert score_composite(guard_record(SCENARIO_A), None, config.scoring).is_insufficient
    assert score_composite(None, None, config.scoring).is_insufficient


@pytest.mark.parametrize(
    "raw",
    [
        {"monthly_revenue": 1},
        {"monthly_revenue": 100000, "food_cost": 90000, "labor_cost": 60000},
        {"monthly_revenue": 500000, "food_cost": 100000, "online_revenue": 200000, "store_area": 60, "labor_cost": 80000, "total_customers": 10000},
        {"monthly_revenue": "1e12"},
        {"monthly_revenue": 50000, "food_cost": -10000},
    ],
)
def test_score_is_bounded_with_defined_level(raw):
    result = score(raw)
    assert 0 <= result.score <= 100
    assert result.level in BANDS
    assert all(0.0 <= v <= 100.0 for v in result.normalized.values())


def test_loss_making_store_is_penalised_into_danger():
    result = score({"monthly_revenue": 100000, "food_cost": 45000, "labor_cost": 35000, "rent_cost": 15000, "utility_cost": 3000})
    names = [p["rule"] for p in result.penalty_breakdown]
    assert names == ["thin_net_margin", "cost_rate_over_85pct"]
    assert result.penalty == 20
    assert result.level is HealthLevel.DANGER


def test_assign_level_boundaries():
    levels = default_config().scoring.levels
    assert assign_level(80, levels).level is HealthLevel.EXCELLENT
    assert assign_level(79, levels).level is HealthLevel.GOOD
    assert assign_level(65, levels).level is HealthLevel.GOOD
    assert assign_level(50, levels).level is HealthLevel.WARNING
    assert assign_level(49, levels).level is HealthLevel.DANGER
    assert assign_level(0, levels).level is HealthLevel.DANGER


def test_evaluate_penalties_with_dict_rules():
    df = pd.DataFrame([{"net_margin": 0.01, "cost_rate": 0.99}, {"net_margin": 0.2, "cost_rate": 0.8}])
    rules = [
        {"name": "thin", "when": "net_margin < 0.05", "apply": 10},
        {"name": "broken", "when": "no_such_column > 1", "apply": 99},
        {"name": "empty", "when": "", "apply": 5},
    ]
    total, breakdown = evaluate_penalties(df, rules)
    assert total.tolist() == [10.0, 0.0]
    assert breakdown.iloc[0] == [{"rule": "thin", "penalty": 10.0}]
    assert breakdown.iloc[1] == []


def test_evaluate_penalties_without_rules():
    df = pd.DataFrame([{"net_margin": 0.01}])
    total, breakdown = evaluate_penalties(df, [])
    assert total.iloc[0] == 0.0
    assert breakdown.iloc[0] == []


@pytest.mark.parametrize(
    "months, expected",
    [(0, 0.0), (-2, 0.0), (-3, 5.0), (-4, 10.0), (-10, 15.0)],
)
def test_resilience_penalty_is_scaled_and_capped(months, expected):
    assert resilience_penalty(months, threshold=-2, points_per_month=5, cap=15) == expected
