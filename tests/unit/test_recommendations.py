import pytest

from restodiag.config import RuleConfig, default_config
from restodiag.guard import guard_record
from restodiag.kpi import derive_kpis
from restodiag.recommendations import build_rule_metrics, suggest
from restodiag.recommendations.engine import known_metric_names, priority, rule_fires
from restodiag.recommendations.formatters import render
from restodiag.scoring.composite import score_composite


SCENARIO_C = {
    "monthly_revenue": 100000,
    "food_cost": 42000,
    "labor_cost": 25000,
    "rent_cost": 12000,
    "marketing_cost": 5000,
    "utility_cost": 3000,
    "store_area": 20,
    "seats": 40,
    "daily_customers": 120,
    "total_customers": 2000,
    "repeat_customers": 500,
    "online_revenue": 35000,
    "average_rating": 4.6,
    "total_reviews": 200,
    "bad_reviews": 4,
    "short_video_count": 60,
    "live_stream_count": 20,
    "marketing_situation": "有自己团队",
    "business_type": "快餐",
}


def run_rules(raw, rules=None):
    config = default_config()
    record = guard_record(raw)
    benchmark = config.resolver().resolve(record.business_type)
    kpis = derive_kpis(record, benchmark, config)
    composite = score_composite(record, kpis, config.scoring)
    metrics = build_rule_metrics(record, kpis, composite, benchmark)
    return suggest(kpis, metrics, rules if rules is not None else config.recommendations.rules), metrics


def make_rule(rule_id, metric="food_cost_ratio", threshold=0.0, **overrides):
    payload = {
        "id": rule_id,
        "category": "test",
        "metric": metric,
        "op": "gt",
        "threshold": threshold,
        "impact": 5,
        "probability": 0.5,
        "cost": 1,
        "cycle": 1,
        "title": f"Rule {rule_id}",
        "problem": "Food ratio {food_cost_ratio:.0%}",
        "solution": "Do something",
    }
    payload.update(overrides)
    return RuleConfig(**payload)


def test_scenario_c_food_cost_rule_fires():
    suggestions, metrics = run_rules(SCENARIO_C)
    by_id = {s.id: s for s in suggestions}
    assert metrics["food_saving"] == pytest.approx(4000)
    food = by_id["food-cost"]
    assert food.solution
    assert food.priority == pytest.approx(9 * 0.8 / (2 * 2))
    assert food.priority > 0
    assert "42.0%" in food.problem
    assert food.expected_benefit == "About 4,000 saved per month."
    assert food.tasks


def test_healthy_cost_lines_do_not_fire():
    suggestions, _ = run_rules(SCENARIO_C)
    ids = {s.id for s in suggestions}
    assert "labor-cost" not in ids
    assert "rent-cost" not in ids
    assert "marketing-team" not in ids


def test_suggestions_sorted_by_priority():
    suggestions, _ = run_rules({"monthly_revenue": 50000, "food_cost": 30000, "labor_cost": 20000, "marketing_situation": "无"})
    priorities = [s.priority for s in suggestions]
    assert len(suggestions) > 3
    assert priorities == sorted(priorities, reverse=True)
    assert "marketing-team" in {s.id for s in suggestions}


def test_ties_preserve_rule_order():
    rules = [
        make_rule("first"),
        make_rule("low", probability=0.1),
        make_rule("second"),
        make_rule("high", impact=10),
        make_rule("third"),
    ]
    suggestions, _ = run_rules(SCENARIO_C, rules)
    assert [s.id for s in suggestions] == ["high", "first", "second", "third", "low"]


def test_rules_are_independent():
    rules = [make_rule("a"), make_rule("b", metric="cost_rate", threshold=5.0), make_rule("c")]
    suggestions, _ = run_rules(SCENARIO_C, rules)
    assert [s.id for s in suggestions] == ["a", "c"]


def test_benchmark_relative_rule():
    rule = make_rule("turnover", metric="table_turnover", op="lt", threshold=None, benchmark="table_turnover", scale=0.8)
    # fast food benchmark turnover is 4.5, so the line is 3.6
    assert rule_fires(rule, {"table_turnover": 3.0, "bench_table_turnover": 4.5})
    assert not rule_fires(rule, {"table_turnover": 3.7, "bench_table_turnover": 4.5})
    assert not rule_fires(rule, {"table_turnover": 3.0})


def test_unavailable_metric_does_not_fire():
    # payback_years is left out of the signals when the store is not profitable
    assert not rule_fires(make_rule("payback", metric="payback_years"), {"food_cost_ratio": 0.5})


def test_metric_vocabulary_covers_every_runtime_value():
    for record in (SCENARIO_C, {"monthly_revenue": 0}):
        _, metrics = run_rules(record)
        assert set(metrics) <= known_metric_names()
    config = default_config()
    kpis = derive_kpis(guard_record(SCENARIO_C), config.resolver().resolve("fast_food"), config)
    assert set(kpis.signals()) <= known_metric_names()


def test_derived_factor_metrics_present():
    _, metrics = run_rules(SCENARIO_C)
    for name in ("output_factor_score", "efficiency_factor_score", "reputation_factor_score", "interaction_rate", "kol_quality_score"):
        assert name in metrics
    assert metrics["interaction_rate"] == pytest.approx(0.1)
    assert metrics["bench_table_turnover"] == 4.5


def test_priority_formula():
    assert priority(8, 0.5, 2, 4) == pytest.approx(0.5)


def test_render_leaves_unknown_placeholders():
    assert render("{missing} and {x:.1f}", {"x": 1.234}) == "{missing} and 1.2"
    assert render("{missing:.1%}", {}) == "{missing:.1%}"
    assert render("", {"x": 1}) == ""
