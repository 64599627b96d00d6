import math
from dataclasses import asdict

import pytest

from restodiag.config import default_config
from restodiag.guard import guard_record
from restodiag.kpi import derive_kpis
from restodiag.kpi.customer import net_promoter_score
from restodiag.models import BusinessType


SCENARIO_A = {
    "monthly_revenue": 200000,
    "food_cost": 60000,
    "labor_cost": 50000,
    "rent_cost": 30000,
    "marketing_cost": 15000,
    "utility_cost": 8000,
}


def make_store(**overrides):
    base = {
        **SCENARIO_A,
        "business_type": "正餐",
        "business_circle": "一类商圈",
        "decoration_level": "中档",
        "marketing_situation": "有自己团队",
        "store_area": 40,
        "seats": 80,
        "daily_customers": 240,
        "total_customers": 1000,
        "repeat_customers": 250,
        "online_revenue": 50000,
        "average_rating": 5.0,
        "total_reviews": 100,
        "bad_reviews": 0,
        "short_video_count": 50,
        "live_stream_count": 15,
        "survey_month": 1,
    }
    base.update(overrides)
    return guard_record(base)


def derive(record):
    config = default_config()
    return derive_kpis(record, config.resolver().resolve(record.business_type), config)


def test_scenario_a_core_ratios():
    kpis = derive(guard_record(SCENARIO_A))
    assert kpis.total_cost == 163000
    assert kpis.cost_rate == pytest.approx(0.815)
    assert kpis.net_margin == pytest.approx(0.185)
    assert kpis.gross_margin == pytest.approx(0.70)
    assert kpis.food_cost_ratio == pytest.approx(0.30)
    assert kpis.labor_cost_ratio == pytest.approx(0.25)
    assert kpis.estimated_employees == 10
    assert kpis.revenue_per_employee == pytest.approx(20000)
    assert kpis.revenue_per_labor_unit == pytest.approx(4.0)


def test_zero_revenue_gives_zero_ratios():
    kpis = derive(guard_record({**SCENARIO_A, "monthly_revenue": 0}))
    for name in ("food_cost_ratio", "cost_rate", "net_margin", "gross_margin", "takeaway_ratio", "revenue_per_labor_unit"):
        assert getattr(kpis, name) == 0.0
    assert kpis.financial.payback_years is None
    assert kpis.financial.safety_margin is None


def test_derivation_is_idempotent():
    record = make_store()
    assert asdict(derive(record)) == asdict(derive(record))


def test_all_signals_are_finite():
    for record in (guard_record({}), guard_record(SCENARIO_A), make_store(), make_store(monthly_revenue=0)):
        signals = derive(record).signals()
        assert signals
        assert all(math.isfinite(v) for v in signals.values())


def test_break_even_model():
    fin = derive(guard_record(SCENARIO_A)).financial
    assert fin.fixed_costs == pytest.approx(30000 + 50000 * 0.7 + 8000 * 0.8)
    assert fin.variable_costs == 75000
    assert fin.contribution_margin_rate == pytest.approx(0.625)
    assert fin.break_even_revenue == pytest.approx(71400 / 0.625)
    assert fin.safety_margin == pytest.approx((200000 - 114240) / 200000)
    # No customer count recorded, so break-even customers use the default spend
    assert fin.break_even_customers == pytest.approx(114240 / 50)
    assert fin.monthly_net_profit == 37000
    assert fin.cash_flow_coverage_ratio == pytest.approx(37000 / 71400)
    assert fin.emergency_reserve == pytest.approx(71400 * 3)
    assert fin.cash_flow_health_score == 70
    assert fin.payback_years == pytest.approx(fin.initial_investment / (37000 * 12))


def test_content_and_location_scores():
    kpis = derive(make_store())
    # 50 videos -> 20 points, 15 live streams -> 15 points, in-house team -> 30 points
    assert kpis.content_marketing_index == pytest.approx(65)
    # tier-1 district 90 -> 36, midrange decor 75 -> 22.5, 5000/m² vs 5500 benchmark -> 27.27
    assert kpis.location_match_score == pytest.approx(36 + 22.5 + 5000 / 5500 * 30)
    assert kpis.table_turnover == pytest.approx(3.0)
    assert kpis.takeaway_ratio == pytest.approx(0.25)


def test_customer_value_model():
    cv = derive(make_store()).customer_value
    assert cv.annual_purchase_frequency == pytest.approx(4.0)
    assert cv.customer_lifespan_years == pytest.approx(1.0, rel=1e-6)
    assert cv.base_ltv == pytest.approx(200 * 4.0, rel=1e-6)
    assert cv.profit_ltv == pytest.approx(800 * 0.70, rel=1e-6)
    assert cv.customer_acquisition_cost == pytest.approx(15000 / 300)
    assert cv.value_tiers["diamond"] == pytest.approx(cv.profit_ltv * 3)


def test_churn_uses_configured_assumptions():
    churn = derive(make_store()).churn
    # recency 30 days -> 20 points, spending decline 5% -> 20 points
    assert churn.risk_score == pytest.approx(0.35 * 20 + 0.20 * 20)
    assert churn.risk_level == "low"
    assert churn.churn_probability == pytest.approx(churn.risk_score / 100)

    noisy = derive(make_store(bad_reviews=20)).churn
    assert noisy.risk_score == pytest.approx(11 + 0.15 * 100)


def test_satisfaction_and_nps():
    kpis = derive(make_store())
    assert net_promoter_score(kpis) == pytest.approx(52.5)
    assert kpis.satisfaction.overall_score == pytest.approx(30 + 25 + 25 + 152.5 / 200 * 20)
    assert kpis.satisfaction.level == "excellent"
    assert kpis.satisfaction.improvement_areas == ()

    weak = derive(make_store(average_rating=3.2, bad_reviews=20, repeat_customers=50)).satisfaction
    assert weak.improvement_areas == ("service training", "quality control", "customer relationship management")


def test_marketing_effectiveness():
    marketing = derive(make_store()).marketing
    assert marketing.total_marketing_roi == pytest.approx((200000 - 15000) / 15000)
    assert marketing.channel_roi["platform_advertising"] == pytest.approx((50000 * 0.6 - 6000) / 6000)
    assert 0 <= marketing.marketing_efficiency_score <= 100
    assert marketing.content_health_index == pytest.approx(min(100, 50 / 60 * 100) * 0.4 + 75 * 0.3 + 100 * 0.3)


def test_risk_radar_and_seasonality():
    kpis = derive(make_store(business_type="茶饮店", bad_reviews=20, survey_month=2))
    risk = kpis.risk
    assert risk.factors["market"] == 70
    assert risk.factors["reputation"] == 85
    assert risk.factors["competition"] == 15
    assert risk.factors["staff"] == 50
    assert "Reputation risk is high; service needs improvement" in risk.warnings
    assert any(alert.category == "customer" and alert.level == "high" for alert in risk.alerts)
    assert risk.alert_level == "high"
    assert risk.seasonal.coefficient == pytest.approx(0.75)
    assert risk.seasonal.predicted_revenue == pytest.approx(150000)


def test_unknown_month_is_seasonally_neutral():
    assert derive(guard_record(SCENARIO_A)).risk.seasonal.coefficient == 1.0


def test_competitiveness_priorities():
    comp = derive(make_store()).competitiveness
    assert set(comp.factors) == {
        "cost_efficiency",
        "operational_efficiency",
        "profitability",
        "customer_performance",
        "marketing_capability",
        "product_quality",
    }
    assert comp.factors["profitability"] == 100
    assert comp.factors["product_quality"] == 100
    assert len(comp.improvement_priorities) == 3
    lowest = min(comp.factors, key=comp.factors.get)
    assert comp.improvement_priorities[0] == lowest
    assert comp.factors["cost_efficiency"] == pytest.approx((1 - 0.70 / 0.85) * 100)


def test_expansion_readiness():
    ready = derive(
        make_store(cash_reserve=5_000_000, update_count=25, has_manager=True, team_size=8)
    ).expansion
    assert ready.factors["financial_readiness"] == 100
    assert ready.factors["team_readiness"] == 100
    assert ready.factors["operational_maturity"] == 100
    assert ready.recommendation == "expand"

    not_ready = derive(guard_record(SCENARIO_A)).expansion
    assert not_ready.factors["financial_readiness"] == 0
    assert not_ready.risks["management"] == "high"
    assert not_ready.recommendation == "do not expand yet"


def test_operational_efficiency():
    ops = derive(make_store()).operations
    assert set(ops.time_slots) == {"breakfast", "lunch", "afternoon", "dinner"}
    assert ops.time_slots["lunch"].revenue == pytest.approx(200000 / 30 * 0.40)
    assert ops.seat_utilization == pytest.approx(1.0)
    assert ops.recommended_dish_count == 17
    assert ops.menu_health_index == pytest.approx(0.35 * 40 + 0.25 * 30 + 0.25 * 20 - 0.15 * 10)


def test_business_type_from_record_drives_price_volatility():
    record = make_store(business_type=BusinessType.FULL_SERVICE.value)
    kpis = derive(record)
    assert kpis.price_volatility == pytest.approx(abs(200 / 70 - 1))
