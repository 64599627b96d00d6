"""Customer lifetime value, churn risk and satisfaction models."""
from __future__ import annotations

from typing import List

from ..config import DiagnosisConfig
from ..guard import safe_div
from ..models import SurveyRecord
from .models import ChurnRisk, CoreRatios, CustomerValue, Satisfaction


VALUE_TIER_MULTIPLIERS = {"diamond": 3.0, "gold": 2.0, "silver": 1.0, "bronze": 0.5}
CHURN_WEIGHTS = {"recency": 0.35, "frequency": 0.30, "spending": 0.20, "reviews": 0.15}


def _tier(value: float, tiers) -> float:
    """Points for the first ``(limit, points)`` pair whose limit ``value`` exceeds."""
    for limit, points in tiers:
        if value > limit:
            return points
    return 0.0


def compute_customer_value(record: SurveyRecord, core: CoreRatios, config: DiagnosisConfig) -> CustomerValue:
    repurchase = core.member_repurchase
    if 0 < repurchase < 1:
        frequency = repurchase * 12 / (1 - repurchase)
        annual_churn = 1 - repurchase ** 12
        lifespan = 1 / annual_churn if annual_churn > 0 else 0.0
    else:
        frequency = 0.0
        lifespan = 0.0

    base_ltv = core.avg_spending * frequency * lifespan
    profit_ltv = base_ltv * core.gross_margin
    new_customers = record.total_customers * config.kpi.new_customer_share
    cac = safe_div(record.marketing_cost, new_customers)

    return CustomerValue(
        annual_purchase_frequency=frequency,
        customer_lifespan_years=lifespan,
        base_ltv=base_ltv,
        profit_ltv=profit_ltv,
        customer_acquisition_cost=cac,
        ltv_cac_ratio=safe_div(profit_ltv, cac),
        value_tiers={tier: profit_ltv * multiplier for tier, multiplier in VALUE_TIER_MULTIPLIERS.items()},
    )


def retention_strategy(risk_score: float) -> str:
    if risk_score > 70:
        return "Send high-value coupons immediately and have the store manager call the guest"
    if risk_score > 40:
        return "Send offers and invite guests to new-dish tastings"
    return "Routine relationship maintenance"


def compute_churn_risk(core: CoreRatios, config: DiagnosisConfig) -> ChurnRisk:
    """Weighted churn score from recency, frequency and spend decline, and negative reviews.

    The survey carries no visit history, so recency and decline inputs come
    from configured assumptions.
    """
    churn_cfg = config.kpi.churn
    points = {
        "recency": _tier(churn_cfg.last_visit_days, ((90, 100.0), (60, 80.0), (30, 50.0), (15, 20.0))),
        "frequency": _tier(churn_cfg.frequency_decline, ((0.6, 100.0), (0.4, 60.0), (0.2, 30.0))),
        "spending": _tier(churn_cfg.spending_decline, ((0.4, 100.0), (0.2, 50.0), (0.0, 20.0))),
        "reviews": _tier(core.negative_comment_rate, ((0.1, 100.0), (0.05, 60.0), (0.0, 30.0))),
    }
    score = sum(points[name] * weight for name, weight in CHURN_WEIGHTS.items())
    if score > 70:
        level = "high"
    elif score > 40:
        level = "medium"
    else:
        level = "low"

    return ChurnRisk(
        recency_days=churn_cfg.last_visit_days,
        frequency_decline=churn_cfg.frequency_decline,
        spending_decline=churn_cfg.spending_decline,
        negative_review_rate=core.negative_comment_rate,
        risk_score=score,
        risk_level=level,
        churn_probability=score / 100,
        retention_strategy=retention_strategy(score),
    )


def net_promoter_score(core: CoreRatios) -> float:
    """Estimate NPS in [-100, 100] from rating and repurchase rate."""
    return max(-100.0, min(100.0, (core.review_score - 3) * 20 + core.member_repurchase * 50))


def satisfaction_level(score: float) -> str:
    if score >= 90:
        return "excellent"
    if score >= 80:
        return "good"
    if score >= 70:
        return "pass"
    return "poor"


def improvement_areas(core: CoreRatios) -> List[str]:
    areas = []
    if core.review_score < 4.0:
        areas.append("service training")
    if core.negative_comment_rate > 0.05:
        areas.append("quality control")
    if core.member_repurchase < 0.15:
        areas.append("customer relationship management")
    return areas


def compute_satisfaction(core: CoreRatios, config: DiagnosisConfig) -> Satisfaction:
    nps = net_promoter_score(core)
    rating_points = max(0.0, min(1.0, core.review_score / 5)) * 30
    review_points = (1 - min(1.0, core.negative_comment_rate)) * 25
    repurchase_points = min(1.0, core.member_repurchase / config.kpi.target_repurchase) * 25
    nps_points = (nps + 100) / 200 * 20
    score = rating_points + review_points + repurchase_points + nps_points

    return Satisfaction(
        overall_score=score,
        level=satisfaction_level(score),
        nps_score=nps,
        improvement_areas=tuple(improvement_areas(core)),
    )
