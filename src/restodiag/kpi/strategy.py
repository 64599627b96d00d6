"""Risk radar, competitive position and expansion readiness."""
from __future__ import annotations

from typing import Dict, List

from ..benchmarks import Benchmark
from ..config import DiagnosisConfig
from ..guard import safe_div
from ..models import BusinessType, SurveyRecord
from .financial import compute_seasonal_outlook, operational_efficiency_score
from .models import (
    CoreRatios,
    Competitiveness,
    ExpansionFeasibility,
    FinancialHealth,
    RiskAlert,
    RiskRadar,
)


RISK_WEIGHTS = {
    "profit": 0.20,
    "cash_flow": 0.20,
    "cost": 0.15,
    "customer": 0.15,
    "competition": 0.10,
    "reputation": 0.10,
    "staff": 0.05,
    "market": 0.05,
}

RISK_MESSAGES = {
    "profit": "Gross margin is too low; serious financial risk",
    "cash_flow": "Cash flow is tight; watch the funding position",
    "cost": "Total cost rate is too high; profit is squeezed",
    "customer": "Customer traffic is falling; marketing needs strengthening",
    "competition": "Competition is intense; differentiate the offer",
    "reputation": "Reputation risk is high; service needs improvement",
    "staff": "Staff turnover is high; management needs tightening",
    "market": "The segment is saturated; innovation is needed",
}

SATURATED_TYPES = (BusinessType.TEA_DRINKS, BusinessType.CAFE)

COMPETITIVENESS_WEIGHTS = {
    "cost_efficiency": 0.20,
    "operational_efficiency": 0.20,
    "profitability": 0.20,
    "customer_performance": 0.20,
    "marketing_capability": 0.10,
    "product_quality": 0.10,
}

EXPANSION_WEIGHTS = {
    "financial_readiness": 0.30,
    "profitability": 0.25,
    "operational_maturity": 0.20,
    "team_readiness": 0.15,
    "brand_recognition": 0.10,
}


def risk_level(index: float) -> str:
    if index >= 80:
        return "critical"
    if index >= 60:
        return "high"
    if index >= 40:
        return "medium"
    if index >= 20:
        return "low"
    return "minimal"


def _decline_risk(rate: float, high: float, medium: float) -> float:
    if rate > high:
        return 80.0
    if rate > medium:
        return 50.0
    return 20.0


def risk_factors(record: SurveyRecord, core: CoreRatios, financial: FinancialHealth, config: DiagnosisConfig) -> Dict[str, float]:
    churn_cfg = config.kpi.churn
    gm = core.gross_margin
    coverage = financial.cash_flow_coverage_ratio
    tier = record.business_circle.tier
    return {
        "profit": 80.0 if gm < 0.45 else 50.0 if gm < 0.55 else 20.0,
        "cash_flow": 90.0 if coverage < 1.0 else 50.0 if coverage < 1.5 else 20.0,
        "cost": 85.0 if core.cost_rate > 0.85 else 55.0 if core.cost_rate > 0.75 else 25.0,
        "customer": _decline_risk(churn_cfg.customer_decline, 0.2, 0.1),
        "competition": 15.0 if tier == 1 else 25.0 if tier == 2 else 45.0,
        "reputation": 85.0 if core.negative_comment_rate > 0.1 else 55.0 if core.negative_comment_rate > 0.05 else 25.0,
        "staff": _decline_risk(churn_cfg.staff_turnover, 0.3, 0.15),
        "market": 70.0 if record.business_type in SATURATED_TYPES else 25.0,
    }


def risk_alerts(core: CoreRatios, benchmark: Benchmark) -> List[RiskAlert]:
    """Threshold alerts grouped by area, each with a level and a first action."""
    alerts: List[RiskAlert] = []
    if core.gross_margin < 0.45:
        alerts.append(RiskAlert("high", "financial", "Gross margin is critically low", "Restructure costs and lift gross margin above 50%"))
    elif core.gross_margin < 0.55:
        alerts.append(RiskAlert("medium", "financial", "Gross margin is on the low side", "Tighten cost control to protect profit"))
    if core.table_turnover < benchmark.table_turnover * 0.6:
        alerts.append(RiskAlert("high", "operational", "Table turnover is far below the benchmark", "Streamline service to raise turnover"))
    if core.revenue_per_sqm < benchmark.revenue_per_sqm * 0.6:
        alerts.append(RiskAlert("medium", "operational", "Revenue per m² is low; space is under-used", "Re-plan the floor layout"))
    if core.negative_comment_rate > 0.15:
        alerts.append(RiskAlert("high", "customer", "Negative review rate is damaging the brand", "Fix service quality immediately"))
    if core.member_repurchase < 0.10:
        alerts.append(RiskAlert("medium", "customer", "Repeat rate is very low", "Set up customer relationship management"))
    if core.content_marketing_index < 30:
        alerts.append(RiskAlert("medium", "marketing", "Content marketing is almost absent", "Invest in regular content output"))
    if core.review_score < 3.5:
        alerts.append(RiskAlert("high", "marketing", "Platform rating is very low", "Address the top complaints and respond to reviews"))
    if core.cost_rate > 0.85:
        alerts.append(RiskAlert("high", "cost", "Total cost rate leaves almost no profit", "Cut the largest cost lines first"))
    return alerts


def compute_risk_radar(
    record: SurveyRecord,
    core: CoreRatios,
    financial: FinancialHealth,
    benchmark: Benchmark,
    config: DiagnosisConfig,
) -> RiskRadar:
    factors = risk_factors(record, core, financial, config)
    overall = sum(factors[name] * weight for name, weight in RISK_WEIGHTS.items())
    warnings = tuple(RISK_MESSAGES[name] for name, score in factors.items() if score > 70)
    alerts = risk_alerts(core, benchmark)
    levels = {alert.level for alert in alerts}
    alert_level = "high" if "high" in levels else "medium" if "medium" in levels else "low"

    return RiskRadar(
        factors=factors,
        overall_risk_index=overall,
        risk_level=risk_level(overall),
        warnings=warnings,
        alerts=tuple(alerts),
        alert_level=alert_level,
        seasonal=compute_seasonal_outlook(record, config),
    )


def competitiveness_rank(score: float) -> str:
    if score >= 85:
        return "industry leader (top 10%)"
    if score >= 70:
        return "strong (top 30%)"
    if score >= 55:
        return "average (middle 40%)"
    if score >= 40:
        return "below average (bottom 30%)"
    return "lagging (bottom 10%)"


def compute_competitiveness(core: CoreRatios, benchmark: Benchmark, config: DiagnosisConfig) -> Competitiveness:
    prime_cost_rate = core.food_cost_ratio + core.labor_cost_ratio + core.rent_cost_ratio
    review_points = min(100.0, core.review_score / 5 * 100)
    factors = {
        "cost_efficiency": max(0.0, (1 - prime_cost_rate / config.kpi.cost_efficiency_ceiling) * 100),
        "operational_efficiency": operational_efficiency_score(core, benchmark),
        "profitability": min(100.0, safe_div(core.gross_margin, benchmark.gross_margin) * 100),
        "customer_performance": (
            min(100.0, safe_div(core.avg_spending, benchmark.avg_spending) * 100)
            + min(100.0, core.member_repurchase * 400)
            + review_points
        ) / 3,
        "marketing_capability": (core.content_marketing_index + min(100.0, core.takeaway_ratio * 200)) / 2,
        "product_quality": (review_points + max(0.0, 100 - core.negative_comment_rate * 1000)) / 2,
    }
    overall = sum(factors[name] * weight for name, weight in COMPETITIVENESS_WEIGHTS.items())
    ordered = sorted(factors, key=lambda name: factors[name])

    return Competitiveness(
        factors=factors,
        overall_index=overall,
        rank=competitiveness_rank(overall),
        strengths=tuple(name for name, score in factors.items() if score > 70),
        weaknesses=tuple(name for name, score in factors.items() if score < 50),
        improvement_priorities=tuple(ordered[:3]),
    )


def _financial_readiness(cash_reserve: float, investment: float, monthly_profit: float) -> float:
    if cash_reserve >= investment + monthly_profit * 6:
        return 100.0
    if cash_reserve >= investment:
        return 70.0
    if cash_reserve >= investment * 0.5:
        return 40.0
    return 0.0


def _team_readiness(has_manager: bool, team_size: float) -> float:
    if has_manager and team_size > 5:
        return 100.0
    if has_manager or team_size > 3:
        return 70.0
    if team_size > 1:
        return 40.0
    return 20.0


def _brand_recognition(review_score: float, content_index: float) -> float:
    if review_score > 4.5 and content_index > 80:
        return 100.0
    if review_score > 4.0 and content_index > 60:
        return 70.0
    if review_score > 3.5 and content_index > 40:
        return 40.0
    return 20.0


def expansion_recommendation(readiness: float) -> str:
    if readiness >= 80:
        return "expand"
    if readiness >= 60:
        return "expand cautiously"
    return "do not expand yet"


def compute_expansion(record: SurveyRecord, core: CoreRatios, financial: FinancialHealth) -> ExpansionFeasibility:
    gm = core.gross_margin
    updates = record.update_count
    factors = {
        "financial_readiness": _financial_readiness(record.cash_reserve, financial.initial_investment, financial.monthly_net_profit),
        "profitability": 100.0 if gm >= 0.60 else 80.0 if gm >= 0.55 else 60.0 if gm >= 0.50 else 40.0,
        "operational_maturity": 100.0 if updates > 20 else 70.0 if updates > 10 else 40.0 if updates > 5 else 20.0,
        "team_readiness": _team_readiness(record.has_manager, record.team_size),
        "brand_recognition": _brand_recognition(core.review_score, core.content_marketing_index),
    }
    readiness = sum(factors[name] * weight for name, weight in EXPANSION_WEIGHTS.items())
    risks = {
        "financial": "high" if gm < 0.5 else "medium",
        "management": "high" if record.team_size < 3 else "medium",
        "market": "low" if record.business_circle.tier == 1 else "medium",
        "timing": "medium",
    }

    return ExpansionFeasibility(
        factors=factors,
        readiness_index=readiness,
        recommendation=expansion_recommendation(readiness),
        payback_years=financial.payback_years,
        risks=risks,
    )
