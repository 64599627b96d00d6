"""Frozen result types produced by the KPI deriver."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class CoreRatios:
    total_cost: float
    food_cost_ratio: float
    labor_cost_ratio: float
    rent_cost_ratio: float
    marketing_cost_ratio: float
    utility_cost_ratio: float
    cost_rate: float
    net_margin: float
    gross_margin: float
    estimated_employees: int
    table_turnover: float
    revenue_per_sqm: float
    revenue_per_employee: float
    revenue_per_labor_unit: float
    avg_spending: float
    member_repurchase: float
    takeaway_ratio: float
    online_boost: float
    price_volatility: float
    review_score: float
    negative_comment_rate: float
    service_bad_review_rate: float
    taste_bad_review_rate: float
    interaction_rate: float
    short_video_count: float
    live_stream_count: float
    content_marketing_index: float
    location_match_score: float
    marketing_health_score: float
    resilience_months: float


@dataclass(frozen=True)
class FinancialHealth:
    """Break-even, cash-flow and payback figures."""

    fixed_costs: float
    variable_costs: float
    variable_cost_rate: float
    contribution_margin_rate: float
    break_even_revenue: Optional[float]
    break_even_customers: Optional[float]
    safety_margin: Optional[float]
    operating_cash_flow: float
    cash_flow_coverage_ratio: float
    emergency_reserve: float
    emergency_reserve_adequacy: float
    cash_flow_health_score: float
    monthly_net_profit: float
    annual_net_profit: float
    initial_investment: float
    payback_years: Optional[float]
    working_capital_turnover: float


@dataclass(frozen=True)
class TimeSlotEfficiency:
    revenue: float
    revenue_share: float
    revenue_per_cost: float
    revenue_per_sqm: float
    revenue_per_hour: float


@dataclass(frozen=True)
class OperationalEfficiency:
    time_slots: Dict[str, TimeSlotEfficiency]
    seat_utilization: float
    seat_waste_rate: float
    menu_health_index: float
    recommended_dish_count: int
    operational_efficiency_score: float


@dataclass(frozen=True)
class CustomerValue:
    annual_purchase_frequency: float
    customer_lifespan_years: float
    base_ltv: float
    profit_ltv: float
    customer_acquisition_cost: float
    ltv_cac_ratio: float
    value_tiers: Dict[str, float]


@dataclass(frozen=True)
class ChurnRisk:
    recency_days: float
    frequency_decline: float
    spending_decline: float
    negative_review_rate: float
    risk_score: float
    risk_level: str
    churn_probability: float
    retention_strategy: str


@dataclass(frozen=True)
class Satisfaction:
    overall_score: float
    level: str
    nps_score: float
    improvement_areas: Tuple[str, ...]


@dataclass(frozen=True)
class MarketingEffectiveness:
    total_marketing_roi: float
    channel_roi: Dict[str, float]
    marketing_efficiency_score: float
    content_health_index: float
    video_frequency_score: float
    live_frequency_score: float
    team_score: float
    content_suggestions: Tuple[str, ...]


@dataclass(frozen=True)
class RiskAlert:
    level: str
    category: str
    message: str
    suggestion: str


@dataclass(frozen=True)
class SeasonalOutlook:
    month: int
    coefficient: float
    predicted_revenue: float
    survival_test: bool
    preparation_index: float


@dataclass(frozen=True)
class RiskRadar:
    factors: Dict[str, float]
    overall_risk_index: float
    risk_level: str
    warnings: Tuple[str, ...]
    alerts: Tuple[RiskAlert, ...]
    alert_level: str
    seasonal: SeasonalOutlook


@dataclass(frozen=True)
class Competitiveness:
    factors: Dict[str, float]
    overall_index: float
    rank: str
    strengths: Tuple[str, ...]
    weaknesses: Tuple[str, ...]
    improvement_priorities: Tuple[str, ...]


@dataclass(frozen=True)
class ExpansionFeasibility:
    factors: Dict[str, float]
    readiness_index: float
    recommendation: str
    payback_years: Optional[float]
    risks: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class KPISet(CoreRatios):
    """All derived indicators for one survey record."""

    financial: FinancialHealth
    operations: OperationalEfficiency
    customer_value: CustomerValue
    churn: ChurnRisk
    satisfaction: Satisfaction
    marketing: MarketingEffectiveness
    risk: RiskRadar
    competitiveness: Competitiveness
    expansion: ExpansionFeasibility

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def signals(self) -> Dict[str, float]:
        """Flat scalar view used by penalty expressions and recommendation rules."""
        flat: Dict[str, float] = {name: float(getattr(self, name)) for name in CORE_RATIO_FIELDS}
        for name, (group, attr) in NESTED_SIGNALS.items():
            value = getattr(getattr(self, group), attr)
            if value is not None:
                flat[name] = float(value)
        for name, value in self.competitiveness.factors.items():
            flat[f"competitiveness_{name}"] = float(value)
        return flat


CORE_RATIO_FIELDS: Tuple[str, ...] = tuple(f.name for f in fields(CoreRatios))

# Sub-model values exposed as flat signals; None values are left out.
NESTED_SIGNALS: Dict[str, Tuple[str, str]] = {
    "safety_margin": ("financial", "safety_margin"),
    "cash_flow_coverage_ratio": ("financial", "cash_flow_coverage_ratio"),
    "cash_flow_health_score": ("financial", "cash_flow_health_score"),
    "monthly_net_profit": ("financial", "monthly_net_profit"),
    "payback_years": ("financial", "payback_years"),
    "seat_utilization": ("operations", "seat_utilization"),
    "operational_efficiency_score": ("operations", "operational_efficiency_score"),
    "ltv_cac_ratio": ("customer_value", "ltv_cac_ratio"),
    "profit_ltv": ("customer_value", "profit_ltv"),
    "churn_risk_score": ("churn", "risk_score"),
    "satisfaction_score": ("satisfaction", "overall_score"),
    "nps_score": ("satisfaction", "nps_score"),
    "marketing_roi": ("marketing", "total_marketing_roi"),
    "marketing_efficiency_score": ("marketing", "marketing_efficiency_score"),
    "content_health_index": ("marketing", "content_health_index"),
    "marketing_team_score": ("marketing", "team_score"),
    "overall_risk_index": ("risk", "overall_risk_index"),
    "competitiveness_index": ("competitiveness", "overall_index"),
    "expansion_readiness": ("expansion", "readiness_index"),
}
