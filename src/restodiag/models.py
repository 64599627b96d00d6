"""Core record and result types shared across the diagnosis pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional, Tuple


class LabelledEnum(str, Enum):
    """String enum that also accepts the survey's original Chinese labels."""

    @classmethod
    def fallback(cls) -> "LabelledEnum":
        """Member used for unrecognised answers: the last one declared."""
        return list(cls)[-1]

    @property
    def label(self) -> str:
        return SURVEY_LABELS.get(self, self.value)

    @classmethod
    def parse(cls, value: Any) -> "LabelledEnum":
        """Exact match on the canonical value or the survey label; otherwise the fallback member."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.fallback()
        text = str(value)
        for member in cls:
            if text == member.value or text == member.label:
                return member
        return cls.fallback()


class BusinessType(LabelledEnum):
    FAST_FOOD = "fast_food"
    HOT_POT = "hot_pot"
    FULL_SERVICE = "full_service"
    TEA_RESTAURANT = "tea_restaurant"
    CAFE = "cafe"
    TEA_DRINKS = "tea_drinks"
    OTHER = "other"


class BusinessCircle(LabelledEnum):
    TIER1_MALL = "tier1_mall"
    TIER2_MALL = "tier2_mall"
    TIER1_DISTRICT = "tier1_district"
    TIER2_DISTRICT = "tier2_district"
    TIER1_MAIN_STREET = "tier1_main_street"
    TIER2_MAIN_STREET = "tier2_main_street"
    TIER1_COMMUNITY = "tier1_community"
    TIER2_COMMUNITY = "tier2_community"
    UNKNOWN = "unknown"

    @property
    def tier(self) -> int:
        """1 or 2 for graded locations, 0 when the location is unknown."""
        if self.value.startswith("tier1"):
            return 1
        if self.value.startswith("tier2"):
            return 2
        return 0


class DecorationLevel(LabelledEnum):
    UPSCALE = "upscale"
    MIDRANGE = "midrange"
    BUDGET = "budget"
    UNKNOWN = "unknown"


class MarketingSituation(LabelledEnum):
    IN_HOUSE_TEAM = "in_house_team"
    AGENCY = "agency"
    OWNER_RUN = "owner_run"
    NONE = "none"
    UNKNOWN = "unknown"


SURVEY_LABELS: Dict[LabelledEnum, str] = {
    BusinessType.FAST_FOOD: "快餐",
    BusinessType.HOT_POT: "火锅",
    BusinessType.FULL_SERVICE: "正餐",
    BusinessType.TEA_RESTAURANT: "茶餐厅",
    BusinessType.CAFE: "咖啡厅",
    BusinessType.TEA_DRINKS: "茶饮店",
    BusinessType.OTHER: "其他",
    BusinessCircle.TIER1_MALL: "一类商场里面",
    BusinessCircle.TIER2_MALL: "二类商场里面",
    BusinessCircle.TIER1_DISTRICT: "一类商圈",
    BusinessCircle.TIER2_DISTRICT: "二类商圈",
    BusinessCircle.TIER1_MAIN_STREET: "一类主街",
    BusinessCircle.TIER2_MAIN_STREET: "二类主街",
    BusinessCircle.TIER1_COMMUNITY: "一类社区",
    BusinessCircle.TIER2_COMMUNITY: "二类社区",
    DecorationLevel.UPSCALE: "中高档",
    DecorationLevel.MIDRANGE: "中档",
    DecorationLevel.BUDGET: "中低档",
    MarketingSituation.IN_HOUSE_TEAM: "有自己团队",
    MarketingSituation.AGENCY: "找代运营",
    MarketingSituation.OWNER_RUN: "老板运营",
    MarketingSituation.NONE: "无",
}


class HealthLevel(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    WARNING = "Warning"
    DANGER = "Danger"
    INSUFFICIENT_DATA = "Insufficient data"


NUMERIC_FIELDS: Tuple[str, ...] = (
    "monthly_revenue",
    "food_cost",
    "labor_cost",
    "rent_cost",
    "marketing_cost",
    "utility_cost",
    "store_area",
    "seats",
    "daily_customers",
    "total_customers",
    "repeat_customers",
    "online_revenue",
    "average_rating",
    "total_reviews",
    "bad_reviews",
    "service_bad_reviews",
    "taste_bad_reviews",
    "short_video_count",
    "live_stream_count",
    "cash_reserve",
    "update_count",
    "team_size",
)

CATEGORICAL_FIELDS: Dict[str, type] = {
    "business_type": BusinessType,
    "business_circle": BusinessCircle,
    "decoration_level": DecorationLevel,
    "marketing_situation": MarketingSituation,
}


@dataclass(frozen=True)
class SurveyRecord:
    """One store's monthly operating survey after cleaning.

    Built only by :func:`restodiag.guard.guard_record`; every numeric field is
    finite and the denominator fields are never zero.
    """

    monthly_revenue: float = 0.0
    food_cost: float = 0.0
    labor_cost: float = 0.0
    rent_cost: float = 0.0
    marketing_cost: float = 0.0
    utility_cost: float = 0.0
    store_area: float = 1.0
    seats: float = 1.0
    daily_customers: float = 0.0
    total_customers: float = 1.0
    repeat_customers: float = 0.0
    online_revenue: float = 0.0
    average_rating: float = 0.0
    total_reviews: float = 0.0
    bad_reviews: float = 0.0
    service_bad_reviews: float = 0.0
    taste_bad_reviews: float = 0.0
    short_video_count: float = 0.0
    live_stream_count: float = 0.0
    cash_reserve: float = 0.0
    update_count: float = 0.0
    team_size: float = 0.0
    survey_month: int = 0
    has_manager: bool = False
    business_type: BusinessType = BusinessType.OTHER
    business_circle: BusinessCircle = BusinessCircle.UNKNOWN
    decoration_level: DecorationLevel = DecorationLevel.UNKNOWN
    marketing_situation: MarketingSituation = MarketingSituation.UNKNOWN
    store_name: str = ""
    defaulted_fields: FrozenSet[str] = field(default_factory=frozenset, compare=False)

    @property
    def total_cost(self) -> float:
        return self.food_cost + self.labor_cost + self.rent_cost + self.marketing_cost + self.utility_cost

    def scoring_inputs(self) -> Dict[str, Any]:
        """Fields the pipeline reads, with enums reduced to their values."""
        payload: Dict[str, Any] = {name: getattr(self, name) for name in NUMERIC_FIELDS}
        payload["survey_month"] = self.survey_month
        payload["has_manager"] = self.has_manager
        for name in CATEGORICAL_FIELDS:
            payload[name] = getattr(self, name).value
        return payload


@dataclass(frozen=True)
class Suggestion:
    id: str
    title: str
    category: str
    impact: float
    probability: float
    cost: float
    cycle: float
    priority: float
    problem: str
    solution: str
    expected_benefit: str
    tasks: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "impact": self.impact,
            "probability": self.probability,
            "cost": self.cost,
            "cycle": self.cycle,
            "priority": round(self.priority, 4),
            "problem": self.problem,
            "solution": self.solution,
            "expected_benefit": self.expected_benefit,
            "tasks": list(self.tasks),
        }


def optional_round(value: Optional[float], digits: int = 4) -> Optional[float]:
    return None if value is None else round(float(value), digits)
