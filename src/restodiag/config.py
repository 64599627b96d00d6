"""Configuration models using Pydantic.

The packaged ``data/default_config.yaml`` holds every threshold, weight and
rule. A user YAML is merged over it and the result is validated here, so bad
configuration fails at load time rather than part-way through a run.
"""
from __future__ import annotations

import hashlib
from importlib import resources
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .benchmarks import BENCHMARK_FIELDS, Benchmark, BenchmarkResolver
from .ingestion_utils import deep_merge, load_yaml
from .models import BusinessCircle, BusinessType, DecorationLevel, HealthLevel, MarketingSituation
from .scoring.transforms import Baseline, ScoreBounds, is_inverse_direction


WEIGHT_SUM_TOLERANCE = 0.01
DEFAULT_CONFIG_RESOURCE = "default_config.yaml"


def _check_indicator(name: str) -> str:
    from .kpi.models import CORE_RATIO_FIELDS

    if name not in CORE_RATIO_FIELDS:
        raise ValueError(f"Unknown indicator '{name}'; expected one of {', '.join(CORE_RATIO_FIELDS)}")
    return name


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    file_name: str = "restodiag.log"


class PathsConfig(BaseModel):
    logs_dir: str = "logs"


class FixedCostShares(BaseModel):
    """Share of each cost line treated as fixed for break-even analysis."""

    labor: float = Field(0.7, ge=0, le=1)
    utility: float = Field(0.8, ge=0, le=1)


class ChurnAssumptions(BaseModel):
    """Constants standing in for behaviour history the survey does not collect."""

    last_visit_days: float = Field(30, ge=0)
    frequency_decline: float = Field(0.10, ge=0, le=1)
    spending_decline: float = Field(0.05, ge=0, le=1)
    customer_decline: float = Field(0.10, ge=0, le=1)
    staff_turnover: float = Field(0.20, ge=0, le=1)


class ContentTargets(BaseModel):
    video_target: float = Field(100, gt=0)
    live_target: float = Field(30, gt=0)
    health_video_target: float = Field(60, gt=0)
    health_live_target: float = Field(20, gt=0)


class TimeSlotConfig(BaseModel):
    share: float = Field(..., ge=0, le=1, description="Share of daily revenue")
    hours: float = Field(..., gt=0, description="Trading hours in the slot")


class KPIConfig(BaseModel):
    """Assumptions used by the KPI deriver."""

    assumed_monthly_wage: float = Field(5000, gt=0)
    fixed_cost_shares: FixedCostShares = Field(default_factory=FixedCostShares)
    emergency_reserve_months: float = Field(3, ge=0)
    default_avg_spending: float = Field(50, gt=0, description="Used for break-even customers when no customers were recorded")
    new_customer_share: float = Field(0.3, gt=0, le=1)
    equipment_cost_per_sqm: float = Field(800, ge=0)
    deposit_months: float = Field(3, ge=0)
    inventory_share: float = Field(0.5, ge=0)
    target_repurchase: float = Field(0.25, gt=0, le=1)
    employee_revenue_target: float = Field(30000, gt=0)
    cost_efficiency_ceiling: float = Field(0.85, gt=0)
    churn: ChurnAssumptions = Field(default_factory=ChurnAssumptions)
    content: ContentTargets = Field(default_factory=ContentTargets)
    time_slots: Dict[str, TimeSlotConfig] = Field(..., min_length=1)
    menu_structure: Dict[Literal["star", "plow_horse", "puzzle", "dog"], float]
    seasonal_coefficients: List[float] = Field(..., min_length=12, max_length=12)

    @field_validator("time_slots")
    @classmethod
    def validate_slot_shares(cls, v):
        total = sum(slot.share for slot in v.values())
        if abs(total - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Time slot shares must sum to 1.0, got {total:.3f}")
        return v

    @field_validator("menu_structure")
    @classmethod
    def validate_menu_structure(cls, v):
        if len(v) != 4:
            raise ValueError("menu_structure needs star, plow_horse, puzzle and dog shares")
        return v


class CategoryScores(BaseModel):
    """Scores attached to each categorical survey answer; every member must be listed."""

    business_circle: Dict[BusinessCircle, float]
    decoration: Dict[DecorationLevel, float]
    decoration_cost_per_sqm: Dict[DecorationLevel, float]
    marketing_content_points: Dict[MarketingSituation, float]
    marketing_team_score: Dict[MarketingSituation, float]

    @model_validator(mode="after")
    def validate_exhaustive(self):
        checks = {
            "business_circle": (self.business_circle, BusinessCircle),
            "decoration": (self.decoration, DecorationLevel),
            "decoration_cost_per_sqm": (self.decoration_cost_per_sqm, DecorationLevel),
            "marketing_content_points": (self.marketing_content_points, MarketingSituation),
            "marketing_team_score": (self.marketing_team_score, MarketingSituation),
        }
        for name, (table, enum_cls) in checks.items():
            missing = [member.value for member in enum_cls if member not in table]
            if missing:
                raise ValueError(f"category_scores.{name} is missing: {', '.join(missing)}")
        return self


class IndicatorConfig(BaseModel):
    """Baseline band and weight for one composite indicator."""

    name: str
    direction: Literal["higher_is_better", "lower_is_better"]
    weight: float = Field(..., ge=0)
    min: float
    ideal: float
    max: float

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return _check_indicator(v)

    @model_validator(mode="after")
    def validate_band(self):
        if not (self.min < self.ideal < self.max):
            raise ValueError(f"Indicator '{self.name}' needs min < ideal < max")
        return self

    def is_inverse(self) -> bool:
        return is_inverse_direction(self.direction)

    def baseline(self) -> Baseline:
        return Baseline(self.min, self.ideal, self.max)


class PenaltyRule(BaseModel):
    """Configuration for a penalty rule."""

    name: str = Field(..., description="Rule name for auditing")
    when: str = Field(..., description="Pandas eval condition over the indicator values")
    apply: float = Field(..., ge=0, description="Points subtracted when the rule matches")


class ResiliencePenalty(BaseModel):
    """Scaled penalty for consecutive months of decline."""

    indicator: str = "resilience_months"
    threshold: float = -2
    points_per_month: float = Field(5, ge=0)
    cap: float = Field(15, ge=0)

    @field_validator("indicator")
    @classmethod
    def validate_indicator(cls, v):
        return _check_indicator(v)


class BoundsConfig(BaseModel):
    floor: float = 0.0
    mid: float = 80.0
    ceiling: float = 100.0

    @model_validator(mode="after")
    def validate_order(self):
        if not (self.floor < self.mid < self.ceiling):
            raise ValueError("Score bounds need floor < mid < ceiling")
        return self

    def to_bounds(self) -> ScoreBounds:
        return ScoreBounds(self.floor, self.mid, self.ceiling)


class LevelBand(BaseModel):
    level: HealthLevel
    min_score: float = Field(..., ge=0, le=100)
    description: str


class ScoringConfig(BaseModel):
    """Complete composite scoring configuration."""

    bounds: BoundsConfig = Field(default_factory=BoundsConfig)
    indicators: List[IndicatorConfig] = Field(..., min_length=1)
    penalties: List[PenaltyRule] = Field(default_factory=list)
    resilience: ResiliencePenalty = Field(default_factory=ResiliencePenalty)
    levels: List[LevelBand] = Field(..., min_length=1)

    @model_validator(mode="after")
    def validate_weights(self):
        names = [ind.name for ind in self.indicators]
        if len(set(names)) != len(names):
            raise ValueError("Indicator names must be unique")
        total_weight = sum(ind.weight for ind in self.indicators)
        if abs(total_weight - 1.0) > WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"Indicator weights must sum to 1.0 (±{WEIGHT_SUM_TOLERANCE}), got {total_weight:.4f}")
        return self

    @model_validator(mode="after")
    def validate_levels(self):
        self.levels = sorted(self.levels, key=lambda band: band.min_score, reverse=True)
        if self.levels[-1].min_score > 0:
            raise ValueError("The lowest level band must start at 0")
        return self

    def weights(self) -> Dict[str, float]:
        return {ind.name: ind.weight for ind in self.indicators}


class RuleConfig(BaseModel):
    """One threshold rule of the recommendation engine."""

    id: str
    category: str
    metric: str
    op: Literal["lt", "le", "gt", "ge"]
    threshold: Optional[float] = None
    benchmark: Optional[str] = Field(None, description="Benchmark field to compare against instead of a fixed threshold")
    scale: float = Field(1.0, gt=0, description="Multiplier applied to the benchmark value")
    impact: float = Field(..., gt=0)
    probability: float = Field(..., gt=0, le=1)
    cost: float = Field(..., gt=0)
    cycle: float = Field(..., gt=0, description="Months until the effect shows")
    title: str
    problem: str
    solution: str
    expected_benefit: str = ""
    tasks: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_reference(self):
        from .recommendations.engine import known_metric_names

        if self.metric not in known_metric_names():
            raise ValueError(f"Rule '{self.id}' references unknown metric '{self.metric}'")
        if (self.threshold is None) == (self.benchmark is None):
            raise ValueError(f"Rule '{self.id}' needs exactly one of threshold or benchmark")
        if self.benchmark is not None and self.benchmark not in BENCHMARK_FIELDS:
            raise ValueError(f"Rule '{self.id}' references unknown benchmark field '{self.benchmark}'")
        return self


class RecommendationConfig(BaseModel):
    rules: List[RuleConfig] = Field(default_factory=list)

    @field_validator("rules")
    @classmethod
    def validate_unique_ids(cls, v):
        ids = [rule.id for rule in v]
        if len(set(ids)) != len(ids):
            raise ValueError("Recommendation rule ids must be unique")
        return v


class DiagnosisConfig(BaseModel):
    """Root configuration object."""

    model_config = ConfigDict(frozen=True)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    paths: PathsConfig = Field(default_factory=PathsConfig)
    kpi: KPIConfig
    benchmarks: Dict[BusinessType, Benchmark]
    category_scores: CategoryScores
    scoring: ScoringConfig
    recommendations: RecommendationConfig = Field(default_factory=RecommendationConfig)

    @field_validator("benchmarks")
    @classmethod
    def validate_benchmarks(cls, v):
        missing = [member.value for member in BusinessType if member not in v]
        if missing:
            raise ValueError(f"benchmarks is missing business types: {', '.join(missing)}")
        return v

    def resolver(self) -> BenchmarkResolver:
        return BenchmarkResolver(self.benchmarks)

    def config_hash(self) -> str:
        return hashlib.sha256(self.model_dump_json().encode("utf-8")).hexdigest()


def _default_payload() -> Dict:
    resource = resources.files("restodiag").joinpath("data", DEFAULT_CONFIG_RESOURCE)
    with resources.as_file(resource) as path:
        return load_yaml(path)


def load_config(path: str | Path | None = None) -> DiagnosisConfig:
    """Load the packaged defaults, merge an optional user YAML over them and validate.

    Raises ``pydantic.ValidationError`` for invalid configuration and
    ``FileNotFoundError`` when ``path`` does not exist.
    """
    payload = _default_payload()
    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")
        payload = deep_merge(payload, load_yaml(path))
    return DiagnosisConfig.model_validate(payload)


def default_config() -> DiagnosisConfig:
    """A fresh, validated copy of the packaged configuration."""
    return load_config()
