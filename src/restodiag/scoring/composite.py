"""Composite profitability score for one store-month.

Each configured indicator is band-normalized, weighted and summed. Penalty
rules and the resilience penalty are subtracted, and the result is clamped
to 0..100, rounded and mapped to a health level.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from ..config import LevelBand, ScoringConfig
from ..kpi.models import KPISet
from ..models import HealthLevel, SurveyRecord
from .penalties import evaluate_penalties, resilience_penalty
from .ranking import FactorImpact, rank_factors
from .transforms import normalize_band


logger = logging.getLogger("restodiag.scoring")

INSUFFICIENT_DATA_DESCRIPTION = "Not enough data to score this store: revenue is missing or zero."


@dataclass(frozen=True)
class CompositeScoreResult:
    score: int
    level: HealthLevel
    description: str
    indicators: Dict[str, float] = field(default_factory=dict)
    normalized: Dict[str, float] = field(default_factory=dict)
    weights: Dict[str, float] = field(default_factory=dict)
    penalty: float = 0.0
    penalty_breakdown: Tuple[Dict[str, object], ...] = ()
    top_factors: Tuple[FactorImpact, ...] = ()
    bottom_factors: Tuple[FactorImpact, ...] = ()
    degraded: Tuple[str, ...] = ()

    @property
    def is_insufficient(self) -> bool:
        return self.level is HealthLevel.INSUFFICIENT_DATA

    def to_dict(self) -> Dict[str, object]:
        return {
            "score": self.score,
            "level": self.level.value,
            "description": self.description,
            "indicators": {k: round(v, 6) for k, v in self.indicators.items()},
            "normalized": {k: round(v, 2) for k, v in self.normalized.items()},
            "penalty": self.penalty,
            "penalty_breakdown": list(self.penalty_breakdown),
            "top_factors": [f.to_dict() for f in self.top_factors],
            "bottom_factors": [f.to_dict() for f in self.bottom_factors],
            "degraded": list(self.degraded),
        }


def insufficient_data_result() -> CompositeScoreResult:
    """The designated result for records that cannot be scored."""
    return CompositeScoreResult(score=0, level=HealthLevel.INSUFFICIENT_DATA, description=INSUFFICIENT_DATA_DESCRIPTION)


def assign_level(score: float, levels: List[LevelBand]) -> LevelBand:
    """Return the first band (highest ``min_score`` first) the score reaches."""
    for band in sorted(levels, key=lambda b: b.min_score, reverse=True):
        if score >= band.min_score:
            return band
    return levels[-1]


def score_composite(
    record: Optional[SurveyRecord],
    kpis: Optional[KPISet],
    config: ScoringConfig,
) -> CompositeScoreResult:
    """Score a record's KPI set; missing input or zero revenue yields the insufficient-data result."""
    if record is None or kpis is None or record.monthly_revenue <= 0:
        logger.info("Insufficient data for composite score (revenue missing or zero)")
        return insufficient_data_result()

    bounds = config.bounds.to_bounds()
    weights = config.weights()
    indicators: Dict[str, float] = {}
    normalized: Dict[str, float] = {}
    degraded: List[str] = []

    for indicator in config.indicators:
        raw = getattr(kpis, indicator.name)
        indicators[indicator.name] = float(raw)
        value, was_degraded = normalize_band(raw, indicator.baseline(), indicator.is_inverse(), bounds)
        normalized[indicator.name] = value
        if was_degraded:
            degraded.append(indicator.name)
    if degraded:
        logger.warning("Non-finite indicator values scored at the floor: %s", ", ".join(degraded))

    resilience_cfg = config.resilience
    resilience_value = float(getattr(kpis, resilience_cfg.indicator, 0.0))
    indicators[resilience_cfg.indicator] = resilience_value

    weighted_sum = float(sum(normalized[name] * weights[name] for name in normalized))

    frame = pd.DataFrame([indicators])
    penalty_total, penalty_breakdown = evaluate_penalties(frame, config.penalties)
    breakdown = list(penalty_breakdown.iloc[0])
    penalty = float(penalty_total.iloc[0])

    extra = resilience_penalty(resilience_value, resilience_cfg.threshold, resilience_cfg.points_per_month, resilience_cfg.cap)
    if extra > 0:
        breakdown.append({"rule": "resilience", "penalty": extra})
        penalty += extra

    score = int(round(float(np.clip(weighted_sum - penalty, 0.0, 100.0))))
    band = assign_level(score, config.levels)
    ranking = rank_factors(normalized, weights)

    logger.debug("Composite score %d (weighted %.2f, penalty %.1f) -> %s", score, weighted_sum, penalty, band.level.value)
    return CompositeScoreResult(
        score=score,
        level=band.level,
        description=band.description,
        indicators=indicators,
        normalized=normalized,
        weights=weights,
        penalty=penalty,
        penalty_breakdown=tuple(breakdown),
        top_factors=ranking.top,
        bottom_factors=ranking.bottom,
        degraded=tuple(degraded),
    )
