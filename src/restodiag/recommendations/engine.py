"""Threshold rules that turn KPI values into prioritized suggestions.

Rules are independent: each one is checked against the same metric mapping
and every rule that fires yields one :class:`Suggestion`. The result is sorted
by ``impact * probability / (cost * cycle)``, highest first, keeping rule
order for ties.
"""
from __future__ import annotations

import logging
import operator
from typing import Callable, Dict, FrozenSet, List, Mapping, Optional, Sequence

from ..benchmarks import BENCHMARK_FIELDS, Benchmark
from ..config import RuleConfig
from ..kpi.models import CORE_RATIO_FIELDS, NESTED_SIGNALS, KPISet
from ..kpi.strategy import COMPETITIVENESS_WEIGHTS
from ..models import MarketingSituation, Suggestion, SurveyRecord
from ..scoring.composite import CompositeScoreResult
from .formatters import render


logger = logging.getLogger("restodiag.recommendations")

OPERATORS: Dict[str, Callable[[float, float], bool]] = {
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}

OUTPUT_INDICATORS = ("revenue_per_sqm", "revenue_per_labor_unit")

# Share of each cost line a successful intervention is expected to save.
SAVING_RATES = {"food_saving": ("monthly_revenue", 0.04), "labor_saving": ("labor_cost", 0.15), "marketing_saving": ("marketing_cost", 0.25)}

FACTOR_METRICS = (
    "output_factor_score",
    "efficiency_factor_score",
    "reputation_factor_score",
    "interaction_rate",
    "kol_quality_score",
    "has_marketing_team",
    "composite_score",
)


def known_metric_names() -> FrozenSet[str]:
    """Every name a rule can reference: KPI signals plus the values from :func:`build_rule_metrics`."""
    names = set(CORE_RATIO_FIELDS) | set(NESTED_SIGNALS) | set(FACTOR_METRICS) | set(SAVING_RATES)
    names.update(f"competitiveness_{name}" for name in COMPETITIVENESS_WEIGHTS)
    names.update(f"bench_{name}" for name in BENCHMARK_FIELDS)
    return frozenset(names)


def priority(impact: float, probability: float, cost: float, cycle: float) -> float:
    return impact * probability / (cost * cycle)


def build_rule_metrics(
    record: SurveyRecord,
    kpis: KPISet,
    composite: CompositeScoreResult,
    benchmark: Benchmark,
) -> Dict[str, float]:
    """Derived factor scores, benchmark references and savings estimates for the rule set."""
    normalized = composite.normalized
    output_scores = [normalized[name] for name in OUTPUT_INDICATORS if name in normalized]

    metrics: Dict[str, float] = {
        "output_factor_score": sum(output_scores) / len(output_scores) if output_scores else 0.0,
        "efficiency_factor_score": kpis.competitiveness.factors["operational_efficiency"],
        "reputation_factor_score": kpis.competitiveness.factors["product_quality"],
        "interaction_rate": kpis.interaction_rate,
        "kol_quality_score": kpis.marketing.content_health_index,
        "has_marketing_team": 0.0 if record.marketing_situation is MarketingSituation.NONE else 1.0,
        "composite_score": float(composite.score),
    }
    for name in BENCHMARK_FIELDS:
        metrics[f"bench_{name}"] = float(getattr(benchmark, name))
    for name, (source, rate) in SAVING_RATES.items():
        metrics[name] = getattr(record, source) * rate
    return metrics


def _reference_value(rule: RuleConfig, values: Mapping[str, float]) -> Optional[float]:
    if rule.threshold is not None:
        return rule.threshold
    bench = values.get(f"bench_{rule.benchmark}")
    return None if bench is None else bench * rule.scale


def rule_fires(rule: RuleConfig, values: Mapping[str, float]) -> bool:
    value = values.get(rule.metric)
    reference = _reference_value(rule, values)
    if value is None or reference is None:
        logger.debug("Rule '%s' skipped: metric '%s' or its reference is unavailable", rule.id, rule.metric)
        return False
    return OPERATORS[rule.op](value, reference)


def build_suggestion(rule: RuleConfig, values: Mapping[str, float]) -> Suggestion:
    return Suggestion(
        id=rule.id,
        title=rule.title,
        category=rule.category,
        impact=rule.impact,
        probability=rule.probability,
        cost=rule.cost,
        cycle=rule.cycle,
        priority=priority(rule.impact, rule.probability, rule.cost, rule.cycle),
        problem=render(rule.problem, values),
        solution=render(rule.solution, values),
        expected_benefit=render(rule.expected_benefit, values),
        tasks=tuple(rule.tasks),
    )


def suggest(
    kpis: KPISet,
    metrics: Optional[Mapping[str, float]],
    rules: Sequence[RuleConfig],
) -> List[Suggestion]:
    """Evaluate every rule against the KPI signals plus ``metrics`` and return the firing set."""
    values: Dict[str, float] = {**kpis.signals(), **(metrics or {})}

    fired = [build_suggestion(rule, values) for rule in rules if rule_fires(rule, values)]
    # sorted() is stable, so equal priorities keep rule order
    ordered = sorted(fired, key=lambda s: s.priority, reverse=True)
    logger.info("%d of %d recommendation rules fired", len(ordered), len(rules))
    return ordered
