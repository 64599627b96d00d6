"""Penalty evaluation for the composite score."""
from __future__ import annotations

import logging
from typing import Any, List, Tuple

import pandas as pd


logger = logging.getLogger("restodiag.scoring.penalties")


def _field(r: Any, key: str, default: Any = None) -> Any:
    # Support both dict-like and object-like rules (e.g., Pydantic models)
    if isinstance(r, dict):
        return r.get(key, default)
    return getattr(r, key, default)


def evaluate_penalties(
    df: pd.DataFrame,
    rules: List[Any]
) -> Tuple[pd.Series, pd.Series]:
    """
    Evaluate penalty rules row by row.

    Args:
        df: One row per scored store, one column per raw indicator value.
        rules: Penalty rules (dicts or models) with keys:
               - name: Rule name
               - when: Boolean expression understood by ``DataFrame.eval``
               - apply: Points to subtract when the expression is true

    Returns:
        Tuple of (penalty_total, penalty_breakdown):
        - penalty_total: Series with the summed penalty points per row
        - penalty_breakdown: Series holding a list of ``{rule, penalty}`` per row
    """
    if df.empty or not rules:
        penalty_total = pd.Series(0.0, index=df.index)
        penalty_breakdown = pd.Series([[] for _ in range(len(df))], index=df.index, dtype=object)
        return penalty_total, penalty_breakdown

    penalty_total = pd.Series(0.0, index=df.index)
    penalty_lists: dict = {idx: [] for idx in df.index}

    for rule in rules:
        rule_name = _field(rule, 'name', 'unnamed')
        when_condition = _field(rule, 'when', '')
        penalty_value = float(_field(rule, 'apply', 0))

        if not when_condition:
            logger.warning("Penalty rule '%s' has no 'when' condition, skipping", rule_name)
            continue

        try:
            mask = df.eval(when_condition)
        except Exception as e:  # pandas raises a wide range of parser errors
            logger.error("Failed to evaluate penalty rule '%s': %s", rule_name, e)
            logger.debug("Rule condition: %s", when_condition)
            continue

        mask = pd.Series(mask, index=df.index).fillna(False).astype(bool)
        penalty_total[mask] += penalty_value
        for idx in df.index[mask]:
            penalty_lists[idx].append({'rule': rule_name, 'penalty': penalty_value})

        hit_count = int(mask.sum())
        if hit_count > 0:
            logger.info("Penalty rule '%s' applied %d times", rule_name, hit_count)

    penalty_breakdown = pd.Series([penalty_lists[idx] for idx in df.index], index=df.index, dtype=object)
    return penalty_total, penalty_breakdown


def resilience_penalty(months: float, threshold: float, points_per_month: float, cap: float) -> float:
    """Points for each month of decline beyond ``threshold`` (a negative month count), capped."""
    if months >= threshold:
        return 0.0
    return float(min(cap, (threshold - months) * points_per_month))
