"""Band normalization of raw indicator values onto a bounded score scale."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class Baseline:
    """Reference band for an indicator: ``min < ideal < max``."""

    min: float
    ideal: float
    max: float


@dataclass(frozen=True)
class ScoreBounds:
    floor: float = 0.0
    mid: float = 80.0
    ceiling: float = 100.0


DEFAULT_BOUNDS = ScoreBounds()


def is_inverse_direction(direction: str) -> bool:
    """Return True when ``direction`` means lower raw values are better."""
    direction_lower = str(direction).lower()
    return direction_lower in ['lower_is_better', 'down', 'lower', 'desc', 'descending', 'inverse']


def normalize_band(
    value: float,
    baseline: Baseline,
    inverse: bool = False,
    bounds: ScoreBounds = DEFAULT_BOUNDS,
) -> Tuple[float, bool]:
    """
    Map a raw value onto ``[bounds.floor, bounds.ceiling]`` piecewise-linearly.

    Forward indicators map min -> floor, ideal -> mid, max -> ceiling; inverse
    indicators map min -> ceiling, ideal -> mid, max -> floor. Values outside
    the band are clamped.

    Args:
        value: Raw indicator value
        baseline: Band for the indicator
        inverse: True when lower values are better
        bounds: Score scale

    Returns:
        Tuple of (score, degraded) where ``degraded`` is True when the raw
        value was not finite and the floor was returned instead.
    """
    try:
        value = float(value)
    except (TypeError, ValueError):
        return bounds.floor, True
    if not math.isfinite(value):
        return bounds.floor, True

    xp = [baseline.min, baseline.ideal, baseline.max]
    if inverse:
        fp = [bounds.ceiling, bounds.mid, bounds.floor]
    else:
        fp = [bounds.floor, bounds.mid, bounds.ceiling]
    # np.interp clamps to the end values outside [min, max]
    score = float(np.interp(value, xp, fp))
    return float(np.clip(score, bounds.floor, bounds.ceiling)), False


def normalize(
    value: float,
    baseline: Baseline,
    inverse: bool = False,
    bounds: ScoreBounds = DEFAULT_BOUNDS,
) -> float:
    """Score-only variant of :func:`normalize_band`."""
    return normalize_band(value, baseline, inverse, bounds)[0]
