"""Rank composite indicators by their weighted contribution."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

import pandas as pd


@dataclass(frozen=True)
class FactorImpact:
    name: str
    normalized: float
    weight: float
    impact: float

    def to_dict(self) -> Dict[str, float | str]:
        return {"name": self.name, "normalized": round(self.normalized, 2), "weight": self.weight, "impact": round(self.impact, 2)}


@dataclass(frozen=True)
class FactorRanking:
    ranked: Tuple[FactorImpact, ...]
    top: Tuple[FactorImpact, ...]
    bottom: Tuple[FactorImpact, ...]


def rank_factors(normalized: Mapping[str, float], weights: Mapping[str, float], count: int = 2) -> FactorRanking:
    """
    Order indicators by ``normalized * weight``.

    The sort is stable, so equal impacts keep the configured indicator order.
    ``top`` holds the ``count`` strongest contributors, ``bottom`` the
    ``count`` weakest with the weakest first.
    """
    if not normalized:
        return FactorRanking(ranked=(), top=(), bottom=())

    frame = pd.DataFrame(
        {
            "name": list(normalized.keys()),
            "normalized": [float(v) for v in normalized.values()],
            "weight": [float(weights.get(name, 0.0)) for name in normalized],
        }
    )
    frame["impact"] = frame["normalized"] * frame["weight"]
    frame = frame.sort_values("impact", ascending=False, kind="mergesort").reset_index(drop=True)

    ranked = tuple(
        FactorImpact(row.name, row.normalized, row.weight, row.impact)
        for row in frame.itertuples(index=False)
    )
    bottom = tuple(reversed(ranked[-count:])) if len(ranked) >= count else tuple(reversed(ranked))
    return FactorRanking(ranked=ranked, top=ranked[:count], bottom=bottom)
