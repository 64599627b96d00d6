"""Industry benchmarks per business type and the resolver that selects them."""
from __future__ import annotations

import logging
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field

from .models import BusinessType


logger = logging.getLogger("restodiag.benchmarks")


class Benchmark(BaseModel):
    """Reference operating values for one business type."""

    model_config = ConfigDict(frozen=True)

    table_turnover: float = Field(..., gt=0, description="Daily customers per seat")
    gross_margin: float = Field(..., gt=0, le=1, description="(revenue - food cost) / revenue")
    takeaway_ratio: float = Field(..., ge=0, le=1, description="Online revenue share")
    revenue_per_sqm: float = Field(..., gt=0, description="Monthly revenue per square metre")
    avg_spending: float = Field(..., gt=0, description="Average spend per customer")


BENCHMARK_FIELDS = tuple(Benchmark.model_fields)


class BenchmarkResolver:
    """Look up the benchmark for a business type, falling back to ``OTHER``.

    The table must hold an entry for every :class:`BusinessType`, so
    :meth:`resolve` never fails.
    """

    def __init__(self, table: Mapping[BusinessType, Benchmark]):
        missing = [member.value for member in BusinessType if member not in table]
        if missing:
            raise ValueError(f"Benchmark table is missing business types: {', '.join(missing)}")
        self._table = dict(table)

    def resolve(self, business_type: Any) -> Benchmark:
        member = BusinessType.parse(business_type)
        if member is BusinessType.OTHER and business_type not in (BusinessType.OTHER, "other", "其他"):
            logger.debug("Unrecognised business type %r, using the default benchmark", business_type)
        return self._table[member]

    def __getitem__(self, business_type: BusinessType) -> Benchmark:
        return self._table[business_type]
