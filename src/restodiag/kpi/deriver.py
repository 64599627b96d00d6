"""Derive the full KPI set for one survey record."""
from __future__ import annotations

import logging
from dataclasses import asdict

from ..benchmarks import Benchmark
from ..config import DiagnosisConfig
from ..models import SurveyRecord
from .customer import compute_churn_risk, compute_customer_value, compute_satisfaction
from .financial import compute_financial_health, compute_operational_efficiency
from .marketing import compute_marketing_effectiveness
from .models import KPISet
from .ratios import compute_core_ratios
from .strategy import compute_competitiveness, compute_expansion, compute_risk_radar


logger = logging.getLogger("restodiag.kpi")


def derive_kpis(record: SurveyRecord, benchmark: Benchmark, config: DiagnosisConfig) -> KPISet:
    """Compute core ratios, then each sub-model from the values before it.

    Deterministic for a given record, benchmark and configuration. Sub-models
    read earlier results but never modify them.
    """
    core = compute_core_ratios(record, benchmark, config)
    financial = compute_financial_health(record, core, config)

    kpis = KPISet(
        **asdict(core),
        financial=financial,
        operations=compute_operational_efficiency(record, core, benchmark, config),
        customer_value=compute_customer_value(record, core, config),
        churn=compute_churn_risk(core, config),
        satisfaction=compute_satisfaction(core, config),
        marketing=compute_marketing_effectiveness(record, config),
        risk=compute_risk_radar(record, core, financial, benchmark, config),
        competitiveness=compute_competitiveness(core, benchmark, config),
        expansion=compute_expansion(record, core, financial),
    )
    logger.debug(
        "Derived KPIs for %s: cost_rate=%.4f net_margin=%.4f turnover=%.2f",
        record.store_name or record.business_type.value,
        kpis.cost_rate,
        kpis.net_margin,
        kpis.table_turnover,
    )
    return kpis
