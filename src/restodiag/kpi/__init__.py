"""KPI derivation: core ratios and the financial, customer, marketing and strategy sub-models."""

from .deriver import derive_kpis
from .models import KPISet

__all__ = ["derive_kpis", "KPISet"]
