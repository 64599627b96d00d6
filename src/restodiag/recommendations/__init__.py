"""Recommendation rule engine."""

from .engine import build_rule_metrics, suggest

__all__ = ["build_rule_metrics", "suggest"]
