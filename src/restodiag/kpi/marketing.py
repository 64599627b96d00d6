"""Marketing return and content health."""
from __future__ import annotations

from typing import Dict, Tuple

from ..config import DiagnosisConfig
from ..guard import safe_div
from ..models import SurveyRecord
from .models import MarketingEffectiveness


# (share of marketing spend, share of attributed revenue, revenue base)
CHANNEL_ATTRIBUTION: Dict[str, Tuple[float, float, str]] = {
    "platform_advertising": (0.4, 0.60, "online"),
    "short_video": (0.3, 0.25, "online"),
    "live_streaming": (0.2, 0.10, "online"),
    "promotions": (0.1, 0.05, "total"),
}


def channel_roi(record: SurveyRecord) -> Dict[str, float]:
    result = {}
    for channel, (cost_share, revenue_share, base) in CHANNEL_ATTRIBUTION.items():
        cost = record.marketing_cost * cost_share
        revenue_base = record.online_revenue if base == "online" else record.monthly_revenue
        result[channel] = safe_div(revenue_base * revenue_share - cost, cost)
    return result


def content_suggestions(health_index: float) -> Tuple[str, ...]:
    if health_index < 60:
        return ("Post more often", "Improve content quality", "Build a dedicated content team")
    if health_index < 80:
        return ("Refine the content strategy", "Engage more with followers")
    return ("Keep the current cadence", "Try new content formats")


def compute_marketing_effectiveness(record: SurveyRecord, config: DiagnosisConfig) -> MarketingEffectiveness:
    targets = config.kpi.content
    roi_by_channel = channel_roi(record)
    average_roi = sum(roi_by_channel.values()) / len(roi_by_channel)

    video_score = min(100.0, safe_div(record.short_video_count, targets.health_video_target) * 100)
    live_score = min(100.0, safe_div(record.live_stream_count, targets.health_live_target) * 100)
    team_score = config.category_scores.marketing_team_score[record.marketing_situation]
    health_index = video_score * 0.4 + live_score * 0.3 + team_score * 0.3

    return MarketingEffectiveness(
        total_marketing_roi=safe_div(record.monthly_revenue - record.marketing_cost, record.marketing_cost),
        channel_roi=roi_by_channel,
        marketing_efficiency_score=max(0.0, min(100.0, average_roi * 20)),
        content_health_index=health_index,
        video_frequency_score=video_score,
        live_frequency_score=live_score,
        team_score=team_score,
        content_suggestions=content_suggestions(health_index),
    )
