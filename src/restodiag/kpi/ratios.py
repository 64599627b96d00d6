"""Core operating ratios derived directly from a survey record."""
from __future__ import annotations

from ..benchmarks import Benchmark
from ..config import DiagnosisConfig
from ..guard import safe_div
from ..models import SurveyRecord
from .models import CoreRatios


def estimate_employees(labor_cost: float, monthly_wage: float) -> int:
    return max(1, int(round(safe_div(labor_cost, monthly_wage))))


def content_marketing_index(record: SurveyRecord, config: DiagnosisConfig) -> float:
    """Video output (up to 40) + live streaming (up to 30) + marketing team points (up to 30)."""
    targets = config.kpi.content
    video_points = min(40.0, safe_div(record.short_video_count, targets.video_target) * 40)
    live_points = min(30.0, safe_div(record.live_stream_count, targets.live_target) * 30)
    team_points = config.category_scores.marketing_content_points[record.marketing_situation]
    return max(0.0, video_points + live_points + team_points)


def location_match_score(record: SurveyRecord, revenue_per_sqm: float, benchmark: Benchmark, config: DiagnosisConfig) -> float:
    scores = config.category_scores
    circle_points = scores.business_circle[record.business_circle] / 100 * 40
    decor_points = scores.decoration[record.decoration_level] / 100 * 30
    output_points = max(0.0, min(30.0, safe_div(revenue_per_sqm, benchmark.revenue_per_sqm) * 30))
    return circle_points + decor_points + output_points


def marketing_health_score(record: SurveyRecord, marketing_ratio: float, config: DiagnosisConfig) -> float:
    """Spend discipline (up to 40) + rating (up to 30) + video output (up to 30)."""
    spend_points = max(0.0, 40 - marketing_ratio * 400)
    rating_points = max(0.0, min(30.0, record.average_rating / 5 * 30))
    video_points = min(30.0, safe_div(record.short_video_count, config.kpi.content.video_target) * 30)
    return spend_points + rating_points + video_points


def compute_core_ratios(record: SurveyRecord, benchmark: Benchmark, config: DiagnosisConfig) -> CoreRatios:
    revenue = record.monthly_revenue
    total_cost = record.total_cost
    cost_rate = safe_div(total_cost, revenue)
    employees = estimate_employees(record.labor_cost, config.kpi.assumed_monthly_wage)
    revenue_per_sqm = safe_div(revenue, record.store_area)
    avg_spending = safe_div(revenue, record.total_customers)
    takeaway_ratio = safe_div(record.online_revenue, revenue)
    marketing_ratio = safe_div(record.marketing_cost, revenue)

    return CoreRatios(
        total_cost=total_cost,
        food_cost_ratio=safe_div(record.food_cost, revenue),
        labor_cost_ratio=safe_div(record.labor_cost, revenue),
        rent_cost_ratio=safe_div(record.rent_cost, revenue),
        marketing_cost_ratio=marketing_ratio,
        utility_cost_ratio=safe_div(record.utility_cost, revenue),
        cost_rate=cost_rate,
        net_margin=1.0 - cost_rate if revenue > 0 else 0.0,
        gross_margin=safe_div(revenue - record.food_cost, revenue),
        estimated_employees=employees,
        table_turnover=safe_div(record.daily_customers, record.seats),
        revenue_per_sqm=revenue_per_sqm,
        revenue_per_employee=safe_div(revenue, employees),
        revenue_per_labor_unit=safe_div(revenue, record.labor_cost),
        avg_spending=avg_spending,
        member_repurchase=safe_div(record.repeat_customers, record.total_customers),
        takeaway_ratio=takeaway_ratio,
        online_boost=min(1.0, max(0.0, takeaway_ratio)),
        price_volatility=abs(safe_div(avg_spending, benchmark.avg_spending) - 1.0),
        review_score=record.average_rating,
        negative_comment_rate=safe_div(record.bad_reviews, record.total_reviews),
        service_bad_review_rate=safe_div(record.service_bad_reviews, record.bad_reviews),
        taste_bad_review_rate=safe_div(record.taste_bad_reviews, record.bad_reviews),
        interaction_rate=safe_div(record.total_reviews, record.total_customers),
        short_video_count=record.short_video_count,
        live_stream_count=record.live_stream_count,
        content_marketing_index=content_marketing_index(record, config),
        location_match_score=location_match_score(record, revenue_per_sqm, benchmark, config),
        marketing_health_score=marketing_health_score(record, marketing_ratio, config),
        # No month-over-month history is collected, so there is no decline streak to count.
        resilience_months=0.0,
    )
