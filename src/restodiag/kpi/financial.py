"""Break-even, cash-flow, payback, operational efficiency and seasonality."""
from __future__ import annotations

from typing import Dict

from ..benchmarks import Benchmark
from ..config import DiagnosisConfig
from ..guard import safe_div
from ..models import SurveyRecord
from .models import CoreRatios, FinancialHealth, OperationalEfficiency, SeasonalOutlook, TimeSlotEfficiency


# Score weight of each menu-engineering quadrant in the menu health index.
MENU_QUADRANT_POINTS = {"star": 40.0, "plow_horse": 30.0, "puzzle": 20.0, "dog": -10.0}
TRADING_DAYS_PER_MONTH = 30


def fixed_costs(record: SurveyRecord, config: DiagnosisConfig) -> float:
    shares = config.kpi.fixed_cost_shares
    return record.rent_cost + record.labor_cost * shares.labor + record.utility_cost * shares.utility


def initial_investment(record: SurveyRecord, config: DiagnosisConfig) -> float:
    """Rough build-out estimate: decoration, equipment, rent deposit and opening stock."""
    kpi_cfg = config.kpi
    decoration = record.store_area * config.category_scores.decoration_cost_per_sqm[record.decoration_level]
    equipment = record.store_area * kpi_cfg.equipment_cost_per_sqm
    deposit = record.rent_cost * kpi_cfg.deposit_months
    inventory = record.food_cost * kpi_cfg.inventory_share
    return decoration + equipment + deposit + inventory


def payback_years(investment: float, annual_profit: float):
    if annual_profit <= 0:
        return None
    return investment / annual_profit


def cash_flow_health_score(coverage_ratio: float, emergency_reserve: float, table_turnover: float) -> float:
    if coverage_ratio >= 1.5:
        score = 40.0
    elif coverage_ratio >= 1.0:
        score = 30.0
    else:
        score = 20.0
    score += 30.0 if emergency_reserve > 0 else 0.0
    score += 30.0 if table_turnover >= 3 else 20.0
    return score


def compute_financial_health(record: SurveyRecord, core: CoreRatios, config: DiagnosisConfig) -> FinancialHealth:
    revenue = record.monthly_revenue
    fixed = fixed_costs(record, config)
    variable = record.food_cost + record.marketing_cost
    variable_rate = safe_div(variable, revenue)
    contribution_rate = max(0.0, 1.0 - variable_rate)

    break_even_revenue = fixed / contribution_rate if contribution_rate > 0 else None
    if break_even_revenue is None:
        break_even_customers = None
        safety_margin = None
    else:
        spend = core.avg_spending
        if "total_customers" in record.defaulted_fields or spend <= 0:
            spend = config.kpi.default_avg_spending
        break_even_customers = break_even_revenue / spend
        safety_margin = safe_div(revenue - break_even_revenue, revenue) if revenue > 0 else None

    monthly_profit = revenue - core.total_cost
    coverage = safe_div(monthly_profit, fixed)
    reserve = fixed * config.kpi.emergency_reserve_months
    investment = initial_investment(record, config)
    annual_profit = monthly_profit * 12

    return FinancialHealth(
        fixed_costs=fixed,
        variable_costs=variable,
        variable_cost_rate=variable_rate,
        contribution_margin_rate=contribution_rate,
        break_even_revenue=break_even_revenue,
        break_even_customers=break_even_customers,
        safety_margin=safety_margin,
        operating_cash_flow=monthly_profit,
        cash_flow_coverage_ratio=coverage,
        emergency_reserve=reserve,
        emergency_reserve_adequacy=safe_div(record.cash_reserve, reserve),
        cash_flow_health_score=cash_flow_health_score(coverage, reserve, core.table_turnover),
        monthly_net_profit=monthly_profit,
        annual_net_profit=annual_profit,
        initial_investment=investment,
        payback_years=payback_years(investment, annual_profit),
        working_capital_turnover=safe_div(revenue, record.food_cost * config.kpi.inventory_share),
    )


def operational_efficiency_score(core: CoreRatios, benchmark: Benchmark) -> float:
    """Mean of turnover and revenue-per-area against the benchmark, each capped at 100."""
    turnover_score = min(100.0, safe_div(core.table_turnover, benchmark.table_turnover) * 100)
    area_score = min(100.0, safe_div(core.revenue_per_sqm, benchmark.revenue_per_sqm) * 100)
    return (turnover_score + area_score) / 2


def compute_operational_efficiency(
    record: SurveyRecord, core: CoreRatios, benchmark: Benchmark, config: DiagnosisConfig
) -> OperationalEfficiency:
    daily_revenue = record.monthly_revenue / TRADING_DAYS_PER_MONTH
    daily_cost_base = (record.labor_cost + record.rent_cost) / TRADING_DAYS_PER_MONTH

    slots: Dict[str, TimeSlotEfficiency] = {}
    for name, slot in config.kpi.time_slots.items():
        slot_revenue = daily_revenue * slot.share
        slots[name] = TimeSlotEfficiency(
            revenue=slot_revenue,
            revenue_share=slot.share,
            revenue_per_cost=safe_div(slot_revenue, daily_cost_base * slot.share),
            revenue_per_sqm=safe_div(slot_revenue, record.store_area),
            revenue_per_hour=slot_revenue / slot.hours,
        )

    seat_utilization = min(1.0, safe_div(core.table_turnover, benchmark.table_turnover))
    structure = config.kpi.menu_structure
    menu_index = sum(structure[quadrant] * points for quadrant, points in MENU_QUADRANT_POINTS.items())

    return OperationalEfficiency(
        time_slots=slots,
        seat_utilization=seat_utilization,
        seat_waste_rate=1.0 - seat_utilization,
        menu_health_index=menu_index,
        recommended_dish_count=max(15, int(record.store_area // 20) + 15),
        operational_efficiency_score=operational_efficiency_score(core, benchmark),
    )


def compute_seasonal_outlook(record: SurveyRecord, config: DiagnosisConfig) -> SeasonalOutlook:
    """Project next-season revenue from the survey month; unknown months use a neutral 1.0."""
    month = record.survey_month
    coefficient = config.kpi.seasonal_coefficients[month - 1] if 1 <= month <= 12 else 1.0
    predicted = record.monthly_revenue * coefficient
    fixed = fixed_costs(record, config)
    return SeasonalOutlook(
        month=month,
        coefficient=coefficient,
        predicted_revenue=predicted,
        survival_test=predicted >= fixed,
        preparation_index=(predicted / fixed - 1) * 100 if fixed > 0 else 0.0,
    )
