from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional, Tuple

from budget_advisor.goal_scheduler import (
    create_goal_allocations,
    goal_funding_ratio,
    original_monthly_amount,
)
from budget_advisor.models import (
    SCENARIOS,
    CategoryGroup,
    Goal,
    MonthlyAllocation,
    RecommendationResult,
    Scenario,
    Transaction,
)
from budget_advisor.money import ZERO
from budget_advisor.spending_allocator import compute_recommendations
from budget_advisor.spending_tracking import (
    ROLLING_WINDOW_DAYS,
    calculate_spending_trackings,
    latest_rolling_window,
)

logger = logging.getLogger(__name__)


def recommend_spending_and_goals(
    transactions: Iterable[Transaction],
    goals: Iterable[Goal],
    category_groups: Mapping[str, CategoryGroup],
    today: Optional[date] = None,
    rolling_window_days: Optional[int] = ROLLING_WINDOW_DAYS,
) -> RecommendationResult:
    """Spending plans and goal schedules for every scenario.

    Spending recommendations are based on the latest rolling window of
    transactions (pass ``rolling_window_days=None`` to use all of them); the
    monthly spending tracking always covers the full history.
    """
    today = today or date.today()
    transactions = list(transactions)
    goals = list(goals)

    if rolling_window_days is None:
        recent = transactions
    else:
        recent = latest_rolling_window(transactions, rolling_window_days)

    spending = compute_recommendations(recent, goals, category_groups, today=today)

    funding_ratios: Dict[Scenario, Decimal] = {}
    schedules: Dict[Scenario, Dict[str, Tuple[MonthlyAllocation, ...]]] = {}
    for scenario in SCENARIOS:
        if spending.survival_mode:
            ratio = ZERO
        else:
            ratio = goal_funding_ratio(
                scenario,
                spending.available_for_goals[scenario],
                spending.goal_contribution_total,
            )
        funding_ratios[scenario] = ratio
        schedules[scenario] = {
            goal.id: tuple(
                create_goal_allocations(
                    goal,
                    original_monthly_amount(goal, today),
                    ratio,
                    today=today,
                )
            )
            for goal in goals
        }
        logger.debug("Scenario %s funds goals at ratio %s", scenario.value, ratio)

    return RecommendationResult(
        spending=spending.scenarios,
        goals=schedules,
        goal_funding_ratios=funding_ratios,
        ratios=spending.ratios,
        spending_tracking=calculate_spending_trackings(transactions, category_groups, today),
        survival_mode=spending.survival_mode,
    )
