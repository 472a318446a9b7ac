from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from budget_advisor.goal_scheduler import total_monthly_goal_contribution
from budget_advisor.models import (
    SCENARIOS,
    CategoryGroup,
    CategoryGroupRecommendation,
    CategorySpendingRecommendation,
    Goal,
    GroupRecommendations,
    Scenario,
    ScenarioRatios,
    SpendingRecommendations,
    Transaction,
)
from budget_advisor.money import ONE, ZERO, coerce_amount, round2

logger = logging.getLogger(__name__)

INCOME_CATEGORY = "Income"
OTHER_GROUP = "Other"

# Fixed allow-list; every other non-income category is essential.
DISCRETIONARY_CATEGORIES = frozenset(
    {
        "Shopping",
        "Online Marketplaces",
        "Superstores",
        "Other Entertainment",
        "Events & Amusement",
        "Video Games",
        "TV & Movies",
        "Music & Audio",
    }
)

MAX_REDUCTION_RATIO = Decimal("0.5")
CONSERVATIVE_REDUCTION_RATIO = Decimal("0.2")
RELAXED_INCREASE_RATIO = Decimal("0.2")


def is_discretionary(category_name: str) -> bool:
    return category_name in DISCRETIONARY_CATEGORIES


def compute_recommendations(
    transactions: Iterable[Transaction],
    goals: Iterable[Goal],
    category_groups: Mapping[str, CategoryGroup],
    today: Optional[date] = None,
) -> SpendingRecommendations:
    category_spending = aggregate_category_spending(transactions)
    income = abs(category_spending.get(INCOME_CATEGORY, ZERO))
    essential_total, discretionary_total = partition_spending(category_spending)
    goal_total = total_monthly_goal_contribution(goals, today)

    if income < essential_total:
        ratio = _capped_ratio(essential_total - income, discretionary_total)
        logger.warning(
            "Income %s does not cover essentials %s, cutting discretionary spending by %s",
            income,
            essential_total,
            ratio,
        )
        groups = apply_adjustment_ratio(category_spending, ratio, category_groups)
        return SpendingRecommendations(
            scenarios={scenario: dict(groups) for scenario in SCENARIOS},
            ratios=ScenarioRatios(balanced=ratio, conservative=ratio, relaxed=ratio),
            income=income,
            essential_total=essential_total,
            discretionary_total=discretionary_total,
            goal_contribution_total=goal_total,
            survival_mode=True,
            available_for_goals={scenario: ZERO for scenario in SCENARIOS},
        )

    available = income - essential_total
    ratios = compute_adjustment_ratios(available, discretionary_total, goal_total)

    scenarios: Dict[Scenario, GroupRecommendations] = {}
    available_for_goals: Dict[Scenario, Decimal] = {}
    for scenario in SCENARIOS:
        groups = apply_adjustment_ratio(
            category_spending,
            ratios.for_scenario(scenario),
            category_groups,
        )
        scenarios[scenario] = groups
        available_for_goals[scenario] = round2(available - discretionary_recommendation(groups))

    return SpendingRecommendations(
        scenarios=scenarios,
        ratios=ratios,
        income=income,
        essential_total=essential_total,
        discretionary_total=discretionary_total,
        goal_contribution_total=goal_total,
        survival_mode=False,
        available_for_goals=available_for_goals,
    )


def compute_adjustment_ratios(
    available_after_essentials: Decimal,
    discretionary_total: Decimal,
    goal_total: Decimal,
) -> ScenarioRatios:
    """Discretionary adjustment ratios; positive cuts spending, negative raises it."""
    demand = discretionary_total + goal_total
    needs_reduction = available_after_essentials < demand

    if needs_reduction:
        balanced = _capped_ratio(demand - available_after_essentials, demand)
    else:
        balanced = ZERO

    conservative = CONSERVATIVE_REDUCTION_RATIO
    unfunded = (
        discretionary_total * (ONE - CONSERVATIVE_REDUCTION_RATIO)
        + goal_total
        - available_after_essentials
    )
    if unfunded > ZERO:
        conservative = min(
            MAX_REDUCTION_RATIO,
            CONSERVATIVE_REDUCTION_RATIO + _capped_ratio(unfunded, demand),
        )

    if needs_reduction:
        relaxed = balanced
    elif discretionary_total > ZERO:
        room = available_after_essentials - demand
        increase = min(discretionary_total * RELAXED_INCREASE_RATIO, room)
        relaxed = ZERO - increase / discretionary_total
    else:
        relaxed = ZERO

    return ScenarioRatios(balanced=balanced, conservative=conservative, relaxed=relaxed)


def aggregate_category_spending(transactions: Iterable[Transaction]) -> Dict[str, Decimal]:
    spending: Dict[str, Decimal] = {}
    for txn in transactions:
        if not txn.category:
            logger.warning("Transaction %s has no category, skipping", txn.id)
            continue
        amount = coerce_amount(txn.amount)
        if not amount.is_finite():
            logger.error("Transaction %s has a non-finite amount %r, skipping", txn.id, txn.amount)
            continue
        spending[txn.category] = round2(spending.get(txn.category, ZERO) + amount)
    return spending


def partition_spending(category_spending: Mapping[str, Decimal]) -> Tuple[Decimal, Decimal]:
    """Return ``(essential_total, discretionary_total)``, excluding income."""
    essential = ZERO
    discretionary = ZERO
    for category, amount in category_spending.items():
        if category == INCOME_CATEGORY:
            continue
        if is_discretionary(category):
            discretionary = round2(discretionary + amount)
        else:
            essential = round2(essential + amount)
    return essential, discretionary


def apply_adjustment_ratio(
    category_spending: Mapping[str, Decimal],
    ratio: Decimal,
    category_groups: Mapping[str, CategoryGroup],
) -> GroupRecommendations:
    category_to_group = _category_to_group_map(category_groups)

    grouped: Dict[str, List[CategorySpendingRecommendation]] = {
        group.name: [] for group in category_groups.values()
    }
    for category, spending in category_spending.items():
        group_name = category_to_group.get(category, OTHER_GROUP)
        if is_discretionary(category):
            recommendation = round2(spending * (ONE - ratio))
        else:
            recommendation = spending
        grouped.setdefault(group_name, []).append(
            CategorySpendingRecommendation(
                category_name=category,
                spending=spending,
                recommendation=recommendation,
                target=recommendation,
            )
        )

    groups: GroupRecommendations = {}
    for group_name, categories in grouped.items():
        group_spending = ZERO
        group_recommendation = ZERO
        for category in categories:
            group_spending = round2(group_spending + category.spending)
            group_recommendation = round2(group_recommendation + category.recommendation)
        groups[group_name] = CategoryGroupRecommendation(
            group_name=group_name,
            spending=group_spending,
            recommendation=group_recommendation,
            target=group_recommendation,
            categories=tuple(categories),
        )
    return groups


def discretionary_recommendation(groups: GroupRecommendations) -> Decimal:
    total = ZERO
    for group in groups.values():
        for category in group.categories:
            if is_discretionary(category.category_name):
                total = round2(total + category.recommendation)
    return total


def _category_to_group_map(category_groups: Mapping[str, CategoryGroup]) -> Dict[str, str]:
    mapping: Dict[str, str] = {}
    for group in category_groups.values():
        for category in group.categories:
            mapping[category.name] = group.name
    return mapping


def _capped_ratio(needed: Decimal, base: Decimal) -> Decimal:
    if base <= ZERO:
        return MAX_REDUCTION_RATIO
    return min(MAX_REDUCTION_RATIO, needed / base)
