from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple, Union

from budget_advisor.money import ZERO


class GoalType(str, Enum):
    SAVINGS = "savings"
    DEBT = "debt"
    INVESTMENT = "investment"


class DebtPaymentComponent(str, Enum):
    PRINCIPAL = "principal"
    INTEREST = "interest"
    PRINCIPAL_INTEREST = "principal_interest"


class Scenario(str, Enum):
    BALANCED = "balanced"
    CONSERVATIVE = "conservative"
    RELAXED = "relaxed"


SCENARIOS = (Scenario.BALANCED, Scenario.CONSERVATIVE, Scenario.RELAXED)


@dataclass(frozen=True)
class Transaction:
    date: date
    amount: Decimal
    category: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class Category:
    name: str
    id: Optional[str] = None


@dataclass(frozen=True)
class CategoryGroup:
    name: str
    categories: Tuple[Category, ...] = ()
    id: Optional[str] = None


@dataclass(frozen=True)
class MonthlyAllocation:
    date: date
    planned_amount: Decimal
    actual_amount: Decimal = ZERO


@dataclass(frozen=True)
class GoalTracking:
    starting_balance: Decimal
    allocations: Tuple[MonthlyAllocation, ...] = ()


@dataclass(frozen=True)
class Goal:
    id: str
    type: GoalType
    amount: Decimal
    target_date: Union[date, str]
    starting_balance: Decimal = ZERO
    tracking: Optional[GoalTracking] = None
    name: Optional[str] = None
    debt_payment_component: Optional[DebtPaymentComponent] = None
    debt_interest_rate: Optional[Decimal] = None


@dataclass(frozen=True)
class CategorySpendingRecommendation:
    category_name: str
    spending: Decimal
    recommendation: Decimal
    target: Decimal


@dataclass(frozen=True)
class CategoryGroupRecommendation:
    group_name: str
    spending: Decimal
    recommendation: Decimal
    target: Decimal
    categories: Tuple[CategorySpendingRecommendation, ...] = ()


@dataclass(frozen=True)
class ScenarioRatios:
    balanced: Decimal
    conservative: Decimal
    relaxed: Decimal

    def for_scenario(self, scenario: Scenario) -> Decimal:
        return getattr(self, scenario.value)


GroupRecommendations = Dict[str, CategoryGroupRecommendation]


@dataclass(frozen=True)
class SpendingRecommendations:
    scenarios: Dict[Scenario, GroupRecommendations]
    ratios: ScenarioRatios
    income: Decimal
    essential_total: Decimal
    discretionary_total: Decimal
    goal_contribution_total: Decimal
    survival_mode: bool
    available_for_goals: Dict[Scenario, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class CategorySpendingTracking:
    category_name: str
    spending_actual: Decimal
    spending_target: Decimal


@dataclass(frozen=True)
class GroupSpendingTracking:
    group_name: str
    spending_actual: Decimal
    spending_target: Decimal
    categories: Tuple[CategorySpendingTracking, ...] = ()


SpendingTrackingsByMonth = Dict[str, Dict[str, GroupSpendingTracking]]


@dataclass(frozen=True)
class RecommendationResult:
    spending: Dict[Scenario, GroupRecommendations]
    goals: Dict[Scenario, Dict[str, Tuple[MonthlyAllocation, ...]]]
    goal_funding_ratios: Dict[Scenario, Decimal]
    ratios: ScenarioRatios
    spending_tracking: SpendingTrackingsByMonth
    survival_mode: bool

    def to_dict(self) -> dict:
        return {
            "survival_mode": self.survival_mode,
            "ratios": {
                scenario.value: float(self.ratios.for_scenario(scenario))
                for scenario in SCENARIOS
            },
            "goal_funding_ratios": {
                scenario.value: float(ratio)
                for scenario, ratio in self.goal_funding_ratios.items()
            },
            "spending_recommendations": {
                scenario.value: {
                    name: _group_recommendation_to_dict(group)
                    for name, group in groups.items()
                }
                for scenario, groups in self.spending.items()
            },
            "goal_recommendations": {
                scenario.value: {
                    goal_id: allocations_to_dicts(allocations)
                    for goal_id, allocations in schedules.items()
                }
                for scenario, schedules in self.goals.items()
            },
            "spending_tracking": {
                month: {
                    name: _group_tracking_to_dict(group)
                    for name, group in groups.items()
                }
                for month, groups in self.spending_tracking.items()
            },
        }


def allocations_to_dicts(allocations: Tuple[MonthlyAllocation, ...] | List[MonthlyAllocation]) -> list[dict]:
    return [
        {
            "date": allocation.date.isoformat(),
            "planned_amount": float(allocation.planned_amount),
            "actual_amount": float(allocation.actual_amount),
        }
        for allocation in allocations
    ]


def _group_recommendation_to_dict(group: CategoryGroupRecommendation) -> dict:
    return {
        "group_name": group.group_name,
        "spending": float(group.spending),
        "recommendation": float(group.recommendation),
        "target": float(group.target),
        "categories": [
            {
                "category_name": category.category_name,
                "spending": float(category.spending),
                "recommendation": float(category.recommendation),
                "target": float(category.target),
            }
            for category in group.categories
        ],
    }


def _group_tracking_to_dict(group: GroupSpendingTracking) -> dict:
    return {
        "group_name": group.group_name,
        "spending_actual": float(group.spending_actual),
        "spending_target": float(group.spending_target),
        "categories": [
            {
                "category_name": category.category_name,
                "spending_actual": float(category.spending_actual),
                "spending_target": float(category.spending_target),
            }
            for category in group.categories
        ],
    }
