from __future__ import annotations

import logging
from datetime import date
from decimal import ROUND_CEILING, Decimal
from typing import Callable, Iterable, List, Optional

from budget_advisor.models import (
    DebtPaymentComponent,
    Goal,
    GoalTracking,
    GoalType,
    MonthlyAllocation,
    Scenario,
)
from budget_advisor.money import (
    ONE,
    ZERO,
    AmountLike,
    ceil2,
    coerce_amount,
    floor2,
    month_start,
    months_between,
    parse_date,
    round2,
    shift_month,
)

logger = logging.getLogger(__name__)

MAX_ACCELERATION_RATIO = Decimal("1.5")
MAX_SCHEDULE_MONTHS = 600


def create_goal_trackings(
    goal: Goal,
    starting_balance: AmountLike,
    today: Optional[date] = None,
) -> GoalTracking:
    """Initial equal-installment schedule generated when a goal is created.

    One allocation per month from the first of the current month up to the
    target month; the final installment absorbs the rounding remainder so the
    schedule sums exactly to ``amount - starting_balance``.
    """
    today = today or date.today()
    balance = coerce_amount(starting_balance)
    if not balance.is_finite():
        logger.error("Goal %s has a non-finite starting balance %r", goal.id, starting_balance)
        balance = ZERO

    amount = coerce_amount(goal.amount)
    if not amount.is_finite() or amount < ZERO:
        logger.error("Goal %s has an invalid target amount %r", goal.id, goal.amount)
        return GoalTracking(starting_balance=balance)

    remaining = amount - balance
    if remaining <= ZERO:
        return GoalTracking(starting_balance=balance)

    target_date = parse_date(goal.target_date, fallback=today)
    number_of_months = max(1, months_between(today, target_date))
    allocations = _build_allocations(
        month_start(today),
        remaining,
        number_of_months,
        round2,
    )
    return GoalTracking(starting_balance=balance, allocations=tuple(allocations))


def create_goal_allocations(
    goal: Goal,
    original_monthly_amount: AmountLike,
    adjustment_ratio: AmountLike,
    today: Optional[date] = None,
) -> List[MonthlyAllocation]:
    """Regenerate a goal's schedule scaled by a scenario's funding ratio.

    A ratio of 0 leaves the goal unfunded (empty schedule), 1 keeps the
    original schedule, anything else changes the monthly amount and, except for
    principal+interest debt, the number of installments.
    """
    today = today or date.today()
    original = coerce_amount(original_monthly_amount)
    ratio = coerce_amount(adjustment_ratio)
    if not original.is_finite() or not ratio.is_finite():
        logger.error(
            "Goal %s: non-finite monthly amount %r or ratio %r",
            goal.id,
            original_monthly_amount,
            adjustment_ratio,
        )
        return []
    if ratio < ZERO:
        logger.error("Goal %s: negative adjustment ratio %s", goal.id, ratio)
        return []

    adjusted_monthly_amount = round2(original * ratio)
    if adjusted_monthly_amount <= ZERO:
        return []

    remaining = remaining_amount(goal)
    if remaining is None or remaining <= ZERO:
        return []

    start = month_start(today)
    if ratio == ONE:
        payments = original_installment_count(goal, today)
        return _build_allocations(start, remaining, payments, round2)

    if _keeps_installment_count(goal):
        payments = original_installment_count(goal, today)
        return _fixed_term_allocations(start, remaining, adjusted_monthly_amount, payments)

    payments = int((remaining / adjusted_monthly_amount).to_integral_value(rounding=ROUND_CEILING))
    if payments > MAX_SCHEDULE_MONTHS:
        logger.warning(
            "Goal %s: %s payments of %s exceed the %s month horizon, capping",
            goal.id,
            payments,
            adjusted_monthly_amount,
            MAX_SCHEDULE_MONTHS,
        )
        payments = MAX_SCHEDULE_MONTHS
    return _build_allocations(start, remaining, payments, ceil2)


def goal_funding_ratio(
    scenario: Scenario,
    available_after_spending: AmountLike,
    total_goal_contribution: AmountLike,
) -> Decimal:
    available = coerce_amount(available_after_spending)
    total = coerce_amount(total_goal_contribution)
    if not available.is_finite() or not total.is_finite():
        logger.error("Non-finite funding inputs: available=%r total=%r", available, total)
        return ZERO
    if total <= ZERO:
        return ONE
    if available <= ZERO:
        return ZERO
    if available >= total:
        if scenario == Scenario.CONSERVATIVE:
            return min(MAX_ACCELERATION_RATIO, available / total)
        return ONE
    return available / total


def original_monthly_amount(goal: Goal, today: Optional[date] = None) -> Decimal:
    allocations = _existing_allocations(goal)
    if not allocations:
        allocations = create_goal_trackings(goal, goal.starting_balance, today).allocations
    if not allocations:
        return ZERO
    planned = coerce_amount(allocations[0].planned_amount)
    return planned if planned.is_finite() else ZERO


def total_monthly_goal_contribution(
    goals: Iterable[Goal],
    today: Optional[date] = None,
) -> Decimal:
    total = ZERO
    for goal in goals:
        total = round2(total + original_monthly_amount(goal, today))
    return total


def original_installment_count(goal: Goal, today: Optional[date] = None) -> int:
    allocations = _existing_allocations(goal)
    if not allocations:
        allocations = create_goal_trackings(goal, goal.starting_balance, today).allocations
    return max(1, len(allocations))


def remaining_amount(goal: Goal) -> Optional[Decimal]:
    amount = coerce_amount(goal.amount)
    if goal.tracking is not None:
        balance = coerce_amount(goal.tracking.starting_balance)
    else:
        balance = coerce_amount(goal.starting_balance)
    if not amount.is_finite() or not balance.is_finite() or amount < ZERO:
        logger.error(
            "Goal %s: invalid amount %r or starting balance %r",
            goal.id,
            goal.amount,
            balance,
        )
        return None
    return amount - balance


def _keeps_installment_count(goal: Goal) -> bool:
    if goal.type == GoalType.DEBT:
        return goal.debt_payment_component == DebtPaymentComponent.PRINCIPAL_INTEREST
    return False


def _existing_allocations(goal: Goal) -> tuple:
    if goal.tracking is None:
        return ()
    return goal.tracking.allocations


def _build_allocations(
    start: date,
    total: Decimal,
    count: int,
    rounder: Callable[[Decimal], Decimal],
) -> List[MonthlyAllocation]:
    if count <= 0:
        logger.error("Invalid payment count %s, using a single allocation", count)
        return [MonthlyAllocation(date=start, planned_amount=round2(total))]

    amounts = _installments(total, count, rounder)
    return [
        MonthlyAllocation(date=shift_month(start, index), planned_amount=amount)
        for index, amount in enumerate(amounts)
    ]


def _fixed_term_allocations(
    start: date,
    remaining: Decimal,
    monthly_amount: Decimal,
    count: int,
) -> List[MonthlyAllocation]:
    """Same number of installments at the scaled amount, never paying past ``remaining``."""
    allocations: List[MonthlyAllocation] = []
    paid = ZERO
    for index in range(count):
        amount = min(monthly_amount, round2(remaining - paid))
        paid = round2(paid + amount)
        allocations.append(MonthlyAllocation(date=shift_month(start, index), planned_amount=amount))
    return allocations


def _installments(
    total: Decimal,
    count: int,
    rounder: Callable[[Decimal], Decimal],
) -> List[Decimal]:
    base = rounder(total / count)
    last = round2(total - base * (count - 1))
    if last < ZERO:
        # Rounding up over many months can overshoot the total.
        base = floor2(total / count)
        last = round2(total - base * (count - 1))
    return [base] * (count - 1) + [last]
