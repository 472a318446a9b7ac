from __future__ import annotations

import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from budget_advisor.models import (
    CategoryGroup,
    CategorySpendingTracking,
    GroupSpendingTracking,
    SpendingTrackingsByMonth,
    Transaction,
)
from budget_advisor.money import ZERO, coerce_amount, iter_months, round2
from budget_advisor.spending_allocator import INCOME_CATEGORY, OTHER_GROUP

logger = logging.getLogger(__name__)

ROLLING_WINDOW_DAYS = 30


def latest_rolling_window(
    transactions: Iterable[Transaction],
    days: int = ROLLING_WINDOW_DAYS,
) -> List[Transaction]:
    """Transactions within ``days`` of the most recent one, newest first."""
    ordered = sorted(transactions, key=lambda txn: txn.date, reverse=True)
    if not ordered:
        return []
    cutoff = ordered[0].date - timedelta(days=days)
    return [txn for txn in ordered if txn.date >= cutoff]


def calculate_spending_trackings(
    transactions: Iterable[Transaction],
    category_groups: Mapping[str, CategoryGroup],
    today: Optional[date] = None,
) -> SpendingTrackingsByMonth:
    today = today or date.today()
    ordered = sorted(transactions, key=lambda txn: txn.date)
    if not ordered:
        return {}

    category_to_group: Dict[str, str] = {}
    for group in category_groups.values():
        for category in group.categories:
            category_to_group[category.name] = group.name

    group_names = [group.name for group in category_groups.values()]
    if OTHER_GROUP not in group_names:
        group_names.append(OTHER_GROUP)

    end = max(today, ordered[-1].date)
    totals: Dict[str, Dict[str, Dict[str, Decimal]]] = {
        _month_key(month): {name: {} for name in group_names}
        for month in iter_months(ordered[0].date, end)
    }

    for txn in ordered:
        if not txn.category:
            logger.warning("Transaction %s missing category, not tracked", txn.id)
            continue
        amount = coerce_amount(txn.amount)
        if not amount.is_finite():
            logger.error("Transaction %s has a non-finite amount %r, not tracked", txn.id, txn.amount)
            continue
        group_name = category_to_group.get(txn.category, OTHER_GROUP)
        if group_name.lower() == "income" or txn.category == INCOME_CATEGORY:
            amount = -abs(amount)
        month_groups = totals[_month_key(txn.date)]
        categories = month_groups.setdefault(group_name, {})
        categories[txn.category] = round2(categories.get(txn.category, ZERO) + amount)

    trackings: SpendingTrackingsByMonth = {}
    for month_key, month_groups in totals.items():
        trackings[month_key] = {
            group_name: _group_tracking(group_name, categories)
            for group_name, categories in month_groups.items()
        }
    return trackings


def _group_tracking(group_name: str, categories: Mapping[str, Decimal]) -> GroupSpendingTracking:
    group_total = ZERO
    tracked = []
    for category_name, amount in categories.items():
        group_total = round2(group_total + amount)
        tracked.append(
            CategorySpendingTracking(
                category_name=category_name,
                spending_actual=amount,
                spending_target=amount,
            )
        )
    return GroupSpendingTracking(
        group_name=group_name,
        spending_actual=group_total,
        spending_target=group_total,
        categories=tuple(tracked),
    )


def _month_key(value: date) -> str:
    return value.strftime("%Y-%m")
