import unittest
from datetime import date
from decimal import Decimal

from budget_advisor.models import Category, CategoryGroup, Transaction
from budget_advisor.spending_tracking import (
    calculate_spending_trackings,
    latest_rolling_window,
)

CATEGORY_GROUPS = {
    "Income": CategoryGroup(name="Income", categories=(Category(name="Salary"),)),
    "Housing": CategoryGroup(name="Housing", categories=(Category(name="Rent"),)),
}


class RollingWindowTests(unittest.TestCase):
    def test_keeps_thirty_days_before_latest_transaction(self) -> None:
        transactions = [
            Transaction(date=date(2024, 2, 5), amount=Decimal("10"), category="Rent", id="a"),
            Transaction(date=date(2024, 3, 10), amount=Decimal("20"), category="Rent", id="b"),
            Transaction(date=date(2024, 2, 9), amount=Decimal("30"), category="Rent", id="c"),
        ]

        window = latest_rolling_window(transactions)

        self.assertEqual([txn.id for txn in window], ["b", "c"])

    def test_empty_input(self) -> None:
        self.assertEqual(latest_rolling_window([]), [])


class SpendingTrackingTests(unittest.TestCase):
    def test_tracks_every_month_until_today(self) -> None:
        transactions = [
            Transaction(date=date(2024, 1, 3), amount=Decimal("1200"), category="Rent", id="r1"),
            Transaction(date=date(2024, 1, 25), amount=Decimal("3000"), category="Salary", id="s1"),
            Transaction(date=date(2024, 1, 28), amount=Decimal("45.50"), category="Pets", id="p1"),
        ]

        trackings = calculate_spending_trackings(transactions, CATEGORY_GROUPS, today=date(2024, 3, 15))

        self.assertEqual(list(trackings), ["2024-01", "2024-02", "2024-03"])
        january = trackings["2024-01"]
        self.assertEqual(set(january), {"Income", "Housing", "Other"})
        self.assertEqual(january["Income"].spending_actual, Decimal("-3000"))
        self.assertEqual(january["Housing"].spending_target, Decimal("1200"))
        self.assertEqual(january["Other"].categories[0].category_name, "Pets")
        self.assertEqual(trackings["2024-02"]["Housing"].spending_actual, Decimal("0"))
        self.assertEqual(trackings["2024-02"]["Housing"].categories, ())

    def test_group_total_is_sum_of_categories(self) -> None:
        groups = {
            "Housing": CategoryGroup(
                name="Housing", categories=(Category(name="Rent"), Category(name="Insurance"))
            ),
        }
        transactions = [
            Transaction(date=date(2024, 3, 1), amount=Decimal("1000.10"), category="Rent"),
            Transaction(date=date(2024, 3, 2), amount=Decimal("80.25"), category="Insurance"),
            Transaction(date=date(2024, 3, 3), amount=Decimal("19.65"), category="Insurance"),
        ]

        housing = calculate_spending_trackings(transactions, groups, today=date(2024, 3, 31))["2024-03"]["Housing"]

        self.assertEqual(housing.spending_actual, Decimal("1100.00"))
        self.assertEqual(
            housing.spending_actual,
            sum(category.spending_actual for category in housing.categories),
        )

    def test_uncategorized_transactions_are_skipped(self) -> None:
        transactions = [
            Transaction(date=date(2024, 3, 1), amount=Decimal("15"), category=None, id="x"),
        ]

        with self.assertLogs("budget_advisor.spending_tracking", level="WARNING"):
            trackings = calculate_spending_trackings(transactions, CATEGORY_GROUPS, today=date(2024, 3, 2))

        self.assertEqual(trackings["2024-03"]["Other"].spending_actual, Decimal("0"))

    def test_income_category_outside_income_group_is_negative(self) -> None:
        groups = {"Housing": CategoryGroup(name="Housing", categories=(Category(name="Rent"),))}
        transactions = [
            Transaction(date=date(2024, 3, 1), amount=Decimal("2500"), category="Income", id="i1"),
        ]

        other = calculate_spending_trackings(transactions, groups, today=date(2024, 3, 2))["2024-03"]["Other"]

        self.assertEqual(other.spending_actual, Decimal("-2500"))
        self.assertEqual(other.categories[0].category_name, "Income")

    def test_no_transactions(self) -> None:
        self.assertEqual(calculate_spending_trackings([], CATEGORY_GROUPS), {})


if __name__ == "__main__":
    unittest.main()
