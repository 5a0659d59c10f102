"""
Tests for the Financial Aggregator.

Covers:
- Day / month grouping boundary (35 vs 36 inclusive days)
- The five advice tiers and their exclusive boundaries
- Totals, per-group sums, top expense category and average daily income
- Invalid date ranges
"""

from datetime import date, timedelta
from decimal import Decimal
from itertools import count

import pytest

from pos_engines.aggregation import (
    AdviceTier,
    FinancialAggregator,
    Grouping,
    advice_for,
    grouping_for,
    net_margin,
)
from pos_kernel.domain.ledger import LedgerItem, LedgerType
from pos_kernel.exceptions import InvalidDateRangeError

_ids = count(1)


def _entry(on, entry_type, amount, category=None):
    return LedgerItem(
        id=f"e{next(_ids)}",
        date=on,
        type=entry_type,
        title="x",
        amount=Decimal(amount),
        category=category or ("sales" if entry_type == LedgerType.INCOME else "general"),
    )


class TestGrouping:
    def test_exactly_35_days_is_daily(self):
        start = date(2024, 1, 1)
        assert grouping_for(start, start + timedelta(days=34)) == Grouping.DAY

    def test_36_days_is_monthly(self):
        start = date(2024, 1, 1)
        assert grouping_for(start, start + timedelta(days=35)) == Grouping.MONTH

    def test_single_day(self):
        assert grouping_for(date(2024, 1, 1), date(2024, 1, 1)) == Grouping.DAY


class TestAdvice:
    @pytest.mark.parametrize(
        "income, profit, tier",
        [
            ("0", "-50", AdviceTier.NO_SALES),
            ("100", "-1", AdviceTier.LOSING_MONEY),
            ("100", "9.99", AdviceTier.THIN_MARGIN),
            ("100", "10", AdviceTier.HEALTHY),
            ("100", "24.99", AdviceTier.HEALTHY),
            ("100", "25", AdviceTier.EXCELLENT),
        ],
    )
    def test_tiers(self, income, profit, tier):
        assert advice_for(Decimal(income), Decimal(profit)) == tier

    def test_margin_guarded_for_zero_income(self):
        assert net_margin(Decimal("0"), Decimal("-10")) == Decimal("0")


class TestAggregate:
    def setup_method(self):
        self.aggregator = FinancialAggregator()

    def test_daily_summary(self):
        ledger = [
            _entry(date(2024, 3, 1), LedgerType.INCOME, "1000"),
            _entry(date(2024, 3, 1), LedgerType.EXPENSE, "300", "raw_material"),
            _entry(date(2024, 3, 2), LedgerType.INCOME, "500"),
            _entry(date(2024, 3, 2), LedgerType.EXPENSE, "100", "rent"),
            _entry(date(2024, 3, 2), LedgerType.EXPENSE, "50", "raw_material"),
            _entry(date(2024, 4, 1), LedgerType.INCOME, "999"),  # outside
        ]
        summary = self.aggregator.aggregate(
            ledger, start=date(2024, 3, 1), end=date(2024, 3, 7)
        )

        assert summary.grouping == Grouping.DAY
        assert summary.total_income == Decimal("1500")
        assert summary.total_expense == Decimal("450")
        assert summary.profit == Decimal("1050")
        assert summary.count == 5
        assert [g.key for g in summary.groups] == ["2024-03-02", "2024-03-01"]
        assert summary.groups[0].income == Decimal("500")
        assert summary.groups[0].expense == Decimal("150")
        assert summary.top_expense_category == "raw_material"
        assert summary.average_daily_income == Decimal("750")
        assert summary.net_margin == Decimal("70")
        assert summary.advice == AdviceTier.EXCELLENT

    def test_monthly_summary(self):
        ledger = [
            _entry(date(2024, 1, 5), LedgerType.INCOME, "100"),
            _entry(date(2024, 1, 20), LedgerType.INCOME, "100"),
            _entry(date(2024, 2, 10), LedgerType.EXPENSE, "30"),
        ]
        summary = self.aggregator.aggregate(
            ledger, start=date(2024, 1, 1), end=date(2024, 2, 29)
        )
        assert summary.grouping == Grouping.MONTH
        assert [(g.key, g.count) for g in summary.groups] == [("2024-02", 1), ("2024-01", 2)]

    def test_groups_sum_to_totals(self):
        ledger = [
            _entry(date(2024, 3, d), t, str(d * 10))
            for d in range(1, 10)
            for t in (LedgerType.INCOME, LedgerType.EXPENSE)
        ]
        summary = self.aggregator.aggregate(
            ledger, start=date(2024, 3, 1), end=date(2024, 3, 31)
        )
        assert sum(g.income for g in summary.groups) == summary.total_income
        assert sum(g.expense for g in summary.groups) == summary.total_expense

    def test_empty_range(self):
        summary = self.aggregator.aggregate([], start=date(2024, 3, 1), end=date(2024, 3, 1))
        assert summary.advice == AdviceTier.NO_SALES
        assert summary.groups == ()
        assert summary.top_expense_category is None
        assert summary.advice_message

    def test_top_category_tie_broken_by_name(self):
        ledger = [
            _entry(date(2024, 3, 1), LedgerType.EXPENSE, "50", "rent"),
            _entry(date(2024, 3, 1), LedgerType.EXPENSE, "50", "labor"),
        ]
        summary = self.aggregator.aggregate(
            ledger, start=date(2024, 3, 1), end=date(2024, 3, 1)
        )
        assert summary.top_expense_category == "labor"

    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidDateRangeError):
            self.aggregator.aggregate([], start=date(2024, 3, 2), end=date(2024, 3, 1))
