"""
pos_engines.aggregation -- Income/expense summary over a date range.

Responsibility:
    Filter the ledger to an inclusive date range, total income and expense,
    bucket the entries by day or by month, and attach a plain-language
    health tier derived from the net margin.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Range is inclusive on both ends.
    - Grouping is by month when the range spans more than 35 days
      (inclusive day count), otherwise by day.
    - Groups are sorted by key, newest first.
    - net_margin is 0 when there is no income.

Failure modes:
    - InvalidDateRangeError when start is after end.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from pos_engines.tracer import traced_engine
from pos_kernel.domain.ledger import LedgerItem, LedgerType
from pos_kernel.exceptions import InvalidDateRangeError
from pos_kernel.logging_config import get_logger

logger = get_logger("engines.aggregation")

MONTH_GROUPING_THRESHOLD_DAYS = 35
THIN_MARGIN_PERCENT = Decimal("10")
HEALTHY_MARGIN_PERCENT = Decimal("25")

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


class Grouping(str, Enum):
    DAY = "day"
    MONTH = "month"


class AdviceTier(str, Enum):
    """Health tier, checked in declaration order."""

    NO_SALES = "no_sales"
    LOSING_MONEY = "losing_money"
    THIN_MARGIN = "thin_margin"
    HEALTHY = "healthy"
    EXCELLENT = "excellent"


ADVICE_MESSAGES: dict[AdviceTier, str] = {
    AdviceTier.NO_SALES: "No sales recorded yet. Start selling to see how the shop is doing.",
    AdviceTier.LOSING_MONEY: "Costs are higher than sales. Review raw material prices and fixed costs.",
    AdviceTier.THIN_MARGIN: "Profit margin is thin. Consider adjusting prices or cutting waste.",
    AdviceTier.HEALTHY: "The shop is profitable. Keep costs under control to grow the margin.",
    AdviceTier.EXCELLENT: "Excellent margin. This is a good time to reinvest.",
}


@dataclass(frozen=True, slots=True)
class PeriodGroup:
    key: str
    income: Decimal = _ZERO
    expense: Decimal = _ZERO
    count: int = 0

    @property
    def profit(self) -> Decimal:
        return self.income - self.expense


@dataclass(frozen=True)
class FinancialSummary:
    start: date
    end: date
    total_income: Decimal
    total_expense: Decimal
    count: int
    grouping: Grouping
    groups: tuple[PeriodGroup, ...]
    net_margin: Decimal
    advice: AdviceTier
    average_daily_income: Decimal = _ZERO
    top_expense_category: str | None = None

    @property
    def profit(self) -> Decimal:
        return self.total_income - self.total_expense

    @property
    def advice_message(self) -> str:
        return ADVICE_MESSAGES[self.advice]


def grouping_for(start: date, end: date) -> Grouping:
    """Month buckets for ranges longer than 35 days, day buckets otherwise."""
    span_days = (end - start).days + 1
    if span_days > MONTH_GROUPING_THRESHOLD_DAYS:
        return Grouping.MONTH
    return Grouping.DAY


def net_margin(income: Decimal, profit: Decimal) -> Decimal:
    if income == 0:
        return _ZERO
    return profit / income * _HUNDRED


def advice_for(income: Decimal, profit: Decimal) -> AdviceTier:
    if income == 0:
        return AdviceTier.NO_SALES
    if profit < 0:
        return AdviceTier.LOSING_MONEY
    margin = net_margin(income, profit)
    if margin < THIN_MARGIN_PERCENT:
        return AdviceTier.THIN_MARGIN
    if margin < HEALTHY_MARGIN_PERCENT:
        return AdviceTier.HEALTHY
    return AdviceTier.EXCELLENT


def _group_key(entry_date: date, grouping: Grouping) -> str:
    if grouping == Grouping.MONTH:
        return entry_date.strftime("%Y-%m")
    return entry_date.isoformat()


class FinancialAggregator:
    """Summarizes ledger entries for reporting.  Stateless."""

    @traced_engine("aggregation", "1.0", fingerprint_fields=("start", "end"))
    def aggregate(
        self,
        ledger: Iterable[LedgerItem],
        *,
        start: date,
        end: date,
    ) -> FinancialSummary:
        """
        Summarize entries dated within [start, end].

        Raises:
            InvalidDateRangeError: start is after end.
        """
        if start > end:
            logger.error(
                "aggregation_invalid_range",
                extra={"start": start.isoformat(), "end": end.isoformat()},
            )
            raise InvalidDateRangeError(start, end)

        grouping = grouping_for(start, end)
        in_range = [e for e in ledger if start <= e.date <= end]

        income = _ZERO
        expense = _ZERO
        buckets: dict[str, list[Decimal | int]] = defaultdict(lambda: [_ZERO, _ZERO, 0])
        income_days: set[date] = set()
        expense_by_category: dict[str, Decimal] = defaultdict(lambda: _ZERO)

        for entry in in_range:
            bucket = buckets[_group_key(entry.date, grouping)]
            bucket[2] += 1
            if entry.type == LedgerType.INCOME:
                income += entry.amount
                bucket[0] += entry.amount
                income_days.add(entry.date)
            else:
                expense += entry.amount
                bucket[1] += entry.amount
                expense_by_category[entry.category] += entry.amount

        groups = tuple(
            PeriodGroup(key=key, income=vals[0], expense=vals[1], count=vals[2])
            for key, vals in sorted(buckets.items(), reverse=True)
        )

        profit = income - expense
        top_category = None
        if expense_by_category:
            top_category = min(
                expense_by_category.items(), key=lambda kv: (-kv[1], kv[0])
            )[0]

        summary = FinancialSummary(
            start=start,
            end=end,
            total_income=income,
            total_expense=expense,
            count=len(in_range),
            grouping=grouping,
            groups=groups,
            net_margin=net_margin(income, profit),
            advice=advice_for(income, profit),
            average_daily_income=income / len(income_days) if income_days else _ZERO,
            top_expense_category=top_category,
        )

        logger.info(
            "financial_summary_computed",
            extra={
                "start": start.isoformat(),
                "end": end.isoformat(),
                "grouping": grouping.value,
                "count": summary.count,
                "income": str(income),
                "expense": str(expense),
                "advice": summary.advice.value,
            },
        )
        return summary
