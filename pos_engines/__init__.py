"""
Module: pos_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import pos_kernel (domain values, exceptions, logging).
    MUST NOT import pos_modules or pos_config.

Invariants enforced:
    - Engines never read the clock; dates and timestamps are parameters.
    - Decimal-only arithmetic for money and quantities.
    - Every public engine call is wrapped by ``@traced_engine``.

Usage:
    from pos_engines import StockLedgerEngine, StockDeduction, DeductionTarget
    from pos_engines import CostAllocationEngine, FinancialAggregator
    from pos_engines import DashboardProjector
"""

from pos_engines.aggregation import (
    AdviceTier,
    FinancialAggregator,
    FinancialSummary,
    Grouping,
    PeriodGroup,
    advice_for,
    grouping_for,
)
from pos_engines.cost_allocation import (
    FIXED_COST_MARKER,
    CostAllocationEngine,
    DailyCostLine,
    DailyCostSchedule,
    has_logged_fixed_costs,
)
from pos_engines.dashboard import (
    DashboardProjector,
    DashboardSnapshot,
    HourlyBucket,
    ItemSales,
    PaymentBucket,
)
from pos_engines.stock_ledger import (
    NEW_ITEM_REF,
    DeductionTarget,
    StockApplyResult,
    StockDeduction,
    StockDirection,
    StockIntent,
    StockLedgerEngine,
    StockMovement,
    StockOutcome,
    weighted_average_cost,
)
from pos_engines.tracer import traced_engine

__all__ = [
    "AdviceTier",
    "CostAllocationEngine",
    "DailyCostLine",
    "DailyCostSchedule",
    "DashboardProjector",
    "DashboardSnapshot",
    "DeductionTarget",
    "FIXED_COST_MARKER",
    "FinancialAggregator",
    "FinancialSummary",
    "Grouping",
    "HourlyBucket",
    "ItemSales",
    "NEW_ITEM_REF",
    "PaymentBucket",
    "PeriodGroup",
    "StockApplyResult",
    "StockDeduction",
    "StockDirection",
    "StockIntent",
    "StockLedgerEngine",
    "StockMovement",
    "StockOutcome",
    "advice_for",
    "grouping_for",
    "has_logged_fixed_costs",
    "traced_engine",
    "weighted_average_cost",
]
