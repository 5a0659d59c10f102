"""
pos_engines.dashboard -- Today's read model for the shop screen.

Responsibility:
    Project the current ShopState into the figures the owner watches during
    a shift: sales, bill count, cost of goods sold, fixed cost share, net
    profit, payment split, best sellers, hourly histogram, low stock and
    progress toward the daily sales target.

Architecture position:
    Engines -- pure read model, zero I/O.  Uses CostAllocationEngine for
    the fixed-cost figure.

Invariants enforced:
    - Cancelled orders are excluded everywhere.
    - "Today" is the shift date passed in, matched against the date part
      of each order timestamp.
    - Hourly buckets always cover 08:00 through 20:00 inclusive.
    - progress_percent is capped at 100.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from pos_engines.cost_allocation import CostAllocationEngine, has_logged_fixed_costs
from pos_engines.tracer import traced_engine
from pos_kernel.domain.inventory import InventoryItem
from pos_kernel.domain.menu import MenuItem
from pos_kernel.domain.orders import Order, PaymentMethod
from pos_kernel.domain.settings import FixedCosts, HiddenCosts
from pos_kernel.domain.state import ShopState
from pos_kernel.logging_config import get_logger

logger = get_logger("engines.dashboard")

FIRST_HOUR = 8
LAST_HOUR = 20
DEFAULT_TOP_ITEMS = 5

_ZERO = Decimal("0")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class PaymentBucket:
    subtotal: Decimal = _ZERO
    count: int = 0
    orders: tuple[Order, ...] = ()


@dataclass(frozen=True, slots=True)
class ItemSales:
    name: str
    quantity: int
    revenue: Decimal


@dataclass(frozen=True, slots=True)
class HourlyBucket:
    hour: int
    sales: Decimal = _ZERO
    count: int = 0

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:00"


@dataclass(frozen=True)
class DashboardSnapshot:
    date: date
    orders: tuple[Order, ...]
    today_sales: Decimal
    bill_count: int
    today_cogs: Decimal
    daily_fixed_cost: Decimal
    has_logged_fixed_cost: bool
    payment_breakdown: Mapping[PaymentMethod, PaymentBucket]
    item_ranking: tuple[ItemSales, ...]
    top_items: tuple[ItemSales, ...]
    hourly: tuple[HourlyBucket, ...]
    low_stock: tuple[InventoryItem, ...]
    daily_target: Decimal
    progress_percent: Decimal = field(default=_ZERO)

    @property
    def net_profit(self) -> Decimal:
        return self.today_sales - self.today_cogs - self.daily_fixed_cost

    @property
    def gross_profit(self) -> Decimal:
        return self.today_sales - self.today_cogs


def order_cogs(
    order: Order,
    menu: Mapping[str, MenuItem],
    hidden_costs: HiddenCosts,
) -> Decimal:
    """Recipe cost of an order with waste and promo-loss uplift.  Unknown menu ids cost 0."""
    total = _ZERO
    multiplier = hidden_costs.multiplier
    for item in order.items:
        menu_item = menu.get(item.menu_id)
        if menu_item is None:
            continue
        total += menu_item.ingredient_cost * multiplier * item.quantity
    return total


def progress_toward(sales: Decimal, target: Decimal) -> Decimal:
    if target <= 0:
        return _ZERO
    return min(sales / target * _HUNDRED, _HUNDRED)


class DashboardProjector:
    """Builds DashboardSnapshot values.  Stateless."""

    def __init__(self, cost_engine: CostAllocationEngine | None = None):
        self._costs = cost_engine or CostAllocationEngine()

    @traced_engine("dashboard", "1.0", fingerprint_fields=("today", "daily_target"))
    def project(
        self,
        state: ShopState,
        *,
        today: date,
        fixed_costs: FixedCosts,
        hidden_costs: HiddenCosts,
        daily_target: Decimal,
        top_n: int = DEFAULT_TOP_ITEMS,
    ) -> DashboardSnapshot:
        todays = tuple(
            o for o in state.orders
            if o.shift_date == today and not o.is_cancelled
        )
        menu = state.menu_by_id()

        sales = sum((o.total_price for o in todays), _ZERO)
        cogs = sum((order_cogs(o, menu, hidden_costs) for o in todays), _ZERO)
        fixed = self._costs.total_fixed_cost_per_day(
            fixed_costs, state.equipment, state.inventory
        )

        grouped: dict[PaymentMethod, list[Order]] = {m: [] for m in PaymentMethod}
        for order in todays:
            grouped[order.payment_method].append(order)
        breakdown = {
            method: PaymentBucket(
                subtotal=sum((o.total_price for o in orders), _ZERO),
                count=len(orders),
                orders=tuple(orders),
            )
            for method, orders in grouped.items()
        }

        quantities: dict[str, int] = defaultdict(int)
        revenue: dict[str, Decimal] = defaultdict(lambda: _ZERO)
        for order in todays:
            for item in order.items:
                quantities[item.name] += item.quantity
                revenue[item.name] += item.line_total
        ranking = tuple(
            ItemSales(name=name, quantity=qty, revenue=revenue[name])
            for name, qty in sorted(quantities.items(), key=lambda kv: (-kv[1], kv[0]))
        )

        hours: dict[int, list] = {h: [_ZERO, 0] for h in range(FIRST_HOUR, LAST_HOUR + 1)}
        for order in todays:
            slot = hours.get(order.hour)
            if slot is not None:
                slot[0] += order.total_price
                slot[1] += 1
        hourly = tuple(
            HourlyBucket(hour=h, sales=vals[0], count=vals[1])
            for h, vals in hours.items()
        )

        snapshot = DashboardSnapshot(
            date=today,
            orders=todays,
            today_sales=sales,
            bill_count=len(todays),
            today_cogs=cogs,
            daily_fixed_cost=fixed,
            has_logged_fixed_cost=has_logged_fixed_costs(state.ledger, today),
            payment_breakdown=breakdown,
            item_ranking=ranking,
            top_items=ranking[:top_n],
            hourly=hourly,
            low_stock=state.inventory.low_stock(),
            daily_target=daily_target,
            progress_percent=progress_toward(sales, daily_target),
        )

        logger.info(
            "dashboard_projected",
            extra={
                "date": today.isoformat(),
                "bill_count": snapshot.bill_count,
                "sales": str(sales),
                "cogs": str(cogs),
                "low_stock": len(snapshot.low_stock),
            },
        )
        return snapshot
