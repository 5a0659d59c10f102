"""
Configuration Schema (``pos_config.schema``).

Frozen dataclasses describing one shop's configuration: the daily fixed
costs, hidden-cost percentages used for COGS, the delivery platforms and
the commission (GP) each charges, and dashboard targets.

Cost settings reuse the kernel value objects (``FixedCosts``,
``HiddenCosts``) so the engines can take them directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from pos_kernel.domain.settings import FixedCosts, HiddenCosts

DEFAULT_DAILY_TARGET = Decimal("3000")
DEFAULT_TOP_ITEMS = 5


@dataclass(frozen=True, slots=True)
class DeliveryChannel:
    """A delivery platform and the percentage it deducts from each bill."""

    name: str
    fee_percent: Decimal = Decimal("0")


@dataclass(frozen=True, slots=True)
class DashboardSettings:
    daily_target: Decimal = DEFAULT_DAILY_TARGET
    top_items: int = DEFAULT_TOP_ITEMS


@dataclass(frozen=True)
class ShopConfig:
    shop_name: str = "My Stall"
    fixed_costs: FixedCosts = field(default_factory=FixedCosts)
    hidden_costs: HiddenCosts = field(default_factory=HiddenCosts)
    delivery_channels: tuple[DeliveryChannel, ...] = ()
    dashboard: DashboardSettings = field(default_factory=DashboardSettings)
    checksum: str = ""

    def channel(self, name: str) -> DeliveryChannel | None:
        wanted = name.strip().lower()
        for ch in self.delivery_channels:
            if ch.name.strip().lower() == wanted:
                return ch
        return None

    def fee_for(self, channel_name: str) -> Decimal:
        """Commission percent for a delivery platform; 0 when unknown."""
        ch = self.channel(channel_name)
        return ch.fee_percent if ch is not None else Decimal("0")
