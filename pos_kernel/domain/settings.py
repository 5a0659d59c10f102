"""Shop-level cost settings consumed by the engines."""

from dataclasses import dataclass
from decimal import Decimal

_ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class FixedCosts:
    """
    Per-day fixed running costs of the stall.

    ``electricity`` is the flat utilities (electricity + water) figure.
    ``transport`` counts toward the daily fixed-cost total but is never
    written to the ledger as its own line.
    """

    rent: Decimal = _ZERO
    transport: Decimal = _ZERO
    electricity: Decimal = _ZERO
    labor: Decimal = _ZERO

    def __post_init__(self) -> None:
        for name in ("rent", "transport", "electricity", "labor"):
            if getattr(self, name) < 0:
                raise ValueError(f"Fixed cost {name} cannot be negative")


@dataclass(frozen=True, slots=True)
class HiddenCosts:
    """Percent uplifts applied to recipe cost when computing COGS."""

    waste_percent: Decimal = _ZERO
    promo_loss_percent: Decimal = _ZERO

    @property
    def multiplier(self) -> Decimal:
        return Decimal("1") + (self.waste_percent + self.promo_loss_percent) / Decimal("100")
