"""
Inventory -- stock items, assets and the versioned inventory snapshot.

Responsibility:
    Immutable value objects for everything the stall keeps on the shelf:
    consumable stock (weighted-average costed) and assets (depreciated),
    plus the legacy equipment list that predates assets living in
    inventory.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  Consumed by the stock ledger and
    cost allocation engines and persisted by the shop store.

Invariants enforced:
    - quantity >= 0 for every InventoryItem.
    - version >= 1; every write through the stock ledger bumps it by one.
    - InventorySnapshot ids are unique.

Failure modes:
    - ValueError on negative quantity, non-positive version or duplicate ids.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from pos_kernel.domain.menu import Ingredient

LEGACY_ASSET_PREFIX = "asset-"


class ItemType(str, Enum):
    """Inventory row classification."""

    STOCK = "stock"
    ASSET = "asset"


@dataclass(frozen=True, slots=True)
class InventoryItem:
    """
    One inventory row.

    ``cost_per_unit`` is the weighted-average cost for stock and the
    purchase cost for assets.
    """

    id: str
    name: str
    quantity: Decimal
    unit: str = "unit"
    min_level: Decimal = Decimal("0")
    cost_per_unit: Decimal = Decimal("0")
    category: str = "ingredient"
    type: ItemType = ItemType.STOCK
    last_updated: datetime | None = None
    version: int = 1
    lifespan_days: int | None = None
    salvage_price: Decimal | None = None
    purchase_date: date | None = None
    daily_depreciation: Decimal | None = None

    def __post_init__(self) -> None:
        if self.quantity < 0:
            raise ValueError(
                f"Inventory quantity cannot be negative: {self.id} = {self.quantity}"
            )
        if self.version < 1:
            raise ValueError(f"Inventory version must be >= 1: {self.id}")

    @property
    def is_asset(self) -> bool:
        return self.type == ItemType.ASSET

    @property
    def is_low_stock(self) -> bool:
        """Stock rows at or under their reorder level.  Assets never count."""
        return not self.is_asset and self.quantity <= self.min_level

    @property
    def stock_value(self) -> Decimal:
        return self.quantity * self.cost_per_unit

    @property
    def asset_units(self) -> Decimal:
        """Units an asset row is valued for; a zero count still means one."""
        return self.quantity if self.quantity > 0 else Decimal("1")

    @property
    def asset_value(self) -> Decimal:
        return self.asset_units * self.cost_per_unit


@dataclass(frozen=True, slots=True)
class Equipment:
    """Legacy equipment record kept outside inventory."""

    id: str
    name: str
    purchase_price: Decimal
    resale_price: Decimal = Decimal("0")
    lifespan_days: int = 0
    category: str = "equipment"

    @property
    def inventory_id(self) -> str:
        """Id under which this record is mirrored in the unified inventory."""
        return f"{LEGACY_ASSET_PREFIX}{self.id}"


def _normalize_name(name: str) -> str:
    return name.strip().lower()


@dataclass(frozen=True)
class InventorySnapshot:
    """
    Versioned, immutable view of the whole inventory.

    Contract:
        Engines receive a snapshot and return a new one; nothing is
        mutated in place.  ``version`` increases by one per successful
        apply so callers can tell snapshots apart.
    """

    items: tuple[InventoryItem, ...] = ()
    version: int = 0
    _by_id: Mapping[str, InventoryItem] = field(
        init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        by_id: dict[str, InventoryItem] = {}
        for item in self.items:
            if item.id in by_id:
                raise ValueError(f"Duplicate inventory id in snapshot: {item.id}")
            by_id[item.id] = item
        object.__setattr__(self, "_by_id", by_id)

    @classmethod
    def of(cls, items: Iterable[InventoryItem], version: int = 0) -> InventorySnapshot:
        return cls(items=tuple(items), version=version)

    def __iter__(self) -> Iterator[InventoryItem]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._by_id

    def get(self, item_id: str) -> InventoryItem | None:
        return self._by_id.get(item_id)

    def find_by_name(self, name: str) -> InventoryItem | None:
        """First item whose trimmed, case-folded name equals ``name``."""
        wanted = _normalize_name(name)
        for item in self.items:
            if _normalize_name(item.name) == wanted:
                return item
        return None

    def resolve_ingredient(self, ingredient: Ingredient) -> InventoryItem | None:
        """Resolve by stable master id first, then by name."""
        if ingredient.master_id:
            item = self._by_id.get(ingredient.master_id)
            if item is not None:
                return item
        return self.find_by_name(ingredient.name)

    def low_stock(self) -> tuple[InventoryItem, ...]:
        return tuple(item for item in self.items if item.is_low_stock)

    def assets(self) -> tuple[InventoryItem, ...]:
        return tuple(item for item in self.items if item.is_asset)

    def with_changes(
        self,
        updated: Iterable[InventoryItem] = (),
        created: Iterable[InventoryItem] = (),
    ) -> InventorySnapshot:
        """
        Return the next snapshot with rows replaced and appended.

        Replaced rows keep their position; created rows go to the end.
        """
        replacements = {item.id: item for item in updated}
        unknown = set(replacements) - set(self._by_id)
        if unknown:
            raise ValueError(f"Cannot update unknown inventory ids: {sorted(unknown)}")
        items = tuple(replacements.get(item.id, item) for item in self.items)
        return InventorySnapshot(
            items=items + tuple(created),
            version=self.version + 1,
        )

    def bump(self, item: InventoryItem, stamped_at: datetime | None) -> InventoryItem:
        """Stamp a changed row with the next version of its stored copy."""
        stored = self._by_id[item.id]
        return replace(item, version=stored.version + 1, last_updated=stamped_at)
