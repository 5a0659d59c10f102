"""
Module: pos_modules.inventory.orm
Responsibility: SQLAlchemy ORM persistence for inventory rows, legacy
    equipment records and suppliers.

Architecture position: Modules > Inventory > ORM.  Inherits from
    AccountScopedBase (pos_kernel.db.base).

Invariants enforced:
    - Quantities and money use Decimal (DecimalText) -- never float.
    - Inventory rows carry a version column used for optimistic locking:
      an UPDATE only matches the row version the writer read.  The version
      value itself is assigned by the stock ledger, not by the mapper.

Failure modes:
    - sqlalchemy.orm.exc.StaleDataError when the stored version moved on;
      the store maps it to StaleInventoryVersionError.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pos_kernel.db.base import AccountScopedBase


class InventoryItemModel(AccountScopedBase):
    """
    ORM model for one inventory row (stock or asset).

    Maps to: pos_kernel.domain.inventory.InventoryItem (frozen dataclass).
    """

    __tablename__ = "inventory_items"

    __table_args__ = (
        Index("idx_inventory_account_name", "account_id", "name"),
        Index("idx_inventory_type", "item_type"),
    )

    name: Mapped[str] = mapped_column(String(200))
    quantity: Mapped[Decimal] = mapped_column()
    unit: Mapped[str] = mapped_column(String(50), default="unit")
    min_level: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    cost_per_unit: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    category: Mapped[str] = mapped_column(String(50), default="ingredient")
    item_type: Mapped[str] = mapped_column(String(20), default="stock")
    last_updated: Mapped[datetime | None] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # Asset fields
    lifespan_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    salvage_price: Mapped[Decimal | None] = mapped_column(nullable=True)
    purchase_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    daily_depreciation: Mapped[Decimal | None] = mapped_column(nullable=True)

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }

    def to_dto(self):
        """Convert ORM model to frozen InventoryItem DTO."""
        from pos_kernel.domain.inventory import InventoryItem, ItemType

        return InventoryItem(
            id=self.id,
            name=self.name,
            quantity=self.quantity,
            unit=self.unit,
            min_level=self.min_level,
            cost_per_unit=self.cost_per_unit,
            category=self.category,
            type=ItemType(self.item_type),
            last_updated=self.last_updated,
            version=self.version,
            lifespan_days=self.lifespan_days,
            salvage_price=self.salvage_price,
            purchase_date=self.purchase_date,
            daily_depreciation=self.daily_depreciation,
        )

    @classmethod
    def from_dto(cls, dto, account_id: str) -> "InventoryItemModel":
        """Create ORM model from frozen InventoryItem DTO."""
        return cls(
            id=dto.id,
            account_id=account_id,
            name=dto.name,
            quantity=dto.quantity,
            unit=dto.unit,
            min_level=dto.min_level,
            cost_per_unit=dto.cost_per_unit,
            category=dto.category,
            item_type=dto.type.value,
            last_updated=dto.last_updated,
            version=dto.version,
            lifespan_days=dto.lifespan_days,
            salvage_price=dto.salvage_price,
            purchase_date=dto.purchase_date,
            daily_depreciation=dto.daily_depreciation,
        )

    def apply_dto(self, dto) -> None:
        """Overwrite fields from ``dto``, including the new version."""
        self.name = dto.name
        self.quantity = dto.quantity
        self.unit = dto.unit
        self.min_level = dto.min_level
        self.cost_per_unit = dto.cost_per_unit
        self.category = dto.category
        self.item_type = dto.type.value
        self.last_updated = dto.last_updated
        self.version = dto.version
        self.lifespan_days = dto.lifespan_days
        self.salvage_price = dto.salvage_price
        self.purchase_date = dto.purchase_date
        self.daily_depreciation = dto.daily_depreciation

    def __repr__(self) -> str:
        return (
            f"<InventoryItemModel {self.id} {self.name!r} "
            f"qty={self.quantity} v{self.version}>"
        )


class EquipmentModel(AccountScopedBase):
    """
    ORM model for a legacy equipment record.

    Maps to: pos_kernel.domain.inventory.Equipment (frozen dataclass).
    """

    __tablename__ = "equipment"

    name: Mapped[str] = mapped_column(String(200))
    purchase_price: Mapped[Decimal] = mapped_column()
    resale_price: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    lifespan_days: Mapped[int] = mapped_column(Integer, default=0)
    category: Mapped[str] = mapped_column(String(50), default="equipment")

    def to_dto(self):
        from pos_kernel.domain.inventory import Equipment

        return Equipment(
            id=self.id,
            name=self.name,
            purchase_price=self.purchase_price,
            resale_price=self.resale_price,
            lifespan_days=self.lifespan_days,
            category=self.category,
        )

    @classmethod
    def from_dto(cls, dto, account_id: str) -> "EquipmentModel":
        return cls(
            id=dto.id,
            account_id=account_id,
            name=dto.name,
            purchase_price=dto.purchase_price,
            resale_price=dto.resale_price,
            lifespan_days=dto.lifespan_days,
            category=dto.category,
        )


class SupplierModel(AccountScopedBase):
    """ORM model for a supplier contact."""

    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(200))
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        from pos_modules.inventory.models import Supplier

        return Supplier(id=self.id, name=self.name, phone=self.phone, note=self.note)

    @classmethod
    def from_dto(cls, dto, account_id: str) -> "SupplierModel":
        return cls(
            id=dto.id,
            account_id=account_id,
            name=dto.name,
            phone=dto.phone,
            note=dto.note,
        )
