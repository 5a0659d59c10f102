"""
Module: pos_modules.menu.orm
Responsibility: SQLAlchemy ORM persistence for menu items.  Recipe lines and
    topping options are stored as JSON text on the menu row.

Architecture position: Modules > Menu > ORM.  Inherits from
    AccountScopedBase (pos_kernel.db.base).

Invariants enforced:
    - Prices and recipe costs use Decimal -- stored as strings inside JSON.
"""

import json
from decimal import Decimal

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pos_kernel.db.base import AccountScopedBase


def _opt_decimal(value) -> Decimal | None:
    return None if value is None else Decimal(value)


class MenuItemModel(AccountScopedBase):
    """
    ORM model for a sellable menu item.

    Maps to: pos_kernel.domain.menu.MenuItem (frozen dataclass).
    """

    __tablename__ = "menu_items"

    name: Mapped[str] = mapped_column(String(200))
    price: Mapped[Decimal] = mapped_column()
    category: Mapped[str] = mapped_column(String(50), default="main")
    ingredients_json: Mapped[str] = mapped_column(Text, default="[]")
    toppings_json: Mapped[str] = mapped_column(Text, default="[]")
    image: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen MenuItem DTO."""
        from pos_kernel.domain.menu import Ingredient, MenuItem, ToppingOption

        return MenuItem(
            id=self.id,
            name=self.name,
            price=self.price,
            category=self.category,
            ingredients=tuple(
                Ingredient(
                    name=row["name"],
                    cost=Decimal(row.get("cost", "0")),
                    quantity=_opt_decimal(row.get("quantity")),
                    master_id=row.get("master_id"),
                )
                for row in json.loads(self.ingredients_json or "[]")
            ),
            toppings=tuple(
                ToppingOption(
                    id=row["id"],
                    name=row["name"],
                    price=Decimal(row.get("price", "0")),
                    ref_id=row.get("ref_id"),
                )
                for row in json.loads(self.toppings_json or "[]")
            ),
            image=self.image,
        )

    @classmethod
    def from_dto(cls, dto, account_id: str) -> "MenuItemModel":
        """Create ORM model from frozen MenuItem DTO."""
        return cls(
            id=dto.id,
            account_id=account_id,
            name=dto.name,
            price=dto.price,
            category=dto.category,
            ingredients_json=json.dumps(
                [
                    {
                        "name": ing.name,
                        "cost": str(ing.cost),
                        "quantity": None if ing.quantity is None else str(ing.quantity),
                        "master_id": ing.master_id,
                    }
                    for ing in dto.ingredients
                ]
            ),
            toppings_json=json.dumps(
                [
                    {"id": t.id, "name": t.name, "price": str(t.price), "ref_id": t.ref_id}
                    for t in dto.toppings
                ]
            ),
            image=dto.image,
        )

    def __repr__(self) -> str:
        return f"<MenuItemModel {self.id} {self.name!r} price={self.price}>"
