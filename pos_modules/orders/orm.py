"""
Module: pos_modules.orders.orm
Responsibility: SQLAlchemy ORM persistence for committed orders.  Maps the
    frozen ``Order`` value object from pos_kernel.domain.orders to the
    ``orders`` table.

Architecture position: Modules > Orders > ORM.  Inherits from
    AccountScopedBase (pos_kernel.db.base).

Invariants enforced:
    - Money fields use Decimal (DecimalText) -- never float.
    - Enum fields stored as String(20).
    - Order lines are stored as JSON text; Decimal values as strings.

Failure modes:
    - IntegrityError on a duplicate order id.
"""

import json
from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pos_kernel.db.base import AccountScopedBase


def _items_to_json(items) -> str:
    return json.dumps(
        [
            {
                "id": item.id,
                "menu_id": item.menu_id,
                "name": item.name,
                "price": str(item.price),
                "quantity": item.quantity,
                "modifiers": sorted(item.modifiers),
                "toppings": [
                    {
                        "id": t.id,
                        "name": t.name,
                        "price": str(t.price),
                        "ref_id": t.ref_id,
                    }
                    for t in item.toppings
                ],
                "note": item.note,
                "image": item.image,
            }
            for item in items
        ]
    )


def _items_from_json(raw: str | None):
    from pos_kernel.domain.orders import OrderItem, SelectedTopping

    if not raw:
        return ()
    return tuple(
        OrderItem(
            id=row["id"],
            menu_id=row["menu_id"],
            name=row["name"],
            price=Decimal(row["price"]),
            quantity=int(row.get("quantity", 1)),
            modifiers=frozenset(row.get("modifiers") or ()),
            toppings=tuple(
                SelectedTopping(
                    id=t["id"],
                    name=t["name"],
                    price=Decimal(t.get("price", "0")),
                    ref_id=t.get("ref_id"),
                )
                for t in row.get("toppings") or ()
            ),
            note=row.get("note"),
            image=row.get("image"),
        )
        for row in json.loads(raw)
    )


class OrderModel(AccountScopedBase):
    """
    ORM model for a committed order.

    Maps to: pos_kernel.domain.orders.Order (frozen dataclass).
    """

    __tablename__ = "orders"

    __table_args__ = (
        Index("idx_order_account_shift", "account_id", "shift_date"),
        Index("idx_order_status", "status"),
    )

    queue_number: Mapped[int] = mapped_column(Integer)
    timestamp: Mapped[str] = mapped_column(String(32))
    shift_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default="pending")
    items_json: Mapped[str] = mapped_column(Text, default="[]")
    total_price: Mapped[Decimal] = mapped_column()
    net_total: Mapped[Decimal] = mapped_column()
    gp_deduction: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    payment_method: Mapped[str] = mapped_column(String(20), default="cash")
    channel: Mapped[str] = mapped_column(String(100))

    def to_dto(self):
        """Convert ORM model to frozen Order DTO."""
        from pos_kernel.domain.orders import Order, OrderStatus, PaymentMethod

        return Order(
            id=self.id,
            queue_number=self.queue_number,
            timestamp=self.timestamp,
            status=OrderStatus(self.status),
            items=_items_from_json(self.items_json),
            total_price=self.total_price,
            net_total=self.net_total,
            payment_method=PaymentMethod(self.payment_method),
            channel=self.channel,
            gp_deduction=self.gp_deduction,
        )

    @classmethod
    def from_dto(cls, dto, account_id: str) -> "OrderModel":
        """Create ORM model from frozen Order DTO."""
        return cls(
            id=dto.id,
            account_id=account_id,
            queue_number=dto.queue_number,
            timestamp=dto.timestamp,
            shift_date=dto.shift_date,
            status=dto.status.value,
            items_json=_items_to_json(dto.items),
            total_price=dto.total_price,
            net_total=dto.net_total,
            gp_deduction=dto.gp_deduction,
            payment_method=dto.payment_method.value,
            channel=dto.channel,
        )

    def apply_dto(self, dto) -> None:
        """Overwrite mutable fields from ``dto``."""
        self.status = dto.status.value
        self.items_json = _items_to_json(dto.items)
        self.total_price = dto.total_price
        self.net_total = dto.net_total
        self.gp_deduction = dto.gp_deduction
        self.payment_method = dto.payment_method.value
        self.channel = dto.channel

    def __repr__(self) -> str:
        return f"<OrderModel {self.id} #{self.queue_number} status={self.status}>"
