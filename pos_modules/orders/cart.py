"""
Cart -- the working order while it is being rung up.

The only mutable object in the order flow: lines are frozen OrderItem
values, replaced as the cashier edits them.  Identical dishes merge into
one line unless "separate items" mode is on.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

from pos_kernel.domain.menu import MenuItem, ToppingOption
from pos_kernel.domain.orders import OrderItem, SelectedTopping, items_total
from pos_kernel.exceptions import InvalidQuantityError
from pos_kernel.logging_config import get_logger

logger = get_logger("modules.orders.cart")


class Cart:
    def __init__(self, id_factory: Callable[[], str] | None = None):
        self._lines: list[OrderItem] = []
        self._new_id = id_factory or (lambda: str(uuid4()))

    @property
    def lines(self) -> tuple[OrderItem, ...]:
        return tuple(self._lines)

    @property
    def total(self) -> Decimal:
        return items_total(self._lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    def __len__(self) -> int:
        return len(self._lines)

    def add(
        self,
        menu_item: MenuItem,
        *,
        quantity: int = 1,
        modifiers: Iterable[str] = (),
        toppings: Sequence[ToppingOption] = (),
        note: str | None = None,
        separate: bool = False,
    ) -> OrderItem:
        """
        Add a dish.  Topping prices are baked into the unit price.

        Merges into an existing line with the same dish, note, modifiers
        and toppings unless ``separate`` is True.
        """
        if quantity < 1:
            raise InvalidQuantityError(quantity, menu_item.id)

        selected = tuple(
            SelectedTopping(id=t.id, name=t.name, price=t.price, ref_id=t.ref_id)
            for t in toppings
        )
        unit_price = menu_item.price + sum((t.price for t in selected), Decimal("0"))
        candidate = OrderItem(
            id=self._new_id(),
            menu_id=menu_item.id,
            name=menu_item.name,
            price=unit_price,
            quantity=quantity,
            modifiers=frozenset(modifiers),
            toppings=selected,
            note=(note or "").strip() or None,
            image=menu_item.image,
        )

        if not separate:
            for index, line in enumerate(self._lines):
                if line.merge_key == candidate.merge_key:
                    merged = replace(line, quantity=line.quantity + quantity)
                    self._lines[index] = merged
                    logger.debug(
                        "cart_line_merged",
                        extra={"line_id": merged.id, "quantity": merged.quantity},
                    )
                    return merged

        self._lines.append(candidate)
        return candidate

    def change_quantity(self, line_id: str, delta: int) -> OrderItem:
        """Adjust a line's quantity; it never drops below 1."""
        index, line = self._find(line_id)
        updated = replace(line, quantity=max(1, line.quantity + delta))
        self._lines[index] = updated
        return updated

    def toggle_modifier(self, line_id: str, modifier: str) -> OrderItem:
        index, line = self._find(line_id)
        updated = replace(line, modifiers=line.modifiers ^ {modifier})
        self._lines[index] = updated
        return updated

    def set_note(self, line_id: str, note: str | None) -> OrderItem:
        index, line = self._find(line_id)
        updated = replace(line, note=(note or "").strip() or None)
        self._lines[index] = updated
        return updated

    def remove(self, line_id: str) -> None:
        index, _ = self._find(line_id)
        del self._lines[index]

    def clear(self) -> None:
        self._lines.clear()

    def _find(self, line_id: str) -> tuple[int, OrderItem]:
        for index, line in enumerate(self._lines):
            if line.id == line_id:
                return index, line
        raise KeyError(f"Cart line not found: {line_id}")
