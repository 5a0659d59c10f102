"""Menu value objects: sellable items, their recipes and topping options."""

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True, slots=True)
class Ingredient:
    """
    One recipe line of a menu item.

    ``cost`` is the ingredient's cost contribution per menu unit (used for
    COGS); ``quantity`` is how many stock units one menu unit consumes.
    """

    name: str
    cost: Decimal = Decimal("0")
    quantity: Decimal | None = None
    master_id: str | None = None

    @property
    def consumed_per_unit(self) -> Decimal:
        return self.quantity if self.quantity is not None else Decimal("0")


@dataclass(frozen=True, slots=True)
class ToppingOption:
    """Optional add-on offered with a menu item; ``ref_id`` links a stock row."""

    id: str
    name: str
    price: Decimal = Decimal("0")
    ref_id: str | None = None


@dataclass(frozen=True, slots=True)
class MenuItem:
    id: str
    name: str
    price: Decimal
    category: str = "main"
    ingredients: tuple[Ingredient, ...] = ()
    toppings: tuple[ToppingOption, ...] = ()
    image: str | None = None

    @property
    def ingredient_cost(self) -> Decimal:
        """Raw recipe cost of one unit before hidden-cost uplift."""
        return sum((ing.cost for ing in self.ingredients), Decimal("0"))
