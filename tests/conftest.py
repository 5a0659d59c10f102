"""
Pytest fixtures for the POS test suite.

Provides:
- Structured logging configured once per session, plus ``captured_logs``
- A DeterministicClock and a sequential id factory
- A small sample shop (menu, inventory, equipment)
- ``RecordingCapabilities`` that remember every side effect requested
- A fresh in-memory SQLite session with every table created
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO
from itertools import count

import pytest

from pos_kernel.db.engine import (
    create_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from pos_kernel.domain.clock import DeterministicClock
from pos_kernel.domain.inventory import (
    Equipment,
    InventoryItem,
    InventorySnapshot,
    ItemType,
)
from pos_kernel.domain.menu import Ingredient, MenuItem, ToppingOption
from pos_kernel.domain.state import ShopState
from pos_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from pos_modules.capabilities import Capabilities


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture pos_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            ...
            logs = captured_logs()
            assert any(r["message"] == "transaction_submitted" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("pos_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Time and ids
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Clock pinned to 2024-03-15 10:30 UTC."""
    return DeterministicClock(datetime(2024, 3, 15, 10, 30, 0, tzinfo=timezone.utc))


@pytest.fixture
def id_factory():
    """Sequential ids: id-1, id-2, ..."""
    counter = count(1)
    return lambda: f"id-{next(counter)}"


# =============================================================================
# Sample shop
# =============================================================================


@pytest.fixture
def sample_inventory():
    return InventorySnapshot.of(
        [
            InventoryItem(
                id="inv-noodles",
                name="Rice noodles",
                quantity=Decimal("20"),
                unit="pack",
                min_level=Decimal("5"),
                cost_per_unit=Decimal("10"),
            ),
            InventoryItem(
                id="inv-pork",
                name="Pork",
                quantity=Decimal("10"),
                unit="portion",
                min_level=Decimal("2"),
                cost_per_unit=Decimal("25"),
            ),
            InventoryItem(
                id="inv-egg",
                name="Egg",
                quantity=Decimal("3"),
                unit="egg",
                min_level=Decimal("5"),
                cost_per_unit=Decimal("4"),
            ),
            InventoryItem(
                id="inv-wok",
                name="Wok",
                quantity=Decimal("1"),
                cost_per_unit=Decimal("1460"),
                category="equipment",
                type=ItemType.ASSET,
                lifespan_days=365,
                salvage_price=Decimal("0"),
            ),
        ]
    )


@pytest.fixture
def sample_menu():
    return (
        MenuItem(
            id="menu-padthai",
            name="Pad Thai",
            price=Decimal("60"),
            ingredients=(
                Ingredient(
                    name="Rice noodles",
                    cost=Decimal("10"),
                    quantity=Decimal("1"),
                    master_id="inv-noodles",
                ),
                Ingredient(name="pork", cost=Decimal("12"), quantity=Decimal("0.5")),
            ),
            toppings=(
                ToppingOption(
                    id="top-egg", name="Fried egg", price=Decimal("10"), ref_id="inv-egg"
                ),
            ),
        ),
        MenuItem(
            id="menu-tea",
            name="Thai tea",
            price=Decimal("25"),
            category="drink",
        ),
        MenuItem(
            id="menu-special",
            name="Chef special",
            price=Decimal("80"),
            ingredients=(
                Ingredient(name="Truffle", cost=Decimal("40"), quantity=Decimal("1")),
            ),
        ),
    )


@pytest.fixture
def sample_equipment():
    return (
        Equipment(
            id="eq-cart",
            name="Food cart",
            purchase_price=Decimal("7300"),
            resale_price=Decimal("0"),
            lifespan_days=730,
        ),
    )


@pytest.fixture
def shop_state(sample_inventory, sample_menu, sample_equipment):
    return ShopState(
        inventory=sample_inventory,
        menu=sample_menu,
        equipment=sample_equipment,
    )


# =============================================================================
# Capabilities
# =============================================================================


class RecordingCapabilities:
    """Remembers every capability call as ``(name, argument...)``."""

    def __init__(self):
        self.calls: list[tuple] = []

    def _record(self, name):
        def _call(*args):
            self.calls.append((name, *args))

        return _call

    def build(self, *omit: str) -> Capabilities:
        names = (
            "send_to_fulfillment",
            "collect_payment",
            "add_inventory_item",
            "update_inventory_batch",
            "add_ledger_entry",
            "update_ledger_entry",
            "update_order_status",
            "add_supplier",
        )
        return Capabilities(
            **{name: (None if name in omit else self._record(name)) for name in names}
        )

    def named(self, name: str) -> list[tuple]:
        return [call[1:] for call in self.calls if call[0] == name]


@pytest.fixture
def recorder():
    return RecordingCapabilities()


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def db_session():
    """Fresh in-memory SQLite database with every table created."""
    init_engine_from_url("sqlite:///:memory:")
    create_tables()
    session = get_session()
    yield session
    session.close()
    reset_engine()
