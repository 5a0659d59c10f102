"""
Tests for the SQLAlchemy shop store (pos_modules.store).

Covers:
- Round trips of every record type through the ORM models
- Account scoping
- Idempotent ledger inserts
- Optimistic locking of inventory rows
- Change events published on commit, dropped on rollback
- The services writing end to end through ``store_capabilities``
"""

from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from pos_engines.stock_ledger import NEW_ITEM_REF, StockDirection, StockLedgerEngine
from pos_kernel.db.engine import session_scope
from pos_kernel.domain.ledger import LedgerItem, LedgerType
from pos_kernel.domain.orders import Order, OrderItem, OrderStatus, SelectedTopping
from pos_kernel.exceptions import (
    LedgerEntryNotFoundError,
    OrderNotFoundError,
    StaleInventoryVersionError,
)
from pos_kernel.services.change_feed import ChangeEntity, ChangeFeed, ChangeKind
from pos_modules.inventory.models import Supplier
from pos_modules.ledger.models import DraftLine, LineKind, TransactionDraft
from pos_modules.ledger.service import LedgerService
from pos_modules.orders.models import PaymentDetails
from pos_modules.orders.service import OrderLifecycleManager
from pos_modules.store import ShopStore, resolve_account_id, store_capabilities

ACCOUNT = "owner-1"
SHIFT = date(2024, 3, 15)
RECORDED = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


def _order(order_id="o-1", queue=1, status=OrderStatus.PENDING):
    egg = SelectedTopping(id="top-egg", name="Fried egg", price=Decimal("10"), ref_id="inv-egg")
    line = OrderItem(
        id="l-1",
        menu_id="menu-padthai",
        name="Pad Thai",
        price=Decimal("70"),
        quantity=2,
        modifiers=frozenset({"spicy", "no peanuts"}),
        toppings=(egg,),
        note="table 4",
    )
    return Order(
        id=order_id,
        queue_number=queue,
        timestamp=f"{SHIFT.isoformat()}T09:0{queue}:00",
        status=status,
        items=(line,),
        total_price=Decimal("140"),
        net_total=Decimal("140"),
    )


def _entry(entry_id="e-1", transaction_id="tx-1", on=SHIFT, amount="40"):
    return LedgerItem(
        id=entry_id,
        date=on,
        type=LedgerType.EXPENSE,
        title="Ice",
        amount=Decimal(amount),
        category="raw_material",
        transaction_id=transaction_id,
        recorded_at=RECORDED,
    )


@pytest.fixture
def store(db_session):
    return ShopStore(db_session, ACCOUNT)


@pytest.fixture
def seeded(store, sample_inventory, sample_menu, sample_equipment):
    for item in sample_inventory:
        store.insert_inventory_item(item)
    for item in sample_menu:
        store.insert_menu_item(item)
    for eq in sample_equipment:
        store.insert_equipment(eq)
    store.session.commit()
    return store


class TestRoundTrip:
    def test_order(self, store):
        order = _order()
        store.insert_order(order)
        assert store.fetch_orders() == (order,)
        assert store.fetch_orders(SHIFT) == (order,)
        assert store.fetch_orders(date(2024, 3, 16)) == ()

    def test_orders_newest_first(self, store):
        store.insert_order(_order("o-1", 1))
        store.insert_order(_order("o-2", 2))
        assert [o.id for o in store.fetch_orders()] == ["o-2", "o-1"]

    def test_ledger_range(self, store):
        store.insert_ledger_entry(_entry("e-1", "tx-1", on=date(2024, 3, 1)))
        store.insert_ledger_entry(_entry("e-2", "tx-2"))
        assert [e.id for e in store.fetch_ledger()] == ["e-2", "e-1"]
        assert store.fetch_ledger(start=date(2024, 3, 10)) == (_entry("e-2", "tx-2"),)

    def test_catalogue(self, seeded, sample_inventory, sample_menu, sample_equipment):
        assert set(seeded.fetch_inventory()) == set(sample_inventory)
        assert seeded.fetch_menu() == tuple(sorted(sample_menu, key=lambda m: m.name))
        assert seeded.fetch_equipment() == sample_equipment

    def test_supplier(self, store):
        supplier = Supplier(id="s-1", name="Market Aunty", phone="081")
        store.insert_supplier(supplier)
        assert store.fetch_suppliers() == (supplier,)

    def test_load_state(self, seeded):
        state = seeded.load_state()
        assert len(state.inventory) == 4
        assert len(state.menu) == 3
        assert state.orders == ()


class TestAccountScope:
    def test_other_account_sees_nothing(self, store, db_session):
        store.insert_order(_order())
        other = ShopStore(db_session, "owner-2")
        assert other.fetch_orders() == ()
        with pytest.raises(OrderNotFoundError):
            other.update_order_status("o-1", OrderStatus.SERVED)

    def test_staff_resolved_to_owner(self):
        memberships = {"staff-1": ACCOUNT}
        assert resolve_account_id("staff-1", memberships) == ACCOUNT
        assert resolve_account_id("solo", memberships) == "solo"


class TestWrites:
    def test_update_order_status(self, store):
        store.insert_order(_order())
        store.update_order_status("o-1", OrderStatus.SERVED)
        assert store.fetch_orders()[0].status == OrderStatus.SERVED

    def test_ledger_insert_is_idempotent(self, store, captured_logs):
        first = store.insert_ledger_entry(_entry("e-1", "tx-1"))
        replay = store.insert_ledger_entry(_entry("e-99", "tx-1"))
        assert replay == first
        assert len(store.fetch_ledger()) == 1
        assert any(r["message"] == "ledger_insert_replayed" for r in captured_logs())

    def test_update_unknown_entry(self, store):
        with pytest.raises(LedgerEntryNotFoundError):
            store.update_ledger_entry(_entry("missing"))

    def test_inventory_update_on_current_version(self, seeded):
        pork = seeded.fetch_inventory().get("inv-pork")
        seeded.update_inventory_item(replace(pork, quantity=Decimal("4"), version=2))
        stored = seeded.fetch_inventory().get("inv-pork")
        assert (stored.quantity, stored.version) == (Decimal("4"), 2)

    def test_inventory_update_on_stale_version(self, seeded):
        pork = seeded.fetch_inventory().get("inv-pork")
        with pytest.raises(StaleInventoryVersionError) as exc_info:
            seeded.update_inventory_item(replace(pork, quantity=Decimal("4"), version=3))
        assert exc_info.value.expected_version == 2
        assert exc_info.value.actual_version == 1


class TestChangeFeed:
    @pytest.fixture
    def feed_store(self, db_session):
        feed = ChangeFeed()
        events = []
        feed.subscribe(events.append)
        store = ShopStore(db_session, ACCOUNT, feed=feed)
        yield store, events
        store.detach()

    def test_published_after_commit(self, feed_store):
        store, events = feed_store
        store.insert_order(_order())
        assert events == []
        store.session.commit()
        assert [(e.entity, e.kind) for e in events] == [(ChangeEntity.ORDERS, ChangeKind.INSERT)]
        assert events[0].row == _order()

    def test_update_event(self, feed_store):
        store, events = feed_store
        store.insert_order(_order())
        store.session.commit()
        store.update_order_status("o-1", OrderStatus.COOKING)
        store.session.commit()
        assert events[-1].kind == ChangeKind.UPDATE
        assert events[-1].row.status == OrderStatus.COOKING

    def test_rollback_discards(self, feed_store):
        store, events = feed_store
        store.insert_ledger_entry(_entry())
        store.session.rollback()
        store.session.commit()
        assert events == []

    def test_entity_filter(self, db_session):
        feed = ChangeFeed()
        ledger_events = []
        feed.subscribe(ledger_events.append, entity=ChangeEntity.LEDGER)
        store = ShopStore(db_session, ACCOUNT, feed=feed)
        store.insert_order(_order())
        store.insert_ledger_entry(_entry())
        db_session.commit()
        store.detach()
        assert [e.entity for e in ledger_events] == [ChangeEntity.LEDGER]


class TestEndToEnd:
    def test_kitchen_then_payment(self, seeded, deterministic_clock, id_factory):
        caps = store_capabilities(seeded)
        manager = OrderLifecycleManager(
            caps,
            clock=deterministic_clock,
            stock_engine=StockLedgerEngine(id_factory=id_factory),
            id_factory=id_factory,
        )
        state = seeded.load_state()
        order = manager.create_order(state.orders, _order().items, SHIFT)

        sent = manager.send_to_fulfillment(state, order)
        paid = manager.collect_payment(sent.state, sent.order, PaymentDetails())
        seeded.session.commit()

        stored = seeded.load_state()
        assert stored.find_order(order.id).status == OrderStatus.COMPLETED
        noodles = stored.inventory.get("inv-noodles")
        assert noodles.quantity == Decimal("18")
        assert noodles.version == 2
        assert stored.inventory.get("inv-egg").quantity == Decimal("1")
        assert [e.transaction_id for e in stored.ledger] == [f"{order.id}:income"]
        assert stored.ledger[0].amount == paid.order.total_price

    def test_split_purchase(self, seeded, deterministic_clock, id_factory):
        service = LedgerService(
            store_capabilities(seeded), clock=deterministic_clock, id_factory=id_factory
        )
        draft = TransactionDraft(
            date=SHIFT,
            type=LedgerType.EXPENSE,
            category="raw_material",
            lines=(
                DraftLine(
                    kind=LineKind.INVENTORY,
                    name="Egg",
                    quantity=Decimal("30"),
                    unit_cost=Decimal("4"),
                    ref_id="inv-egg",
                    direction=StockDirection.IN,
                ),
                DraftLine(
                    kind=LineKind.INVENTORY,
                    name="Freezer",
                    quantity=Decimal("1"),
                    unit_cost=Decimal("5000"),
                    ref_id=NEW_ITEM_REF,
                    category="equipment",
                    item_category="equipment",
                    direction=StockDirection.IN,
                ),
            ),
        )
        service.submit_transaction(seeded.load_state(), draft)
        seeded.session.commit()

        stored = seeded.load_state()
        assert len(stored.ledger) == 2
        assert len({e.split_group for e in stored.ledger}) == 1
        assert stored.inventory.get("inv-egg").quantity == Decimal("33")
        assert stored.inventory.find_by_name("Freezer").is_asset


class TestSessionScope:
    def test_commits_on_success(self, db_session):
        with session_scope() as session:
            ShopStore(session, ACCOUNT).insert_order(_order())
        assert ShopStore(db_session, ACCOUNT).fetch_orders() == (_order(),)

    def test_rolls_back_on_error(self, db_session):
        with pytest.raises(OrderNotFoundError):
            with session_scope() as session:
                store = ShopStore(session, ACCOUNT)
                store.insert_order(_order())
                store.update_order_status("ghost", OrderStatus.SERVED)
        assert ShopStore(db_session, ACCOUNT).fetch_orders() == ()
