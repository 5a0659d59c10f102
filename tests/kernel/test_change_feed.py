"""
Tests for merging remote changes into local state
(pos_kernel.services.change_feed).
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from pos_kernel.domain.inventory import InventoryItem, InventorySnapshot
from pos_kernel.domain.ledger import LedgerItem, LedgerType
from pos_kernel.domain.orders import Order, OrderItem, OrderStatus
from pos_kernel.services.change_feed import (
    ChangeEntity,
    ChangeEvent,
    ChangeFeed,
    ChangeKind,
    LedgerEchoFilter,
    apply_inventory_change,
    apply_ledger_change,
    apply_order_change,
)

AT = datetime(2024, 3, 15, 10, 30, tzinfo=timezone.utc)


def _order(order_id, status=OrderStatus.PENDING, total="60"):
    return Order(
        id=order_id,
        queue_number=1,
        timestamp="2024-03-15T10:30:00",
        status=status,
        items=(OrderItem(id="l", menu_id="m", name="Pad Thai", price=Decimal(total)),),
        total_price=Decimal(total),
        net_total=Decimal(total),
    )


def _entry(entry_id, transaction_id=None, title="Ice", amount="40", recorded_at=AT):
    return LedgerItem(
        id=entry_id,
        date=date(2024, 3, 15),
        type=LedgerType.EXPENSE,
        title=title,
        amount=Decimal(amount),
        category="raw_material",
        transaction_id=transaction_id,
        recorded_at=recorded_at,
    )


def _event(entity, kind, row):
    return ChangeEvent(entity=entity, kind=kind, row=row)


class TestChangeFeed:
    def test_subscribers_filtered_by_entity(self):
        feed = ChangeFeed()
        everything, orders_only = [], []
        feed.subscribe(everything.append)
        feed.subscribe(orders_only.append, entity=ChangeEntity.ORDERS)

        feed.publish(_event(ChangeEntity.LEDGER, ChangeKind.INSERT, _entry("e")))
        feed.publish(_event(ChangeEntity.ORDERS, ChangeKind.INSERT, _order("o")))

        assert len(everything) == 2
        assert [e.entity for e in orders_only] == [ChangeEntity.ORDERS]

    def test_unsubscribe(self):
        feed = ChangeFeed()
        seen = []
        unsubscribe = feed.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        feed.publish(_event(ChangeEntity.ORDERS, ChangeKind.INSERT, _order("o")))
        assert seen == []


class TestOrders:
    def test_insert_prepends_once(self):
        orders = (_order("a"),)
        event = _event(ChangeEntity.ORDERS, ChangeKind.INSERT, _order("b"))
        merged = apply_order_change(orders, event)
        assert [o.id for o in merged] == ["b", "a"]
        assert apply_order_change(merged, event) == merged

    def test_update_overwrites_status_only(self):
        local = _order("a")
        remote = _order("a", status=OrderStatus.SERVED, total="99")
        (merged,) = apply_order_change((local,), _event(ChangeEntity.ORDERS, ChangeKind.UPDATE, remote))
        assert merged.status == OrderStatus.SERVED
        assert merged.total_price == Decimal("60")

    def test_delete(self):
        merged = apply_order_change(
            (_order("a"), _order("b")), _event(ChangeEntity.ORDERS, ChangeKind.DELETE, _order("a"))
        )
        assert [o.id for o in merged] == ["b"]


class TestLedgerEcho:
    def test_own_write_ignored_by_transaction_id(self):
        local = (_entry("local-id", transaction_id="tx-1"),)
        echo = _entry("server-id", transaction_id="tx-1")
        assert apply_ledger_change(local, _event(ChangeEntity.LEDGER, ChangeKind.INSERT, echo)) == local

    def test_different_transaction_ids_both_kept(self):
        local = (_entry("a", transaction_id="tx-1"),)
        remote = _entry("b", transaction_id="tx-2")
        merged = apply_ledger_change(local, _event(ChangeEntity.LEDGER, ChangeKind.INSERT, remote))
        assert [e.id for e in merged] == ["b", "a"]

    def test_fuzzy_match_within_window(self):
        echo_filter = LedgerEchoFilter()
        local = _entry("a")
        assert echo_filter.matches(local, _entry("b", recorded_at=AT + timedelta(seconds=1)))
        assert not echo_filter.matches(local, _entry("b", recorded_at=AT + timedelta(seconds=2)))
        assert not echo_filter.matches(local, _entry("b", amount="41"))
        assert not echo_filter.matches(local, _entry("b", recorded_at=None))

    def test_update_replaces_entry(self):
        local = (_entry("a"),)
        edited = _entry("a", amount="55")
        (merged,) = apply_ledger_change(local, _event(ChangeEntity.LEDGER, ChangeKind.UPDATE, edited))
        assert merged.amount == Decimal("55")


class TestInventory:
    def _item(self, version, quantity="10"):
        return InventoryItem(id="inv-1", name="Egg", quantity=Decimal(quantity), version=version)

    def test_newer_version_applied(self):
        snapshot = InventorySnapshot.of([self._item(2)])
        event = _event(ChangeEntity.INVENTORY, ChangeKind.UPDATE, self._item(3, "7"))
        merged = apply_inventory_change(snapshot, event)
        assert merged.get("inv-1").quantity == Decimal("7")
        assert merged.version == snapshot.version + 1

    def test_stale_version_ignored(self):
        snapshot = InventorySnapshot.of([self._item(3)])
        event = _event(ChangeEntity.INVENTORY, ChangeKind.UPDATE, self._item(2, "1"))
        assert apply_inventory_change(snapshot, event) is snapshot

    def test_unknown_row_added(self):
        event = _event(ChangeEntity.INVENTORY, ChangeKind.INSERT, self._item(1))
        assert "inv-1" in apply_inventory_change(InventorySnapshot(), event)

    def test_delete(self):
        snapshot = InventorySnapshot.of([self._item(1)])
        event = _event(ChangeEntity.INVENTORY, ChangeKind.DELETE, self._item(1))
        assert len(apply_inventory_change(snapshot, event)) == 0
