"""
Shop Store (``pos_modules.store``).

Responsibility
--------------
SQLAlchemy-backed persistence for one shop account, and the
``Capabilities`` bundle that lets the module services write through it.

Architecture position
---------------------
**Modules layer** -- adapter.  Reads and writes the module ORM models;
the services themselves never import it.

Invariants enforced
-------------------
* Every query and write is scoped to the store's ``account_id``.
* Ledger inserts are idempotent on ``transaction_id``: replaying a write
  returns the stored entry instead of creating a second one.
* Inventory updates only apply on top of the version they were computed
  from.  A row that moved on raises ``StaleInventoryVersionError``.
* Change events are published to the ``ChangeFeed`` only after the session
  commits; a rollback discards them.

Failure modes
-------------
* ``OrderNotFoundError`` / ``LedgerEntryNotFoundError`` on updates of
  unknown rows.
* ``StaleInventoryVersionError`` on a lost inventory update.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date

from sqlalchemy import event, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from pos_engines.stock_ledger import StockApplyResult
from pos_kernel.domain.inventory import Equipment, InventoryItem, InventorySnapshot
from pos_kernel.domain.ledger import LedgerItem
from pos_kernel.domain.menu import MenuItem
from pos_kernel.domain.orders import Order, OrderStatus
from pos_kernel.domain.state import ShopState
from pos_kernel.exceptions import (
    LedgerEntryNotFoundError,
    OrderNotFoundError,
    StaleInventoryVersionError,
)
from pos_kernel.logging_config import get_logger
from pos_kernel.services.change_feed import ChangeEntity, ChangeEvent, ChangeFeed, ChangeKind
from pos_modules.capabilities import Capabilities
from pos_modules.inventory.models import Supplier
from pos_modules.inventory.orm import EquipmentModel, InventoryItemModel, SupplierModel
from pos_modules.ledger.orm import LedgerEntryModel
from pos_modules.menu.orm import MenuItemModel
from pos_modules.orders.models import FulfillmentRequest, PaymentRequest
from pos_modules.orders.orm import OrderModel

logger = get_logger("modules.store")

_FEED_ENTITIES = {
    OrderModel: ChangeEntity.ORDERS,
    LedgerEntryModel: ChangeEntity.LEDGER,
    InventoryItemModel: ChangeEntity.INVENTORY,
}


def resolve_account_id(user_id: str, memberships: Mapping[str, str]) -> str:
    """
    Account whose data a signed-in user works on.

    Staff are mapped to their shop owner's account; anyone else works on
    their own.
    """
    return memberships.get(user_id, user_id)


class ShopStore:
    """Reads and writes one account's rows through a SQLAlchemy session."""

    def __init__(self, session: Session, account_id: str, feed: ChangeFeed | None = None):
        self.session = session
        self.account_id = account_id
        self.feed = feed
        self._pending: list[ChangeEvent] = []
        if feed is not None:
            event.listen(session, "after_flush", self._collect)
            event.listen(session, "after_commit", self._publish)
            event.listen(session, "after_rollback", self._discard)

    def detach(self) -> None:
        """Stop listening to the session."""
        if self.feed is not None:
            event.remove(self.session, "after_flush", self._collect)
            event.remove(self.session, "after_commit", self._publish)
            event.remove(self.session, "after_rollback", self._discard)
        self._pending.clear()

    # =========================================================================
    # Reads
    # =========================================================================

    def fetch_orders(self, shift_date: date | None = None) -> tuple[Order, ...]:
        """Orders newest first, optionally for one shift."""
        stmt = select(OrderModel).where(OrderModel.account_id == self.account_id)
        if shift_date is not None:
            stmt = stmt.where(OrderModel.shift_date == shift_date)
        stmt = stmt.order_by(OrderModel.timestamp.desc())
        return tuple(m.to_dto() for m in self.session.scalars(stmt))

    def fetch_ledger(
        self, start: date | None = None, end: date | None = None
    ) -> tuple[LedgerItem, ...]:
        """Ledger entries newest first, optionally within ``[start, end]``."""
        stmt = select(LedgerEntryModel).where(LedgerEntryModel.account_id == self.account_id)
        if start is not None:
            stmt = stmt.where(LedgerEntryModel.entry_date >= start)
        if end is not None:
            stmt = stmt.where(LedgerEntryModel.entry_date <= end)
        stmt = stmt.order_by(
            LedgerEntryModel.entry_date.desc(), LedgerEntryModel.recorded_at.desc()
        )
        return tuple(m.to_dto() for m in self.session.scalars(stmt))

    def fetch_inventory(self) -> InventorySnapshot:
        stmt = (
            select(InventoryItemModel)
            .where(InventoryItemModel.account_id == self.account_id)
            .order_by(InventoryItemModel.name)
        )
        return InventorySnapshot.of(m.to_dto() for m in self.session.scalars(stmt))

    def fetch_menu(self) -> tuple[MenuItem, ...]:
        stmt = (
            select(MenuItemModel)
            .where(MenuItemModel.account_id == self.account_id)
            .order_by(MenuItemModel.name)
        )
        return tuple(m.to_dto() for m in self.session.scalars(stmt))

    def fetch_equipment(self) -> tuple[Equipment, ...]:
        stmt = select(EquipmentModel).where(EquipmentModel.account_id == self.account_id)
        return tuple(m.to_dto() for m in self.session.scalars(stmt))

    def fetch_suppliers(self) -> tuple[Supplier, ...]:
        stmt = (
            select(SupplierModel)
            .where(SupplierModel.account_id == self.account_id)
            .order_by(SupplierModel.name)
        )
        return tuple(m.to_dto() for m in self.session.scalars(stmt))

    def load_state(self) -> ShopState:
        """Everything the services need, in one snapshot."""
        state = ShopState(
            orders=self.fetch_orders(),
            ledger=self.fetch_ledger(),
            inventory=self.fetch_inventory(),
            menu=self.fetch_menu(),
            equipment=self.fetch_equipment(),
        )
        logger.info(
            "shop_state_loaded",
            extra={
                "orders": len(state.orders),
                "ledger_entries": len(state.ledger),
                "inventory_items": len(state.inventory),
            },
        )
        return state

    # =========================================================================
    # Orders
    # =========================================================================

    def insert_order(self, order: Order) -> None:
        self.session.add(OrderModel.from_dto(order, self.account_id))
        self.session.flush()

    def update_order(self, order: Order) -> None:
        model = self._order_model(order.id)
        model.apply_dto(order)
        self.session.flush()

    def update_order_status(self, order_id: str, status: OrderStatus) -> None:
        model = self._order_model(order_id)
        model.status = status.value
        self.session.flush()

    def _order_model(self, order_id: str) -> OrderModel:
        model = self.session.get(OrderModel, order_id)
        if model is None or model.account_id != self.account_id:
            raise OrderNotFoundError(order_id)
        return model

    # =========================================================================
    # Ledger
    # =========================================================================

    def insert_ledger_entry(self, entry: LedgerItem) -> LedgerItem:
        """Insert ``entry`` unless its transaction id is already stored."""
        if entry.transaction_id:
            existing = self.session.scalars(
                select(LedgerEntryModel).where(
                    LedgerEntryModel.account_id == self.account_id,
                    LedgerEntryModel.transaction_id == entry.transaction_id,
                )
            ).first()
            if existing is not None:
                logger.info(
                    "ledger_insert_replayed",
                    extra={"entry_id": existing.id},
                )
                return existing.to_dto()
        self.session.add(LedgerEntryModel.from_dto(entry, self.account_id))
        self.session.flush()
        return entry

    def update_ledger_entry(self, entry: LedgerItem) -> None:
        model = self.session.get(LedgerEntryModel, entry.id)
        if model is None or model.account_id != self.account_id:
            raise LedgerEntryNotFoundError(entry.id)
        model.apply_dto(entry)
        self.session.flush()

    # =========================================================================
    # Inventory
    # =========================================================================

    def insert_inventory_item(self, item: InventoryItem) -> None:
        self.session.add(InventoryItemModel.from_dto(item, self.account_id))
        self.session.flush()

    def update_inventory_item(self, item: InventoryItem) -> None:
        """
        Store ``item``, which the stock ledger computed from version
        ``item.version - 1``.

        Raises:
            StaleInventoryVersionError: the stored row is at another version.
        """
        expected = item.version - 1
        model = self.session.get(InventoryItemModel, item.id)
        if model is None or model.account_id != self.account_id:
            self.insert_inventory_item(item)
            return
        if model.version != expected:
            logger.error(
                "inventory_version_conflict",
                extra={
                    "item_id": item.id,
                    "expected_version": expected,
                    "actual_version": model.version,
                },
            )
            raise StaleInventoryVersionError(item.id, expected, model.version)
        model.apply_dto(item)
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.error("inventory_version_conflict", extra={"item_id": item.id})
            raise StaleInventoryVersionError(item.id, expected) from exc

    def update_inventory_batch(self, items: Iterable[InventoryItem]) -> None:
        for item in items:
            self.update_inventory_item(item)

    def persist_stock(self, stock: StockApplyResult | None) -> None:
        """Write the rows a stock application created and changed."""
        if stock is None:
            return
        for item in stock.created:
            self.insert_inventory_item(item)
        self.update_inventory_batch(stock.updated)

    # =========================================================================
    # Catalogue
    # =========================================================================

    def insert_menu_item(self, item: MenuItem) -> None:
        self.session.add(MenuItemModel.from_dto(item, self.account_id))
        self.session.flush()

    def insert_equipment(self, equipment: Equipment) -> None:
        self.session.add(EquipmentModel.from_dto(equipment, self.account_id))
        self.session.flush()

    def insert_supplier(self, supplier: Supplier) -> None:
        self.session.add(SupplierModel.from_dto(supplier, self.account_id))
        self.session.flush()

    # =========================================================================
    # Change feed
    # =========================================================================

    def _collect(self, session: Session, flush_context) -> None:
        for kind, objects in (
            (ChangeKind.INSERT, session.new),
            (ChangeKind.UPDATE, session.dirty),
            (ChangeKind.DELETE, session.deleted),
        ):
            for obj in objects:
                entity = _FEED_ENTITIES.get(type(obj))
                if entity is None or obj.account_id != self.account_id:
                    continue
                if kind == ChangeKind.UPDATE and not session.is_modified(obj):
                    continue
                self._pending.append(ChangeEvent(entity=entity, kind=kind, row=obj.to_dto()))

    def _publish(self, session: Session) -> None:
        pending, self._pending = self._pending, []
        for change in pending:
            self.feed.publish(change)

    def _discard(self, session: Session) -> None:
        if self._pending:
            logger.debug("change_events_discarded", extra={"count": len(self._pending)})
        self._pending = []


def store_capabilities(store: ShopStore) -> Capabilities:
    """Capabilities that write every service side effect through ``store``."""

    def send_to_fulfillment(request: FulfillmentRequest) -> None:
        store.insert_order(request.order)
        store.persist_stock(request.stock)

    def collect_payment(request: PaymentRequest) -> None:
        if request.is_new:
            store.insert_order(request.order)
        else:
            store.update_order(request.order)
        store.persist_stock(request.stock)
        for entry in request.entries:
            store.insert_ledger_entry(entry)

    return Capabilities(
        send_to_fulfillment=send_to_fulfillment,
        collect_payment=collect_payment,
        add_inventory_item=store.insert_inventory_item,
        update_inventory_batch=store.update_inventory_batch,
        add_ledger_entry=store.insert_ledger_entry,
        update_ledger_entry=store.update_ledger_entry,
        update_order_status=store.update_order_status,
        add_supplier=store.insert_supplier,
    )
