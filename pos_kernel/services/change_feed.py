"""
Change feed -- in-process fan-out of committed row changes, and the rules
for folding remote changes into a local ShopState.

Responsibility:
    ``ChangeFeed`` delivers ChangeEvents to subscribers.  The ``apply_*``
    functions merge an incoming event into local collections: orders are
    de-duplicated by id, ledger entries by transaction id (falling back to
    a title/amount/time heuristic for rows written before transaction ids
    existed), inventory rows by version.

Architecture position:
    Kernel > Services.  Pure apart from subscriber callbacks.

Invariants enforced:
    - An event the local client wrote itself is never applied twice.
    - Order updates overwrite status only.
    - An inventory event older than the local row (lower version) is
      ignored.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum
from typing import Any

from pos_kernel.domain.inventory import InventoryItem, InventorySnapshot
from pos_kernel.domain.ledger import LedgerItem
from pos_kernel.domain.orders import Order
from pos_kernel.logging_config import get_logger

logger = get_logger("services.change_feed")

ECHO_WINDOW = timedelta(seconds=2)


class ChangeEntity(str, Enum):
    ORDERS = "orders"
    LEDGER = "ledger"
    INVENTORY = "inventory"


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    entity: ChangeEntity
    kind: ChangeKind
    row: Any


Subscriber = Callable[[ChangeEvent], None]


class ChangeFeed:
    """Synchronous publish/subscribe of ChangeEvents."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[ChangeEntity | None, Subscriber]] = []

    def subscribe(
        self, callback: Subscriber, entity: ChangeEntity | None = None
    ) -> Callable[[], None]:
        """Register ``callback``; returns a function that unsubscribes it."""
        entry = (entity, callback)
        self._subscribers.append(entry)

        def unsubscribe() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return unsubscribe

    def publish(self, event: ChangeEvent) -> None:
        logger.debug(
            "change_published",
            extra={"entity": event.entity.value, "kind": event.kind.value},
        )
        for entity, callback in list(self._subscribers):
            if entity is None or entity == event.entity:
                callback(event)


class LedgerEchoFilter:
    """
    Recognises ledger rows the local client already holds.

    Rows match when ids match, or when both carry a transaction id and
    those match.  Rows without a transaction id fall back to: same title,
    same amount, recorded within ``window`` of each other.
    """

    def __init__(self, window: timedelta = ECHO_WINDOW):
        self._window = window

    def matches(self, local: LedgerItem, incoming: LedgerItem) -> bool:
        if local.id == incoming.id:
            return True
        if local.transaction_id and incoming.transaction_id:
            return local.transaction_id == incoming.transaction_id
        if local.title != incoming.title or local.amount != incoming.amount:
            return False
        if local.recorded_at is None or incoming.recorded_at is None:
            return False
        return abs(local.recorded_at - incoming.recorded_at) < self._window

    def is_echo(self, local: Iterable[LedgerItem], incoming: LedgerItem) -> bool:
        return any(self.matches(entry, incoming) for entry in local)


def apply_order_change(orders: tuple[Order, ...], event: ChangeEvent) -> tuple[Order, ...]:
    """Fold an orders event into a newest-first order tuple."""
    incoming: Order = event.row
    if event.kind == ChangeKind.INSERT:
        if any(o.id == incoming.id for o in orders):
            return orders
        return (incoming, *orders)
    if event.kind == ChangeKind.UPDATE:
        return tuple(
            replace(o, status=incoming.status) if o.id == incoming.id else o
            for o in orders
        )
    return tuple(o for o in orders if o.id != incoming.id)


def apply_ledger_change(
    ledger: tuple[LedgerItem, ...],
    event: ChangeEvent,
    echo_filter: LedgerEchoFilter | None = None,
) -> tuple[LedgerItem, ...]:
    """Fold a ledger event into a newest-first ledger tuple."""
    incoming: LedgerItem = event.row
    if event.kind == ChangeKind.INSERT:
        if (echo_filter or LedgerEchoFilter()).is_echo(ledger, incoming):
            logger.debug("ledger_echo_ignored", extra={"entry_id": incoming.id})
            return ledger
        return (incoming, *ledger)
    if event.kind == ChangeKind.UPDATE:
        return tuple(incoming if e.id == incoming.id else e for e in ledger)
    return tuple(e for e in ledger if e.id != incoming.id)


def apply_inventory_change(
    snapshot: InventorySnapshot, event: ChangeEvent
) -> InventorySnapshot:
    """Fold an inventory event into the snapshot, ignoring stale versions."""
    incoming: InventoryItem = event.row
    local = snapshot.get(incoming.id)
    if event.kind == ChangeKind.DELETE:
        if local is None:
            return snapshot
        return InventorySnapshot(
            items=tuple(i for i in snapshot if i.id != incoming.id),
            version=snapshot.version + 1,
        )
    if local is None:
        return snapshot.with_changes(created=(incoming,))
    if incoming.version <= local.version:
        return snapshot
    return snapshot.with_changes(updated=(incoming,))
