"""
Typed exception hierarchy for the point-of-sale kernel.

Every failure a caller can act on has its own class, a machine-readable
``code`` class attribute, and the context of the failure stored as plain
attributes (never only inside the message string).

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PosKernelError (base)
    |
    +-- ValidationError
    |   +-- MissingFieldError
    |   +-- InvalidAmountError
    |   +-- InvalidQuantityError
    |   +-- EmptyCartError
    |   +-- InvalidDateRangeError
    |   +-- SplitBillEditError
    |   +-- InvalidCategoryError
    |
    +-- OrderError
    |   +-- OrderNotFoundError
    |   +-- OrderAlreadyExistsError
    |   +-- InvalidOrderTransitionError
    |
    +-- LedgerError
    |   +-- LedgerEntryNotFoundError
    |
    +-- CapabilityError
    |   +-- MissingCapabilityError
    |
    +-- ConcurrencyError
    |   +-- StaleInventoryVersionError
    |
    +-- ConfigError
        +-- InvalidConfigError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                      | When Raised
-------------|---------------------------|-----------------------------------------
Validation   | MISSING_FIELD             | Required draft field empty
             | INVALID_AMOUNT            | Amount <= 0 or not a number
             | INVALID_QUANTITY          | Quantity <= 0 on a stock line
             | EMPTY_CART                | Order created from an empty cart
             | INVALID_DATE_RANGE        | Report start date after end date
             | SPLIT_BILL_EDIT           | Editing an entry of a split checkout
             | INVALID_CATEGORY          | Category not valid for the entry type
-------------|---------------------------|-----------------------------------------
Order        | ORDER_NOT_FOUND           | Order id not in the snapshot
             | ORDER_ALREADY_EXISTS      | Fulfillment requested twice
             | INVALID_ORDER_TRANSITION  | Backward or post-terminal move
-------------|---------------------------|-----------------------------------------
Ledger       | LEDGER_ENTRY_NOT_FOUND    | Ledger entry id not in the snapshot
-------------|---------------------------|-----------------------------------------
Capability   | MISSING_CAPABILITY        | Caller did not grant the operation
-------------|---------------------------|-----------------------------------------
Concurrency  | STALE_INVENTORY_VERSION   | Inventory row changed since it was read
-------------|---------------------------|-----------------------------------------
Config       | INVALID_CONFIG            | Shop configuration value out of range

Resolution misses (an ingredient or inventory row that cannot be found)
are deliberately not exceptions: the stock ledger reports them as a
partial outcome instead.
"""

from datetime import date
from decimal import Decimal


class PosKernelError(Exception):
    """
    Base exception for all point-of-sale kernel errors.

    All subclasses carry a ``code`` class attribute.
    """

    code: str = "POS_KERNEL_ERROR"


# Validation


class ValidationError(PosKernelError):
    """Base exception for input rejected before any mutation."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required field is empty."""

    code: str = "MISSING_FIELD"

    def __init__(self, field: str, context: str = ""):
        self.field = field
        self.context = context
        suffix = f" ({context})" if context else ""
        super().__init__(f"Missing required field: {field}{suffix}")


class InvalidAmountError(ValidationError):
    """A monetary amount is not a positive number."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, field: str = "amount"):
        self.amount = str(amount)
        self.field = field
        super().__init__(f"Invalid {field}: {amount!r} (must be > 0)")


class InvalidQuantityError(ValidationError):
    """A stock quantity is not a positive number."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: object, ref_id: str | None = None):
        self.quantity = str(quantity)
        self.ref_id = ref_id
        super().__init__(
            f"Invalid quantity {quantity!r} for {ref_id or 'line'} (must be > 0)"
        )


class ScannedLineError(ValidationError):
    """A scanned receipt line that cannot be booked."""

    code: str = "SCANNED_LINE_INVALID"

    def __init__(self, reason: str, field: str | None = None):
        self.reason = reason
        self.field = field
        super().__init__(reason)


class EmptyCartError(ValidationError):
    """An order was requested from a cart with no lines."""

    code: str = "EMPTY_CART"

    def __init__(self):
        super().__init__("Cannot create an order from an empty cart")


class InvalidDateRangeError(ValidationError):
    """Report range starts after it ends."""

    code: str = "INVALID_DATE_RANGE"

    def __init__(self, start: date, end: date):
        self.start = start.isoformat()
        self.end = end.isoformat()
        super().__init__(f"Invalid date range: {start} is after {end}")


class SplitBillEditError(ValidationError):
    """
    An edit targets an entry produced by a split-bill checkout.

    Split entries share one stock application and are edited never, or
    all together by voiding and re-entering the checkout.
    """

    code: str = "SPLIT_BILL_EDIT"

    def __init__(self, entry_id: str, split_group: str | None):
        self.entry_id = entry_id
        self.split_group = split_group
        super().__init__(
            f"Ledger entry {entry_id} belongs to split bill {split_group} "
            "and cannot be edited"
        )


class InvalidCategoryError(ValidationError):
    """A ledger category does not belong to the entry type."""

    code: str = "INVALID_CATEGORY"

    def __init__(self, category: str, entry_type: str):
        self.category = category
        self.entry_type = entry_type
        super().__init__(f"Category {category!r} is not valid for {entry_type} entries")


# Orders


class OrderError(PosKernelError):
    """Base exception for order lifecycle errors."""

    code: str = "ORDER_ERROR"


class OrderNotFoundError(OrderError):
    """Order with given id was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class OrderAlreadyExistsError(OrderError):
    """Order with given id already exists."""

    code: str = "ORDER_ALREADY_EXISTS"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order already exists: {order_id}")


class InvalidOrderTransitionError(OrderError):
    """Requested status change is not permitted by the order state machine."""

    code: str = "INVALID_ORDER_TRANSITION"

    def __init__(self, order_id: str, from_status: str, to_status: str):
        self.order_id = order_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Order {order_id} cannot move from {from_status} to {to_status}"
        )


# Ledger


class LedgerError(PosKernelError):
    """Base exception for ledger errors."""

    code: str = "LEDGER_ERROR"


class LedgerEntryNotFoundError(LedgerError):
    """Ledger entry with given id was not found."""

    code: str = "LEDGER_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Ledger entry not found: {entry_id}")


# Capabilities


class CapabilityError(PosKernelError):
    """Base exception for caller capability errors."""

    code: str = "CAPABILITY_ERROR"


class MissingCapabilityError(CapabilityError):
    """The caller did not supply a capability the operation needs."""

    code: str = "MISSING_CAPABILITY"

    def __init__(self, capability: str, operation: str = ""):
        self.capability = capability
        self.operation = operation
        super().__init__(
            f"Capability '{capability}' is required"
            + (f" for {operation}" if operation else "")
        )


# Concurrency


class ConcurrencyError(PosKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class StaleInventoryVersionError(ConcurrencyError):
    """
    An inventory row was modified after the caller read it.

    Raised instead of silently overwriting a concurrent stock change.
    """

    code: str = "STALE_INVENTORY_VERSION"

    def __init__(
        self, item_id: str, expected_version: int, actual_version: int | None = None
    ):
        self.item_id = item_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        current = "unknown" if actual_version is None else actual_version
        super().__init__(
            f"Inventory item {item_id} is at version {current}, "
            f"expected {expected_version}"
        )


# Config


class ConfigError(PosKernelError):
    """Base exception for shop configuration errors."""

    code: str = "CONFIG_ERROR"


class InvalidConfigError(ConfigError):
    """A configuration value is missing or out of range."""

    code: str = "INVALID_CONFIG"

    def __init__(self, key: str, value: object, reason: str):
        self.key = key
        self.value = str(value) if isinstance(value, Decimal) else value
        self.reason = reason
        super().__init__(f"Invalid config {key}={value!r}: {reason}")
