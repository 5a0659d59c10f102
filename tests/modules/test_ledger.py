"""
Tests for the ledger service (pos_modules.ledger.service).

Covers:
- Single-entry transactions and their validation order
- Split-bill checkout: one entry per category, shared split group
- Stock applied exactly once per checkout
- Edit rules for split entries
- Daily fixed costs booked at most once
"""

from datetime import date
from decimal import Decimal

import pytest

from pos_engines.stock_ledger import NEW_ITEM_REF, StockDirection, StockOutcome
from pos_kernel.domain.inventory import ItemType
from pos_kernel.domain.ledger import LedgerChannel, LedgerType
from pos_kernel.domain.settings import FixedCosts
from pos_kernel.exceptions import (
    InvalidAmountError,
    InvalidCategoryError,
    InvalidQuantityError,
    LedgerEntryNotFoundError,
    MissingCapabilityError,
    MissingFieldError,
    SplitBillEditError,
)
from pos_modules.ledger.models import DraftLine, LineKind, TransactionDraft
from pos_modules.ledger.service import LedgerService, names_title

DAY = date(2024, 3, 15)


def _noodles(quantity="20", cost="12"):
    return DraftLine(
        kind=LineKind.INVENTORY,
        name="Rice noodles",
        quantity=Decimal(quantity),
        unit_cost=Decimal(cost),
        ref_id="inv-noodles",
        category="raw_material",
        direction=StockDirection.IN,
    )


def _bags():
    return DraftLine(
        kind=LineKind.SERVICE,
        name="Bags",
        quantity=Decimal("1"),
        unit_cost=Decimal("50"),
        category="packaging",
    )


def _simple(**overrides):
    params = dict(
        date=DAY,
        type=LedgerType.EXPENSE,
        title="Ice",
        category="raw_material",
        amount=Decimal("40"),
        channel=LedgerChannel.CASH,
    )
    params.update(overrides)
    return TransactionDraft(**params)


@pytest.fixture
def service(recorder, deterministic_clock, id_factory):
    return LedgerService(recorder.build(), clock=deterministic_clock, id_factory=id_factory)


class TestSingleEntry:
    def test_books_one_entry(self, service, recorder, shop_state):
        result = service.submit_transaction(shop_state, _simple())
        (entry,) = result.entries
        assert entry.title == "Ice"
        assert entry.amount == Decimal("40")
        assert entry.split_group is None
        assert entry.transaction_id == "id-1"
        assert result.stock is None
        assert recorder.named("add_ledger_entry") == [(entry,)]
        assert result.state.ledger == (entry,)

    def test_caller_transaction_id_kept(self, service, shop_state):
        result = service.submit_transaction(shop_state, _simple(transaction_id="tx-42"))
        assert result.entries[0].transaction_id == "tx-42"

    @pytest.mark.parametrize(
        "overrides, error",
        [
            ({"title": "  "}, MissingFieldError),
            ({"amount": Decimal("0")}, InvalidAmountError),
            ({"amount": None}, InvalidAmountError),
            ({"category": None}, MissingFieldError),
            ({"category": "sales"}, InvalidCategoryError),
        ],
    )
    def test_rejected(self, service, recorder, shop_state, overrides, error):
        with pytest.raises(error):
            service.submit_transaction(shop_state, _simple(**overrides))
        assert recorder.calls == []

    def test_capability_checked_before_validation(self, recorder, shop_state):
        service = LedgerService(recorder.build("add_ledger_entry"))
        with pytest.raises(MissingCapabilityError):
            service.submit_transaction(shop_state, _simple(title=""))


class TestSplitBill:
    def _draft(self, *lines, title=""):
        return TransactionDraft(
            date=DAY,
            type=LedgerType.EXPENSE,
            title=title,
            category="raw_material",
            lines=lines,
        )

    def test_one_entry_per_category(self, service, shop_state):
        result = service.submit_transaction(shop_state, self._draft(_noodles(), _bags()))

        noodles, bags = result.entries
        assert (noodles.category, noodles.amount) == ("raw_material", Decimal("240"))
        assert (bags.category, bags.amount) == ("packaging", Decimal("50"))
        assert result.total == Decimal("290")
        assert noodles.split_group == bags.split_group == "id-1"
        assert noodles.transaction_id == "id-1:raw_material"
        assert noodles.title == "Rice noodles (raw_material)"
        assert bags.title == "Bags (packaging)"

    def test_draft_title_prefixes_split_titles(self, service, shop_state):
        result = service.submit_transaction(
            shop_state, self._draft(_noodles(), _bags(), title="Market run")
        )
        assert [e.title for e in result.entries] == [
            "Market run (raw_material)",
            "Market run (packaging)",
        ]

    def test_single_category_basket_not_split(self, service, shop_state):
        result = service.submit_transaction(shop_state, self._draft(_noodles()))
        (entry,) = result.entries
        assert entry.split_group is None
        assert entry.title == "Rice noodles"

    def test_stock_applied_once(self, service, recorder, shop_state):
        result = service.submit_transaction(shop_state, self._draft(_noodles(), _bags()))

        noodles = result.state.inventory.get("inv-noodles")
        assert noodles.quantity == Decimal("40")
        assert noodles.cost_per_unit == Decimal("11")
        assert result.outcome == StockOutcome.APPLIED
        assert [call[0] for call in recorder.calls] == [
            "update_inventory_batch",
            "add_ledger_entry",
            "add_ledger_entry",
        ]

    def test_new_asset_line(self, service, recorder, shop_state):
        fridge = DraftLine(
            kind=LineKind.INVENTORY,
            name="Fridge",
            quantity=Decimal("2"),
            unit_cost=Decimal("3000"),
            ref_id=NEW_ITEM_REF,
            category="equipment",
            item_category="equipment",
            direction=StockDirection.IN,
            item_type=ItemType.ASSET,
        )
        result = service.submit_transaction(shop_state, self._draft(fridge))

        created = [call[1] for call in recorder.calls if call[0] == "add_inventory_item"]
        assert len(created) == 2
        assert all(item.quantity == Decimal("1") for item in created)
        assert result.entries[0].amount == Decimal("6000")

    def test_new_item_needs_capability(self, recorder, shop_state):
        line = DraftLine(
            kind=LineKind.INVENTORY,
            name="Basil",
            quantity=Decimal("1"),
            unit_cost=Decimal("5"),
            ref_id=NEW_ITEM_REF,
        )
        service = LedgerService(recorder.build("add_inventory_item"))
        with pytest.raises(MissingCapabilityError) as exc_info:
            service.submit_transaction(shop_state, self._draft(line))
        assert exc_info.value.capability == "add_inventory_item"

    def test_line_validation(self, service, shop_state):
        bad = DraftLine(
            kind=LineKind.SERVICE,
            name="Gas",
            quantity=Decimal("0"),
            unit_cost=Decimal("5"),
        )
        with pytest.raises(InvalidQuantityError):
            service.submit_transaction(shop_state, self._draft(bad))

    def test_stock_line_needs_ref(self, service, shop_state):
        line = DraftLine(
            kind=LineKind.INVENTORY, name="Basil", quantity=Decimal("1"), unit_cost=Decimal("5")
        )
        with pytest.raises(MissingFieldError):
            service.submit_transaction(shop_state, self._draft(line))

    def test_zero_total_group_rejected(self, service, shop_state):
        free = DraftLine(
            kind=LineKind.SERVICE,
            name="Sample",
            quantity=Decimal("1"),
            unit_cost=Decimal("0"),
            category="packaging",
        )
        with pytest.raises(InvalidAmountError) as exc_info:
            service.submit_transaction(shop_state, self._draft(_noodles(), free))
        assert exc_info.value.field == "amount[packaging]"


class TestEdit:
    def test_edit_keeps_id(self, service, recorder, shop_state):
        booked = service.submit_transaction(shop_state, _simple())
        entry = booked.entries[0]

        result = service.edit_entry(
            booked.state, entry.id, _simple(title="", amount=Decimal("55"), category=None)
        )

        (updated,) = result.entries
        assert updated.id == entry.id
        assert updated.transaction_id == entry.transaction_id
        assert updated.amount == Decimal("55")
        assert updated.title == "Ice"
        assert updated.category == "raw_material"
        assert result.state.find_entry(entry.id).amount == Decimal("55")
        assert recorder.named("update_ledger_entry") == [(updated,)]

    def test_split_entry_not_editable(self, service, shop_state):
        draft = TransactionDraft(
            date=DAY, type=LedgerType.EXPENSE, category="raw_material", lines=(_noodles(), _bags())
        )
        booked = service.submit_transaction(shop_state, draft)
        with pytest.raises(SplitBillEditError):
            service.edit_entry(booked.state, booked.entries[0].id, _simple())

    def test_edit_into_several_categories_rejected(self, service, shop_state):
        booked = service.submit_transaction(shop_state, _simple())
        draft = TransactionDraft(
            date=DAY, type=LedgerType.EXPENSE, category="raw_material", lines=(_noodles(), _bags())
        )
        with pytest.raises(SplitBillEditError):
            service.edit_entry(booked.state, booked.entries[0].id, draft)

    def test_unknown_entry(self, service, shop_state):
        with pytest.raises(LedgerEntryNotFoundError):
            service.edit_entry(shop_state, "missing", _simple())


class TestFixedCosts:
    def test_logged_once_per_day(self, service, recorder, shop_state):
        costs = FixedCosts(rent=Decimal("300"), labor=Decimal("400"))

        first = service.log_daily_fixed_costs(shop_state, costs, DAY)
        second = service.log_daily_fixed_costs(first.state, costs, DAY)

        assert [e.category for e in first.entries] == ["rent", "labor", "equipment"]
        assert first.entries[0].transaction_id == "fixed-cost:2024-03-15:rent"
        assert second.entries == ()
        assert len(recorder.named("add_ledger_entry")) == 3


class TestNamesTitle:
    def test_truncated(self):
        lines = [_noodles(), _bags(), _noodles()]
        assert names_title(lines) == "Rice noodles, Bags, Rice noodl..."

    def test_blank_names_skipped(self):
        assert names_title([_bags()]) == "Bags"
