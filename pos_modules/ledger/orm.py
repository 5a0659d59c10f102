"""
Module: pos_modules.ledger.orm
Responsibility: SQLAlchemy ORM persistence for ledger entries.

Architecture position: Modules > Ledger > ORM.  Inherits from
    AccountScopedBase (pos_kernel.db.base).

Invariants enforced:
    - amount uses Decimal (DecimalText) -- never float.
    - (account_id, transaction_id) is unique: a replayed write with the same
      client transaction id cannot create a second entry.

Failure modes:
    - IntegrityError on a duplicate transaction id within an account.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from pos_kernel.db.base import AccountScopedBase


class LedgerEntryModel(AccountScopedBase):
    """
    ORM model for one income or expense entry.

    Maps to: pos_kernel.domain.ledger.LedgerItem (frozen dataclass).
    """

    __tablename__ = "ledger_entries"

    __table_args__ = (
        Index("idx_ledger_account_date", "account_id", "entry_date"),
        Index("idx_ledger_split_group", "split_group"),
        Index(
            "uq_ledger_account_transaction",
            "account_id",
            "transaction_id",
            unique=True,
        ),
    )

    entry_date: Mapped[date] = mapped_column(Date)
    entry_type: Mapped[str] = mapped_column(String(20))
    title: Mapped[str] = mapped_column(String(200))
    amount: Mapped[Decimal] = mapped_column()
    category: Mapped[str] = mapped_column(String(50))
    channel: Mapped[str | None] = mapped_column(String(20), nullable=True)
    slip_image: Mapped[str | None] = mapped_column(Text, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(String(200), nullable=True)
    split_group: Mapped[str | None] = mapped_column(String(200), nullable=True)
    recorded_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def to_dto(self):
        """Convert ORM model to frozen LedgerItem DTO."""
        from pos_kernel.domain.ledger import LedgerChannel, LedgerItem, LedgerType

        return LedgerItem(
            id=self.id,
            date=self.entry_date,
            type=LedgerType(self.entry_type),
            title=self.title,
            amount=self.amount,
            category=self.category,
            channel=LedgerChannel(self.channel) if self.channel else None,
            slip_image=self.slip_image,
            note=self.note,
            transaction_id=self.transaction_id,
            split_group=self.split_group,
            recorded_at=self.recorded_at,
        )

    @classmethod
    def from_dto(cls, dto, account_id: str) -> "LedgerEntryModel":
        """Create ORM model from frozen LedgerItem DTO."""
        model = cls(id=dto.id, account_id=account_id)
        model.apply_dto(dto)
        return model

    def apply_dto(self, dto) -> None:
        """Overwrite every field except the id."""
        self.entry_date = dto.date
        self.entry_type = dto.type.value
        self.title = dto.title
        self.amount = dto.amount
        self.category = dto.category
        self.channel = dto.channel.value if dto.channel else None
        self.slip_image = dto.slip_image
        self.note = dto.note
        self.transaction_id = dto.transaction_id
        self.split_group = dto.split_group
        self.recorded_at = dto.recorded_at

    def __repr__(self) -> str:
        return (
            f"<LedgerEntryModel {self.id} {self.entry_type} "
            f"{self.amount} {self.category}>"
        )
