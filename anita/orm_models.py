from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from anita.db import Base


class Transaction(Base):
    __tablename__ = "transactions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(128), index=True)
    conversation_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    # Client-visible id ("txn_<ms>_<rand>"), may be supplied by the caller
    message_id: Mapped[str] = mapped_column(String(128), unique=True)
    type: Mapped[str] = mapped_column(String(16))  # income | expense
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2))
    category: Mapped[str] = mapped_column(String(64), index=True)
    description: Mapped[str] = mapped_column(String(256))
    transaction_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (Index("ix_transactions_user_created", "user_id", "created_at"),)

    def to_dict(self) -> dict:
        return {
            "id": self.message_id,
            "type": self.type,
            "amount": float(self.amount),
            "category": self.category,
            "description": self.description,
            "date": self.transaction_date.isoformat() if self.transaction_date else None,
        }
