"""
Transaction repository: the record store behind the ingestion pipeline.

Dialect-agnostic (Postgres in deployments, SQLite in tests); timestamps are
written from Python in UTC so window queries compare like with like.
"""

import secrets
import time
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from anita.orm_models import Transaction
from anita.utils.amounts import round2

DUPLICATE_WINDOW = timedelta(minutes=5)


def new_message_id() -> str:
    return f"txn_{int(time.time() * 1000)}_{secrets.token_hex(5)}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransactionRepository:
    """Insert/query operations for stored transactions."""

    def __init__(self, db: Session):
        self.db = db

    def insert_transaction(
        self,
        *,
        user_id: str,
        type: str,
        amount: Decimal,
        category: str,
        description: str,
        conversation_id: Optional[str] = None,
        message_id: Optional[str] = None,
        transaction_date: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> Transaction:
        created = now or _utcnow()
        row = Transaction(
            user_id=user_id,
            conversation_id=conversation_id,
            message_id=message_id or new_message_id(),
            type=type,
            amount=round2(amount),
            category=category,
            description=description,
            transaction_date=transaction_date or created,
            created_at=created,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def list_transactions(self, user_id: str, limit: int = 50) -> List[Transaction]:
        """Newest first."""
        return (
            self.db.query(Transaction)
            .filter(Transaction.user_id == user_id)
            .order_by(Transaction.transaction_date.desc(), Transaction.id.desc())
            .limit(limit)
            .all()
        )

    def find_recent_duplicate(
        self,
        *,
        user_id: str,
        type: str,
        amount: Decimal,
        description: str,
        within: timedelta = DUPLICATE_WINDOW,
        now: Optional[datetime] = None,
    ) -> Optional[Transaction]:
        """Same type and amount, same description ignoring case, created recently."""
        cutoff = (now or _utcnow()) - within
        candidates = (
            self.db.query(Transaction)
            .filter(
                Transaction.user_id == user_id,
                Transaction.type == type,
                Transaction.amount == round2(amount),
                Transaction.created_at >= cutoff,
            )
            .all()
        )
        wanted = (description or "").strip().lower()
        for row in candidates:
            if (row.description or "").strip().lower() == wanted:
                return row
        return None

    def summarize(self, user_id: str) -> Dict[str, float]:
        """Income/expense totals used to ground the assistant's answers."""
        rows = (
            self.db.query(Transaction.type, func.sum(Transaction.amount), func.count())
            .filter(Transaction.user_id == user_id)
            .group_by(Transaction.type)
            .all()
        )
        totals = {"income": 0.0, "expense": 0.0, "count": 0}
        for txn_type, total, count in rows:
            if txn_type in ("income", "expense"):
                totals[txn_type] = float(total or 0)
                totals["count"] += int(count or 0)
        totals["balance"] = round(totals["income"] - totals["expense"], 2)
        return totals


def get_transaction_repo(db: Session) -> TransactionRepository:
    """Factory function for dependency injection."""
    return TransactionRepository(db)
