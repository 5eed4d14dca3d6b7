from datetime import datetime, timedelta, timezone
from decimal import Decimal

from anita.repositories.transactions import TransactionRepository

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _insert(repo, **kw):
    data = dict(
        user_id="u1", type="expense", amount=Decimal("9.99"),
        category="Dining Out", description="Pizza", now=NOW,
    )
    data.update(kw)
    return repo.insert_transaction(**data)


def test_duplicate_requires_recent_same_type_amount_and_description(db_session):
    repo = TransactionRepository(db_session)
    _insert(repo)

    kw = dict(user_id="u1", type="expense", amount=Decimal("9.99"))
    assert repo.find_recent_duplicate(description=" pizza ", now=NOW + timedelta(minutes=4), **kw)
    assert repo.find_recent_duplicate(description="Pizza", now=NOW + timedelta(minutes=6), **kw) is None
    assert repo.find_recent_duplicate(description="Pasta", now=NOW, **kw) is None
    assert (
        repo.find_recent_duplicate(
            user_id="u1", type="income", amount=Decimal("9.99"), description="Pizza", now=NOW
        )
        is None
    )


def test_summarize_totals(db_session):
    repo = TransactionRepository(db_session)
    _insert(repo, type="income", amount=Decimal("1000"), category="Salary", description="Salary")
    _insert(repo, amount=Decimal("250.50"), description="Groceries", category="Groceries")
    _insert(repo, user_id="other", amount=Decimal("5"))

    totals = repo.summarize("u1")
    assert totals == {"income": 1000.0, "expense": 250.5, "count": 2, "balance": 749.5}


def test_insert_generates_message_id_and_rounds(db_session):
    row = _insert(TransactionRepository(db_session), amount=Decimal("3.335"))
    assert row.message_id.startswith("txn_")
    assert row.amount == Decimal("3.34")
