import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from anita.core.categories import DEFAULT_EXPENSE_CATEGORY, TxnType, is_allowed
from anita.db import get_db
from anita.repositories.transactions import get_transaction_repo
from anita.deps import get_description_composer
from anita.schemas.transactions import (
    SaveTransactionRequest,
    SaveTransactionResponse,
    TransactionListResponse,
)
from anita.services.admission_guard import enforce_admission
from anita.services.category_classifier import classify
from anita.services.category_normalizer import normalize
from anita.services.description_composer import DescriptionComposer
from anita.utils.amounts import round2
from anita.utils.request_ctx import get_request_id
from anita.utils.text import sanitize_input, sanitize_title

log = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["transactions"])


def resolve_category(raw: Optional[str], description: str, txn_type: TxnType) -> str:
    """Strict normalization; "Other" and labels that do not fit the type are reclassified."""
    label = normalize(raw, strict=True) if raw else None
    if label and label != DEFAULT_EXPENSE_CATEGORY and is_allowed(label, txn_type):
        return label
    return classify(description, txn_type)


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date: expected ISO 8601")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


@router.post("/save-transaction", response_model=SaveTransactionResponse)
def save_transaction(
    body: SaveTransactionRequest,
    request: Request,
    db: Session = Depends(get_db),
    composer: DescriptionComposer = Depends(get_description_composer),
):
    enforce_admission(request, "save-transaction", body.user_id)

    raw_description = sanitize_input(body.description, 1024)
    if not raw_description:
        raise HTTPException(status_code=400, detail="description is required")
    amount: Decimal = round2(body.amount)
    if amount <= 0:
        raise HTTPException(status_code=400, detail="amount must be a positive number")
    when = _parse_date(body.date)

    category = resolve_category(sanitize_title(body.category), raw_description, body.type)
    description = composer.compose(raw_description, body.type, amount, category)

    repo = get_transaction_repo(db)
    existing = repo.find_recent_duplicate(
        user_id=body.user_id, type=body.type, amount=amount, description=description
    )
    if existing is not None:
        log.warning("duplicate transaction ignored", extra={"type": body.type})
        return {
            "success": True,
            "duplicate": True,
            "transaction": existing.to_dict(),
            "requestId": get_request_id(),
        }

    try:
        row = repo.insert_transaction(
            user_id=body.user_id,
            message_id=body.transaction_id,
            type=body.type,
            amount=amount,
            category=category,
            description=description,
            transaction_date=when,
        )
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="transactionId already exists")
    log.info("transaction saved", extra={"type": body.type, "category": category})
    return {
        "success": True,
        "duplicate": False,
        "transaction": row.to_dict(),
        "requestId": get_request_id(),
    }


@router.get("/transactions", response_model=TransactionListResponse)
def list_transactions(
    user_id: str = Query(..., alias="userId", min_length=1),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    rows = get_transaction_repo(db).list_transactions(user_id, limit)
    items = [r.to_dict() for r in rows]
    return {"transactions": items, "count": len(items)}
