import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from anita.db import get_db
from anita.deps import get_chat_client, get_description_composer
from anita.repositories.transactions import get_transaction_repo
from anita.schemas.chat import ChatCompletionRequest, ChatCompletionResponse
from anita.services.admission_guard import enforce_admission
from anita.services.chat_prompt import build_system_prompt
from anita.services.description_composer import DescriptionComposer
from anita.services.transaction_extractor import (
    ConfirmationExtractor,
    turns_from_messages,
)
from anita.utils.llm import CompletionError, LLMClient
from anita.utils.request_ctx import get_request_id
from anita.utils.text import sanitize_chat_message

log = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


@router.post("/api/v1/chat-completion", response_model=ChatCompletionResponse)
@router.post("/api/chat-completion", response_model=ChatCompletionResponse, include_in_schema=False)
def chat_completion(
    body: ChatCompletionRequest,
    request: Request,
    db: Session = Depends(get_db),
    llm: LLMClient = Depends(get_chat_client),
    composer: DescriptionComposer = Depends(get_description_composer),
):
    enforce_admission(request, "chat-completion", body.user_id)
    rid = get_request_id()

    messages = [
        {"role": m.role, "content": sanitize_chat_message(m.content)}
        for m in body.messages
    ]
    messages = [m for m in messages if m["content"]]
    if not any(m["role"] == "user" for m in messages):
        raise HTTPException(status_code=400, detail="At least one non-empty user message is required")

    repo = get_transaction_repo(db)
    if body.user_id and messages[0]["role"] != "system":
        totals = repo.summarize(body.user_id)
        messages.insert(0, {"role": "system", "content": build_system_prompt(totals)})

    try:
        reply = llm.chat(messages, max_tokens=body.max_tokens, temperature=body.temperature)
    except CompletionError as e:
        log.error("chat completion failed: %s", e, extra={"reason": e.reason})
        if e.reason == "timeout":
            raise HTTPException(
                status_code=504, detail="The AI request took too long. Please try again."
            )
        raise HTTPException(status_code=502, detail="upstream_error")

    transcript = turns_from_messages(messages)
    extracted = ConfirmationExtractor(composer).extract(transcript, reply)

    transaction_id: Optional[str] = None
    if extracted is not None and body.user_id:
        try:
            row = repo.insert_transaction(
                user_id=body.user_id,
                conversation_id=body.conversation_id,
                type=extracted.type,
                amount=extracted.amount,
                category=extracted.category,
                description=extracted.description,
            )
            transaction_id = row.message_id
            log.info(
                "transaction saved from chat",
                extra={"type": extracted.type, "category": extracted.category},
            )
        except SQLAlchemyError:
            # The reply is still delivered; the client can retry via save-transaction
            db.rollback()
            log.exception("failed to persist extracted transaction")

    return {
        "response": reply,
        "requestId": rid,
        "transaction": extracted.as_dict() if extracted else None,
        "transactionId": transaction_id,
    }
