from pydantic import BaseModel, Field, ConfigDict
from typing import Literal, Optional, List


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str = Field(..., max_length=100_000)


class ChatCompletionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    messages: List[ChatMessage] = Field(..., min_length=1)
    max_tokens: int = Field(1200, alias="maxTokens", ge=1, le=4000)
    temperature: float = Field(0.8, ge=0.0, le=2.0)
    user_id: Optional[str] = Field(None, alias="userId", max_length=128)
    conversation_id: Optional[str] = Field(None, alias="conversationId", max_length=128)


class ExtractedTransactionOut(BaseModel):
    type: Literal["income", "expense"]
    amount: float
    category: str
    description: str


class ChatCompletionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    response: str
    request_id: Optional[str] = Field(None, alias="requestId")
    transaction: Optional[ExtractedTransactionOut] = None
    transaction_id: Optional[str] = Field(None, alias="transactionId")
