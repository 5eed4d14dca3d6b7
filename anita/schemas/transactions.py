from pydantic import BaseModel, Field, ConfigDict
from typing import Literal, Optional, List


class SaveTransactionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    user_id: str = Field(..., alias="userId", min_length=1, max_length=128)
    # Caller-supplied client id; generated when absent
    transaction_id: Optional[str] = Field(None, alias="transactionId", max_length=128)
    type: Literal["income", "expense"]
    amount: float = Field(..., gt=0)
    description: str = Field(..., min_length=1, max_length=1024)
    category: Optional[str] = Field(None, max_length=128)
    # Raw ISO string; the route parses it
    date: Optional[str] = None


class TransactionOut(BaseModel):
    id: str
    type: Literal["income", "expense"]
    amount: float
    category: str
    description: str
    date: Optional[str] = None


class SaveTransactionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    success: bool
    duplicate: bool = False
    transaction: Optional[TransactionOut] = None
    request_id: Optional[str] = Field(None, alias="requestId")


class TransactionListResponse(BaseModel):
    transactions: List[TransactionOut]
    count: int
