from datetime import datetime

from pydantic import BaseModel


class BalanceOut(BaseModel):
    identity: str
    balance: int


class LedgerEntryOut(BaseModel):
    id: int
    kind: str
    amount: int
    document_id: str | None = None
    withdraw_request_id: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}
