from datetime import datetime

from pydantic import BaseModel, Field

from studymint.models.withdraw_request import WithdrawDecision


class WithdrawRequestCreate(BaseModel):
    amount: int
    payout_address: str = Field(..., min_length=1, max_length=512)


class WithdrawResolve(BaseModel):
    decision: WithdrawDecision


class WithdrawRequestOut(BaseModel):
    id: str
    identity: str
    amount: int
    payout_address: str
    status: str
    created_at: datetime
    resolved_at: datetime | None = None

    model_config = {"from_attributes": True}
