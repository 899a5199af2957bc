from datetime import datetime

from pydantic import BaseModel


class AccountOut(BaseModel):
    identity: str
    balance: int
    created_at: datetime
    created: bool = False


class DownloadReceiptOut(BaseModel):
    document_id: str
    file_name: str
    coins_deducted: int
    created_at: datetime

    model_config = {"from_attributes": True}
