from studymint.models.document import Document
from studymint.models.download_receipt import DownloadReceipt
from studymint.models.ledger_entry import LedgerEntry, LedgerKind
from studymint.models.user import User, normalize_identity
from studymint.models.withdraw_request import WithdrawDecision, WithdrawRequest, WithdrawStatus

__all__ = [
    "Document",
    "DownloadReceipt",
    "LedgerEntry",
    "LedgerKind",
    "User",
    "WithdrawDecision",
    "WithdrawRequest",
    "WithdrawStatus",
    "normalize_identity",
]
