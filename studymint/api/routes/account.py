"""
Account API: регистрация principal, баланс, журнал, покупки, заявки на вывод.
Principal: из заголовка identity (см. api.deps).
"""
from fastapi import APIRouter, Depends, Response, status

from studymint.api.deps import get_identity, get_services
from studymint.schemas.account import AccountOut, DownloadReceiptOut
from studymint.schemas.ledger import BalanceOut, LedgerEntryOut
from studymint.schemas.withdrawals import WithdrawRequestCreate, WithdrawRequestOut
from studymint.services.container import Services

router = APIRouter(prefix="/account", tags=["account"])


@router.post("", response_model=AccountOut)
async def register(
    response: Response,
    identity: str = Depends(get_identity),
    services: Services = Depends(get_services),
):
    """Идемпотентно: существующий аккаунт возвращается как есть (200), новый: 201 с бонусом."""
    user, created = await services.users.get_or_create_user(identity)
    if created:
        response.status_code = status.HTTP_201_CREATED
    return AccountOut(identity=user.identity, balance=user.balance, created_at=user.created_at, created=created)


@router.get("/balance", response_model=BalanceOut)
async def get_balance(identity: str = Depends(get_identity), services: Services = Depends(get_services)):
    return BalanceOut(identity=identity, balance=await services.ledger.balance(identity))


@router.get("/ledger", response_model=list[LedgerEntryOut])
async def get_ledger(identity: str = Depends(get_identity), services: Services = Depends(get_services)):
    return await services.ledger.history(identity)


@router.get("/downloads", response_model=list[DownloadReceiptOut])
async def get_downloads(identity: str = Depends(get_identity), services: Services = Depends(get_services)):
    return await services.entitlements.list_receipts(identity)


@router.post("/withdrawals", response_model=WithdrawRequestOut, status_code=status.HTTP_201_CREATED)
async def create_withdrawal(
    body: WithdrawRequestCreate,
    identity: str = Depends(get_identity),
    services: Services = Depends(get_services),
):
    return await services.withdrawals.request_withdrawal(identity, body.amount, body.payout_address)


@router.get("/withdrawals", response_model=list[WithdrawRequestOut])
async def list_withdrawals(identity: str = Depends(get_identity), services: Services = Depends(get_services)):
    return await services.withdrawals.list_for_user(identity)
