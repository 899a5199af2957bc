"""
Admin API: загрузка документов, очередь заявок на вывод, решение по заявке.
Все маршруты требуют admin key (см. api.deps.require_admin).
"""
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from studymint.api.deps import get_services, require_admin
from studymint.models.withdraw_request import WithdrawStatus
from studymint.schemas.documents import DocumentOut
from studymint.schemas.withdrawals import WithdrawRequestOut, WithdrawResolve
from studymint.services.container import Services

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# ---------- Documents ----------
@router.post("/documents", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    display_name: str | None = Form(None),
    category: str | None = Form(None),
    section: str | None = Form(None),
    tags: str | None = Form(None, description="Comma-separated"),
    services: Services = Depends(get_services),
):
    content = await file.read()
    return await services.documents.upload(
        file.filename or "document",
        content,
        file.content_type,
        display_name=display_name,
        uploader_kind="admin",
        category=category,
        section=section,
        tags=[t.strip() for t in (tags or "").split(",") if t.strip()],
    )


# ---------- Withdrawals ----------
@router.get("/withdrawals", response_model=list[WithdrawRequestOut])
async def list_withdrawals(
    status_filter: WithdrawStatus | None = Query(None, alias="status"),
    services: Services = Depends(get_services),
):
    return await services.withdrawals.list_by_status(status_filter)


@router.post("/withdrawals/{request_id}/resolve", response_model=WithdrawRequestOut)
async def resolve_withdrawal(
    request_id: str,
    body: WithdrawResolve,
    services: Services = Depends(get_services),
):
    return await services.withdrawals.resolve_withdrawal(request_id, body.decision)
