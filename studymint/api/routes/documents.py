"""
Documents API: каталог, превью (публично, бесплатно), скачивание (списание один раз).
"""
from fastapi import APIRouter, Depends, Query

from studymint.api.deps import get_identity, get_services
from studymint.api.routes._files import attachment_response
from studymint.schemas.documents import DocumentOut
from studymint.services.container import Services

router = APIRouter(prefix="/documents", tags=["documents"])


@router.get("", response_model=list[DocumentOut])
async def list_documents(
    category: str | None = Query(None),
    section: str | None = Query(None),
    services: Services = Depends(get_services),
):
    return await services.documents.list_all(category=category, section=section)


@router.get("/{document_id}", response_model=DocumentOut)
async def get_document(document_id: str, services: Services = Depends(get_services)):
    return await services.documents.get(document_id)


@router.get("/{document_id}/preview")
async def get_preview(document_id: str, services: Services = Depends(get_services)):
    result = await services.delivery.get_preview(document_id)
    return attachment_response(result, inline=True)


@router.post("/{document_id}/download")
async def download(
    document_id: str,
    identity: str = Depends(get_identity),
    services: Services = Depends(get_services),
):
    """Первый вызов списывает стоимость и создаёт чек; повторные отдают файл бесплатно."""
    result = await services.delivery.purchase_and_download(identity, document_id)
    return attachment_response(result)
