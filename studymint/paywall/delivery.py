"""
Execution: DocumentDeliveryService: превью (бесплатно) и полная копия (после grant).

get_preview(document_id) -> DeliveryResult с application/pdf.
purchase_and_download(identity, document_id) -> DeliveryResult с исходным типом.
PDF-обработка идёт в worker thread (asyncio.to_thread), event loop не блокируется.
"""
from __future__ import annotations

import asyncio
import logging
import os

from studymint.core.config import Settings, settings
from studymint.core.errors import PreviewUnavailable
from studymint.paywall.access import EntitlementService
from studymint.paywall.audit import record_download
from studymint.paywall.models import DeliveryResult
from studymint.paywall.watermark import make_full_copy, make_preview
from studymint.services.documents.service import DocumentRegistry
from studymint.utils.filenames import PDF_CONTENT_TYPE, attachment_name, is_pdf
from studymint.utils.metrics import metrics
from studymint.utils.watermark import PdfReadError

logger = logging.getLogger(__name__)


class DocumentDeliveryService:
    def __init__(
        self,
        registry: DocumentRegistry,
        entitlements: EntitlementService,
        cfg: Settings = settings,
    ):
        self.registry = registry
        self.entitlements = entitlements
        self.cfg = cfg

    async def get_preview(self, document_id: str) -> DeliveryResult:
        document = await self.registry.get(document_id)
        if not is_pdf(document.content_type, document.original_file_name):
            raise PreviewUnavailable(detail={"document_id": document_id})

        content, _ = await self.registry.fetch_original(document.blob_key, document.content_type)
        try:
            output = await asyncio.to_thread(make_preview, content, self.cfg)
        except PdfReadError as exc:
            logger.warning("preview_unreadable_pdf", extra={"document_id": document_id, "error": str(exc)})
            raise PreviewUnavailable(detail={"document_id": document_id}) from exc

        metrics.inc_preview_served()
        logger.info(
            "paywall_preview_served",
            extra={"document_id": document_id, "pages_total": output.pages_total, "pages_out": output.pages_out},
        )
        return DeliveryResult(
            content=output.content,
            file_name=_preview_name(attachment_name(document.display_name, document.original_file_name)),
            media_type=PDF_CONTENT_TYPE,
            is_preview=True,
            watermarked=True,
            degraded=output.degraded,
        )

    async def purchase_and_download(self, identity: str, document_id: str) -> DeliveryResult:
        """
        Grant (списание не больше одного раза), затем копия с подписью покупателя.
        Не-PDF отдаётся как есть; нечитаемый PDF тоже, с PipelineDegraded в логе.
        """
        grant = await self.entitlements.request_download(identity, document_id)
        content, content_type = await self.registry.fetch_original(grant.blob_key, grant.content_type)

        watermarked = False
        degraded: list[str] = []
        if is_pdf(content_type, grant.original_file_name):
            try:
                output = await asyncio.to_thread(make_full_copy, content, grant.identity, self.cfg)
            except PdfReadError as exc:
                metrics.inc_pipeline_degraded("full_parse")
                logger.warning(
                    "pipeline_degraded",
                    extra={"identity": grant.identity, "document_id": document_id, "reason": str(exc)},
                )
                degraded.append("full_parse")
            else:
                content = output.content
                content_type = PDF_CONTENT_TYPE
                watermarked = True
                degraded.extend(output.degraded)

        record_download(
            grant.identity,
            document_id,
            coins_deducted=grant.coins_deducted,
            replay=grant.replay,
            watermarked=watermarked,
            degraded=degraded,
        )
        return DeliveryResult(
            content=content,
            file_name=grant.file_name,
            media_type=content_type,
            watermarked=watermarked,
            replay=grant.replay,
            degraded=degraded,
        )


def _preview_name(file_name: str) -> str:
    stem, ext = os.path.splitext(file_name)
    return f"{stem} (preview){ext or '.pdf'}"
