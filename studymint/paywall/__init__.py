"""
Paywall документов (внутренняя библиотека).
Decision (access: списание + чек) и execution (delivery: превью / копия с подписью) разделены;
контракт через EntitlementGrant.
"""
from studymint.paywall.access import EntitlementService
from studymint.paywall.audit import record_download
from studymint.paywall.delivery import DocumentDeliveryService
from studymint.paywall.models import DeliveryResult, EntitlementGrant

__all__ = [
    "DeliveryResult",
    "DocumentDeliveryService",
    "EntitlementGrant",
    "EntitlementService",
    "record_download",
]
