"""
Prometheus-based metrics for production monitoring.
Provides /metrics endpoint for scraping.
"""
from prometheus_client import Counter, CONTENT_TYPE_LATEST, generate_latest
from fastapi import APIRouter, Response


# Counters
ledger_operations_total = Counter(
    "ledger_operations_total",
    "Total ledger entries appended",
    ["kind"],  # SignupBonus, Redeem, RedeemRefund, Download
)

balance_rejected_total = Counter(
    "balance_rejected_total",
    "Total debits rejected for insufficient balance",
    ["operation"],
)

downloads_granted_total = Counter(
    "downloads_granted_total",
    "Total download grants",
    ["replay"],  # "true" = receipt replay, no charge
)

previews_served_total = Counter(
    "previews_served_total",
    "Total previews generated",
)

pipeline_degraded_total = Counter(
    "pipeline_degraded_total",
    "Watermark steps skipped or downgraded",
    ["step"],
)

withdrawals_total = Counter(
    "withdrawals_total",
    "Withdrawal requests by resulting status",
    ["status"],
)

storage_transient_retries_total = Counter(
    "storage_transient_retries_total",
    "Transient storage failures seen by the transaction runner",
    ["operation"],
)


# Metrics endpoint router
router = APIRouter()


@router.get("/metrics")
def metrics_endpoint() -> Response:
    """Prometheus metrics endpoint for scraping."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


class Metrics:
    """Thin helpers so services don't deal with label plumbing."""

    def inc_ledger_operation(self, kind: str) -> None:
        ledger_operations_total.labels(kind=kind).inc()

    def inc_balance_rejected(self, operation: str) -> None:
        balance_rejected_total.labels(operation=operation).inc()

    def inc_download_granted(self, replay: bool) -> None:
        downloads_granted_total.labels(replay="true" if replay else "false").inc()

    def inc_preview_served(self) -> None:
        previews_served_total.inc()

    def inc_pipeline_degraded(self, step: str) -> None:
        pipeline_degraded_total.labels(step=step).inc()

    def inc_withdrawal(self, status: str) -> None:
        withdrawals_total.labels(status=status).inc()

    def inc_transient_retry(self, operation: str) -> None:
        storage_transient_retries_total.labels(operation=operation).inc()


metrics = Metrics()
