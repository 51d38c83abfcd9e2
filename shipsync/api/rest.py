from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..container import Container
from ..deps import get_container, get_forwarder, get_reconciler, require_cron_secret
from ..domain import BatchReport, ForwardRequest, ForwardResult, HealthStatus, ReconciliationResult
from ..errors import ValidationError
from ..services import ForwardingService, ReconciliationService

router = APIRouter()


@router.get("/health", response_model=HealthStatus)
async def health(container: Container = Depends(get_container)):
    return HealthStatus(
        status="ok",
        time=container.clock.now(),
        suppliers=[profile.key for profile in container.profiles],
        dry_run=container.settings.dry_run,
    )


@router.post(
    "/suppliers/{key}/cycles",
    response_model=BatchReport,
    dependencies=[Depends(require_cron_secret)],
)
def run_cycle(
    window_days: Optional[int] = Query(None, gt=0),
    service: ReconciliationService = Depends(get_reconciler),
):
    return service.run_cycle(window_days)


@router.post(
    "/suppliers/{key}/orders/{reference}/retry",
    response_model=ReconciliationResult,
    dependencies=[Depends(require_cron_secret)],
)
def retry_order(
    reference: str,
    window_days: Optional[int] = Query(None, gt=0),
    service: ReconciliationService = Depends(get_reconciler),
):
    return service.retry(reference, window_days)


@router.post(
    "/suppliers/{key}/forward",
    response_model=ForwardResult,
    dependencies=[Depends(require_cron_secret)],
)
def forward_order(payload: ForwardRequest, service: ForwardingService = Depends(get_forwarder)):
    if not payload.reference:
        raise ValidationError("Order id or order number required")
    return service.forward(payload.reference)
