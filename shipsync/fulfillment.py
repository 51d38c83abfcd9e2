from __future__ import annotations

import threading
from typing import AbstractSet, List, Set

from .domain import (
    FulfillmentOrderLine,
    FulfillmentStatus,
    PlatformOrder,
    ReconciliationResult,
    ResultKind,
    TrackingShipment,
    VendorAllowlist,
)
from .errors import RemoteError, RemoteTimeoutError
from .gateways import PlatformGateway
from .logging import ServiceLogger
from .partial import analyze_partial


class FulfillmentStateMachine:
    """Applies one supplier's shipment to a platform order, at most once per cycle.

    Platform orders move unfulfilled -> partially_fulfilled -> fulfilled, or
    straight to fulfilled. Nothing leaves fulfilled. An instance lives for one
    reconciliation cycle and remembers every order it has submitted for, so a
    second call for the same order is skipped without touching the platform.
    """

    def __init__(
        self,
        platform: PlatformGateway,
        allowlist: VendorAllowlist,
        dry_run: bool = False,
        notify_customer: bool = True,
    ) -> None:
        self._platform = platform
        self._allowlist = allowlist
        self._dry_run = dry_run
        self._notify_customer = notify_customer
        self._submitted: Set[str] = set()
        self._lock = threading.Lock()
        self._log = ServiceLogger("fulfillment")

    @property
    def submitted_order_ids(self) -> Set[str]:
        with self._lock:
            return set(self._submitted)

    def apply(
        self,
        order: PlatformOrder,
        supplier_skus: AbstractSet[str],
        shipment: TrackingShipment,
    ) -> ReconciliationResult:
        if order.fulfillment_status == FulfillmentStatus.FULFILLED:
            self._log.info("Order already fulfilled", order=order.order_name)
            return self._result(order, ResultKind.SKIPPED, "Order already fulfilled")
        if not self._claim(order.order_id):
            self._log.info("Order already submitted this cycle", order=order.order_name)
            return self._result(order, ResultKind.SKIPPED, "Fulfillment already submitted this cycle")

        lines = self._platform.get_fulfillment_lines(order.order_id)
        supplier_lines = self._supplier_lines(lines, supplier_skus)
        if not supplier_lines:
            self._release(order.order_id)
            # Closed fulfillment orders are not listed, so their items only show on the order
            if self._shipped_elsewhere(order, supplier_skus):
                return self._result(order, ResultKind.SKIPPED, "Supplier products already fulfilled")
            return self._result(order, ResultKind.ERROR, "No products from this supplier to fulfill in this order")

        # A shipped line also reports fulfillable 0, so remaining quantity is checked before activity
        to_ship = [
            line for line in supplier_lines if line.remaining_quantity > 0 and not line.line_item.is_inactive
        ]
        if not to_ship:
            self._release(order.order_id)
            if any(line.remaining_quantity == 0 for line in supplier_lines):
                self._log.info("Supplier products already fulfilled", order=order.order_name)
                return self._result(order, ResultKind.SKIPPED, "Supplier products already fulfilled")
            return self._result(order, ResultKind.ERROR, "No active products from this supplier to fulfill")

        analysis = analyze_partial(order.line_items, supplier_skus)
        if analysis.is_partial:
            self._log.info(
                "Partial fulfillment",
                order=order.order_name,
                missing_skus=sorted(analysis.missing_skus),
            )

        fulfillment_id = None
        if self._dry_run:
            detail = "dry run"
        else:
            try:
                fulfillment_id = self._platform.submit_fulfillment(
                    order.order_id, to_ship, shipment, notify_customer=self._notify_customer
                )
            except RemoteTimeoutError as exc:
                self._log.error("Fulfillment submission timed out", order=order.order_name)
                return self._result(order, ResultKind.ERROR, f"Timeout: {exc.detail}")
            except RemoteError as exc:
                self._log.error("Fulfillment rejected", order=order.order_name, detail=exc.detail)
                return self._result(order, ResultKind.ERROR, str(exc.detail))
            detail = f"Fulfillment created: {fulfillment_id}"

        kind = ResultKind.PARTIALLY_FULFILLED if analysis.is_partial else ResultKind.FULFILLED
        self._log.info(
            "Fulfillment applied",
            order=order.order_name,
            kind=kind.value,
            items=f"{len(to_ship)}/{len(lines)}",
            carrier=shipment.carrier,
            dry_run=self._dry_run,
        )
        return self._result(
            order,
            kind,
            detail,
            items_fulfilled=len(to_ship),
            items_total=len(lines),
            fulfillment_id=fulfillment_id,
        )

    def _supplier_lines(
        self, lines: List[FulfillmentOrderLine], supplier_skus: AbstractSet[str]
    ) -> List[FulfillmentOrderLine]:
        """Lines of an allowed vendor whose SKU the supplier shipped, whether still open or not."""
        return [
            line
            for line in lines
            if self._allowlist.allows(line.line_item.vendor)
            and line.line_item.sku
            and line.line_item.sku in supplier_skus
        ]

    def _shipped_elsewhere(self, order: PlatformOrder, supplier_skus: AbstractSet[str]) -> bool:
        items = [
            item
            for item in order.line_items
            if self._allowlist.allows(item.vendor) and item.sku and item.sku in supplier_skus
        ]
        return bool(items) and all(item.fulfillable_quantity == 0 for item in items)

    def _claim(self, order_id: str) -> bool:
        with self._lock:
            if order_id in self._submitted:
                return False
            self._submitted.add(order_id)
            return True

    def _release(self, order_id: str) -> None:
        with self._lock:
            self._submitted.discard(order_id)

    @staticmethod
    def _result(order: PlatformOrder, kind: ResultKind, detail: str, **extra) -> ReconciliationResult:
        return ReconciliationResult(kind=kind, order_name=order.order_name, detail=detail, **extra)
