from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from .clock import Clock, window_start
from .domain import (
    BatchReport,
    ForwardResult,
    PlatformOrder,
    ReconciliationResult,
    ResultKind,
    SupplierOrder,
    SupplierProfile,
)
from .errors import CriticalMismatchError, NotFoundError, RemoteError, ValidationError
from .fulfillment import FulfillmentStateMachine
from .gateways import PlatformGateway, SupplierGateway
from .logging import ServiceLogger
from .notifications import NotificationService
from .resolver import OrderIdentityResolver
from .tracking import normalize_tracking
from .vendor_filter import filter_line_items


class ReconciliationService:
    def __init__(
        self,
        profile: SupplierProfile,
        supplier: SupplierGateway,
        platform: PlatformGateway,
        resolver: OrderIdentityResolver,
        notifications: NotificationService,
        clock: Clock,
        default_window_days: int = 7,
        dry_run: bool = False,
        max_workers: int = 1,
        notify_customer: bool = True,
    ) -> None:
        self._profile = profile
        self._supplier = supplier
        self._platform = platform
        self._resolver = resolver
        self._notifications = notifications
        self._clock = clock
        self._default_window_days = default_window_days
        self._dry_run = dry_run
        self._max_workers = max(1, max_workers)
        self._notify_customer = notify_customer
        self._log = ServiceLogger(f"reconcile.{profile.key}")

    @property
    def profile(self) -> SupplierProfile:
        return self._profile

    def run_cycle(
        self,
        window_days: Optional[int] = None,
        cancel: Optional[threading.Event] = None,
    ) -> BatchReport:
        window = window_days or self._default_window_days
        since = window_start(self._clock, window)
        report = BatchReport(
            run_id=uuid4().hex,
            supplier=self._profile.key,
            window_days=window,
            since=since,
            started_at=self._clock.now(),
            dry_run=self._dry_run,
        )
        log = self._log.bind(run_id=report.run_id)
        log.info("Cycle started", since=since, dry_run=self._dry_run)

        try:
            orders = self._supplier.list_orders(since)
        except Exception as exc:
            log.exception("Listing supplier orders failed")
            self._notifications.error(f"{self._profile.name} sync failed", str(exc))
            raise

        log.info("Supplier orders listed", count=len(orders))
        unique, duplicates = self._deduplicate(orders)
        for duplicate in duplicates:
            report.record(
                self._result(duplicate, ResultKind.SKIPPED, "Duplicate reference in this cycle")
            )

        machine = self._state_machine()
        results = self._process_all(unique, machine, cancel)
        for result in results:
            report.record(result)
        report.cancelled = len(results) < len(unique)
        report.finished_at = self._clock.now()

        log.info(
            "Cycle complete",
            processed=report.processed,
            fulfilled=report.fulfilled,
            partially_fulfilled=report.partially_fulfilled,
            skipped=report.skipped,
            errors=report.errors,
            critical=report.critical_mismatches,
            cancelled=report.cancelled,
        )
        self._notifications.report(report, self._profile.name, ", ".join(self._profile.vendors))
        return report

    def retry(self, reference: str, window_days: Optional[int] = None) -> ReconciliationResult:
        """Reconcile a single supplier order again, outside the scheduled cycle."""
        since = window_start(self._clock, window_days or self._default_window_days)
        matches = [order for order in self._supplier.list_orders(since) if order.reference == reference]
        if not matches:
            raise NotFoundError()
        return self.reconcile(matches[0], self._state_machine())

    def reconcile(self, order: SupplierOrder, machine: FulfillmentStateMachine) -> ReconciliationResult:
        if not order.is_shipped:
            self._log.info("Not shipped yet", reference=order.reference, status=order.status.value)
            return self._result(order, ResultKind.SKIPPED, f"Not shipped (status: {order.status.value})")

        try:
            platform_order = self._resolver.resolve(order.reference)
            self._resolver.verify(order.reference, platform_order)
            shipment = normalize_tracking(order.raw_tracking, order.carrier_hint, order.tracking_url)
            result = machine.apply(platform_order, order.skus, shipment)
        except CriticalMismatchError as exc:
            self._log.critical(
                "Order mismatch, order not touched",
                reference=exc.reference,
                found=exc.found_name,
            )
            return self._result(order, ResultKind.CRITICAL_MISMATCH, str(exc))
        except NotFoundError:
            return self._result(order, ResultKind.ERROR, "Platform order not found")
        except RemoteError as exc:
            return self._result(order, ResultKind.ERROR, str(exc.detail))
        except Exception as exc:
            self._log.exception("Unexpected error", reference=order.reference)
            return self._result(order, ResultKind.ERROR, str(exc) or exc.__class__.__name__)

        return result.model_copy(
            update={"reference": order.reference, "supplier_order_id": order.supplier_order_id}
        )

    def _process_all(
        self,
        orders: List[SupplierOrder],
        machine: FulfillmentStateMachine,
        cancel: Optional[threading.Event],
    ) -> List[ReconciliationResult]:
        def run(order: SupplierOrder) -> Optional[ReconciliationResult]:
            if cancel is not None and cancel.is_set():
                return None
            return self.reconcile(order, machine)

        if self._max_workers == 1:
            results = []
            for order in orders:
                result = run(order)
                if result is None:
                    self._log.warning("Cycle cancelled", remaining=len(orders) - len(results))
                    break
                results.append(result)
            return results

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            outcomes = list(pool.map(run, orders))
        return [result for result in outcomes if result is not None]

    def _state_machine(self) -> FulfillmentStateMachine:
        return FulfillmentStateMachine(
            self._platform,
            self._profile.allowlist,
            dry_run=self._dry_run,
            notify_customer=self._notify_customer,
        )

    @staticmethod
    def _deduplicate(orders: List[SupplierOrder]) -> Tuple[List[SupplierOrder], List[SupplierOrder]]:
        seen = set()
        unique: List[SupplierOrder] = []
        duplicates: List[SupplierOrder] = []
        for order in orders:
            if order.reference in seen:
                duplicates.append(order)
                continue
            seen.add(order.reference)
            unique.append(order)
        return unique, duplicates

    @staticmethod
    def _result(order: SupplierOrder, kind: ResultKind, detail: str) -> ReconciliationResult:
        return ReconciliationResult(
            kind=kind,
            reference=order.reference,
            supplier_order_id=order.supplier_order_id,
            detail=detail,
        )


class ForwardingService:
    """Sends a platform order's supplier-owned products to the supplier."""

    def __init__(
        self,
        profile: SupplierProfile,
        supplier: SupplierGateway,
        resolver: OrderIdentityResolver,
        notifications: NotificationService,
        company_phone: str = "",
    ) -> None:
        self._profile = profile
        self._supplier = supplier
        self._resolver = resolver
        self._notifications = notifications
        self._company_phone = company_phone
        self._log = ServiceLogger(f"forward.{profile.key}")

    def forward(self, reference: str) -> ForwardResult:
        order = self._resolver.resolve(reference)
        self._resolver.verify(reference, order)
        try:
            return self._forward(order)
        except (ValidationError, RemoteError) as exc:
            self._notifications.error(
                f"{self._profile.name} retry failed - {order.order_name}", str(exc), order.order_name
            )
            raise

    def _forward(self, order: PlatformOrder) -> ForwardResult:
        filtered = filter_line_items(order.line_items, self._profile.allowlist)
        if not filtered.eligible:
            if filtered.supplier_item_count == 0:
                raise ValidationError(
                    f"No {self._profile.name} products in this order "
                    f"(only {', '.join(self._profile.vendors)} are sent to {self._profile.name})"
                )
            raise ValidationError(
                f"No active {self._profile.name} products to send (all are refunded or missing a SKU)"
            )

        self._log.info(
            "Forwarding order",
            order=order.order_name,
            products=len(filtered.eligible),
            skipped=filtered.skipped_count,
        )
        try:
            supplier_order_id = self._supplier.place_order(self.build_payload(order, filtered.eligible))
        except RemoteError as exc:
            if "Product is not active" in str(exc.detail):
                raise RemoteError(
                    f"One or more products are not active at {self._profile.name}: {exc.detail}"
                ) from exc
            raise

        vendors: List[str] = []
        for item in filtered.eligible:
            if item.vendor not in vendors:
                vendors.append(item.vendor)
        return ForwardResult(
            order_name=order.order_name,
            supplier_order_id=supplier_order_id,
            products_sent=len(filtered.eligible),
            products_skipped_vendor=filtered.skipped_foreign_vendor,
            products_skipped_inactive=filtered.skipped_inactive + filtered.skipped_missing_sku,
            products_total=len(order.line_items),
            vendors_included=vendors,
        )

    def build_payload(self, order: PlatformOrder, items) -> Dict[str, Any]:
        address = order.shipping_address
        if address is None:
            raise ValidationError(f"Order {order.order_name} has no shipping address")
        phone = address.phone or order.phone or self._company_phone
        addressbook = {
            "name": address.name,
            "address": address.address1,
            "address2": address.address2 or "",
            "city": address.city,
            "province": address.province or "",
            "postal_code": address.zip,
            "country": address.country_code,
            "email": order.email,
            "phone": phone,
            "comments": order.note or "",
        }
        return {
            "customer_order_reference": order.order_name,
            "addressbook": {"country": address.country_code},
            "order_products": [
                {"product_code": item.sku, "quantity": item.quantity, "addressbook": dict(addressbook)}
                for item in items
            ],
        }
