from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from shipsync.clock import FixedClock
from shipsync.domain import (
    FulfillmentStatus,
    LineItem,
    PlatformOrder,
    ShippingAddress,
    SupplierOrder,
    SupplierOrderStatus,
    SupplierProduct,
    SupplierProfile,
)
from shipsync.gateways import InMemoryNotifier, InMemoryPlatformGateway, InMemorySupplierGateway
from shipsync.notifications import NotificationService
from shipsync.resolver import OrderIdentityResolver
from shipsync.services import ReconciliationService

NOW = datetime(2026, 10, 18, 6, 0, tzinfo=timezone.utc)

PROFILE = SupplierProfile(
    key="dropxl",
    name="DropXL",
    api_base_url="https://b2b.dropxl.example",
    vendors=["vidaXL", "Bestway", "Keter"],
    email="ops@example.com",
    api_token="token",
)


def line(
    sku: Optional[str],
    vendor: Optional[str] = "vidaXL",
    quantity: int = 1,
    fulfillable: Optional[int] = None,
    remaining: Optional[int] = None,
) -> LineItem:
    fulfillable = quantity if fulfillable is None else fulfillable
    return LineItem(
        id=f"li-{sku}",
        sku=sku,
        vendor=vendor,
        name=f"Product {sku}",
        quantity=quantity,
        fulfillable_quantity=fulfillable,
        remaining_quantity=fulfillable if remaining is None else remaining,
    )


def platform_order(
    order_id: str,
    name: str,
    items: Iterable[LineItem],
    status: FulfillmentStatus = FulfillmentStatus.UNFULFILLED,
) -> PlatformOrder:
    return PlatformOrder(
        order_id=order_id,
        order_name=name,
        line_items=list(items),
        fulfillment_status=status,
        email="customer@example.com",
        shipping_address=ShippingAddress(
            name="Jens Hansen",
            address1="Vestergade 1",
            city="Aarhus",
            zip="8000",
            country_code="DK",
        ),
    )


def supplier_order(
    reference: str,
    skus: Iterable[str],
    tracking: str = "01475240430954",
    status: SupplierOrderStatus = SupplierOrderStatus.SENT,
    supplier_order_id: Optional[str] = None,
    tracking_url: Optional[str] = None,
    carrier_hint: Optional[str] = None,
) -> SupplierOrder:
    return SupplierOrder(
        supplier_order_id=supplier_order_id or f"sup-{reference.lstrip('#')}",
        reference=reference,
        status=status,
        tracking_numbers=[number.strip() for number in tracking.split(",") if number.strip()],
        tracking_url=tracking_url,
        carrier_hint=carrier_hint,
        products=[SupplierProduct(sku=sku, quantity=1) for sku in skus],
        submitted_at=NOW,
    )


def build_service(
    platform: InMemoryPlatformGateway,
    supplier: InMemorySupplierGateway,
    notifier: Optional[InMemoryNotifier] = None,
    dry_run: bool = False,
    max_workers: int = 1,
    resolver: Optional[OrderIdentityResolver] = None,
) -> ReconciliationService:
    clock = FixedClock(NOW)
    return ReconciliationService(
        PROFILE,
        supplier,
        platform,
        resolver or OrderIdentityResolver(platform),
        NotificationService(notifier, clock),
        clock,
        default_window_days=7,
        dry_run=dry_run,
        max_workers=max_workers,
    )
