from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, conint


class SupplierOrderStatus(str, Enum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    SENT = "Sent"
    CANCELLED = "Cancelled"


class FulfillmentStatus(str, Enum):
    UNFULFILLED = "unfulfilled"
    PARTIALLY_FULFILLED = "partially_fulfilled"
    FULFILLED = "fulfilled"


class ResultKind(str, Enum):
    FULFILLED = "fulfilled"
    PARTIALLY_FULFILLED = "partially_fulfilled"
    SKIPPED = "skipped"
    ERROR = "error"
    CRITICAL_MISMATCH = "critical_mismatch"


class SupplierProduct(BaseModel):
    model_config = ConfigDict(frozen=True)

    sku: str
    quantity: conint(ge=0) = 1


class SupplierOrder(BaseModel):
    model_config = ConfigDict(frozen=True)

    supplier_order_id: str
    reference: str
    status: SupplierOrderStatus
    tracking_numbers: List[str] = Field(default_factory=list)
    tracking_url: Optional[str] = None
    carrier_hint: Optional[str] = None
    products: List[SupplierProduct] = Field(default_factory=list)
    submitted_at: Optional[datetime] = None

    @property
    def skus(self) -> Set[str]:
        return {product.sku for product in self.products if product.sku}

    @property
    def is_shipped(self) -> bool:
        return self.status == SupplierOrderStatus.SENT and bool(self.tracking_numbers)

    @property
    def raw_tracking(self) -> str:
        return ",".join(self.tracking_numbers)


class LineItem(BaseModel):
    id: Optional[str] = None
    sku: Optional[str] = None
    vendor: Optional[str] = None
    name: str = ""
    quantity: conint(ge=0) = 0
    fulfillable_quantity: int = 0
    remaining_quantity: int = 0

    @property
    def is_inactive(self) -> bool:
        return self.fulfillable_quantity == 0 and self.quantity > 0


class FulfillmentOrderLine(BaseModel):
    id: str
    fulfillment_order_id: str
    remaining_quantity: int
    line_item: LineItem


class ShippingAddress(BaseModel):
    name: str = ""
    address1: str = ""
    address2: Optional[str] = None
    city: str = ""
    province: Optional[str] = None
    zip: str = ""
    country_code: str = ""
    phone: Optional[str] = None


class PlatformOrder(BaseModel):
    order_id: str
    order_name: str
    line_items: List[LineItem] = Field(default_factory=list)
    fulfillment_status: FulfillmentStatus = FulfillmentStatus.UNFULFILLED
    email: Optional[str] = None
    phone: Optional[str] = None
    note: Optional[str] = None
    shipping_address: Optional[ShippingAddress] = None


class VendorAllowlist(BaseModel):
    """Immutable, case-insensitive set of brand names a supplier ships."""

    model_config = ConfigDict(frozen=True)

    names: FrozenSet[str]

    @classmethod
    def of(cls, *vendors: str) -> "VendorAllowlist":
        return cls(names=frozenset(vendor.strip().casefold() for vendor in vendors if vendor and vendor.strip()))

    def allows(self, vendor: Optional[str]) -> bool:
        if not vendor:
            return False
        return vendor.strip().casefold() in self.names


class VendorFilterResult(BaseModel):
    eligible: List[LineItem]
    skipped_foreign_vendor: int = 0
    skipped_inactive: int = 0
    skipped_missing_sku: int = 0

    @property
    def skipped_count(self) -> int:
        return self.skipped_foreign_vendor + self.skipped_inactive + self.skipped_missing_sku

    @property
    def supplier_item_count(self) -> int:
        return len(self.eligible) + self.skipped_inactive + self.skipped_missing_sku


class TrackingParcel(BaseModel):
    number: str
    carrier: str
    url: str


class TrackingShipment(BaseModel):
    carrier: str
    numbers: List[str]
    urls: List[str]
    parcels: List[TrackingParcel] = Field(default_factory=list)


class PartialAnalysis(BaseModel):
    is_partial: bool
    missing_skus: Set[str] = Field(default_factory=set)
    required_skus: Set[str] = Field(default_factory=set)


class ReconciliationResult(BaseModel):
    kind: ResultKind
    reference: str = ""
    supplier_order_id: Optional[str] = None
    order_name: Optional[str] = None
    detail: str = ""
    items_fulfilled: Optional[int] = None
    items_total: Optional[int] = None
    fulfillment_id: Optional[str] = None

    @property
    def is_issue(self) -> bool:
        return self.kind in (ResultKind.ERROR, ResultKind.CRITICAL_MISMATCH)


class BatchReport(BaseModel):
    run_id: str
    supplier: str
    window_days: int
    since: date
    started_at: datetime
    finished_at: Optional[datetime] = None
    dry_run: bool = False
    cancelled: bool = False
    processed: int = 0
    fulfilled: int = 0
    partially_fulfilled: int = 0
    skipped: int = 0
    errors: int = 0
    critical_mismatches: int = 0
    results: List[ReconciliationResult] = Field(default_factory=list)
    issues: List[ReconciliationResult] = Field(default_factory=list)

    @property
    def has_updates(self) -> bool:
        return self.fulfilled + self.partially_fulfilled > 0

    @property
    def should_notify(self) -> bool:
        return self.has_updates or bool(self.issues)

    def record(self, result: ReconciliationResult) -> None:
        self.results.append(result)
        if result.kind == ResultKind.FULFILLED:
            self.fulfilled += 1
            self.processed += 1
        elif result.kind == ResultKind.PARTIALLY_FULFILLED:
            self.partially_fulfilled += 1
            self.processed += 1
        elif result.kind == ResultKind.SKIPPED:
            self.skipped += 1
        elif result.kind == ResultKind.CRITICAL_MISMATCH:
            self.critical_mismatches += 1
            self.issues.append(result)
        else:
            self.errors += 1
            self.issues.append(result)


class SupplierProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str
    name: str
    api_base_url: str
    vendors: List[str] = Field(min_length=1)
    email: Optional[str] = None
    api_token: Optional[str] = None

    @property
    def allowlist(self) -> VendorAllowlist:
        return VendorAllowlist.of(*self.vendors)


class ForwardRequest(BaseModel):
    order_number: Optional[str] = None
    order_id: Optional[str] = None

    @property
    def reference(self) -> Optional[str]:
        return self.order_number or self.order_id


class ForwardResult(BaseModel):
    order_name: str
    supplier_order_id: Optional[str] = None
    products_sent: int
    products_skipped_vendor: int
    products_skipped_inactive: int
    products_total: int
    vendors_included: List[str]


class HealthStatus(BaseModel):
    status: str
    time: datetime
    suppliers: List[str] = Field(default_factory=list)
    dry_run: bool = False
