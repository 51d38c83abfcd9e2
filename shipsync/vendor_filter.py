from __future__ import annotations

from typing import Iterable, List

from .domain import LineItem, VendorAllowlist, VendorFilterResult


def filter_line_items(line_items: Iterable[LineItem], allowed_vendors: VendorAllowlist) -> VendorFilterResult:
    """Keep the line items a supplier may claim, counting each rejection reason.

    Checks run in a fixed order so every item lands in exactly one bucket:
    foreign vendor, then refunded/cancelled, then missing SKU.
    """
    eligible: List[LineItem] = []
    foreign = inactive = missing_sku = 0
    for item in line_items:
        if not allowed_vendors.allows(item.vendor):
            foreign += 1
        elif item.is_inactive:
            inactive += 1
        elif not item.sku:
            missing_sku += 1
        else:
            eligible.append(item)
    return VendorFilterResult(
        eligible=eligible,
        skipped_foreign_vendor=foreign,
        skipped_inactive=inactive,
        skipped_missing_sku=missing_sku,
    )
