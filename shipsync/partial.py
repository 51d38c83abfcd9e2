from __future__ import annotations

from typing import AbstractSet, Iterable

from .domain import LineItem, PartialAnalysis


def analyze_partial(platform_items: Iterable[LineItem], supplier_skus: AbstractSet[str]) -> PartialAnalysis:
    """Classify a shipment as partial when the order holds SKUs the supplier did not ship."""
    required = {item.sku for item in platform_items if item.sku}
    missing = required - set(supplier_skus)
    return PartialAnalysis(is_partial=bool(missing), missing_skus=missing, required_skus=required)
