from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

import httpx

from ..domain import SupplierOrder, SupplierOrderStatus, SupplierProduct, SupplierProfile
from ..errors import RemoteError
from ..logging import ServiceLogger
from ..tracking import split_tracking_numbers
from .http import json_body, send


class B2BSupplierGateway:
    """Supplier gateway for the vidaXL-style B2B customer API (``/api_customer/orders``)."""

    def __init__(
        self,
        profile: SupplierProfile,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._profile = profile
        self._url = f"{profile.api_base_url.rstrip('/')}/api_customer/orders"
        self._client = client or httpx.Client(timeout=timeout)
        self._auth = httpx.BasicAuth(profile.email or "", profile.api_token or "")
        self._log = ServiceLogger(f"supplier.{profile.key}")

    def list_orders(self, since: date) -> List[SupplierOrder]:
        response = send(
            self._client,
            "GET",
            self._url,
            params={"submitted_at_gteq": since.isoformat()},
            auth=self._auth,
        )
        if response.status_code >= 400:
            raise RemoteError(f"{self._profile.name} API error: {response.status_code}")
        items = json_body(response, f"{self._profile.name} orders")
        self._log.info("Orders fetched", since=since, count=len(items))
        return [parse_supplier_order(item.get("order") or item) for item in items]

    def place_order(self, payload: Dict[str, Any]) -> Optional[str]:
        response = send(self._client, "POST", self._url, json=payload, auth=self._auth)
        if response.status_code >= 400:
            raise RemoteError(f"{self._profile.name} API error: {response.text}")
        body = json_body(response, f"{self._profile.name} order placement")
        order_id = (body.get("order") or {}).get("id")
        self._log.info("Order placed", reference=payload.get("customer_order_reference"), order_id=order_id)
        return str(order_id) if order_id is not None else None


def parse_supplier_order(raw: Dict[str, Any]) -> SupplierOrder:
    products = []
    for entry in raw.get("order_products") or []:
        product = entry.get("order_product") or entry
        if product.get("product_code"):
            products.append(SupplierProduct(sku=product["product_code"], quantity=product.get("quantity") or 0))
    return SupplierOrder(
        supplier_order_id=str(raw.get("id") or raw.get("order_number") or ""),
        reference=(raw.get("customer_order_reference") or "").strip(),
        status=_parse_status(raw.get("status_order_name")),
        tracking_numbers=split_tracking_numbers(raw.get("shipping_tracking") or ""),
        tracking_url=raw.get("shipping_tracking_url") or None,
        carrier_hint=raw.get("shipping_option_name") or None,
        products=products,
        submitted_at=_parse_datetime(raw.get("submitted_at")),
    )


def _parse_status(value: Optional[str]) -> SupplierOrderStatus:
    for status in SupplierOrderStatus:
        if value and value.strip().lower() == status.value.lower():
            return status
    return SupplierOrderStatus.SUBMITTED


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
