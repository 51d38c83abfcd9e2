from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import httpx

from ..domain import (
    FulfillmentOrderLine,
    FulfillmentStatus,
    LineItem,
    PlatformOrder,
    ShippingAddress,
    TrackingShipment,
)
from ..errors import RemoteError
from ..logging import ServiceLogger
from .http import json_body, send

FULFILLMENT_ORDERS_QUERY = """
query getFulfillmentOrders($orderId: ID!) {
  order(id: $orderId) {
    fulfillmentOrders(first: 10) {
      edges {
        node {
          id
          status
          lineItems(first: 50) {
            edges {
              node {
                id
                remainingQuantity
                lineItem {
                  id
                  sku
                  vendor
                  name
                  quantity
                  fulfillableQuantity
                }
              }
            }
          }
        }
      }
    }
  }
}
"""

FULFILLMENT_CREATE_MUTATION = """
mutation fulfillmentCreateV2($fulfillment: FulfillmentV2Input!) {
  fulfillmentCreateV2(fulfillment: $fulfillment) {
    fulfillment {
      id
      status
    }
    userErrors {
      field
      message
    }
  }
}
"""

_STATUS_MAP = {
    None: FulfillmentStatus.UNFULFILLED,
    "unfulfilled": FulfillmentStatus.UNFULFILLED,
    "partial": FulfillmentStatus.PARTIALLY_FULFILLED,
    "fulfilled": FulfillmentStatus.FULFILLED,
}

_CLOSED_FULFILLMENT_ORDER_STATES = {"CLOSED", "CANCELLED", "INCOMPLETE"}


class ShopifyGateway:
    """Platform gateway over the Shopify Admin REST and GraphQL APIs."""

    def __init__(
        self,
        store_url: str,
        admin_token: str,
        api_version: str = "2024-01",
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._base = f"https://{store_url}/admin/api/{api_version}"
        self._client = client or httpx.Client(timeout=timeout)
        self._headers = {"X-Shopify-Access-Token": admin_token, "Content-Type": "application/json"}
        self._log = ServiceLogger("shopify")

    def find_orders_by_name(self, name: str) -> List[PlatformOrder]:
        response = send(
            self._client,
            "GET",
            f"{self._base}/orders.json",
            params={"name": name, "status": "any", "limit": 250},
            headers=self._headers,
        )
        if response.status_code >= 400:
            raise RemoteError(f"Order search failed ({response.status_code}): {response.text}")
        orders = json_body(response, "Order search").get("orders") or []
        self._log.debug("Order search", name=name, results=len(orders))
        return [parse_order(order) for order in orders]

    def get_order_by_id(self, order_id: str) -> Optional[PlatformOrder]:
        response = send(self._client, "GET", f"{self._base}/orders/{order_id}.json", headers=self._headers)
        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise RemoteError(f"Order lookup failed ({response.status_code}): {response.text}")
        order = json_body(response, "Order lookup").get("order")
        return parse_order(order) if order else None

    def get_fulfillment_lines(self, order_id: str) -> List[FulfillmentOrderLine]:
        data = self._graphql(FULFILLMENT_ORDERS_QUERY, {"orderId": f"gid://shopify/Order/{order_id}"})
        order = data.get("order")
        if not order:
            return []
        lines: List[FulfillmentOrderLine] = []
        for fo_edge in order["fulfillmentOrders"]["edges"]:
            fulfillment_order = fo_edge["node"]
            if fulfillment_order.get("status") in _CLOSED_FULFILLMENT_ORDER_STATES:
                continue
            for edge in fulfillment_order["lineItems"]["edges"]:
                node = edge["node"]
                item = node.get("lineItem") or {}
                lines.append(
                    FulfillmentOrderLine(
                        id=node["id"],
                        fulfillment_order_id=fulfillment_order["id"],
                        remaining_quantity=node.get("remainingQuantity") or 0,
                        line_item=LineItem(
                            id=item.get("id"),
                            sku=item.get("sku") or None,
                            vendor=item.get("vendor"),
                            name=item.get("name") or "",
                            quantity=item.get("quantity") or 0,
                            fulfillable_quantity=item.get("fulfillableQuantity") or 0,
                            remaining_quantity=node.get("remainingQuantity") or 0,
                        ),
                    )
                )
        return lines

    def submit_fulfillment(
        self,
        order_id: str,
        lines: List[FulfillmentOrderLine],
        shipment: TrackingShipment,
        notify_customer: bool = True,
    ) -> str:
        by_fulfillment_order: Dict[str, List[Dict[str, Any]]] = {}
        for line in lines:
            by_fulfillment_order.setdefault(line.fulfillment_order_id, []).append(
                {"id": line.id, "quantity": line.remaining_quantity}
            )
        variables = {
            "fulfillment": {
                "lineItemsByFulfillmentOrder": [
                    {"fulfillmentOrderId": fo_id, "fulfillmentOrderLineItems": items}
                    for fo_id, items in by_fulfillment_order.items()
                ],
                "notifyCustomer": notify_customer,
                "trackingInfo": {
                    "company": shipment.carrier,
                    "numbers": shipment.numbers,
                    "urls": shipment.urls,
                },
            }
        }
        payload = self._graphql(FULFILLMENT_CREATE_MUTATION, variables)["fulfillmentCreateV2"]
        if payload.get("userErrors"):
            raise RemoteError(json.dumps(payload["userErrors"]))
        fulfillment_id = payload["fulfillment"]["id"]
        self._log.info("Fulfillment created", order_id=order_id, fulfillment_id=fulfillment_id)
        return fulfillment_id

    def _graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        response = send(
            self._client,
            "POST",
            f"{self._base}/graphql.json",
            json={"query": query, "variables": variables},
            headers=self._headers,
        )
        body = json_body(response, "GraphQL")
        if response.status_code >= 400 or body.get("errors"):
            raise RemoteError(json.dumps(body.get("errors") or body))
        return body.get("data") or {}


def parse_order(raw: Dict[str, Any]) -> PlatformOrder:
    address = raw.get("shipping_address")
    return PlatformOrder(
        order_id=str(raw["id"]),
        order_name=raw.get("name") or "",
        fulfillment_status=_STATUS_MAP.get(raw.get("fulfillment_status"), FulfillmentStatus.UNFULFILLED),
        email=raw.get("email"),
        phone=raw.get("phone"),
        note=raw.get("note"),
        shipping_address=ShippingAddress(**{k: v for k, v in address.items() if v is not None})
        if address
        else None,
        line_items=[
            LineItem(
                id=str(item["id"]) if item.get("id") is not None else None,
                sku=item.get("sku") or None,
                vendor=item.get("vendor"),
                name=item.get("name") or "",
                quantity=item.get("quantity") or 0,
                fulfillable_quantity=item.get("fulfillable_quantity") or 0,
                remaining_quantity=item.get("fulfillable_quantity") or 0,
            )
            for item in raw.get("line_items") or []
        ],
    )
