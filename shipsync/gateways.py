from __future__ import annotations

import threading
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from .domain import (
    FulfillmentOrderLine,
    FulfillmentStatus,
    LineItem,
    PlatformOrder,
    SupplierOrder,
    TrackingShipment,
)
from .errors import RemoteError


class SupplierGateway(Protocol):
    def list_orders(self, since: date) -> List[SupplierOrder]: ...

    def place_order(self, payload: Dict[str, Any]) -> Optional[str]: ...


class PlatformGateway(Protocol):
    def find_orders_by_name(self, name: str) -> List[PlatformOrder]: ...

    def get_order_by_id(self, order_id: str) -> Optional[PlatformOrder]: ...

    def get_fulfillment_lines(self, order_id: str) -> List[FulfillmentOrderLine]: ...

    def submit_fulfillment(
        self,
        order_id: str,
        lines: List[FulfillmentOrderLine],
        shipment: TrackingShipment,
        notify_customer: bool = True,
    ) -> str: ...


class Notifier(Protocol):
    def send(self, subject: str, html: str) -> None: ...


class InMemorySupplierGateway(SupplierGateway):
    def __init__(self, orders: Iterable[SupplierOrder] = ()) -> None:
        self._orders: List[SupplierOrder] = list(orders)
        self.placed: List[Dict[str, Any]] = []
        self.list_calls: List[date] = []
        self.reject_with: Optional[str] = None

    def add(self, order: SupplierOrder) -> SupplierOrder:
        self._orders.append(order)
        return order

    def list_orders(self, since: date) -> List[SupplierOrder]:
        self.list_calls.append(since)
        return [
            order
            for order in self._orders
            if order.submitted_at is None or order.submitted_at.date() >= since
        ]

    def place_order(self, payload: Dict[str, Any]) -> Optional[str]:
        if self.reject_with:
            raise RemoteError(self.reject_with)
        self.placed.append(payload)
        return f"supplier-{len(self.placed)}"


class InMemoryPlatformGateway(PlatformGateway):
    """Platform stand-in that applies fulfillments to its own order copies."""

    def __init__(self, orders: Iterable[PlatformOrder] = ()) -> None:
        self._orders: Dict[str, PlatformOrder] = {}
        self._lines: Dict[str, List[FulfillmentOrderLine]] = {}
        self._lock = threading.Lock()
        self.submissions: List[Tuple[str, List[FulfillmentOrderLine], TrackingShipment]] = []
        self.rejections: Dict[str, str] = {}
        for order in orders:
            self.add(order)

    def add(self, order: PlatformOrder, lines: Optional[List[FulfillmentOrderLine]] = None) -> PlatformOrder:
        self._orders[order.order_id] = order
        self._lines[order.order_id] = lines if lines is not None else self._default_lines(order)
        return order

    def find_orders_by_name(self, name: str) -> List[PlatformOrder]:
        # Mimics the platform's prefix search, which also returns near matches
        needle = name.lstrip("#")
        return [order for order in self._orders.values() if order.order_name.lstrip("#").startswith(needle[:-1])]

    def get_order_by_id(self, order_id: str) -> Optional[PlatformOrder]:
        return self._orders.get(order_id)

    def get_fulfillment_lines(self, order_id: str) -> List[FulfillmentOrderLine]:
        return list(self._lines.get(order_id, []))

    def submit_fulfillment(
        self,
        order_id: str,
        lines: List[FulfillmentOrderLine],
        shipment: TrackingShipment,
        notify_customer: bool = True,
    ) -> str:
        if order_id in self.rejections:
            raise RemoteError(self.rejections[order_id])
        with self._lock:
            self.submissions.append((order_id, list(lines), shipment))
            shipped = {line.id for line in lines}
            # Like the platform, a shipped item is no longer fulfillable
            closed_items: Dict[str, LineItem] = {}
            updated_lines = []
            for line in self._lines.get(order_id, []):
                if line.id in shipped:
                    item = line.line_item.model_copy(update={"fulfillable_quantity": 0, "remaining_quantity": 0})
                    if item.id is not None:
                        closed_items[item.id] = item
                    line = line.model_copy(update={"remaining_quantity": 0, "line_item": item})
                updated_lines.append(line)
            self._lines[order_id] = updated_lines
            order = self._orders[order_id]
            status = (
                FulfillmentStatus.FULFILLED
                if all(line.remaining_quantity == 0 for line in updated_lines)
                else FulfillmentStatus.PARTIALLY_FULFILLED
            )
            self._orders[order_id] = order.model_copy(
                update={
                    "fulfillment_status": status,
                    "line_items": [closed_items.get(item.id, item) for item in order.line_items],
                }
            )
            return f"gid://platform/Fulfillment/{len(self.submissions)}"

    @staticmethod
    def _default_lines(order: PlatformOrder) -> List[FulfillmentOrderLine]:
        return [
            FulfillmentOrderLine(
                id=f"{order.order_id}-fol-{index}",
                fulfillment_order_id=f"{order.order_id}-fo",
                remaining_quantity=item.remaining_quantity,
                line_item=item,
            )
            for index, item in enumerate(order.line_items, start=1)
        ]


class InMemoryNotifier(Notifier):
    def __init__(self) -> None:
        self.sent: List[Tuple[str, str]] = []

    def send(self, subject: str, html: str) -> None:
        self.sent.append((subject, html))
