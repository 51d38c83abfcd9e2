from __future__ import annotations

from typing import List

from .domain import PlatformOrder
from .errors import AmbiguousMatchError, CriticalMismatchError, NotFoundError
from .gateways import PlatformGateway
from .logging import ServiceLogger


class OrderIdentityResolver:
    """Maps a supplier's order reference to exactly one platform order.

    References come in two shapes. Order numbers such as ``#362673`` (or
    ``362673``) go through the platform's name search, which is fuzzy and may
    return neighbouring orders; only a case-insensitive exact name match is
    accepted. Anything else is treated as the platform's numeric order id.
    """

    def __init__(self, platform: PlatformGateway, name_prefix: str = "36") -> None:
        self._platform = platform
        self._name_prefix = name_prefix
        self._log = ServiceLogger("resolver")

    def is_name_reference(self, reference: str) -> bool:
        return reference.strip().lstrip("#").startswith(self._name_prefix)

    @staticmethod
    def normalize_name(reference: str) -> str:
        return f"#{reference.strip().lstrip('#')}"

    def resolve(self, reference: str) -> PlatformOrder:
        if not reference or not reference.strip():
            raise NotFoundError()
        if self.is_name_reference(reference):
            return self._resolve_by_name(self.normalize_name(reference))
        return self._resolve_by_id(reference.strip())

    def verify(self, reference: str, order: PlatformOrder) -> None:
        if not self.is_name_reference(reference):
            return
        if order.order_name.casefold() != self.normalize_name(reference).casefold():
            raise CriticalMismatchError(reference, order.order_name)

    def _resolve_by_name(self, name: str) -> PlatformOrder:
        candidates = self._platform.find_orders_by_name(name)
        if not candidates:
            self._log.info("No orders found by name", name=name)
            raise NotFoundError()

        exact: List[PlatformOrder] = [
            order for order in candidates if order.order_name.casefold() == name.casefold()
        ]
        if len(exact) != 1:
            self._log.warning(
                "No unique exact match",
                name=name,
                exact=len(exact),
                candidates=[order.order_name for order in candidates],
            )
            raise AmbiguousMatchError(name, candidates)

        order = exact[0]
        self._log.info("Resolved order by name", name=name, order_id=order.order_id)
        return order

    def _resolve_by_id(self, order_id: str) -> PlatformOrder:
        if not order_id.isdigit():
            self._log.warning("Reference is neither an order number nor an id", reference=order_id)
            raise NotFoundError()
        order = self._platform.get_order_by_id(order_id)
        if not order:
            self._log.info("No order with id", order_id=order_id)
            raise NotFoundError()
        return order
