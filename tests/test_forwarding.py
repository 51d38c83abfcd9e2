import pytest
from factories import NOW, PROFILE, line, platform_order

from shipsync.clock import FixedClock
from shipsync.errors import RemoteError, ValidationError
from shipsync.gateways import InMemoryNotifier, InMemoryPlatformGateway, InMemorySupplierGateway
from shipsync.notifications import NotificationService
from shipsync.resolver import OrderIdentityResolver
from shipsync.services import ForwardingService


def build(order, supplier=None, notifier=None):
    platform = InMemoryPlatformGateway([order])
    supplier = supplier or InMemorySupplierGateway()
    service = ForwardingService(
        PROFILE,
        supplier,
        OrderIdentityResolver(platform),
        NotificationService(notifier, FixedClock(NOW)),
        company_phone="70701870",
    )
    return service, supplier


class TestForwarding:
    def test_sends_only_active_supplier_products(self):
        order = platform_order(
            "9001",
            "#362673",
            [
                line("VX-1", quantity=2),
                line("KT-2", vendor="Keter"),
                line("NH-3", vendor="Nordic Home"),
                line("VX-4", fulfillable=0),
            ],
        )
        service, supplier = build(order)

        result = service.forward("#362673")

        assert result.products_sent == 2
        assert result.products_skipped_vendor == 1
        assert result.products_skipped_inactive == 1
        assert result.products_total == 4
        assert result.vendors_included == ["vidaXL", "Keter"]
        assert result.supplier_order_id == "supplier-1"
        payload = supplier.placed[0]
        assert payload["customer_order_reference"] == "#362673"
        assert payload["addressbook"] == {"country": "DK"}
        assert [(p["product_code"], p["quantity"]) for p in payload["order_products"]] == [("VX-1", 2), ("KT-2", 1)]

    def test_phone_falls_back_to_company_phone(self):
        order = platform_order("9001", "#362673", [line("VX-1")])
        service, supplier = build(order)

        service.forward("9001")

        assert supplier.placed[0]["order_products"][0]["addressbook"]["phone"] == "70701870"

    def test_order_without_supplier_products(self):
        notifier = InMemoryNotifier()
        order = platform_order("9001", "#362673", [line("NH-3", vendor="Nordic Home")])
        service, supplier = build(order, notifier=notifier)

        with pytest.raises(ValidationError) as exc_info:
            service.forward("#362673")

        assert "No DropXL products" in str(exc_info.value)
        assert supplier.placed == []
        assert "#362673" in notifier.sent[0][0]

    def test_order_with_only_refunded_supplier_products(self):
        order = platform_order("9001", "#362673", [line("VX-1", fulfillable=0), line(None)])
        service, _ = build(order)

        with pytest.raises(ValidationError) as exc_info:
            service.forward("#362673")

        assert "No active DropXL products" in str(exc_info.value)

    def test_inactive_product_rejection(self):
        order = platform_order("9001", "#362673", [line("VX-1")])
        supplier = InMemorySupplierGateway()
        supplier.reject_with = '{"errors": "Product is not active"}'
        service, _ = build(order, supplier=supplier)

        with pytest.raises(RemoteError) as exc_info:
            service.forward("#362673")

        assert "not active at DropXL" in str(exc_info.value)
