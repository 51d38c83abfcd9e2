from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .clients.resend import ResendNotifier
from .clients.shopify import ShopifyGateway
from .clients.supplier import B2BSupplierGateway
from .clock import Clock, SystemClock
from .domain import SupplierProfile
from .errors import NotFoundError
from .gateways import InMemoryPlatformGateway, Notifier, PlatformGateway, SupplierGateway
from .logging import ServiceLogger
from .notifications import NotificationService
from .resolver import OrderIdentityResolver
from .services import ForwardingService, ReconciliationService
from .settings import Settings
from .suppliers import load_supplier_profiles

log = ServiceLogger("container")


@dataclass
class Container:
    settings: Settings
    clock: Clock
    platform: PlatformGateway
    resolver: OrderIdentityResolver
    notifications: NotificationService
    profiles: List[SupplierProfile] = field(default_factory=list)
    reconcilers: Dict[str, ReconciliationService] = field(default_factory=dict)
    forwarders: Dict[str, ForwardingService] = field(default_factory=dict)

    def reconciler(self, supplier_key: str) -> ReconciliationService:
        service = self.reconcilers.get(supplier_key)
        if not service:
            raise NotFoundError()
        return service

    def forwarder(self, supplier_key: str) -> ForwardingService:
        service = self.forwarders.get(supplier_key)
        if not service:
            raise NotFoundError()
        return service


def build_container(
    settings: Settings,
    platform: Optional[PlatformGateway] = None,
    suppliers: Optional[Mapping[str, SupplierGateway]] = None,
    profiles: Optional[List[SupplierProfile]] = None,
    notifier: Optional[Notifier] = None,
    clock: Optional[Clock] = None,
) -> Container:
    clock = clock or SystemClock()

    if platform is None:
        if settings.shopify_configured:
            platform = ShopifyGateway(
                settings.shopify_store_url,
                settings.shopify_admin_token,
                api_version=settings.shopify_api_version,
                timeout=settings.http_timeout_seconds,
            )
        else:
            log.warning("Shopify is not configured, using an in-memory platform")
            platform = InMemoryPlatformGateway()

    if notifier is None and settings.notifications_configured:
        notifier = ResendNotifier(settings.resend_api_key, settings.notify_from, settings.notify_to)

    if profiles is None:
        profiles = load_supplier_profiles(settings.suppliers_path)

    resolver = OrderIdentityResolver(platform, name_prefix=settings.order_name_prefix)
    notifications = NotificationService(notifier, clock)
    container = Container(
        settings=settings,
        clock=clock,
        platform=platform,
        resolver=resolver,
        notifications=notifications,
        profiles=list(profiles),
    )

    for profile in profiles:
        gateway = (suppliers or {}).get(profile.key) or B2BSupplierGateway(
            profile, timeout=settings.http_timeout_seconds
        )
        container.reconcilers[profile.key] = ReconciliationService(
            profile,
            gateway,
            platform,
            resolver,
            notifications,
            clock,
            default_window_days=settings.window_days,
            dry_run=settings.dry_run,
            max_workers=settings.max_workers,
            notify_customer=settings.notify_customer,
        )
        container.forwarders[profile.key] = ForwardingService(
            profile,
            gateway,
            resolver,
            notifications,
            company_phone=settings.company_phone,
        )

    return container
