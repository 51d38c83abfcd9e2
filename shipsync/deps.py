from __future__ import annotations

import hmac

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .container import Container
from .errors import UnauthorizedError
from .services import ForwardingService, ReconciliationService
from .settings import Settings

security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_settings(container: Container = Depends(get_container)) -> Settings:
    return container.settings


def require_cron_secret(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: Settings = Depends(get_settings),
) -> None:
    if not settings.cron_secret or credentials is None:
        raise UnauthorizedError()
    if not hmac.compare_digest(credentials.credentials.encode("utf-8"), settings.cron_secret.encode("utf-8")):
        raise UnauthorizedError()


def get_reconciler(key: str, container: Container = Depends(get_container)) -> ReconciliationService:
    return container.reconciler(key)


def get_forwarder(key: str, container: Container = Depends(get_container)) -> ForwardingService:
    return container.forwarder(key)
