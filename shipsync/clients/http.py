from __future__ import annotations

from typing import Any

import httpx

from ..errors import RemoteError, RemoteTimeoutError


def send(client: httpx.Client, method: str, url: str, **kwargs: Any) -> httpx.Response:
    """Issue one request, translating transport failures into domain errors. Never retries."""
    try:
        return client.request(method, url, **kwargs)
    except httpx.TimeoutException as exc:
        raise RemoteTimeoutError(f"{method} {url} timed out") from exc
    except httpx.HTTPError as exc:
        raise RemoteError(f"{method} {url} failed: {exc}") from exc


def json_body(response: httpx.Response, context: str) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise RemoteError(f"{context}: invalid JSON (status {response.status_code})") from exc
