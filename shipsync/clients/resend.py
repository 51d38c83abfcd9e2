from __future__ import annotations

from typing import Optional

import httpx

from ..errors import RemoteError
from .http import send

RESEND_URL = "https://api.resend.com/emails"


class ResendNotifier:
    def __init__(
        self,
        api_key: str,
        sender: str,
        recipient: str,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._recipient = recipient
        self._client = client or httpx.Client(timeout=timeout)

    def send(self, subject: str, html: str) -> None:
        response = send(
            self._client,
            "POST",
            RESEND_URL,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json={"from": self._sender, "to": self._recipient, "subject": subject, "html": html},
        )
        if response.status_code >= 400:
            raise RemoteError(f"Email delivery failed ({response.status_code}): {response.text}")
