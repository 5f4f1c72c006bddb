from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from nido.core.config import settings
from nido.services.http_client import NidoHttpClient


log = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailResult:
    ok: bool
    error: str | None = None
    provider_id: str | None = None


class EmailSender(Protocol):
    async def send(self, to: str, subject: str, body: str) -> EmailResult: ...

    async def aclose(self) -> None: ...


class ResendEmailSender:
    def __init__(self, api_key: str, *, sender: str, url: str, http: NidoHttpClient | None = None):
        self._sender = sender
        self._url = url
        self._http = http or NidoHttpClient(default_headers={"Authorization": f"Bearer {api_key}"})

    async def send(self, to: str, subject: str, body: str) -> EmailResult:
        result = await self._http.post_json(
            url=self._url,
            json_body={"from": self._sender, "to": to, "subject": subject, "text": body},
        )
        if not result.ok:
            return EmailResult(ok=False, error=f"Resend error: {result.error_message}")
        return EmailResult(ok=True, provider_id=result.detail.get("id"))

    async def aclose(self) -> None:
        await self._http.aclose()


class LogOnlyEmailSender:
    """Used when no provider key is configured (local dev)."""

    async def send(self, to: str, subject: str, body: str) -> EmailResult:
        log.info("email [log-only] to=%s subject=%s", to, subject)
        return EmailResult(ok=True)

    async def aclose(self) -> None:
        return None


def build_email_sender() -> EmailSender:
    api_key = settings.resend_api_key.get_secret_value()
    if not api_key:
        return LogOnlyEmailSender()
    return ResendEmailSender(api_key, sender=settings.email_from, url=settings.resend_api_url)
