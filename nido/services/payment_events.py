from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from nido.core.clock import utcnow
from nido.core.config import settings
from nido.core.security import verify_event_checksum
from nido.schemas.webhook import WebhookResponse
from nido.schemas.wompi import TransactionUpdatedEvent, UnhandledEvent, parse_wompi_event
from nido.services.errors import InvalidSignatureError, MalformedEventError
from nido.services.lifecycle import process_approved_transaction


log = logging.getLogger(__name__)


def parse_event(body: bytes) -> tuple[TransactionUpdatedEvent | UnhandledEvent, dict[str, Any]]:
    try:
        raw = json.loads(body or b"")
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedEventError(f"Invalid JSON body: {e}")
    if not isinstance(raw, dict):
        raise MalformedEventError("Event body must be a JSON object")

    try:
        event = parse_wompi_event(raw)
    except ValidationError as e:
        errors = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in e.errors()
        ]
        raise MalformedEventError("Malformed payment event", detail={"errors": errors})
    return event, raw


def check_signature(event: TransactionUpdatedEvent | UnhandledEvent, raw: dict[str, Any]) -> None:
    secret = settings.wompi_events_secret.get_secret_value()
    if not secret:
        return

    sig = event.signature
    if sig is None or not sig.checksum or not sig.properties or event.timestamp is None:
        raise InvalidSignatureError("Missing event signature")

    data = raw.get("data") if isinstance(raw.get("data"), dict) else {}
    if not verify_event_checksum(data, sig.properties, event.timestamp, sig.checksum, secret):
        raise InvalidSignatureError("Invalid event signature")


async def handle_wompi_event(db: AsyncSession, body: bytes, *, now: datetime | None = None) -> WebhookResponse:
    """
    Entry point for one webhook delivery. Raises LifecycleError subclasses for
    4xx outcomes; store failures propagate as SQLAlchemy errors.
    """
    now = now or utcnow()
    event, raw = parse_event(body)
    check_signature(event, raw)

    if isinstance(event, UnhandledEvent):
        log.info("wompi: ignoring event %s", event.event)
        return WebhookResponse(success=True, message=f"Event ignored: {event.event}")

    tx = event.data.transaction
    log.info("wompi: transaction %s reference %s status %s", tx.id, tx.reference, tx.status)

    if not tx.is_approved:
        return WebhookResponse(
            success=True,
            message=f"Transaction not approved ({tx.status}), no changes",
            transaction_id=tx.id,
            reference=tx.reference,
        )

    return await process_approved_transaction(db, tx, raw_event=raw, now=now)
