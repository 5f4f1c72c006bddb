from __future__ import annotations

from datetime import datetime

from nido.core.clock import utcnow
from nido.services.errors import MalformedEventError


REFERENCE_TAG = "NIDO"
SHORT_ID_LENGTH = 8


def generate_reference(listing_id: str, now: datetime | None = None) -> str:
    now = now or utcnow()
    millis = int(now.timestamp() * 1000)
    return f"{REFERENCE_TAG}-{listing_id[:SHORT_ID_LENGTH]}-{millis}"


def extract_id_prefix(reference: str) -> str:
    """
    Listing id prefix embedded in an order reference.

    "NIDO-a1b2c3d4-1700000000000" -> "a1b2c3d4". References without the tag
    fall back to their first 8 characters.
    """
    reference = (reference or "").strip()
    if not reference:
        raise MalformedEventError("Empty payment reference")

    if reference.startswith(f"{REFERENCE_TAG}-"):
        parts = reference.split("-")
        prefix = parts[1] if len(parts) >= 2 else ""
        if not prefix:
            raise MalformedEventError(f"Invalid reference format: {reference}", detail={"reference": reference})
        return prefix

    return reference[:SHORT_ID_LENGTH]
