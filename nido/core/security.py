import hashlib
import hmac
from typing import Any

from nido.core.config import settings


def integrity_signature(reference: str, amount_in_cents: int, currency: str, secret: str | None = None) -> str:
    # Wompi "signature:integrity": sha256(reference + amount + currency + secret), hex
    if secret is None:
        secret = settings.wompi_integrity_secret.get_secret_value()
    chain = f"{reference}{amount_in_cents}{currency}{secret}"
    return hashlib.sha256(chain.encode("utf-8")).hexdigest()


def _lookup_path(data: dict[str, Any], path: str) -> Any:
    node: Any = data
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def event_checksum(data: dict[str, Any], properties: list[str], timestamp: int | str, secret: str) -> str:
    """
    Wompi event checksum.

    Concatenates the values named by `signature.properties` (paths relative to
    the event `data` object, e.g. "transaction.id"), then the event timestamp,
    then the events secret, and hashes the result with SHA-256.
    """
    parts = []
    for prop in properties:
        value = _lookup_path(data, prop)
        parts.append("" if value is None else str(value))
    chain = "".join(parts) + str(timestamp) + secret
    return hashlib.sha256(chain.encode("utf-8")).hexdigest()


def verify_event_checksum(
    data: dict[str, Any],
    properties: list[str],
    timestamp: int | str,
    checksum: str,
    secret: str,
) -> bool:
    expected = event_checksum(data, properties, timestamp, secret)
    return hmac.compare_digest(expected.lower(), (checksum or "").lower())
