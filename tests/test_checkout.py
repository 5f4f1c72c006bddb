from __future__ import annotations

from urllib.parse import parse_qs, urlsplit

import pytest
from sqlalchemy import select

from nido.core.security import integrity_signature
from nido.models.listing import Listing, ListingState
from nido.models.payment import Payment, PaymentState
from tests.fixtures_seed import LISTING_ID, add_listing, reload, wompi_event


SERVICE_HEADERS = {"X-Service-Key": "test-service-key"}


async def _checkout(client, listing_id=LISTING_ID, owner_id="usr_ana", **extra):
    return await client.post(
        f"/v1/listings/{listing_id}/checkout",
        json={"owner_id": owner_id, **extra},
        headers=SERVICE_HEADERS,
    )


@pytest.mark.asyncio
async def test_checkout_creates_signed_session(client, db_session, seed_owner):
    r = await _checkout(client, redirect_url="https://nido.io/pago/resultado")
    assert r.status_code == 200, r.text
    body = r.json()

    reference = body["reference"]
    assert reference.startswith("NIDO-a1b2c3d4-")
    assert reference.split("-")[2].isdigit()
    assert body["amount_in_cents"] == 1_000_000
    assert body["currency"] == "COP"

    query = parse_qs(urlsplit(body["checkout_url"]).query)
    assert query["reference"] == [reference]
    assert query["amount-in-cents"] == ["1000000"]
    assert query["currency"] == ["COP"]
    assert query["redirect-url"] == ["https://nido.io/pago/resultado"]
    assert query["signature:integrity"] == [integrity_signature(reference, 1_000_000, "COP")]

    payment = (await db_session.execute(select(Payment).where(Payment.reference == reference))).scalar_one()
    assert payment.state == PaymentState.PENDING
    assert payment.listing_id == LISTING_ID

    listing = await reload(db_session, Listing, LISTING_ID)
    assert listing.payment_reference == reference
    assert listing.state == ListingState.DRAFT


@pytest.mark.asyncio
async def test_webhook_settles_checkout_payment(client, db_session, seed_verified_owner):
    reference = (await _checkout(client)).json()["reference"]

    r = await client.post("/v1/webhooks/wompi", json=wompi_event(reference, transaction_id="tx-checkout"))
    assert r.status_code == 200
    assert r.json()["listing_id"] == LISTING_ID

    payments = (await db_session.execute(
        select(Payment).execution_options(populate_existing=True)
    )).scalars().all()
    assert len(payments) == 1
    assert payments[0].state == PaymentState.APPROVED
    assert payments[0].gateway_transaction_id == "tx-checkout"
    assert payments[0].integrity_signature


@pytest.mark.asyncio
async def test_checkout_for_someone_elses_listing_is_not_found(client, seed_owner):
    r = await _checkout(client, owner_id="usr_intruso")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_checkout_unknown_listing(client, seed_owner):
    r = await _checkout(client, listing_id="00000000-0000-4000-8000-000000000000")
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_checkout_requires_draft(client, db_session, seed_owner):
    await add_listing(db_session, owner_id=seed_owner["owner_id"], listing_id="99999999-0000-4000-8000-000000000009",
                      state=ListingState.PUBLISHED)
    r = await _checkout(client, listing_id="99999999-0000-4000-8000-000000000009")
    assert r.status_code == 409


@pytest.mark.asyncio
async def test_checkout_requires_service_key(client, seed_owner):
    r = await client.post(f"/v1/listings/{LISTING_ID}/checkout", json={"owner_id": "usr_ana"})
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_checkout_rejects_wrong_service_key(client, seed_owner):
    r = await client.post(
        f"/v1/listings/{LISTING_ID}/checkout",
        json={"owner_id": "usr_ana"},
        headers={"X-Service-Key": "test-service-kez"},
    )
    assert r.status_code == 403
