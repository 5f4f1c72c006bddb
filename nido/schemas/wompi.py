from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter


TRANSACTION_UPDATED = "transaction.updated"
APPROVED = "APPROVED"


class EventSignature(BaseModel):
    properties: list[str] = Field(default_factory=list)
    checksum: str = ""


class WompiTransaction(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(min_length=1)
    status: str = Field(min_length=1)
    reference: str = Field(min_length=1)
    amount_in_cents: int = Field(validation_alias=AliasChoices("amount_in_cents", "amount"))
    currency: str = Field(min_length=1)
    customer_email: str | None = None
    payment_method_type: str | None = None

    @property
    def is_approved(self) -> bool:
        return self.status.upper() == APPROVED


class TransactionData(BaseModel):
    transaction: WompiTransaction


class _EventBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event: str = Field(validation_alias=AliasChoices("event", "event_type"))
    sent_at: str | None = None
    timestamp: int | None = None
    signature: EventSignature | None = None


class TransactionUpdatedEvent(_EventBase):
    event: Literal["transaction.updated"] = Field(validation_alias=AliasChoices("event", "event_type"))
    data: TransactionData


class UnhandledEvent(_EventBase):
    data: dict[str, Any] = Field(default_factory=dict)


def _event_tag(value: Any) -> str | None:
    if isinstance(value, dict):
        tag = value.get("event", value.get("event_type"))
    else:
        tag = getattr(value, "event", None)
    if not isinstance(tag, str):
        # no tag at all: let validation fail instead of ignoring the event
        return None
    return "updated" if tag == TRANSACTION_UPDATED else "other"


WompiEvent = Annotated[
    Union[
        Annotated[TransactionUpdatedEvent, Tag("updated")],
        Annotated[UnhandledEvent, Tag("other")],
    ],
    Discriminator(_event_tag),
]

wompi_event_adapter: TypeAdapter[TransactionUpdatedEvent | UnhandledEvent] = TypeAdapter(WompiEvent)


def parse_wompi_event(raw: dict[str, Any]) -> TransactionUpdatedEvent | UnhandledEvent:
    return wompi_event_adapter.validate_python(raw)
