"""Live-update wire messages — a tagged union over the message kinds.

Learn: Every frame on the live channel is an envelope {"type", "data"}.
Instead of an untyped `data: Any`, each kind is its own model with a
concretely typed payload, and the union is discriminated on `type`. A
received frame parses straight into the right class, so handlers can
match on it without casts:

    match parse_message(raw):
        case PositionUpdateMessage(data=point): ...
        case AlertMessage(data=AlertInfo() as alert): ...
"""

from typing import Annotated, Literal, Union

from pydantic import Field, TypeAdapter

from trackpro.schemas.common import CamelModel
from trackpro.schemas.event import Event
from trackpro.schemas.participant import ParticipantStatus
from trackpro.schemas.tracking import AlertInfo, AlertResolved, TrackingPoint


class ConnectedData(CamelModel):
    client_id: str


class ConnectedMessage(CamelModel):
    """Sent once to a subscriber right after the hub accepts it."""
    type: Literal["connected"] = "connected"
    data: ConnectedData


class PositionUpdateMessage(CamelModel):
    type: Literal["position_update"] = "position_update"
    data: TrackingPoint


class AlertMessage(CamelModel):
    """A new alert (AlertInfo projection) or a resolution notice."""
    type: Literal["alert"] = "alert"
    data: Union[AlertInfo, AlertResolved]


class EventUpdateMessage(CamelModel):
    type: Literal["event_update"] = "event_update"
    data: Event


class ParticipantStatusMessage(CamelModel):
    type: Literal["participant_status"] = "participant_status"
    data: ParticipantStatus


LiveMessage = Annotated[
    Union[
        ConnectedMessage,
        PositionUpdateMessage,
        AlertMessage,
        EventUpdateMessage,
        ParticipantStatusMessage,
    ],
    Field(discriminator="type"),
]

_live_message_adapter: TypeAdapter[LiveMessage] = TypeAdapter(LiveMessage)


def parse_message(raw: str | bytes) -> LiveMessage:
    """Decode one JSON frame. Raises pydantic.ValidationError on bad input."""
    return _live_message_adapter.validate_json(raw)


def encode_message(message: LiveMessage) -> str:
    """Serialize a message for the wire (camelCase keys)."""
    return message.model_dump_json(by_alias=True)
