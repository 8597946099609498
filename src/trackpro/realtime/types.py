"""Live message type constants.

Learn: Centralizing the `type` strings prevents typos and makes it easy to
discover every kind of message that can travel over the live channel.
The message classes in trackpro.schemas.messages carry the same values
in their Literal `type` fields.
"""

CONNECTED = "connected"
POSITION_UPDATE = "position_update"
ALERT = "alert"
EVENT_UPDATE = "event_update"
PARTICIPANT_STATUS = "participant_status"

