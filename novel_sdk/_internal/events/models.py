"""Pydantic models for server-sent events."""

from pydantic import BaseModel, ConfigDict

EVENTS_ENDPOINT = "/api/v1/events/listen"
DEFAULT_EVENT_TYPE = "message"


class StreamEvent(BaseModel):
    """A single dispatched server-sent event.

    ``data`` holds the joined ``data:`` lines of one frame. The novel backend
    writes chaincode events as ``"<EventName> - <payload>"``.
    """

    model_config = ConfigDict(frozen=True)

    event: str = DEFAULT_EVENT_TYPE
    data: str = ""
    id: str | None = None
    retry: int | None = None
