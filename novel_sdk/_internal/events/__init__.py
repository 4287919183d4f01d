"""Server-push event stream subscription."""

from novel_sdk._internal.events.models import EVENTS_ENDPOINT, StreamEvent
from novel_sdk._internal.events.stream import EventDecoder, EventStreamHandle

__all__ = [
    "EVENTS_ENDPOINT",
    "EventDecoder",
    "EventStreamHandle",
    "StreamEvent",
]
