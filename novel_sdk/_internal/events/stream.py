"""Caller-owned handle to the server-sent event stream."""

import sys
from collections.abc import AsyncIterator
from typing import Any

import httpx

from novel_sdk._internal.events.models import DEFAULT_EVENT_TYPE, StreamEvent
from novel_sdk._internal.http import DEFAULT_TIMEOUT, create_http_client
from novel_sdk.exceptions import NovelSDKError, ProtocolError, TransportError


class EventDecoder:
    """Incremental decoder for the text/event-stream format.

    Feed it one line at a time (without the line terminator). A blank line
    completes a frame; ``feed`` then returns the event, otherwise None.
    """

    def __init__(self) -> None:
        self._event: str | None = None
        self._data: list[str] = []
        self._id: str | None = None
        self._retry: int | None = None

    def feed(self, line: str) -> StreamEvent | None:
        line = line.rstrip("\r\n")
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            self._id = value
        elif field == "retry" and value.isdigit():
            self._retry = int(value)
        return None

    def _dispatch(self) -> StreamEvent | None:
        if not self._data:
            self._event = None
            self._retry = None
            return None
        event = StreamEvent(
            event=self._event or DEFAULT_EVENT_TYPE,
            data="\n".join(self._data),
            id=self._id,
            retry=self._retry,
        )
        self._event = None
        self._data = []
        self._retry = None
        # The last event id persists across frames
        return event


class EventStreamHandle:
    """Persistent server-push connection.

    The handle is inert until opened; Dispatcher.subscribe_events returns it
    already open. The caller owns its lifecycle:

        async with await dispatcher.subscribe_events() as stream:
            async for event in stream:
                ...

    Unlike ``Dispatcher.call``, failures here raise: TransportError when the
    connection cannot be established or drops, ProtocolError when the server
    answers with a non-2xx status.
    """

    def __init__(
        self,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
        debug: bool = False,
    ) -> None:
        self._url = url
        self._headers = {
            **(headers or {}),
            "Accept": "text/event-stream",
            "Cache-Control": "no-cache",
        }
        self._shared_client = http_client
        self._own_client: httpx.AsyncClient | None = None
        self._response: httpx.Response | None = None
        self._closed = False
        self._debug = debug

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_open(self) -> bool:
        return self._response is not None and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[novel-sdk:events] {message}", file=sys.stderr)

    async def open(self) -> "EventStreamHandle":
        """Connect to the stream.

        Raises:
            NovelSDKError: If the handle was already opened or closed.
            TransportError: If the connection cannot be established.
            ProtocolError: If the server responds with a non-2xx status.
        """
        if self._closed or self._response is not None:
            raise NovelSDKError("Event stream handle cannot be reopened")

        client = self._shared_client
        if client is None:
            # No read timeout: the server may stay quiet between events
            client = self._own_client = create_http_client(
                timeout=httpx.Timeout(DEFAULT_TIMEOUT, read=None)
            )

        self._log_debug(f"Opening stream {self._url}")
        try:
            request = client.build_request("GET", self._url, headers=self._headers)
            response = await client.send(request, stream=True)
        except httpx.TransportError as e:
            await self.close()
            raise TransportError(str(e) or "Network error") from e

        if not response.is_success:
            await response.aread()
            await response.aclose()
            await self.close()
            raise ProtocolError(_error_text(response), status_code=response.status_code)

        self._response = response
        return self

    async def events(self) -> AsyncIterator[StreamEvent]:
        """Yield events until the server ends the stream or the handle is closed."""
        if self._response is None:
            raise NovelSDKError("Event stream is not open")

        decoder = EventDecoder()
        try:
            async for line in self._response.aiter_lines():
                event = decoder.feed(line)
                if event is not None:
                    yield event
        except httpx.TransportError as e:
            if self._closed:
                return
            raise TransportError(str(e) or "Event stream interrupted") from e
        except httpx.StreamClosed:
            return

    def __aiter__(self) -> AsyncIterator[StreamEvent]:
        return self.events()

    async def close(self) -> None:
        """Cancel the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._response is not None:
            await self._response.aclose()
        if self._own_client is not None:
            await self._own_client.aclose()
        self._log_debug("Stream closed")

    async def __aenter__(self) -> "EventStreamHandle":
        if self.is_open:
            return self
        return await self.open()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def _error_text(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {response.status_code}"
