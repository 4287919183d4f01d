"""Load/error/data state for UI bindings.

A Query wraps one resource call and exposes what a view needs to render it:
``data``, ``loading``, ``error`` and ``refetch``. State changes go through a
single transition method, so ``loading`` and ``error`` can never both be set.

Example usage:
    query = novels_query(client)
    query.subscribe(lambda q: render(q.data, q.loading, q.error))
    await query.refetch()
"""

from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any, Generic, TypeVar

from novel_sdk._internal.dispatch import ResponseEnvelope
from novel_sdk.client import NovelClient
from novel_sdk.models import Novel, UserCredit

T = TypeVar("T")

Fetch = Callable[[], Awaitable[ResponseEnvelope[Any]]]
Listener = Callable[["Query[Any]"], None]


class QueryState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class Query(Generic[T]):
    """Observable state of a single repeatable fetch.

    ``data`` keeps the last successful value across later failures, so a view
    can keep showing stale data next to an error.
    """

    def __init__(
        self,
        fetch: Fetch | None,
        *,
        default_error: str = "Request failed",
    ) -> None:
        """Initialize the query.

        Args:
            fetch: Zero-argument coroutine function returning an envelope.
                None leaves the query idle (e.g. no id selected yet).
            default_error: Error text when a successful envelope has no data.
        """
        self._fetch = fetch
        self._default_error = default_error
        self._state = QueryState.IDLE
        self._data: T | None = None
        self._error: str | None = None
        self._envelope: ResponseEnvelope[T] | None = None
        self._generation = 0
        self._listeners: list[Listener] = []

    @property
    def state(self) -> QueryState:
        return self._state

    @property
    def data(self) -> T | None:
        return self._data

    @property
    def loading(self) -> bool:
        return self._state is QueryState.LOADING

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def envelope(self) -> ResponseEnvelope[T] | None:
        """The last envelope received, if any."""
        return self._envelope

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` after every state change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _transition(
        self,
        state: QueryState,
        *,
        data: T | None = None,
        error: str | None = None,
    ) -> None:
        self._state = state
        if state is QueryState.SUCCESS:
            self._data = data
        self._error = error if state is QueryState.ERROR else None
        for listener in list(self._listeners):
            listener(self)

    async def refetch(self) -> ResponseEnvelope[T] | None:
        """Run the fetch again and update state from its envelope.

        If refetches overlap, only the most recently started one updates
        state. Returns the envelope, or None when the query has no fetch.
        """
        if self._fetch is None:
            return None

        self._generation += 1
        generation = self._generation
        self._transition(QueryState.LOADING)

        try:
            envelope = await self._fetch()
        except Exception as e:
            envelope = ResponseEnvelope.fail(str(e) or type(e).__name__)

        if generation != self._generation:
            return envelope

        self._envelope = envelope
        if envelope.success and envelope.data is not None:
            self._transition(QueryState.SUCCESS, data=envelope.data)
        else:
            self._transition(QueryState.ERROR, error=envelope.error or self._default_error)
        return envelope


# =============================================================================
# Resource Queries
# =============================================================================


def novels_query(client: NovelClient) -> Query[list[Novel]]:
    return Query(client.get_all_novels, default_error="Failed to load novels")


def novel_query(client: NovelClient, novel_id: str) -> Query[Novel]:
    """Query a single novel. An empty id leaves the query idle."""
    if not novel_id:
        return Query(None)

    async def fetch() -> ResponseEnvelope[Novel]:
        return await client.get_novel(novel_id)

    return Query(fetch, default_error="Failed to load novel")


def user_credits_query(client: NovelClient) -> Query[list[UserCredit]]:
    return Query(client.get_all_user_credits, default_error="Failed to load user credits")


def user_credit_query(client: NovelClient, user_id: str) -> Query[UserCredit]:
    if not user_id:
        return Query(None)

    async def fetch() -> ResponseEnvelope[UserCredit]:
        return await client.get_user_credit(user_id)

    return Query(fetch, default_error="Failed to load user credit")
