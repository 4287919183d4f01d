"""User-facing client for the novel resource API.

Example usage:
    from novel_sdk import create_api_client

    client = create_api_client("http://localhost:8080")

    envelope = await client.get_novel("novel-1")
    if envelope.success:
        print(envelope.data.story_outline)
    else:
        print(envelope.error)
"""

from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from novel_sdk._internal.dispatch import Dispatcher, PayloadTransform, ResponseEnvelope
from novel_sdk._internal.events import EventStreamHandle
from novel_sdk.exceptions import ParseError
from novel_sdk.models import HealthStatus, MutationResult, Novel, UserCredit

NOVELS_ENDPOINT = "/api/v1/novels"
USERS_ENDPOINT = "/api/v1/users"
HEALTH_ENDPOINT = "/health"

RecordT = TypeVar("RecordT", bound=BaseModel)


class NovelClient:
    """Resource methods for novels and user credits.

    Each method is a single ``Dispatcher.call`` plus parsing of the successful
    body into typed records. Like the dispatcher, no method raises: a body
    that does not match the expected record shape yields a failed envelope.
    """

    def __init__(self, dispatcher: Dispatcher | None = None, **dispatcher_options: Any) -> None:
        """Initialize the client.

        Args:
            dispatcher: Dispatcher to send requests through.
            **dispatcher_options: Used to build a Dispatcher when none is given
                (base_url, transform_enabled, transform, http_client, ...).
        """
        if dispatcher is not None and dispatcher_options:
            raise TypeError("Pass either a dispatcher or dispatcher options, not both")
        self._dispatcher = dispatcher or Dispatcher(**dispatcher_options)

    @classmethod
    def from_env(cls, *, http_client: httpx.AsyncClient | None = None) -> "NovelClient":
        """Create a client configured from environment variables.

        See Dispatcher.from_env for the variables read.
        """
        return cls(Dispatcher.from_env(http_client=http_client))

    @property
    def dispatcher(self) -> Dispatcher:
        return self._dispatcher

    def set_base_url(self, base_url: str) -> None:
        self._dispatcher.set_base_url(base_url)

    def set_use_encryption(self, use_encryption: bool) -> None:
        self._dispatcher.set_transform_enabled(use_encryption)

    # =========================================================================
    # Novels
    # =========================================================================

    async def get_all_novels(self) -> ResponseEnvelope[list[Novel]]:
        envelope = await self._dispatcher.call("GET", NOVELS_ENDPOINT)
        return _parse_many(envelope, Novel, "novels")

    async def get_novel(self, novel_id: str) -> ResponseEnvelope[Novel]:
        envelope = await self._dispatcher.call("GET", f"{NOVELS_ENDPOINT}/{novel_id}")
        return _parse_one(envelope, Novel, "novel")

    async def create_novel(self, novel: Novel | dict[str, Any]) -> ResponseEnvelope[MutationResult]:
        envelope = await self._dispatcher.call("POST", NOVELS_ENDPOINT, _to_payload(novel))
        return _parse_one(envelope, MutationResult)

    async def update_novel(
        self, novel_id: str, novel: Novel | dict[str, Any]
    ) -> ResponseEnvelope[MutationResult]:
        """Update a novel. Fields left as None on a model are not sent."""
        envelope = await self._dispatcher.call(
            "PUT", f"{NOVELS_ENDPOINT}/{novel_id}", _to_payload(novel)
        )
        return _parse_one(envelope, MutationResult)

    async def delete_novel(self, novel_id: str) -> ResponseEnvelope[MutationResult]:
        envelope = await self._dispatcher.call("DELETE", f"{NOVELS_ENDPOINT}/{novel_id}")
        return _parse_one(envelope, MutationResult)

    # =========================================================================
    # User Credits
    # =========================================================================

    async def get_all_user_credits(self) -> ResponseEnvelope[list[UserCredit]]:
        envelope = await self._dispatcher.call("GET", USERS_ENDPOINT)
        return _parse_many(envelope, UserCredit, "credits")

    async def get_user_credit(self, user_id: str) -> ResponseEnvelope[UserCredit]:
        envelope = await self._dispatcher.call("GET", f"{USERS_ENDPOINT}/{user_id}")
        return _parse_one(envelope, UserCredit, "credit")

    async def create_user_credit(
        self, credit: UserCredit | dict[str, Any]
    ) -> ResponseEnvelope[MutationResult]:
        envelope = await self._dispatcher.call("POST", USERS_ENDPOINT, _to_payload(credit))
        return _parse_one(envelope, MutationResult)

    async def update_user_credit(
        self, user_id: str, credit: UserCredit | dict[str, Any]
    ) -> ResponseEnvelope[MutationResult]:
        envelope = await self._dispatcher.call(
            "PUT", f"{USERS_ENDPOINT}/{user_id}", _to_payload(credit)
        )
        return _parse_one(envelope, MutationResult)

    async def delete_user_credit(self, user_id: str) -> ResponseEnvelope[MutationResult]:
        envelope = await self._dispatcher.call("DELETE", f"{USERS_ENDPOINT}/{user_id}")
        return _parse_one(envelope, MutationResult)

    # =========================================================================
    # System
    # =========================================================================

    async def health_check(self) -> ResponseEnvelope[HealthStatus]:
        envelope = await self._dispatcher.call("GET", HEALTH_ENDPOINT)
        return _parse_one(envelope, HealthStatus)

    async def stream_events(self) -> EventStreamHandle:
        """Open the chaincode event stream. The caller must close the handle."""
        return await self._dispatcher.subscribe_events()

    async def aclose(self) -> None:
        await self._dispatcher.aclose()

    async def __aenter__(self) -> "NovelClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


# =============================================================================
# Factories
# =============================================================================


def create_api_client(base_url: str | None = None, **options: Any) -> NovelClient:
    """Create a client that sends plain JSON bodies."""
    return create_configurable_api_client(base_url, use_encryption=False, **options)


def create_secure_api_client(
    base_url: str | None = None,
    transform: PayloadTransform | None = None,
    **options: Any,
) -> NovelClient:
    """Create a client that encodes POST/PUT bodies.

    Without an explicit transform this uses the non-secure Base64 placeholder;
    pass an RsaOaepTransform for real encryption.
    """
    return create_configurable_api_client(
        base_url, use_encryption=True, transform=transform, **options
    )


def create_configurable_api_client(
    base_url: str | None = None,
    use_encryption: bool = False,
    **options: Any,
) -> NovelClient:
    """Create a client with the payload transform on or off."""
    if base_url is not None:
        options["base_url"] = base_url
    return NovelClient(transform_enabled=use_encryption, **options)


# =============================================================================
# Parsing
# =============================================================================


def _to_payload(record: BaseModel | dict[str, Any]) -> dict[str, Any]:
    if isinstance(record, BaseModel):
        return record.model_dump(mode="json", by_alias=True, exclude_none=True)
    return dict(record)


def _unwrap(data: Any, key: str | None) -> Any:
    """Return ``data[key]`` when the backend wrapped the record, else data."""
    if key is not None and isinstance(data, dict) and isinstance(data.get(key), (dict, list)):
        return data[key]
    return data


def _validate(model: type[RecordT], item: Any) -> RecordT:
    try:
        return model.model_validate(item)
    except ValidationError as e:
        raise ParseError(
            f"Unexpected {model.__name__} format: {e.error_count()} validation error(s)"
        ) from e


def _parse_one(
    envelope: ResponseEnvelope[Any], model: type[RecordT], key: str | None = None
) -> ResponseEnvelope[Any]:
    if not envelope.success:
        return envelope
    try:
        record = _validate(model, _unwrap(envelope.data, key))
    except ParseError as e:
        return ResponseEnvelope.fail(str(e), message=envelope.message)
    return ResponseEnvelope.ok(record, message=envelope.message)


def _parse_many(
    envelope: ResponseEnvelope[Any], model: type[RecordT], key: str
) -> ResponseEnvelope[Any]:
    if not envelope.success:
        return envelope
    items = _unwrap(envelope.data, key)
    if not isinstance(items, list):
        return ResponseEnvelope.fail(
            f"Unexpected response format: expected a list of {model.__name__}",
            message=envelope.message,
        )
    try:
        records = [_validate(model, item) for item in items]
    except ParseError as e:
        return ResponseEnvelope.fail(str(e), message=envelope.message)
    return ResponseEnvelope.ok(records, message=envelope.message)
