"""Pydantic models for novel API resources.

Field names are snake_case in Python and camelCase on the wire, matching the
backend's JSON tags.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )


class Novel(_Record):
    """A generated novel and its structural outline."""

    id: str
    author: str | None = None
    story_outline: str | None = None
    subsections: str | None = None
    characters: str | None = None
    items: str | None = None
    total_scenes: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


class UserCredit(_Record):
    """Credit balance for a user."""

    user_id: str
    credit: int = 0
    total_used: int = 0
    total_recharge: int = 0
    created_at: str | None = None
    updated_at: str | None = None


class MutationResult(_Record):
    """Acknowledgement returned by create, update and delete endpoints."""

    message: str | None = None
    id: str | None = None


class HealthStatus(_Record):
    """Liveness response from /health."""

    status: str
    message: str | None = None
    time: str | None = None
