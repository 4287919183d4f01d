"""Pydantic models for request dispatch.

These models match the response contract of the novel resource API and the
wire format its decryption middleware expects.
"""

from typing import Any, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from novel_sdk._internal.http import DEFAULT_BASE_URL, base_headers

# =============================================================================
# Constants
# =============================================================================

ENCRYPTED_HEADER = "X-Encrypted-Request"
ENCRYPTED_METHODS: frozenset[str] = frozenset({"POST", "PUT"})

T = TypeVar("T")

# =============================================================================
# Response Envelope
# =============================================================================


class ResponseEnvelope(BaseModel, Generic[T]):
    """Normalized result of a single dispatched call.

    Invariants:
        success=True: error is None, data may be present
        success=False: error is a non-empty string, data is None
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    data: T | None = None
    error: str | None = None
    message: str | None = None

    @model_validator(mode="after")
    def check_outcome(self) -> "ResponseEnvelope[T]":
        if self.success and self.error is not None:
            raise ValueError("successful envelope must not carry an error")
        if not self.success:
            if not self.error:
                raise ValueError("failed envelope must carry a non-empty error")
            if self.data is not None:
                raise ValueError("failed envelope must not carry data")
        return self

    @classmethod
    def ok(cls, data: Any = None, message: str | None = None) -> "ResponseEnvelope[Any]":
        return cls(success=True, data=data, message=message)

    @classmethod
    def fail(cls, error: str, message: str | None = None) -> "ResponseEnvelope[Any]":
        return cls(success=False, error=error or "Unknown error", message=message)


# =============================================================================
# Client Configuration
# =============================================================================


class ClientConfig(BaseModel):
    """Per-dispatcher configuration.

    Frozen: the dispatcher swaps in a new instance on every change, so a call
    that already took a reference keeps seeing the values it started with.
    """

    model_config = ConfigDict(frozen=True)

    base_url: str = DEFAULT_BASE_URL
    transform_enabled: bool = False
    default_headers: dict[str, str] = Field(default_factory=base_headers)

    @field_validator("base_url")
    @classmethod
    def base_url_absolute(cls, v: str) -> str:
        try:
            url = httpx.URL(v)
        except (httpx.InvalidURL, TypeError) as e:
            raise ValueError(f"invalid base_url: {e}") from e
        if url.scheme not in ("http", "https") or not url.host:
            raise ValueError("base_url must be an absolute http(s) URL")
        # Endpoints carry the leading slash
        return v.rstrip("/")


# =============================================================================
# Wire Models
# =============================================================================


class EncryptedEnvelope(BaseModel):
    """Request body sent in place of the raw payload when the transform applies."""

    model_config = ConfigDict(populate_by_name=True)

    encrypted_payload: str = Field(alias="encryptedPayload")

    def to_wire(self) -> dict[str, str]:
        return self.model_dump(by_alias=True)
