"""Request dispatcher for the novel resource API."""

import os
import sys
from typing import Any

import httpx

from novel_sdk._internal.dispatch.models import (
    ENCRYPTED_HEADER,
    ENCRYPTED_METHODS,
    ClientConfig,
    EncryptedEnvelope,
    ResponseEnvelope,
)
from novel_sdk._internal.dispatch.transform import (
    Base64Transform,
    PayloadTransform,
    RsaOaepTransform,
    serialize_payload,
)
from novel_sdk._internal.events import EVENTS_ENDPOINT, EventStreamHandle
from novel_sdk._internal.http import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, create_http_client
from novel_sdk.exceptions import ConfigError, TransformError

DEFAULT_TIMEOUT_MS = int(DEFAULT_TIMEOUT * 1000)
TRUTHY_VALUES = frozenset({"1", "true", "yes", "on"})


class Dispatcher:
    """Builds, sends and normalizes a single logical request.

    Every ``call`` returns a ResponseEnvelope and never raises: transport
    failures, non-2xx responses and transform failures all come back as
    ``success=False`` envelopes. Branch on ``envelope.success``.

    Configuration lives on the instance, so dispatchers with different base
    URLs or transform settings can coexist. Use ``Dispatcher.from_env()`` to
    build one from environment variables.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        transform_enabled: bool = False,
        transform: PayloadTransform | None = None,
        default_headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        debug: bool = False,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            base_url: Absolute URL every endpoint is appended to.
            transform_enabled: Encode POST/PUT payloads before sending.
            transform: Payload transform to use. Defaults to the non-secure
                Base64Transform placeholder.
            default_headers: Headers sent with every call. Defaults to JSON
                content type and the SDK user agent.
            http_client: Optional shared client. The dispatcher takes ownership
                of it and closes it in aclose(). When omitted, each call opens
                and closes its own short-lived client.
            timeout_ms: Transport timeout for self-created clients.
            debug: Enable debug logging to stderr.

        Raises:
            ConfigError: If base_url is not an absolute http(s) URL.
        """
        config_fields: dict[str, Any] = {
            "base_url": base_url,
            "transform_enabled": transform_enabled,
        }
        if default_headers is not None:
            config_fields["default_headers"] = default_headers
        self._config = _build_config(**config_fields)
        self._transform = transform or Base64Transform()
        self._http_client = http_client
        self._timeout_ms = timeout_ms
        self._debug = debug

    @classmethod
    def from_env(cls, *, http_client: httpx.AsyncClient | None = None) -> "Dispatcher":
        """Create a dispatcher from environment variables.

        Optional environment variables:
            NOVEL_API_BASE_URL: Backend base URL (default http://localhost:8080).
            NOVEL_USE_ENCRYPTION: "1" or "true" to enable the payload transform.
            NOVEL_RSA_PUBLIC_KEY: PEM public key. Selects RsaOaepTransform;
                without it the non-secure placeholder is used.
            NOVEL_SDK_TIMEOUT_MS: Request timeout in milliseconds.
            NOVEL_SDK_DEBUG: Set to "1" to enable debug logging.

        Raises:
            ConfigError: If the base URL or RSA key is invalid.
            ValueError: If NOVEL_SDK_TIMEOUT_MS is not an integer.
        """
        base_url = os.environ.get("NOVEL_API_BASE_URL") or DEFAULT_BASE_URL
        transform_enabled = os.environ.get("NOVEL_USE_ENCRYPTION", "").lower() in TRUTHY_VALUES
        public_key = os.environ.get("NOVEL_RSA_PUBLIC_KEY")

        debug = os.environ.get("NOVEL_SDK_DEBUG", "") == "1"
        timeout_ms = int(os.environ.get("NOVEL_SDK_TIMEOUT_MS", str(DEFAULT_TIMEOUT_MS)))

        transform: PayloadTransform | None = None
        if public_key:
            transform = RsaOaepTransform.from_pem(public_key)

        return cls(
            base_url=base_url,
            transform_enabled=transform_enabled,
            transform=transform,
            http_client=http_client,
            timeout_ms=timeout_ms,
            debug=debug,
        )

    @property
    def config(self) -> ClientConfig:
        """Current configuration snapshot."""
        return self._config

    @property
    def transform(self) -> PayloadTransform:
        return self._transform

    def _log_debug(self, message: str) -> None:
        """Log a debug message to stderr if debug mode is enabled."""
        if self._debug:
            print(f"[novel-sdk] {message}", file=sys.stderr)

    # =========================================================================
    # Configuration
    # =========================================================================

    def configure(
        self,
        base_url: str | None = None,
        transform_enabled: bool | None = None,
    ) -> None:
        """Update configuration for calls that start after this returns.

        Calls already in flight keep the configuration they started with.

        Raises:
            ConfigError: If base_url is not an absolute http(s) URL.
        """
        changes: dict[str, Any] = {}
        if base_url is not None:
            changes["base_url"] = base_url
        if transform_enabled is not None:
            changes["transform_enabled"] = transform_enabled
        if not changes:
            return
        self._config = _build_config(**{**self._config.model_dump(), **changes})
        self._log_debug(
            f"Configured base_url={self._config.base_url} "
            f"transform_enabled={self._config.transform_enabled}"
        )

    def set_base_url(self, base_url: str) -> None:
        self.configure(base_url=base_url)

    def set_transform_enabled(self, transform_enabled: bool) -> None:
        self.configure(transform_enabled=transform_enabled)

    # =========================================================================
    # Dispatch
    # =========================================================================

    async def call(
        self,
        method: str,
        endpoint: str,
        payload: Any = None,
        *,
        headers: dict[str, str] | None = None,
        **transport_options: Any,
    ) -> ResponseEnvelope[Any]:
        """Send one request and normalize the outcome.

        Args:
            method: HTTP method (GET, POST, PUT, DELETE, ...).
            endpoint: Path appended to the configured base URL.
            payload: Optional JSON-serializable body. Conventionally absent for
                GET and DELETE; not enforced.
            headers: Per-call headers, merged over the default headers.
            **transport_options: Passed through to httpx for this call only
                (e.g. params, timeout, follow_redirects).

        Returns:
            A ResponseEnvelope. Never raises.
        """
        # Read config once, before the first await
        config = self._config
        method = method.upper()
        url = f"{config.base_url}{endpoint}"
        request_headers = httpx.Headers(config.default_headers)
        request_headers.update(headers or {})

        try:
            content = await self._build_body(config, method, payload, request_headers)
        except TransformError as e:
            self._log_debug(f"{method} {endpoint} transform failed: {e}")
            return ResponseEnvelope.fail(str(e))
        except Exception as e:
            self._log_debug(f"{method} {endpoint} transform error: {e}")
            return ResponseEnvelope.fail(_describe(e, "Payload transform failed"))

        self._log_debug(f"{method} {url}")
        try:
            response = await self._send(
                method, url, headers=request_headers, content=content, **transport_options
            )
        except httpx.TimeoutException as e:
            self._log_debug(f"{method} {endpoint} timed out")
            return ResponseEnvelope.fail(_describe(e, "Request timed out"))
        except httpx.TransportError as e:
            self._log_debug(f"{method} {endpoint} network error: {e}")
            return ResponseEnvelope.fail(_describe(e, "Network error"))
        except Exception as e:
            self._log_debug(f"{method} {endpoint} request error: {e}")
            return ResponseEnvelope.fail(_describe(e, "Request failed"))

        return self._to_envelope(method, endpoint, response)

    async def _build_body(
        self,
        config: ClientConfig,
        method: str,
        payload: Any,
        headers: httpx.Headers,
    ) -> bytes | None:
        """Serialize the payload, encoding it first when the transform applies.

        Adds the encrypted-request marker to ``headers`` when it does.
        """
        if payload is None:
            return None

        if config.transform_enabled and method in ENCRYPTED_METHODS:
            if not self._transform.secure:
                self._log_debug(
                    f"WARNING: {type(self._transform).__name__} is not encryption; "
                    "configure an RSA public key for confidential payloads"
                )
            encoded = await self._transform.encode(payload)
            headers[ENCRYPTED_HEADER] = "true"
            body: Any = EncryptedEnvelope(encrypted_payload=encoded).to_wire()
        else:
            body = payload

        return serialize_payload(body).encode("utf-8")

    async def _send(
        self,
        method: str,
        url: str,
        *,
        headers: httpx.Headers,
        content: bytes | None,
        **transport_options: Any,
    ) -> httpx.Response:
        """Perform the HTTP request on the shared or a short-lived client."""
        if self._http_client is not None:
            return await self._http_client.request(
                method, url, headers=headers, content=content, **transport_options
            )
        async with create_http_client(timeout=self._timeout_ms / 1000) as client:
            return await client.request(
                method, url, headers=headers, content=content, **transport_options
            )

    def _to_envelope(
        self, method: str, endpoint: str, response: httpx.Response
    ) -> ResponseEnvelope[Any]:
        """Map a received response onto the envelope contract."""
        body = _parse_body(response)
        fields = body if isinstance(body, dict) else {}
        message = _as_text(fields.get("message"))

        if response.is_success:
            self._log_debug(f"{method} {endpoint} succeeded ({response.status_code})")
            return ResponseEnvelope.ok(body, message=message)

        error = _as_text(fields.get("error")) or f"HTTP {response.status_code}"
        self._log_debug(f"{method} {endpoint} failed with status {response.status_code}")
        return ResponseEnvelope.fail(error, message=message)

    # =========================================================================
    # Streaming
    # =========================================================================

    async def subscribe_events(self, endpoint: str = EVENTS_ENDPOINT) -> EventStreamHandle:
        """Open the server-push event stream and return its handle.

        The caller owns the handle and must close it, either with
        ``await handle.close()`` or by using it as an async context manager.

        Raises:
            TransportError: If the connection cannot be established.
            ProtocolError: If the server responds with a non-2xx status.
        """
        config = self._config
        handle = EventStreamHandle(
            f"{config.base_url}{endpoint}",
            headers=dict(config.default_headers),
            http_client=self._http_client,
            debug=self._debug,
        )
        return await handle.open()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def aclose(self) -> None:
        """Close the injected HTTP client, if one was provided.

        The dispatcher owns an injected client, so it must not be reused after
        this call.
        """
        if self._http_client is not None:
            await self._http_client.aclose()

    async def __aenter__(self) -> "Dispatcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _build_config(**fields: Any) -> ClientConfig:
    try:
        return ClientConfig(**fields)
    except ValueError as e:
        raise ConfigError(str(e)) from e


def _parse_body(response: httpx.Response) -> Any:
    """Decode a JSON body, substituting an empty object when it is not JSON."""
    try:
        return response.json()
    except ValueError:
        return {}


def _as_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def _describe(error: Exception, fallback: str) -> str:
    return str(error) or f"{fallback} ({type(error).__name__})"
