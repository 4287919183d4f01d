"""Public exceptions for the Novel SDK."""


class NovelSDKError(Exception):
    """Base exception for all Novel SDK errors."""


class TransportError(NovelSDKError):
    """Connection, DNS or timeout failure before any response was received."""


class ProtocolError(NovelSDKError):
    """A response was received but its status did not indicate success."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransformError(NovelSDKError):
    """Payload could not be encoded for transmission."""


class ParseError(NovelSDKError):
    """Response body is not valid JSON."""


class ConfigError(NovelSDKError):
    """Configuration error (invalid base URL, unusable key material)."""
