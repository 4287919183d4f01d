"""Reversible payload transforms applied before transmission.

A transform turns a JSON-serializable payload into an opaque string that the
dispatcher wraps as ``{"encryptedPayload": ...}``. Implementations are
swappable: the dispatcher only ever calls ``encode``.
"""

import base64
import binascii
import json
from abc import ABC, abstractmethod
from typing import Any

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from novel_sdk.exceptions import ConfigError, TransformError

# SHA-1 digest size, used by the backend's OAEP decryption
OAEP_HASH_BYTES = 20


def serialize_payload(payload: Any) -> str:
    """Serialize a payload to compact JSON.

    Raises:
        TransformError: If the payload is not JSON-serializable.
    """
    try:
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as e:
        raise TransformError(f"Payload is not JSON-serializable: {e}") from e


class PayloadTransform(ABC):
    """Capability for obscuring a request payload before it leaves the process."""

    #: False for encodings that provide no confidentiality.
    secure: bool = True

    @abstractmethod
    async def encode(self, payload: Any) -> str:
        """Encode a payload into an opaque string.

        Must not mutate ``payload`` and must be safe to call repeatedly.

        Raises:
            TransformError: If the payload cannot be encoded.
        """

    def decode(self, encoded: str) -> Any:
        """Reverse ``encode``. Optional; not used by the dispatcher."""
        raise TransformError(f"{type(self).__name__} does not support decoding")


class Base64Transform(PayloadTransform):
    """Placeholder transform: base64 of the JSON serialization.

    NOT SECURE. Anyone can reverse this encoding. It exists to exercise the
    encrypted request path end to end until a real key is configured; use
    RsaOaepTransform for actual confidentiality.
    """

    secure = False

    async def encode(self, payload: Any) -> str:
        serialized = serialize_payload(payload)
        return base64.b64encode(serialized.encode("utf-8")).decode("ascii")

    def decode(self, encoded: str) -> Any:
        try:
            raw = base64.b64decode(encoded, validate=True)
            return json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise TransformError(f"Cannot decode payload: {e}") from e


class RsaOaepTransform(PayloadTransform):
    """RSA-OAEP (SHA-1, MGF1-SHA-1) encryption, base64 encoded.

    Uses the same cipher parameters as the backend's decryption of
    ``X-Encrypted-Request`` bodies; the envelope key is ``encryptedPayload``.
    The payload must fit in a single OAEP block, so large records should be sent
    unencrypted or split by the caller.
    """

    def __init__(
        self,
        public_key: rsa.RSAPublicKey,
        private_key: rsa.RSAPrivateKey | None = None,
    ) -> None:
        self._public_key = public_key
        self._private_key = private_key

    @classmethod
    def from_pem(
        cls,
        public_pem: str | bytes,
        private_pem: str | bytes | None = None,
    ) -> "RsaOaepTransform":
        """Build a transform from PEM key material.

        Accepts both SubjectPublicKeyInfo ("PUBLIC KEY") and PKCS#1
        ("RSA PUBLIC KEY") public keys.

        Raises:
            ConfigError: If a key cannot be loaded or is not an RSA key.
        """
        try:
            public_key = serialization.load_pem_public_key(_as_bytes(public_pem))
            private_key = None
            if private_pem is not None:
                private_key = serialization.load_pem_private_key(
                    _as_bytes(private_pem), password=None
                )
        except (ValueError, TypeError) as e:
            raise ConfigError(f"Cannot load RSA key: {e}") from e

        if not isinstance(public_key, rsa.RSAPublicKey):
            raise ConfigError("Public key is not an RSA key")
        if private_key is not None and not isinstance(private_key, rsa.RSAPrivateKey):
            raise ConfigError("Private key is not an RSA key")
        return cls(public_key, private_key)

    @property
    def max_plaintext_bytes(self) -> int:
        return self._public_key.key_size // 8 - 2 * OAEP_HASH_BYTES - 2

    async def encode(self, payload: Any) -> str:
        plaintext = serialize_payload(payload).encode("utf-8")
        if len(plaintext) > self.max_plaintext_bytes:
            raise TransformError(
                f"Payload is {len(plaintext)} bytes, "
                f"RSA key allows at most {self.max_plaintext_bytes}"
            )
        ciphertext = self._public_key.encrypt(plaintext, _oaep())
        return base64.b64encode(ciphertext).decode("ascii")

    def decode(self, encoded: str) -> Any:
        if self._private_key is None:
            raise TransformError("Decoding requires a private key")
        try:
            ciphertext = base64.b64decode(encoded, validate=True)
            plaintext = self._private_key.decrypt(ciphertext, _oaep())
            return json.loads(plaintext.decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            raise TransformError(f"Cannot decode payload: {e}") from e


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA1()),
        algorithm=hashes.SHA1(),
        label=None,
    )


def _as_bytes(value: str | bytes) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else value
