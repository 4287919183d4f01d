"""Tests for payload transforms."""

import asyncio
import base64
import json

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from hypothesis import given
from hypothesis import strategies as st

from novel_sdk._internal.dispatch.transform import (
    Base64Transform,
    PayloadTransform,
    RsaOaepTransform,
    serialize_payload,
)
from novel_sdk.exceptions import ConfigError, TransformError

json_values = st.recursive(
    st.none() | st.booleans() | st.integers() | st.text(),
    lambda children: st.lists(children, max_size=4)
    | st.dictionaries(st.text(max_size=8), children, max_size=4),
    max_leaves=12,
)


@pytest.fixture(scope="module")
def private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="module")
def public_pem(private_key) -> bytes:
    return private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


@pytest.fixture(scope="module")
def private_pem(private_key) -> bytes:
    return private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    )


class TestSerializePayload:
    """Tests for serialize_payload."""

    def test_compact_json(self):
        """Should serialize without whitespace, like JSON.stringify."""
        assert serialize_payload({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'

    def test_keeps_unicode(self):
        """Should not escape non-ASCII text."""
        assert serialize_payload({"author": "鲁迅"}) == '{"author":"鲁迅"}'

    def test_rejects_unserializable(self):
        """Should raise TransformError for non-JSON values."""
        with pytest.raises(TransformError):
            serialize_payload({"when": object()})

    def test_rejects_nan(self):
        """Should raise TransformError for NaN, which is not valid JSON."""
        with pytest.raises(TransformError):
            serialize_payload({"score": float("nan")})


class TestBase64Transform:
    """Tests for the placeholder transform."""

    def test_is_not_secure(self):
        """Placeholder must declare itself non-secure."""
        assert Base64Transform.secure is False
        assert issubclass(Base64Transform, PayloadTransform)

    @pytest.mark.asyncio
    async def test_encode_is_base64_of_json(self):
        """Encoded value should be base64 of the compact JSON."""
        encoded = await Base64Transform().encode({"id": "n1"})
        assert base64.b64decode(encoded) == b'{"id":"n1"}'

    @pytest.mark.asyncio
    async def test_does_not_mutate_input(self):
        """Should leave the payload untouched."""
        payload = {"id": "n1", "tags": ["a"]}
        await Base64Transform().encode(payload)
        assert payload == {"id": "n1", "tags": ["a"]}

    @pytest.mark.asyncio
    async def test_repeatable(self):
        """Encoding the same payload twice gives the same result."""
        transform = Base64Transform()
        assert await transform.encode({"x": 1}) == await transform.encode({"x": 1})

    @pytest.mark.asyncio
    async def test_unserializable_raises(self):
        """Should raise TransformError for unserializable payloads."""
        with pytest.raises(TransformError):
            await Base64Transform().encode({"bad": {1, 2}})

    def test_decode_rejects_garbage(self):
        """Should raise TransformError for input that is not base64 JSON."""
        with pytest.raises(TransformError):
            Base64Transform().decode("%%%not-base64%%%")

    @given(json_values)
    def test_round_trip(self, payload):
        """decode(encode(p)) should equal p for any JSON value."""
        transform = Base64Transform()
        encoded = asyncio.run(transform.encode(payload))
        assert transform.decode(encoded) == json.loads(serialize_payload(payload))


class TestRsaOaepTransform:
    """Tests for the RSA-OAEP transform."""

    @pytest.mark.asyncio
    async def test_round_trip(self, public_pem, private_pem):
        """Private key should decrypt what the public key encrypted."""
        transform = RsaOaepTransform.from_pem(public_pem, private_pem)
        payload = {"userId": "u1", "credit": 100}
        encoded = await transform.encode(payload)
        assert transform.decode(encoded) == payload

    @pytest.mark.asyncio
    async def test_ciphertext_is_randomized(self, public_pem):
        """OAEP padding should give different ciphertexts for the same payload."""
        transform = RsaOaepTransform.from_pem(public_pem)
        assert await transform.encode({"x": 1}) != await transform.encode({"x": 1})

    @pytest.mark.asyncio
    async def test_ciphertext_is_one_block(self, public_pem):
        """Ciphertext should be a single key-sized block, base64 encoded."""
        transform = RsaOaepTransform.from_pem(public_pem)
        encoded = await transform.encode({"x": 1})
        assert len(base64.b64decode(encoded)) == 256

    def test_accepts_str_pem(self, public_pem):
        """Should accept PEM text as well as bytes."""
        transform = RsaOaepTransform.from_pem(public_pem.decode("ascii"))
        assert transform.secure is True

    def test_accepts_pkcs1_public_key(self, private_key):
        """Should accept an "RSA PUBLIC KEY" PEM."""
        pem = private_key.public_key().public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.PKCS1,
        )
        transform = RsaOaepTransform.from_pem(pem)
        assert transform.max_plaintext_bytes == 214

    @pytest.mark.asyncio
    async def test_payload_too_large(self, public_pem):
        """Should raise TransformError when payload exceeds one OAEP block."""
        transform = RsaOaepTransform.from_pem(public_pem)
        with pytest.raises(TransformError) as exc_info:
            await transform.encode({"storyOutline": "x" * 500})
        assert "at most 214" in str(exc_info.value)

    def test_decode_without_private_key(self, public_pem):
        """Should raise TransformError when no private key is loaded."""
        transform = RsaOaepTransform.from_pem(public_pem)
        with pytest.raises(TransformError):
            transform.decode("AAAA")

    def test_invalid_pem(self):
        """Should raise ConfigError for unusable key material."""
        with pytest.raises(ConfigError):
            RsaOaepTransform.from_pem("-----BEGIN PUBLIC KEY-----\nnope\n-----END PUBLIC KEY-----")
