"""Request dispatch for the novel resource API.

The dispatcher is the single path every resource call goes through. Resource
methods live on novel_sdk.client.NovelClient.
"""

from novel_sdk._internal.dispatch.client import Dispatcher
from novel_sdk._internal.dispatch.models import (
    ENCRYPTED_HEADER,
    ClientConfig,
    EncryptedEnvelope,
    ResponseEnvelope,
)
from novel_sdk._internal.dispatch.transform import (
    Base64Transform,
    PayloadTransform,
    RsaOaepTransform,
)

__all__ = [
    "Dispatcher",
    "ClientConfig",
    "ResponseEnvelope",
    "EncryptedEnvelope",
    "ENCRYPTED_HEADER",
    "PayloadTransform",
    "Base64Transform",
    "RsaOaepTransform",
]
