"""Novel SDK for Python.

Async client for the novel resource API: novels, user credits, health and the
chaincode event stream.

Public API:
    NovelClient - Resource methods returning ResponseEnvelope values
    Dispatcher - Low-level request dispatch shared by all resource methods
    Query - Load/error/data state for UI bindings
"""

from novel_sdk._internal.dispatch import (
    Base64Transform,
    ClientConfig,
    Dispatcher,
    PayloadTransform,
    ResponseEnvelope,
    RsaOaepTransform,
)
from novel_sdk._internal.events import EventStreamHandle, StreamEvent
from novel_sdk._version import __version__
from novel_sdk.client import (
    NovelClient,
    create_api_client,
    create_configurable_api_client,
    create_secure_api_client,
)
from novel_sdk.models import HealthStatus, MutationResult, Novel, UserCredit
from novel_sdk.query import Query, QueryState

__all__ = [
    "__version__",
    "NovelClient",
    "create_api_client",
    "create_secure_api_client",
    "create_configurable_api_client",
    "Dispatcher",
    "ClientConfig",
    "ResponseEnvelope",
    "PayloadTransform",
    "Base64Transform",
    "RsaOaepTransform",
    "EventStreamHandle",
    "StreamEvent",
    "Novel",
    "UserCredit",
    "MutationResult",
    "HealthStatus",
    "Query",
    "QueryState",
]
