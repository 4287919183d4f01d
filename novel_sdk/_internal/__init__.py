"""Internal modules for Novel SDK.

These are not intended for direct import in application code; the public
names are re-exported from novel_sdk.

Modules:
    dispatch - Request dispatcher, envelopes and payload transforms
    events - Server-sent event stream handle
    http - Shared HTTP client configuration
"""
