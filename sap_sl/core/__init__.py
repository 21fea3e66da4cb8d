"""
sap_sl.core - Core connectivity and authentication
==================================================

- ServiceLayerConfig: Connection configuration
- ServiceLayerSession: Login, cookie session and expiry tracking
- ConnectionContext: Environment-driven connection manager
- errors: Error taxonomy and the CRUD error normalizer

"""

from sap_sl.core.errors import (
    AuthenticationError,
    NoResponseError,
    NormalizedError,
    ResponseError,
    ServiceLayerError,
    SetupError,
    normalize_error,
)
from sap_sl.core.session import (
    ServiceLayerConfig,
    ServiceLayerSession,
    SessionState,
)

from sap_sl.core.connection import ConnectionContext

__all__ = [
    "ServiceLayerConfig",
    "ServiceLayerSession",
    "SessionState",
    "ConnectionContext",
    "ServiceLayerError",
    "AuthenticationError",
    "ResponseError",
    "NoResponseError",
    "SetupError",
    "NormalizedError",
    "normalize_error",
]
