"""
SAP Business One Service Layer Python client (sap_sl)
=====================================================

A session-aware client for the SAP Business One Service Layer: cookie
login with transparent renewal, CRUD calls, and ``@odata.nextLink``
paging.

Usage
-----
>>> from sap_sl import ServiceLayer, ServiceLayerConfig, NormalizedError
>>>
>>> sl = ServiceLayer()
>>> sl.create_session(ServiceLayerConfig(
...     host="https://b1.example.com",
...     company="SBODEMOUS",
...     username="manager",
...     password="secret",
... ))
>>> items = sl.find("Items?$select=ItemCode,ItemName")
>>> order = sl.get("Orders(10)")
>>> if isinstance(order, NormalizedError):
...     print(order.message)

Subpackages
-----------
- sap_sl.core: Configuration, session lifecycle, and errors
- sap_sl.odata: Resource client and query building

"""

__version__ = "0.1.0"

# Core exports - available at package root
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

# Convenience re-exports
from sap_sl.odata import ServiceLayer, build_query, escape_odata_literal

__all__ = [
    # Version
    "__version__",
    # Core
    "ServiceLayerConfig",
    "ServiceLayerSession",
    "SessionState",
    "ConnectionContext",
    # Errors
    "ServiceLayerError",
    "AuthenticationError",
    "ResponseError",
    "NoResponseError",
    "SetupError",
    "NormalizedError",
    "normalize_error",
    # Client
    "ServiceLayer",
    "build_query",
    "escape_odata_literal",
]
