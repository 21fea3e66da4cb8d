"""
sap_sl.odata - Service Layer resource access
============================================

- ServiceLayer: CRUD operations and @odata.nextLink paging
- build_query: Query path construction ($select, $filter, ...)

"""

from sap_sl.odata.service import ServiceLayer, build_query, escape_odata_literal

__all__ = [
    "ServiceLayer",
    "build_query",
    "escape_odata_literal",
]
