"""
sap_sl.odata.service - Service Layer resource client
====================================================

CRUD and paging client for the Service Layer. Every call makes sure the
session is fresh first.

get/put/patch/post never raise: failures come back as NormalizedError.
query/find/iterate let errors propagate.
"""

from __future__ import annotations

from typing import Any, Dict, Generator, List, Optional, Sequence, Union
from urllib.parse import quote
import logging

import requests

from sap_sl.core.errors import NormalizedError, ServiceLayerError, normalize_error
from sap_sl.core.session import ServiceLayerConfig, ServiceLayerSession, SessionState


NEXT_LINK = "@odata.nextLink"

_QUERY_SAFE = "$,'()/:=@!*;+"


def escape_odata_literal(value: str) -> str:
    """
    Escape a string value for use in OData $filter expressions.

    Examples
    --------
    >>> escape_odata_literal("O'Brien")
    "O''Brien"
    """
    return value.replace("'", "''")


def _join_csv(items: Sequence[str]) -> str:
    return ",".join([s.strip() for s in items if s and s.strip()])


def build_query(
    entity_set: str,
    *,
    fields: Optional[List[str]] = None,
    filter_expr: Optional[str] = None,
    orderby: Optional[str] = None,
    expand: Optional[str] = None,
    top: Optional[int] = None,
    skip: Optional[int] = None,
    extra_params: Optional[Dict[str, str]] = None,
) -> str:
    """
    Build a Service Layer query path for :meth:`ServiceLayer.find`.

    Parameters
    ----------
    entity_set : str
        Entity collection, e.g. "Orders"
    fields : list of str, optional
        Fields for $select
    filter_expr : str, optional
        Raw $filter expression
    orderby : str, optional
        $orderby expression
    expand : str, optional
        $expand expression
    top : int, optional
        $top
    skip : int, optional
        $skip
    extra_params : dict, optional
        Additional query options

    Returns
    -------
    str
        e.g. "Orders?$select=DocEntry,DocNum&$top=20"

    Examples
    --------
    >>> build_query("Orders", fields=["DocEntry", "DocNum"], top=20)
    'Orders?$select=DocEntry,DocNum&$top=20'
    """
    params: Dict[str, str] = {}
    if extra_params:
        params.update(extra_params)

    if fields:
        joined = _join_csv(fields)
        if joined:
            params["$select"] = joined
    if filter_expr:
        params["$filter"] = filter_expr
    if orderby:
        params["$orderby"] = orderby
    if expand:
        params["$expand"] = expand
    if top is not None:
        params["$top"] = str(int(top))
    if skip is not None:
        params["$skip"] = str(int(skip))

    if not params:
        return entity_set
    qs = "&".join(f"{k}={quote(str(v), safe=_QUERY_SAFE)}" for k, v in params.items())
    return f"{entity_set}?{qs}"


def _check_max_pages(max_pages: Optional[int]) -> None:
    if max_pages is not None and max_pages < 1:
        raise ValueError(f"max_pages must be at least 1, got {max_pages}")


class ServiceLayer:
    """
    Session-aware Service Layer client.

    Parameters
    ----------
    cfg : ServiceLayerConfig, optional
        Connection configuration; may also be passed to :meth:`create_session`
    session : ServiceLayerSession, optional
        Pre-built session manager (e.g. with a custom clock)

    Examples
    --------
    >>> sl = ServiceLayer()
    >>> sl.create_session(ServiceLayerConfig(
    ...     host="https://b1.example.com",
    ...     company="SBODEMOUS",
    ...     username="manager",
    ...     password="secret",
    ... ))
    >>> order = sl.get("Orders(10)")
    >>> if isinstance(order, NormalizedError):
    ...     print(order.message)
    >>> partners = sl.find("BusinessPartners?$select=CardCode,CardName")
    """

    def __init__(
        self,
        cfg: Optional[ServiceLayerConfig] = None,
        *,
        session: Optional[ServiceLayerSession] = None,
    ) -> None:
        if session is not None and cfg is not None:
            raise ValueError("Pass either cfg or session, not both")
        self.sess = session if session is not None else ServiceLayerSession(cfg)
        self.logger = logging.getLogger("sap_sl.service")

    def close(self) -> None:
        self.sess.close()

    def __enter__(self) -> "ServiceLayer":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---------------- session ----------------

    def create_session(
        self,
        cfg: Optional[ServiceLayerConfig] = None,
        **overrides: Any,
    ) -> SessionState:
        """
        Log in to the Service Layer.

        Raises
        ------
        AuthenticationError
            If the login call fails
        """
        return self.sess.create_session(cfg, **overrides)

    def refresh_session(self) -> bool:
        """Log in again if the session has expired."""
        return self.sess.refresh_session()

    # ---------------- listing ----------------

    def query(self, path: str) -> Any:
        """
        GET ``path`` and return the decoded body.

        ``path`` may be a query like "Items?$top=5" or a next link.
        Errors propagate.
        """
        self.sess.refresh_session()
        return self.sess.request("GET", path)

    def iterate(
        self,
        query: str,
        *,
        max_pages: Optional[int] = None,
    ) -> Generator[List[Dict[str, Any]], None, None]:
        """
        Yield the ``value`` list of each page, following ``@odata.nextLink``.

        Pages are fetched one after the other. Without ``max_pages`` the
        loop only ends when a page carries no next link.

        Parameters
        ----------
        query : str
            Initial query path
        max_pages : int, optional
            Stop after this many pages even if a next link is present

        Raises
        ------
        ValueError
            If ``max_pages`` is less than 1
        """
        _check_max_pages(max_pages)
        path = query
        fetched = 0
        while True:
            page = self.query(path)
            if not isinstance(page, dict):
                raise ServiceLayerError(f"Expected a JSON object from {path}, got {type(page).__name__}")
            fetched += 1
            yield list(page.get("value") or [])

            next_link = page.get(NEXT_LINK)
            if not next_link:
                return
            if max_pages is not None and fetched >= max_pages:
                self.logger.warning("Stopped paging %s after %s pages; next link %s", query, fetched, next_link)
                return
            path = next_link

    def find(self, query: str, *, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        Read all pages of a query into a single list.

        Parameters
        ----------
        query : str
            Query path, e.g. "ProductionOrders?$select=AbsoluteEntry,DocumentNumber"
        max_pages : int, optional
            Page bound; unbounded by default

        Returns
        -------
        list of dict
            Items of every page, in server order
        """
        _check_max_pages(max_pages)
        self.sess.refresh_session()
        out: List[Dict[str, Any]] = []
        for page in self.iterate(query, max_pages=max_pages):
            out.extend(page)
        return out

    # ---------------- CRUD ----------------

    def _call(self, method: str, path: str, body: Optional[Any] = None) -> Union[Any, NormalizedError]:
        try:
            self.sess.refresh_session()
            return self.sess.request(method, path, body)
        except (ServiceLayerError, requests.RequestException) as exc:
            return normalize_error(exc)

    def get(self, path: str) -> Union[Any, NormalizedError]:
        """Get a resource, e.g. "Orders(10)"."""
        return self._call("GET", path)

    def put(self, path: str, body: Any) -> Union[Any, NormalizedError]:
        """Replace a resource."""
        return self._call("PUT", path, body)

    def patch(self, path: str, body: Any) -> Union[Any, NormalizedError]:
        """Update a resource partially."""
        return self._call("PATCH", path, body)

    def post(self, path: str, body: Any) -> Union[Any, NormalizedError]:
        """Create a resource."""
        return self._call("POST", path, body)
