"""
sap_sl.core.errors - Service Layer error taxonomy and normalization
===================================================================

Exceptions raised by the session and the listing operations, plus the
normalizer used by the CRUD operations to turn any failure into a
:class:`NormalizedError` value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
import logging

import requests


logger = logging.getLogger("sap_sl.errors")

REQUEST_ERROR_MESSAGE = "ERROR REQUEST"


class ServiceLayerError(RuntimeError):
    """Base class for all errors raised by sap_sl."""


class AuthenticationError(ServiceLayerError):
    """
    Raised when the ``Login`` call fails.

    The underlying transport error is available as ``__cause__``.
    """


class SetupError(ServiceLayerError):
    """Raised when a request could not be built or sent (bad URL, no config, ...)."""


class NoResponseError(ServiceLayerError):
    """
    Raised when a request was sent but no response arrived.

    Attributes
    ----------
    url : str
        The URL that was called
    """

    def __init__(self, url: str, reason: str = "") -> None:
        msg = f"No response from Service Layer for {url}"
        super().__init__(f"{msg}: {reason}" if reason else msg)
        self.url = url
        self.reason = reason


class ResponseError(ServiceLayerError):
    """
    Raised when the Service Layer answers with an error status.

    Attributes
    ----------
    status : int
        HTTP status code
    body : Any
        Decoded response body (JSON payload or text)
    url : str
        The URL that was called
    headers : dict
        Response headers
    """

    def __init__(
        self,
        status: int,
        body: Any,
        url: str,
        headers: Optional[Dict[str, str]] = None,
    ):
        snippet = summarize_error_body(body)[:1200]
        super().__init__(f"Service Layer error {status} for {url}: {snippet}")
        self.status = status
        self.body = body
        self.url = url
        self.headers = headers or {}


def summarize_error_body(body: Any) -> str:
    """
    Condense a Service Layer error payload into one line.

    The Service Layer answers errors with
    ``{"error": {"code": ..., "message": {"lang": ..., "value": ...}}}``;
    anything else is rendered as text.
    """
    if not isinstance(body, dict):
        return "" if body is None else str(body)
    err = body.get("error")
    if not isinstance(err, dict):
        return str(body)

    code = err.get("code")
    message = None
    if isinstance(err.get("message"), dict):
        message = err["message"].get("value")
    elif isinstance(err.get("message"), str):
        message = err.get("message")

    parts = []
    if code is not None:
        parts.append(f"code={code}")
    if message:
        parts.append(f"message={message}")
    return " | ".join(parts) or str(body)


@dataclass(frozen=True)
class NormalizedError:
    """
    Failure returned, not raised, by get/put/patch/post.

    Examples
    --------
    >>> result = sl.get("Orders(10)")
    >>> if isinstance(result, NormalizedError):
    ...     print(result.message)
    """
    message: Any
    error: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error, "message": self.message}


def _decode_response(r: requests.Response) -> Any:
    try:
        return r.json()
    except ValueError:
        return r.text


def normalize_error(exc: BaseException) -> NormalizedError:
    """
    Turn any failure into a :class:`NormalizedError`.

    Priority order: a received response wins, then a sent-but-unanswered
    request, then everything else.
    """
    if isinstance(exc, AuthenticationError) and exc.__cause__ is not None:
        exc = exc.__cause__

    if isinstance(exc, ResponseError):
        logger.error("ERROR RESPONSE SERVICE LAYER: %s %s", exc.status, exc.url)
        logger.error("%s", exc.body)
        logger.error("%s", exc.headers)
        return NormalizedError(message=exc.body)

    response = getattr(exc, "response", None)
    if isinstance(exc, requests.RequestException) and response is not None:
        body = _decode_response(response)
        logger.error("ERROR RESPONSE SERVICE LAYER: %s %s", response.status_code, response.url)
        logger.error("%s", body)
        logger.error("%s", dict(response.headers))
        return NormalizedError(message=body)

    if isinstance(exc, (NoResponseError, requests.ConnectionError, requests.Timeout)):
        logger.error(REQUEST_ERROR_MESSAGE)
        return NormalizedError(message=REQUEST_ERROR_MESSAGE)

    logger.error("Error %s", exc)
    return NormalizedError(message=str(exc))
