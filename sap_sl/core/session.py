"""
sap_sl.core.session - Service Layer session management
======================================================

Low-level session handling for the SAP Business One Service Layer:
- Cookie based login (``B1SESSION``) against ``/b1s/<version>/Login``
- Session expiry tracking and transparent re-login
- Translation of ``requests`` failures into sap_sl errors
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Union
from urllib.parse import urljoin
import logging
import time
import warnings

import requests
from requests import Response, Session
from urllib3.exceptions import InsecureRequestWarning

from sap_sl.core.errors import (
    AuthenticationError,
    NoResponseError,
    ResponseError,
    ServiceLayerError,
    SetupError,
)


DEFAULT_PORT = 50001
DEFAULT_API_VERSION = "v2"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ServiceLayerConfig:
    """
    Connection configuration for the Service Layer.

    Parameters
    ----------
    host : str
        Scheme and host, e.g. "https://b1.example.com"
    company : str
        Company database (``CompanyDB``)
    username : str
        Service Layer user
    password : str
        Service Layer password
    port : int, optional
        Service Layer port (default: 50001). ``None`` leaves the port out
        of the base URL.
    api_version : str
        Service Layer API version (default: "v2")
    debug : bool
        Log session diagnostics at INFO level (default: False)
    verify : bool or str
        TLS verification (default: False, the Service Layer usually runs
        with a self-signed certificate). A CA bundle path is accepted.
    timeout : float
        Request timeout in seconds (default: 60.0)
    user_agent : str
        User-Agent header value

    Examples
    --------
    >>> cfg = ServiceLayerConfig(
    ...     host="https://b1.example.com",
    ...     company="SBODEMOUS",
    ...     username="manager",
    ...     password="secret",
    ... )
    >>> cfg.base_url
    'https://b1.example.com:50001/b1s/v2/'
    """
    host: str
    company: str
    username: str
    password: str
    port: Optional[int] = DEFAULT_PORT
    api_version: str = DEFAULT_API_VERSION
    debug: bool = False
    verify: Union[bool, str] = False
    timeout: float = 60.0
    user_agent: str = "sap-sl/0.1"

    def normalized(self) -> "ServiceLayerConfig":
        """Return a copy with one trailing slash stripped from ``host``."""
        if self.host.endswith("/"):
            return replace(self, host=self.host[:-1])
        return self

    def merge(self, **overrides: Any) -> "ServiceLayerConfig":
        """Return a new config with ``overrides`` applied over this one."""
        return replace(self, **overrides)

    @property
    def base_url(self) -> str:
        host = self.normalized().host
        if self.port:
            return f"{host}:{self.port}/b1s/{self.api_version}/"
        return f"{host}/b1s/{self.api_version}/"

    def masked(self) -> Dict[str, Any]:
        """Config as a dict with the password hidden, for logging."""
        d = asdict(self)
        d["password"] = "***"
        return d


@dataclass(frozen=True)
class SessionState:
    """
    One authenticated Service Layer session.

    ``expires_at`` is one minute short of the server timeout so the session
    is renewed before the server drops it.
    """
    session_id: str
    timeout_minutes: int
    started_at: datetime
    expires_at: datetime

    @classmethod
    def start(cls, session_id: str, timeout_minutes: int, now: datetime) -> "SessionState":
        return cls(
            session_id=session_id,
            timeout_minutes=timeout_minutes,
            started_at=now,
            expires_at=now + timedelta(minutes=timeout_minutes - 1),
        )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class ServiceLayerSession:
    """
    Authenticated HTTP session for the Service Layer.

    Owns the configuration, the ``requests.Session`` carrying the
    ``B1SESSION`` cookie, and the expiry clock. Every login builds a new
    ``requests.Session``; nothing is shared between instances.

    Parameters
    ----------
    cfg : ServiceLayerConfig, optional
        Connection configuration. May also be given to :meth:`create_session`.
    clock : callable
        Returns the current time as an aware datetime.

    Examples
    --------
    >>> with ServiceLayerSession(cfg) as sess:
    ...     sess.create_session()
    ...     sess.request("GET", "Orders(10)")
    """

    def __init__(
        self,
        cfg: Optional[ServiceLayerConfig] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.cfg = cfg.normalized() if cfg is not None else None
        self.clock = clock
        self.logger = logging.getLogger("sap_sl.session")

        self.session: Optional[Session] = None
        self.base: Optional[str] = None
        self.state: Optional[SessionState] = None

    def close(self) -> None:
        """Close the underlying HTTP session."""
        if self.session is not None:
            self.session.close()
        self.session = None
        self.state = None

    def __enter__(self) -> "ServiceLayerSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def authenticated(self) -> bool:
        return self.state is not None

    # ---------------- login/refresh ----------------

    def _build_session(self, cfg: ServiceLayerConfig) -> Session:
        sess = requests.Session()
        sess.verify = cfg.verify
        sess.headers.update({
            "Accept": "application/json",
            "User-Agent": cfg.user_agent,
        })
        return sess

    def create_session(
        self,
        cfg: Optional[ServiceLayerConfig] = None,
        **overrides: Any,
    ) -> SessionState:
        """
        Log in and replace the current session.

        Parameters
        ----------
        cfg : ServiceLayerConfig, optional
            New configuration. Defaults to the last-known one.
        **overrides
            Config fields to merge over ``cfg``, e.g. ``company="SBODEMOGB"``.

        Returns
        -------
        SessionState
            The new session

        Raises
        ------
        AuthenticationError
            If the login call fails or its answer is unusable
        """
        base_cfg = cfg if cfg is not None else self.cfg
        if base_cfg is None:
            raise SetupError("No Service Layer configuration; pass a ServiceLayerConfig")
        new_cfg = base_cfg.merge(**overrides).normalized()

        if new_cfg.debug:
            self.logger.info("Service Layer config: %s", new_cfg.masked())

        base = new_cfg.base_url
        sess = self._build_session(new_cfg)
        login_url = urljoin(base, "Login")
        try:
            r = self._send(sess, new_cfg, "POST", login_url, {
                "CompanyDB": new_cfg.company,
                "Password": new_cfg.password,
                "UserName": new_cfg.username,
            })
            data = r.json()
            session_id = str(data["SessionId"])
            timeout_minutes = int(data["SessionTimeout"])
        except ServiceLayerError as exc:
            sess.close()
            raise AuthenticationError(
                f"Login as {new_cfg.username} to {new_cfg.company} at {base} failed: {exc}"
            ) from exc
        except (ValueError, KeyError, TypeError) as exc:
            sess.close()
            raise AuthenticationError(f"Unexpected Login response from {base}: {exc!r}") from exc

        cookie = f"B1SESSION={session_id};CompanyDB={new_cfg.company}"
        sess.headers["Cookie"] = cookie
        state = SessionState.start(session_id, timeout_minutes, self.clock())

        if self.session is not None:
            self.session.close()
        self.cfg = new_cfg
        self.base = base
        self.session = sess
        self.state = state

        if new_cfg.debug:
            self.logger.info("Cookie: %s", cookie)
            self.logger.info(
                "Session started at %s, expires at %s (timeout %s min)",
                state.started_at.isoformat(),
                state.expires_at.isoformat(),
                state.timeout_minutes,
            )
        return state

    def refresh_session(self) -> bool:
        """
        Log in again if there is no session yet or it has expired.

        Returns
        -------
        bool
            True if a login was performed
        """
        if self.state is None:
            self.create_session()
            return True
        if self.state.is_expired(self.clock()):
            self.logger.debug("Session expired at %s, logging in again", self.state.expires_at)
            self.create_session()
            return True
        return False

    # ---------------- helpers ----------------

    def _url(self, path: str) -> str:
        # absolute next links and "/b1s/v2/..." paths resolve against the host
        return urljoin(self.base or "", path)

    def _decode(self, r: Response) -> Any:
        if r.status_code == 204 or not r.content:
            return None
        ctype = (r.headers.get("Content-Type") or "").lower()
        if "json" in ctype:
            try:
                return r.json()
            except ValueError:
                pass
        return r.text

    def _raise_for_error(self, r: Response, url: str) -> None:
        if r.status_code >= 400:
            raise ResponseError(r.status_code, self._decode(r), url, dict(r.headers))

    def _send(
        self,
        sess: Session,
        cfg: ServiceLayerConfig,
        method: str,
        url: str,
        body: Optional[Any] = None,
    ) -> Response:
        t0 = time.perf_counter()
        try:
            with warnings.catch_warnings():
                # self-signed certificates are expected when verification is off
                if cfg.verify is False:
                    warnings.simplefilter("ignore", InsecureRequestWarning)
                r = sess.request(
                    method=method,
                    url=url,
                    json=body,
                    timeout=cfg.timeout,
                    verify=cfg.verify,
                )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise NoResponseError(url, str(exc)) from exc
        except requests.RequestException as exc:
            raise SetupError(f"Could not send {method.upper()} {url}: {exc}") from exc
        except (TypeError, ValueError) as exc:
            # body not JSON serializable (date, Decimal, set, ...)
            raise SetupError(f"Could not send {method.upper()} {url}: {exc}") from exc
        dt = (time.perf_counter() - t0) * 1000.0
        self.logger.debug("%s %s %s %sms", method.upper(), url, r.status_code, round(dt, 1))
        self._raise_for_error(r, url)
        return r

    # ---------------- public ops ----------------

    def request(self, method: str, path: str, body: Optional[Any] = None) -> Any:
        """
        Send one request on the current session and return the decoded body.

        Does not refresh the session; callers do that first.

        Parameters
        ----------
        method : str
            HTTP verb
        path : str
            Resource path relative to the base URL, or an absolute URL/path
        body : any, optional
            JSON payload

        Raises
        ------
        ResponseError, NoResponseError, SetupError
        """
        if self.session is None or self.cfg is None:
            raise SetupError("No active Service Layer session; call create_session() first")
        r = self._send(self.session, self.cfg, method, self._url(path), body)
        return self._decode(r)
