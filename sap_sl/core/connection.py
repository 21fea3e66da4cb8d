"""
sap_sl.core.connection - High-level connection management
=========================================================

Provides a ConnectionContext that resolves settings from arguments or
``SL_*`` environment variables (optionally seeded from a ``.env`` file) and
hands out a ready ServiceLayer client.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Optional, Union

from dotenv import load_dotenv

from sap_sl.core.session import DEFAULT_API_VERSION, DEFAULT_PORT, ServiceLayerConfig

if TYPE_CHECKING:
    from sap_sl.odata.service import ServiceLayer


def _env_flag(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def _load_env_file(env_file: Optional[Union[str, Path]]) -> None:
    # variables already set in the environment are not overridden
    env_path = Path(env_file) if env_file is not None else Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def _env_port() -> Optional[int]:
    raw = os.environ.get("SL_PORT")
    if raw is None:
        return DEFAULT_PORT
    raw = raw.strip()
    return int(raw) if raw else None


class ConnectionContext:
    """
    High-level connection manager for the Service Layer.

    Explicit arguments win over environment variables.

    Parameters
    ----------
    host : str, optional
        Service Layer host. Falls back to SL_HOST env var.
    company : str, optional
        Company database. Falls back to SL_COMPANY env var.
    username : str, optional
        Falls back to SL_USER env var.
    password : str, optional
        Falls back to SL_PASS env var.
    port : int, optional
        Falls back to SL_PORT env var (empty means no port), then 50001.
    api_version : str, optional
        Falls back to SL_VERSION env var, then "v2".
    debug : bool, optional
        Falls back to SL_DEBUG env var.
    verify : bool or str, optional
        TLS verification. Falls back to SL_VERIFY_TLS env var (default off).
    timeout : float, optional
        Falls back to SL_TIMEOUT env var, then 60 seconds.
    env_file : str or Path, optional
        ``.env`` file loaded before reading the environment
        (default: ``.env`` in the working directory, if present).

    Examples
    --------
    >>> # Using environment variables
    >>> with ConnectionContext() as conn:
    ...     orders = conn.client.find("Orders?$select=DocEntry,DocNum")
    """

    def __init__(
        self,
        host: Optional[str] = None,
        company: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        port: Optional[int] = None,
        api_version: Optional[str] = None,
        debug: Optional[bool] = None,
        verify: Optional[Union[bool, str]] = None,
        timeout: Optional[float] = None,
        env_file: Optional[Union[str, Path]] = None,
    ) -> None:
        _load_env_file(env_file)

        host = host or os.environ.get("SL_HOST", "")
        company = company or os.environ.get("SL_COMPANY", "")
        username = username or os.environ.get("SL_USER", "")
        password = password or os.environ.get("SL_PASS", "")

        if not host:
            raise ValueError(
                "Missing host. Set SL_HOST environment variable or pass host parameter."
            )
        if not company:
            raise ValueError(
                "Missing company. Set SL_COMPANY environment variable or pass company parameter."
            )
        if not (username and password):
            raise ValueError(
                "Missing credentials. Set SL_USER/SL_PASS environment variables, "
                "or pass username/password parameters."
            )

        self._cfg = ServiceLayerConfig(
            host=host,
            company=company,
            username=username,
            password=password,
            port=port if port is not None else _env_port(),
            api_version=api_version or os.environ.get("SL_VERSION", DEFAULT_API_VERSION),
            debug=debug if debug is not None else _env_flag("SL_DEBUG", "false"),
            verify=verify if verify is not None else _env_flag("SL_VERIFY_TLS", "false"),
            timeout=timeout if timeout is not None else float(os.environ.get("SL_TIMEOUT", "60")),
        ).normalized()

        self._client: Optional["ServiceLayer"] = None

    @property
    def config(self) -> ServiceLayerConfig:
        """The resolved configuration."""
        return self._cfg

    @property
    def client(self) -> "ServiceLayer":
        """Get or create the ServiceLayer client. Login happens on first use."""
        if self._client is None:
            from sap_sl.odata.service import ServiceLayer
            self._client = ServiceLayer(self._cfg)
        return self._client

    def close(self) -> None:
        """Close the connection."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "ConnectionContext":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
