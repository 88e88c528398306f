"""
Configuration for splist.

Two layers:
- ListOptions: per-list options captured once when a record type is created
- SiteConfig: where the lists live and how the HTTP transport talks to them

SiteConfig can be read from the environment:

    SPLIST_WEB_URL       Web (or app web) URL, required
    SPLIST_HOST_WEB_URL  Host web URL for lists created with in_host_web=True
    SPLIST_TIMEOUT       Request timeout in seconds (default 30)
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from splist.errors import ConfigError

WEB_URL_VAR = "SPLIST_WEB_URL"
HOST_WEB_URL_VAR = "SPLIST_HOST_WEB_URL"
TIMEOUT_VAR = "SPLIST_TIMEOUT"

_DEFAULT_TIMEOUT = 30.0


class ListOptions(BaseModel):
    """
    Options for a single list record type.

    Attributes:
        read_only_fields: Extra field names excluded from outbound payloads,
            added to the built-in server-managed fields
        default_query: Query applied to every query/create call, overridable
            per call (also accepted as ``query``)
        in_host_web: Whether the list lives in the host web rather than the
            app web
    """

    read_only_fields: tuple[str, ...] = ()
    default_query: dict[str, Any] = Field(default_factory=dict, alias="query")
    in_host_web: bool = False

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="forbid")

    @field_validator("read_only_fields", mode="before")
    @classmethod
    def coerce_field_names(cls, v: Any) -> Any:
        if v is None:
            return ()
        if isinstance(v, str):
            return (v,)
        return v

    @field_validator("default_query", mode="before")
    @classmethod
    def coerce_query(cls, v: Any) -> Any:
        if v is None:
            return {}
        if isinstance(v, Mapping):
            return dict(v)
        return v


@dataclass(frozen=True)
class SiteConfig:
    """Site-level configuration for the REST adapter and HTTP transport.

    Attributes:
        web_url: Absolute URL of the web the lists belong to
        host_web_url: Absolute URL of the host web (app-part scenarios)
        timeout: Request timeout in seconds
        headers: Default headers sent with every request
    """

    web_url: str
    host_web_url: str | None = None
    timeout: float = _DEFAULT_TIMEOUT
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.web_url:
            raise ConfigError("web_url must be a non-empty URL")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be positive, got {self.timeout}")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> SiteConfig:
        """Build a SiteConfig from SPLIST_* environment variables.

        Raises:
            ConfigError: If SPLIST_WEB_URL is missing or SPLIST_TIMEOUT is not a number
        """
        env = os.environ if environ is None else environ

        web_url = env.get(WEB_URL_VAR, "").strip()
        if not web_url:
            raise ConfigError(f"{WEB_URL_VAR} is not set")

        raw_timeout = env.get(TIMEOUT_VAR, "").strip()
        try:
            timeout = float(raw_timeout) if raw_timeout else _DEFAULT_TIMEOUT
        except ValueError as e:
            raise ConfigError(f"{TIMEOUT_VAR} must be a number, got '{raw_timeout}'") from e

        return cls(
            web_url=web_url,
            host_web_url=env.get(HOST_WEB_URL_VAR, "").strip() or None,
            timeout=timeout,
        )
