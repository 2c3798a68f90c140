"""Client settings read from ``RETAIL_OPS_*`` environment variables.

Settings come in two groups: how to reach the API (transport) and the order
desk's business policy. Each setting is described once in a table below and
parsed by :func:`load_config`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Callable

from dotenv import load_dotenv

ENV_PREFIX = "RETAIL_OPS_"
DEFAULT_MINIMUM_PAYMENT_PERCENTAGE = 70
_TRUTHY = frozenset({"1", "true", "yes", "on"})


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class ClientConfig:
    env_name: str
    api_base_url: str
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 15.0
    retries: int = 3
    retry_backoff_seconds: float = 0.3
    max_connections: int = 20
    verify_ssl: bool = True
    minimum_payment_percentage: int = DEFAULT_MINIMUM_PAYMENT_PERCENTAGE
    allow_overpayment: bool = True

    @property
    def normalized_env(self) -> str:
        return self.env_name.lower().strip()


def _flag(raw: str) -> bool:
    return raw.lower() in _TRUTHY


@dataclass(frozen=True)
class _Setting:
    field: str
    env: str
    default: Any
    parse: Callable[[str], Any] = str
    accepts: Callable[[Any], bool] | None = None
    expected: str = ""

    @property
    def variable(self) -> str:
        return ENV_PREFIX + self.env

    def read(self, default: Any = None) -> Any:
        raw = _env(self.env)
        if raw is None:
            value = self.default if default is None else default
        else:
            try:
                value = self.parse(raw)
            except ValueError as exc:
                kind = "an integer" if self.parse is int else "a number"
                raise ConfigError(f"Invalid {self.variable}: expected {kind}, got {raw!r}") from exc
        if self.accepts is not None and not self.accepts(value):
            raise ConfigError(f"Invalid {self.variable}: expected {self.expected}, got {value}")
        return value


_TIMEOUT = _Setting("timeout_seconds", "TIMEOUT_SECONDS", 10.0, float, lambda v: v > 0, "> 0")
_CONNECT_TIMEOUT = _Setting("connect_timeout_seconds", "CONNECT_TIMEOUT_SECONDS", 5.0, float, lambda v: v > 0, "> 0")
_READ_TIMEOUT = _Setting("read_timeout_seconds", "READ_TIMEOUT_SECONDS", 10.0, float, lambda v: v > 0, "> 0")

_TRANSPORT = (
    _Setting("retries", "RETRIES", 3, int, lambda v: v >= 0, ">= 0"),
    _Setting("retry_backoff_seconds", "RETRY_BACKOFF_SECONDS", 0.3, float, lambda v: v >= 0, ">= 0"),
    _Setting("max_connections", "MAX_CONNECTIONS", 20, int, lambda v: v >= 1, ">= 1"),
    _Setting("verify_ssl", "VERIFY_SSL", True, _flag),
)

_POLICY = (
    _Setting(
        "minimum_payment_percentage",
        "MIN_PAYMENT_PERCENTAGE",
        DEFAULT_MINIMUM_PAYMENT_PERCENTAGE,
        int,
        lambda v: 0 <= v <= 100,
        "0..100",
    ),
    _Setting("allow_overpayment", "ALLOW_OVERPAYMENT", True, _flag),
)


def _env(name: str) -> str | None:
    raw = os.getenv(ENV_PREFIX + name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _base_url(env_name: str) -> str:
    url = _env(f"API_BASE_URL_{env_name.upper()}") or _env("API_BASE_URL")
    if not url:
        raise ConfigError(f"Missing required config values: {ENV_PREFIX}API_BASE_URL")
    return url.rstrip("/")


def load_config(env_file: str | None = None) -> ClientConfig:
    """Load config from environment with optional .env override."""
    load_dotenv(env_file)
    env_name = _env("ENV") or "dev"

    # Connect and read timeouts fall back to the overall timeout.
    timeout = _TIMEOUT.read()
    connect_timeout = _CONNECT_TIMEOUT.read(default=min(timeout, 5.0))
    read_timeout = _READ_TIMEOUT.read(default=max(timeout, connect_timeout))

    settings = {setting.field: setting.read() for setting in (*_TRANSPORT, *_POLICY)}
    return ClientConfig(
        env_name=env_name,
        api_base_url=_base_url(env_name),
        connect_timeout_seconds=connect_timeout,
        read_timeout_seconds=read_timeout,
        **settings,
    )
