"""Configuration schema for the namespace administration tool, with validation.

Each field carries its configuration key in ``metadata["key"]``; the dataclass defaults
are the documented defaults.
"""

from __future__ import annotations

import re
import ssl
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterator

from .validation import Context, ValidationError


class ConfigError(ValueError):
    """Raised when a configuration value is invalid."""


_UNIT_MICROSECONDS = {
    "ns": 0.001,
    "us": 1,
    "µs": 1,
    "μs": 1,
    "ms": 1_000,
    "s": 1_000_000,
    "m": 60_000_000,
    "h": 3_600_000_000,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``30s``, ``1h30m`` or ``250ms``."""
    rest = text
    sign = 1
    if rest and rest[0] in "+-":
        sign = -1 if rest[0] == "-" else 1
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ConfigError(f'invalid duration "{text}"')
    total = 0.0
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None:
            raise ConfigError(f'invalid duration "{text}"')
        total += float(match.group(1)) * _UNIT_MICROSECONDS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * total)


def error_if_empty(s: str, err_msg: str) -> str:
    """Return ``s``, or raise ConfigError if it is empty or whitespace only."""
    if s.strip() == "":
        raise ConfigError(err_msg)
    return s


def error_if_zero_duration(d: timedelta, err_msg: str) -> timedelta:
    """Return ``d``, or raise ConfigError if it is zero."""
    if d == timedelta(0):
        raise ConfigError(err_msg)
    return d


def _split_host_port(hostport: str) -> tuple[str, str]:
    def fail(reason: str) -> ConfigError:
        return ConfigError(f"address {hostport}: {reason}")

    i = hostport.rfind(":")
    if i < 0:
        raise fail("missing port in address")
    j = k = 0
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise fail("missing ']' in address")
        if end + 1 == len(hostport):
            raise fail("missing port in address")
        if end + 1 != i:
            if hostport[end + 1] == ":":
                raise fail("too many colons in address")
            raise fail("missing port in address")
        host = hostport[1:end]
        j, k = 1, end + 1
    else:
        host = hostport[:i]
        if ":" in host:
            raise fail("too many colons in address")
    if "[" in hostport[j:]:
        raise fail("unexpected '[' in address")
    if "]" in hostport[k:]:
        raise fail("unexpected ']' in address")
    return host, hostport[i + 1 :]


def validate_endpoint(endpoint: str) -> tuple[str, str]:
    """Split ``host:port`` and return both parts; raise ConfigError if either is missing."""
    host, port = _split_host_port(endpoint)
    if host == "":
        raise ConfigError("host is empty")
    if port == "":
        raise ConfigError("port is empty")
    return host, port


@contextmanager
def _prefixed(prefix: str) -> Iterator[None]:
    try:
        yield
    except (ConfigError, ValidationError) as err:
        raise ConfigError(f"{prefix}: {err}") from err


def _key(name: str, **kwargs):
    return field(metadata={"key": name}, **kwargs)


@dataclass
class LoggingConfig:
    """Logging level and format."""

    level: str = _key("level", default="error")
    format: str = _key("format", default="")


@dataclass
class MSPConfig:
    """Which organisation identity signs transactions."""

    local_msp_id: str = _key("localMspID", default="")
    config_path: str = _key("configPath", default="")

    def validate(self, vctx: Context) -> None:
        """Raise ConfigError unless the MSP ID is set and the config path is a directory."""
        with _prefixed("invalid localMspID"):
            error_if_empty(self.local_msp_id, "must not be empty")
        with _prefixed("invalid configPath"):
            vctx.directory_checker.exists(self.config_path)


@dataclass
class TLSConfig:
    """TLS settings: off, server TLS (root certificates) or mutual TLS (all paths)."""

    enabled: bool | None = _key("enabled", default=None)
    client_key_path: str = _key("clientKey", default="")
    client_cert_path: str = _key("clientCert", default="")
    root_cert_paths: list[str] = _key("rootCerts", default_factory=list)
    server_name_override: str = _key("serverNameOverride", default="")

    def normalize(self) -> None:
        """Make the enabled flag explicit, defaulting to False."""
        if self.enabled is None:
            self.enabled = False

    def inherit_from(self, parent: TLSConfig | None) -> TLSConfig:
        """Return a new config taking this one's values where set and the parent's otherwise."""
        if parent is None:
            return self
        return TLSConfig(
            enabled=self.enabled if self.enabled is not None else parent.enabled,
            client_key_path=self.client_key_path or parent.client_key_path,
            client_cert_path=self.client_cert_path or parent.client_cert_path,
            root_cert_paths=list(self.root_cert_paths or parent.root_cert_paths),
            server_name_override=self.server_name_override or parent.server_name_override,
        )

    def is_enabled(self) -> bool:
        """Whether TLS is on; an unset flag counts as off."""
        return bool(self.enabled)

    def validate(self, vctx: Context) -> None:
        """Raise ConfigError if TLS is enabled but its files are missing or do not match."""
        if not self.is_enabled():
            return
        if not self.root_cert_paths:
            raise ConfigError("rootCertPaths must not be empty")
        for path in self.root_cert_paths:
            with _prefixed("invalid rootCertPath"):
                vctx.file_checker.exists(path)
        if not self.client_cert_path and not self.client_key_path:
            return
        with _prefixed("invalid clientCertPath"):
            vctx.file_checker.exists(self.client_cert_path)
        with _prefixed("invalid clientKeyPath"):
            vctx.file_checker.exists(self.client_key_path)
        try:
            ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT).load_cert_chain(
                self.client_cert_path, self.client_key_path
            )
        except (OSError, ValueError) as err:
            raise ConfigError(f"invalid cert/key pair: {err}") from err


def inherit_tls(child: TLSConfig | None, parent: TLSConfig | None) -> TLSConfig:
    """Merge ``child`` over ``parent``; a missing child inherits everything."""
    return (child if child is not None else TLSConfig()).inherit_from(parent)


@dataclass
class EndpointServiceConfig:
    """Connection settings for one service endpoint."""

    address: str = _key("address", default="")
    connection_timeout: timedelta = _key("connectionTimeout", default=timedelta(seconds=30))
    tls: TLSConfig | None = _key("tls", default=None)

    def validate(self, vctx: Context) -> None:
        """Raise ConfigError if the address, timeout or TLS settings are invalid."""
        with _prefixed("invalid address"):
            validate_endpoint(self.address)
        with _prefixed("invalid connection timeout"):
            error_if_zero_duration(self.connection_timeout, "must be non-zero")
        if self.tls is not None:
            with _prefixed("invalid tls configuration"):
                self.tls.validate(vctx)


@dataclass
class OrdererConfig(EndpointServiceConfig):
    """The ordering service endpoint and channel."""

    channel: str = _key("channel", default="mychannel")

    def validate(self, vctx: Context) -> None:
        """Raise ConfigError if the channel is empty or the endpoint is invalid."""
        with _prefixed("invalid channel"):
            error_if_empty(self.channel, "empty")
        super().validate(vctx)


@dataclass
class QueriesConfig(EndpointServiceConfig):
    """The query service endpoint."""


@dataclass
class NotificationsConfig(EndpointServiceConfig):
    """The notification service endpoint and how long to wait for a status."""

    waiting_timeout: timedelta = _key("waitingTimeout", default=timedelta(seconds=30))


@dataclass
class Config:
    """The complete configuration."""

    logging: LoggingConfig = _key("logging", default_factory=LoggingConfig)
    msp: MSPConfig = _key("msp", default_factory=MSPConfig)
    tls: TLSConfig = _key("tls", default_factory=TLSConfig)
    orderer: OrdererConfig = _key("orderer", default_factory=OrdererConfig)
    queries: QueriesConfig = _key("queries", default_factory=QueriesConfig)
    notifications: NotificationsConfig = _key("notifications", default_factory=NotificationsConfig)

    def resolve_tls(self) -> None:
        """Let every service inherit the top-level TLS settings and make flags explicit."""
        self.tls.normalize()
        for service in (self.orderer, self.queries, self.notifications):
            service.tls = inherit_tls(service.tls, self.tls)
            service.tls.normalize()