"""Loading configuration from defaults, files, environment variables and overrides.

Precedence, lowest first: built-in defaults, the user file ``~/.fxconfig/config.yaml``,
the project file ``.fxconfig/config.yaml``, an explicit file (which replaces both),
``FXCONFIG_*`` environment variables, and finally explicit overrides.
"""

from __future__ import annotations

import os
from dataclasses import MISSING, Field, dataclass, field, fields, is_dataclass
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any, Callable

import yaml

from .config import Config, ConfigError, TLSConfig, parse_duration


class ConfigLoadError(ValueError):
    """Raised when configuration cannot be read or converted."""


_ENV_PREFIX = "FXCONFIG_"
_MISSING = object()
_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


class _Kind(Enum):
    SECTION = "section"
    OPTIONAL_SECTION = "optional_section"
    DURATION = "duration"
    BOOL = "bool"
    LIST = "list"
    STR = "str"
    RAW = "raw"


@dataclass
class _Sources:
    config_file: str | None = None
    overrides: dict[str, Any] = field(default_factory=dict)


Option = Callable[[_Sources], None]


def with_config_file(path: str | os.PathLike) -> Option:
    """Load this file instead of the user and project configuration files."""

    def apply(sources: _Sources) -> None:
        sources.config_file = os.fspath(path)

    return apply


def with_override(key: str, value: Any) -> Option:
    """Set a dotted key to a value that wins over every other source."""

    def apply(sources: _Sources) -> None:
        sources.overrides[key.lower()] = value

    return apply


def _lower_keys(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k).lower(): _lower_keys(v) for k, v in value.items()}
    return value


def _merge(base: dict, extra: dict) -> dict:
    result = dict(base)
    for key, value in extra.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_yaml(path: str | os.PathLike) -> dict:
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigLoadError(f"{os.fspath(path)}: top level must be a mapping")
    return _lower_keys(data)


def _get(tree: Any, path: tuple[str, ...]) -> Any:
    for part in path:
        if not isinstance(tree, dict) or part not in tree:
            return _MISSING
        tree = tree[part]
    return tree


def _lookup(path: tuple[str, ...], layer: dict, sources: _Sources, registered: bool) -> Any:
    dotted = ".".join(path)
    if dotted in sources.overrides:
        return sources.overrides[dotted]
    if registered:
        env_name = _ENV_PREFIX + dotted.upper().replace(".", "_").replace("-", "_")
        env_value = os.environ.get(env_name)
        if env_value:
            return env_value
    return _get(layer, path)


def _to_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    text = str(value)
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigLoadError(f"{name}: invalid boolean {value!r}")


def _to_duration(value: Any, name: str) -> timedelta:
    if isinstance(value, timedelta):
        return value
    if isinstance(value, bool):
        raise ConfigLoadError(f"{name}: invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return timedelta(microseconds=value / 1000)
    try:
        return parse_duration(str(value))
    except ConfigError as err:
        raise ConfigLoadError(f"{name}: {err}") from err


def _field_sample(f: Field) -> Any:
    if f.default_factory is not MISSING:
        return f.default_factory()
    if f.default is not MISSING:
        return f.default
    return _MISSING


def _classify(f: Field) -> tuple[_Kind, type | None]:
    """Work out how a field is read from its declared type and its default."""
    sample = _field_sample(f)
    if is_dataclass(sample) and not isinstance(sample, type):
        return _Kind.SECTION, type(sample)
    text = f.type if isinstance(f.type, str) else repr(f.type)
    if isinstance(sample, timedelta) or "timedelta" in text:
        return _Kind.DURATION, None
    if TLSConfig.__name__ in text:
        return _Kind.OPTIONAL_SECTION, TLSConfig
    if isinstance(sample, list) or "list" in text.lower():
        return _Kind.LIST, None
    if isinstance(sample, bool) or "bool" in text:
        return _Kind.BOOL, None
    if isinstance(sample, str) or "str" in text:
        return _Kind.STR, None
    return _Kind.RAW, None


def _convert(value: Any, kind: _Kind, name: str) -> Any:
    if kind is _Kind.DURATION:
        return _to_duration(value, name)
    if kind is _Kind.STR:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        return str(value)
    if kind is _Kind.BOOL:
        return None if value is None else _to_bool(value, name)
    if kind is _Kind.LIST:
        if value is None:
            return []
        if isinstance(value, str):
            return value.split()
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        raise ConfigLoadError(f"{name}: expected a list, got {value!r}")
    return value


def _section_present(path: tuple[str, ...], layer: dict, sources: _Sources) -> bool:
    prefix = ".".join(path) + "."
    if any(key.startswith(prefix) for key in sources.overrides):
        return True
    return isinstance(_get(layer, path), dict)


def _build(cls: type, prefix: tuple[str, ...], layer: dict, sources: _Sources, registered: bool) -> Any:
    kwargs: dict[str, Any] = {}
    for f in fields(cls):
        path = prefix + (f.metadata["key"].lower(),)
        kind, section = _classify(f)
        if kind is _Kind.SECTION:
            kwargs[f.name] = _build(section, path, layer, sources, registered)
            continue
        if kind is _Kind.OPTIONAL_SECTION:
            # optional sections are read only from files and overrides
            if _section_present(path, layer, sources):
                kwargs[f.name] = _build(section, path, layer, sources, False)
            continue
        value = _lookup(path, layer, sources, registered)
        if value is not _MISSING:
            kwargs[f.name] = _convert(value, kind, ".".join(path))
    return cls(**kwargs)


def load(*args: Option) -> Config:
    """Load the configuration from all sources and resolve TLS inheritance."""
    layer: dict = {}
    try:
        home: Path | None = Path.home()
    except (RuntimeError, KeyError):
        home = None
    candidates = []
    if home is not None:
        candidates.append((home / ".fxconfig" / "config.yaml", "user"))
    candidates.append((Path(".fxconfig") / "config.yaml", "project"))
    for candidate, label in candidates:
        if candidate.is_file():
            try:
                layer = _merge(layer, _read_yaml(candidate))
            except (OSError, yaml.YAMLError, ConfigLoadError) as err:
                raise ConfigLoadError(f"error loading {label} config: {err}") from err

    sources = _Sources()
    for option in args:
        option(sources)

    if sources.config_file:
        try:
            layer = _read_yaml(sources.config_file)
        except (OSError, yaml.YAMLError, ConfigLoadError) as err:
            raise ConfigLoadError(f"error reading config file {sources.config_file}: {err}") from err

    cfg = _build(Config, (), layer, sources, True)
    cfg.resolve_tls()
    return cfg