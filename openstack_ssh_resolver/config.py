"""Frozen dataclasses for configuration and YAML loader with env-var interpolation."""

from __future__ import annotations

import os
import re
import types
import typing
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigError

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")

IP_FAMILIES = ("ipv4", "ipv6")


def _interpolate_env(value: str) -> str:
    """Replace ${ENV_VAR} placeholders with environment variable values."""

    def _replace(match: re.Match) -> str:
        env_key = match.group(1)
        env_val = os.environ.get(env_key)
        if env_val is None:
            raise ConfigError(f"Environment variable '{env_key}' is not set")
        return env_val

    return _ENV_PATTERN.sub(_replace, value)


def _walk_and_interpolate(obj: Any) -> Any:
    """Recursively interpolate env vars in strings throughout a nested structure."""
    if isinstance(obj, str):
        return _interpolate_env(obj)
    if isinstance(obj, dict):
        return {k: _walk_and_interpolate(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_walk_and_interpolate(v) for v in obj]
    return obj


@dataclass(frozen=True)
class OpenStackConfig:
    auth_url: str = ""
    username: str = ""
    password: str = ""
    project_name: str = ""
    user_domain_name: str = "Default"
    project_domain_name: str = "Default"
    region: str = ""  # empty = first compute endpoint in the catalog
    interface: str = "public"
    compute_url: str = ""  # skips the service catalog when set
    timeout: int = 10
    verify_ssl: bool = True


@dataclass(frozen=True)
class SSHConfig:
    username: str = ""
    network: str | None = None
    address_id: str | None = None  # network name or "floating_ip"
    ip_family: str | None = None  # "ipv4", "ipv6" or None
    floating_ip: str | None = None


@dataclass(frozen=True)
class StateConfig:
    path: str = ".openstack-ssh-resolver/state.json"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"
    format: str = "json"  # "json" or "text"


@dataclass(frozen=True)
class AppConfig:
    openstack: OpenStackConfig = field(default_factory=OpenStackConfig)
    ssh: SSHConfig = field(default_factory=SSHConfig)
    state: StateConfig = field(default_factory=StateConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _get_dataclass_type(ft: Any) -> type | None:
    """Return the underlying dataclass type from a type annotation (handles Optional/X|None)."""
    if isinstance(ft, type) and hasattr(ft, "__dataclass_fields__"):
        return ft
    if isinstance(ft, types.UnionType):
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    origin = getattr(ft, "__origin__", None)
    if origin is typing.Union:
        args = [a for a in ft.__args__ if a is not type(None)]
        if len(args) == 1 and isinstance(args[0], type) and hasattr(args[0], "__dataclass_fields__"):
            return args[0]
    return None


def _build_nested(cls: type, data: dict[str, Any]) -> Any:
    """Construct a frozen dataclass, recursively building nested dataclass fields."""
    if not isinstance(data, dict):
        return data
    field_types = {f.name: f.type for f in cls.__dataclass_fields__.values()}
    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        if key not in field_types:
            continue
        ft = field_types[key]
        # Resolve string annotations to actual types in the module scope
        if isinstance(ft, str):
            ft = eval(ft, globals(), {cls.__name__: cls})  # noqa: S307
        dc_type = _get_dataclass_type(ft)
        if dc_type is not None:
            if value is None:
                continue
            if isinstance(value, dict):
                kwargs[key] = _build_nested(dc_type, value)
                continue
        kwargs[key] = value
    return cls(**kwargs)


def load_config(path: str | Path) -> AppConfig:
    """Load and validate configuration from a YAML file."""
    path = Path(path)
    if not path.is_file():
        raise ConfigError(f"Configuration file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ConfigError("Configuration file must be a YAML mapping")

    raw = _walk_and_interpolate(raw)
    config = _build_nested(AppConfig, raw)
    _validate(config)
    return config


def _validate(config: AppConfig) -> None:
    """Validate configuration values."""
    if not isinstance(config.openstack, OpenStackConfig):
        raise ConfigError("openstack must be a mapping")
    if not isinstance(config.ssh, SSHConfig):
        raise ConfigError("ssh must be a mapping")

    if not config.openstack.auth_url:
        raise ConfigError("openstack.auth_url is required")

    if config.openstack.interface not in ("public", "internal", "admin"):
        raise ConfigError("openstack.interface must be 'public', 'internal' or 'admin'")

    if not isinstance(config.openstack.timeout, int) or config.openstack.timeout <= 0:
        raise ConfigError("openstack.timeout must be a positive integer")

    if not config.ssh.username:
        raise ConfigError("ssh.username is required")

    if config.ssh.ip_family is not None and config.ssh.ip_family not in IP_FAMILIES:
        raise ConfigError("ssh.ip_family must be 'ipv4' or 'ipv6'")

    for key in ("network", "address_id", "floating_ip"):
        value = getattr(config.ssh, key)
        if value is not None and not isinstance(value, str):
            raise ConfigError(f"ssh.{key} must be a string")

    if config.logging.format not in ("json", "text"):
        raise ConfigError("logging.format must be 'json' or 'text'")
