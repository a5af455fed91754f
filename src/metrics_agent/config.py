"""Configuration loading and validation for metrics_agent."""

from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError


@dataclass
class CollectorsConfig:
    """Capability flags, one per collector kind."""

    cpu: bool = True
    load_average: bool = True
    memory: bool = True
    io: bool = True
    filesystem: bool = True
    network: bool = True
    nginx: bool = False
    postgres: bool = False
    docker: bool = False
    network_interface: str = ""
    filesystem_exclude_types: list[str] = field(
        default_factory=lambda: ["squashfs", "devtmpfs", "tmpfs", "fuse"]
    )


@dataclass
class WriterConfig:
    """Batch writer retry settings."""

    max_attempts: int = 5
    base_delay_seconds: float = 0.5
    max_delay_seconds: float = 10.0
    connect_timeout_seconds: int = 10


@dataclass
class NginxConfig:
    status_url: str = ""
    timeout_seconds: float = 5.0


@dataclass
class PostgresConfig:
    """Monitored Postgres instance (not the metrics store)."""

    dsn: str = ""
    database: str = ""


@dataclass
class DockerConfig:
    socket_path: str = "/var/run/docker.sock"
    all_containers: bool = False
    timeout_seconds: int = 10


@dataclass
class AgentConfig:
    """Top-level agent configuration."""

    interval_seconds: float = 60.0
    hostname: str = ""
    database_url: str = ""
    collector_timeout_seconds: float = 10.0
    collectors: CollectorsConfig = field(default_factory=CollectorsConfig)
    writer: WriterConfig = field(default_factory=WriterConfig)
    nginx: NginxConfig = field(default_factory=NginxConfig)
    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    docker: DockerConfig = field(default_factory=DockerConfig)


_ENV_MAP: dict[str, tuple[str, ...]] = {
    "DATABASE_URL": ("database_url",),
    "REPORT_INTERVAL": ("interval_seconds",),
    "HOST": ("hostname",),
    "NGINX_STATUS_ENDPOINT": ("nginx", "status_url"),
    "DATABASE_TO_MONITOR": ("postgres", "database"),
    "METRICS_AGENT_POSTGRES_DSN": ("postgres", "dsn"),
    "METRICS_AGENT_DOCKER_SOCKET": ("docker", "socket_path"),
    "METRICS_AGENT_COLLECTOR_TIMEOUT": ("collector_timeout_seconds",),
}

_FLOAT_KEYS = {"interval_seconds", "collector_timeout_seconds"}


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply environment variable overrides on top of file values."""
    for env_key, path in _ENV_MAP.items():
        value = os.environ.get(env_key)
        if value is None:
            continue
        obj = data
        for part in path[:-1]:
            # an empty YAML section ("nginx:") loads as None
            if obj.get(part) is None:
                obj[part] = {}
            elif not isinstance(obj[part], dict):
                raise ConfigError(f"section {part!r} must be a mapping")
            obj = obj[part]
        final_key = path[-1]
        if final_key in _FLOAT_KEYS:
            try:
                obj[final_key] = float(value)
            except ValueError:
                raise ConfigError(f"{env_key} must be a number, got {value!r}") from None
        else:
            obj[final_key] = value
    return data


def _section(cls: type, data: Any) -> Any:
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"section for {cls.__name__} must be a mapping")
    return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})


def _dict_to_config(data: dict[str, Any]) -> AgentConfig:
    """Convert a raw dictionary to an AgentConfig dataclass."""
    top = {
        k: v for k, v in data.items()
        if k in AgentConfig.__dataclass_fields__
        and k not in ("collectors", "writer", "nginx", "postgres", "docker")
    }
    return AgentConfig(
        **top,
        collectors=_section(CollectorsConfig, data.get("collectors")),
        writer=_section(WriterConfig, data.get("writer")),
        nginx=_section(NginxConfig, data.get("nginx")),
        postgres=_section(PostgresConfig, data.get("postgres")),
        docker=_section(DockerConfig, data.get("docker")),
    )


def load_config(path: str | Path | None = None) -> AgentConfig:
    """Load configuration from a YAML file with environment overrides.

    Looks for ``metrics_agent.yaml`` in the current directory if *path* is None.
    A missing file yields defaults.
    """
    data: dict[str, Any] = {}
    path = Path("metrics_agent.yaml") if path is None else Path(path)

    if path.exists():
        with open(path, encoding="utf-8") as fh:
            try:
                loaded = yaml.safe_load(fh)
            except yaml.YAMLError as exc:
                raise ConfigError(f"cannot parse {path}: {exc}") from exc
            if isinstance(loaded, dict):
                data = loaded

    data = _apply_env_overrides(data)
    return _dict_to_config(data)


def validate_config(cfg: AgentConfig) -> AgentConfig:
    """Reject configurations the agent cannot run with."""
    if cfg.interval_seconds <= 0:
        raise ConfigError("interval_seconds must be positive")
    if cfg.collector_timeout_seconds <= 0:
        raise ConfigError("collector_timeout_seconds must be positive")
    if not cfg.database_url:
        raise ConfigError("database_url is not set (DATABASE_URL)")
    if cfg.writer.max_attempts < 1:
        raise ConfigError("writer.max_attempts must be at least 1")
    if cfg.writer.base_delay_seconds < 0 or cfg.writer.max_delay_seconds < 0:
        raise ConfigError("writer delays must not be negative")

    enabled = cfg.collectors
    if enabled.nginx and not cfg.nginx.status_url:
        raise ConfigError("nginx collector enabled but nginx.status_url is not set")
    if enabled.postgres and not (cfg.postgres.dsn and cfg.postgres.database):
        raise ConfigError("postgres collector enabled but postgres.dsn/database are not set")
    if enabled.docker and not cfg.docker.socket_path:
        raise ConfigError("docker collector enabled but docker.socket_path is not set")
    return cfg


def resolve_hostname(cfg: AgentConfig) -> str:
    """Configured hostname, else the HOST variable, else the kernel hostname."""
    return cfg.hostname or os.environ.get("HOST") or socket.gethostname()
