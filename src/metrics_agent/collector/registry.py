"""Builds the fixed set of enabled collectors for a run."""

from __future__ import annotations

import logging

from ..config import AgentConfig
from ..rate import RateTracker
from .base import BaseCollector
from .cpu import CpuCollector
from .filesystem import FilesystemCollector
from .io import IoCollector
from .load_average import LoadAverageCollector
from .memory import MemoryCollector
from .network import NetworkCollector

logger = logging.getLogger(__name__)


def build_collectors(config: AgentConfig, hostname: str, tracker: RateTracker) -> list[BaseCollector]:
    """Instantiate one collector per enabled kind.

    Service collectors import their client libraries lazily so an agent
    that only samples the OS does not need them installed.
    """
    enabled = config.collectors
    collectors: list[BaseCollector] = []

    if enabled.cpu:
        collectors.append(CpuCollector(hostname, tracker))
    if enabled.load_average:
        collectors.append(LoadAverageCollector(hostname))
    if enabled.memory:
        collectors.append(MemoryCollector(hostname))
    if enabled.io:
        collectors.append(IoCollector(hostname, tracker))
    if enabled.filesystem:
        collectors.append(FilesystemCollector(hostname, enabled.filesystem_exclude_types))
    if enabled.network:
        collectors.append(NetworkCollector(hostname, tracker, interface=enabled.network_interface))

    if enabled.nginx:
        from .nginx import NginxCollector
        collectors.append(NginxCollector(
            hostname, tracker, config.nginx.status_url, timeout=config.nginx.timeout_seconds,
        ))

    if enabled.postgres:
        from .postgres import PostgresConnection, PostgresDatabaseCollector, PostgresTablesCollector
        connection = PostgresConnection(config.postgres.dsn)
        collectors.append(PostgresDatabaseCollector(hostname, tracker, connection, config.postgres.database))
        collectors.append(PostgresTablesCollector(hostname, connection))

    if enabled.docker:
        from .docker_containers import DockerCollector
        collectors.append(DockerCollector(
            hostname,
            tracker,
            socket_path=config.docker.socket_path,
            all_containers=config.docker.all_containers,
            timeout=config.docker.timeout_seconds,
        ))

    logger.info("Enabled collectors: %s", ", ".join(c.name for c in collectors) or "(none)")
    return collectors
