"""Sample value types, one per metric kind.

Each variant knows its destination table and the order of its columns, so
the writer can group samples by table without a lookup table of its own.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, ClassVar


class ContainerState(str, enum.Enum):
    """Coarse Docker container state."""

    RUNNING = "running"
    EXITED = "exited"
    OTHER = "other"

    @classmethod
    def from_docker(cls, status: str | None) -> "ContainerState":
        status = (status or "").lower()
        if status == "running":
            return cls.RUNNING
        if status == "exited":
            return cls.EXITED
        return cls.OTHER


@dataclass(frozen=True)
class Sample:
    """One measurement of one metric kind for one host at one instant."""

    hostname: str
    timestamp: datetime

    kind: ClassVar[str] = ""
    table: ClassVar[str] = ""

    @classmethod
    def columns(cls) -> tuple[str, ...]:
        """Column names in insert order, hostname and timestamp first."""
        return tuple(f.name for f in fields(cls))

    def to_row(self) -> tuple[Any, ...]:
        row = []
        for name in self.columns():
            value = getattr(self, name)
            if isinstance(value, enum.Enum):
                value = value.value
            row.append(value)
        return tuple(row)

    def to_dict(self) -> dict[str, Any]:
        data = dict(zip(self.columns(), self.to_row()))
        data["timestamp"] = self.timestamp.isoformat()
        data["kind"] = self.kind
        return data


@dataclass(frozen=True)
class CpuSample(Sample):
    """Per-CPU jiffy deltas between the two most recent readings."""

    cpu_index: int
    user: int
    nice: int
    system: int
    idle: int
    iowait: int
    irq: int
    softirq: int
    guest: int
    steal: int
    guest_nice: int

    kind: ClassVar[str] = "cpu"
    table: ClassVar[str] = "metric_cpu"

    @classmethod
    def columns(cls) -> tuple[str, ...]:
        # the persisted column is named "cpu"
        return tuple("cpu" if c == "cpu_index" else c for c in super().columns())

    def to_row(self) -> tuple[Any, ...]:
        return (
            self.hostname, self.timestamp, self.cpu_index,
            self.user, self.nice, self.system, self.idle, self.iowait,
            self.irq, self.softirq, self.guest, self.steal, self.guest_nice,
        )


@dataclass(frozen=True)
class LoadAverageSample(Sample):
    one: float
    five: float
    fifteen: float

    kind: ClassVar[str] = "load_average"
    table: ClassVar[str] = "metric_load_average"


@dataclass(frozen=True)
class MemorySample(Sample):
    """Memory figures in bytes."""

    total: int
    free: int
    available: int
    buffers: int
    cached: int
    swap_total: int
    swap_free: int

    kind: ClassVar[str] = "memory"
    table: ClassVar[str] = "metric_memory"


@dataclass(frozen=True)
class IoSample(Sample):
    """Block device throughput in bytes/sec."""

    device: str
    read_rate: float
    write_rate: float

    kind: ClassVar[str] = "io"
    table: ClassVar[str] = "metric_io"


@dataclass(frozen=True)
class FilesystemSample(Sample):
    filesystem: str
    total: int
    used: int

    kind: ClassVar[str] = "filesystem"
    table: ClassVar[str] = "metric_fs"


@dataclass(frozen=True)
class NetworkSample(Sample):
    """Interface throughput in bytes/sec."""

    device: str
    rx_rate: float
    tx_rate: float

    kind: ClassVar[str] = "network"
    table: ClassVar[str] = "metric_network"


@dataclass(frozen=True)
class NginxSample(Sample):
    handled_requests: int

    kind: ClassVar[str] = "nginx"
    table: ClassVar[str] = "metric_nginx"


@dataclass(frozen=True)
class PostgresDatabaseSample(Sample):
    """Tuple counter deltas from pg_stat_database."""

    returned: int
    fetched: int
    inserted: int
    updated: int
    deleted: int

    kind: ClassVar[str] = "postgres_database"
    table: ClassVar[str] = "metric_postgres_database"


@dataclass(frozen=True)
class PostgresTableSample(Sample):
    name: str
    rows: int
    total_bytes: int

    kind: ClassVar[str] = "postgres_tables"
    table: ClassVar[str] = "metric_postgres_tables"


@dataclass(frozen=True)
class DockerContainerSample(Sample):
    name: str
    state: ContainerState
    cpu_usage: float
    memory_usage: int
    memory_cache: int
    network_tx: float
    network_rx: float

    kind: ClassVar[str] = "docker"
    table: ClassVar[str] = "metric_docker_containers"
