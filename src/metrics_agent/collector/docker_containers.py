"""Docker container collector."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any

import docker
import requests

from ..errors import CollectionError
from ..rate import RateTracker
from ..samples import ContainerState, DockerContainerSample
from .base import BaseCollector

logger = logging.getLogger(__name__)


def _container_counters(stats: dict[str, Any]) -> tuple[int, int, int, int]:
    """``(cpu_total, system_cpu, tx_bytes, rx_bytes)`` from a stats snapshot."""
    cpu_stats = stats.get("cpu_stats") or {}
    cpu_total = int((cpu_stats.get("cpu_usage") or {}).get("total_usage") or 0)
    system_cpu = int(cpu_stats.get("system_cpu_usage") or 0)
    networks = (stats.get("networks") or {}).values()
    tx = sum(int(n.get("tx_bytes") or 0) for n in networks)
    rx = sum(int(n.get("rx_bytes") or 0) for n in networks)
    return cpu_total, system_cpu, tx, rx


def _online_cpus(stats: dict[str, Any]) -> int:
    cpu_stats = stats.get("cpu_stats") or {}
    online = cpu_stats.get("online_cpus")
    if online:
        return int(online)
    percpu = (cpu_stats.get("cpu_usage") or {}).get("percpu_usage") or []
    return len(percpu) or 1


def _memory(stats: dict[str, Any]) -> tuple[int, int]:
    mem = stats.get("memory_stats") or {}
    detail = mem.get("stats") or {}
    # cgroup v1 reports "cache", cgroup v2 reports "file"
    cache = detail.get("cache", detail.get("file", 0))
    return int(mem.get("usage") or 0), int(cache or 0)


class DockerCollector(BaseCollector):
    """Per-container CPU, memory and network figures from the Docker daemon.

    CPU percent and network rates are derived from counter deltas keyed by
    container name, so a container shows up one tick after it is first seen.
    """

    def __init__(
        self,
        hostname: str,
        tracker: RateTracker,
        socket_path: str = "/var/run/docker.sock",
        all_containers: bool = False,
        timeout: int = 10,
        max_workers: int = 8,
    ) -> None:
        super().__init__(hostname)
        self._tracker = tracker
        self._base_url = f"unix://{socket_path}"
        self._all = all_containers
        self._timeout = timeout
        self._client: Any = None
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="docker-stats")

    @property
    def name(self) -> str:
        return "docker"

    def _get_client(self) -> Any:
        if self._client is None:
            self._client = docker.DockerClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    def collect(self, timestamp: datetime) -> list[DockerContainerSample]:
        try:
            containers = self._get_client().containers.list(all=self._all)
        except (docker.errors.DockerException, requests.RequestException) as exc:
            self._reset_client()
            raise CollectionError(self.name, f"cannot list containers via {self._base_url}: {exc}") from exc

        samples: list[DockerContainerSample] = []
        seen: list[str] = []
        # one_shot skips the daemon waiting for a second sample; fetch all containers in parallel
        pending = [
            (container, self._pool.submit(container.stats, stream=False, one_shot=True))
            for container in containers
        ]
        for container, future in pending:
            seen.append(container.name)
            try:
                stats = future.result()
            except (docker.errors.DockerException, requests.RequestException) as exc:
                logger.warning("Failed to get stats for container %s: %s", container.name, exc)
                continue

            delta = self._tracker.update(self.name, container.name, _container_counters(stats), timestamp)
            if delta is None:
                continue

            d_cpu, d_system, d_tx, d_rx = delta.values
            cpu_percent = d_cpu / d_system * _online_cpus(stats) * 100.0 if d_system > 0 else 0.0
            memory_usage, memory_cache = _memory(stats)
            samples.append(DockerContainerSample(
                self.hostname,
                timestamp,
                name=container.name,
                state=ContainerState.from_docker(container.status),
                cpu_usage=cpu_percent,
                memory_usage=memory_usage,
                memory_cache=memory_cache,
                network_tx=d_tx / delta.elapsed,
                network_rx=d_rx / delta.elapsed,
            ))

        self._tracker.retain(self.name, seen)
        return samples

    def _reset_client(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            finally:
                self._client = None

    def close(self) -> None:
        self._reset_client()
        self._pool.shutdown(wait=False, cancel_futures=True)
