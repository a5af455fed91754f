"""Tests for the OS collectors, with psutil replaced by fixed readings."""

from collections import namedtuple
from datetime import datetime, timedelta, timezone

import psutil
import pytest

from metrics_agent.collector.cpu import CpuCollector
from metrics_agent.collector.filesystem import FilesystemCollector
from metrics_agent.collector.io import IoCollector
from metrics_agent.collector.load_average import LoadAverageCollector
from metrics_agent.collector.memory import MemoryCollector
from metrics_agent.collector.network import NetworkCollector
from metrics_agent.errors import CollectionError
from metrics_agent.rate import RateTracker

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)

CpuTimes = namedtuple(
    "CpuTimes",
    "user nice system idle iowait irq softirq steal guest guest_nice",
)
DiskIO = namedtuple("DiskIO", "read_bytes write_bytes")
NetIO = namedtuple("NetIO", "bytes_sent bytes_recv")
Partition = namedtuple("Partition", "device mountpoint fstype opts")
Usage = namedtuple("Usage", "total used free percent")


def cpu_times(idle: float, user: float = 10.0) -> CpuTimes:
    return CpuTimes(user, 0.0, 5.0, idle, 1.0, 0.0, 0.5, 0.0, 0.0, 0.0)


class TestCpuCollector:

    def test_first_tick_is_baseline(self, monkeypatch):
        monkeypatch.setattr(psutil, "cpu_times", lambda percpu: [cpu_times(200.0)])
        collector = CpuCollector("host", RateTracker(), ticks_per_second=100)
        assert collector.name == "cpu"
        assert collector.collect(T0) == []

    def test_emits_jiffy_deltas(self, monkeypatch):
        readings = iter([
            [cpu_times(200.0), cpu_times(100.0)],
            [cpu_times(260.0, user=12.5), cpu_times(130.0)],
        ])
        monkeypatch.setattr(psutil, "cpu_times", lambda percpu: next(readings))
        collector = CpuCollector("host", RateTracker(), ticks_per_second=100)

        collector.collect(T0)
        samples = collector.collect(T0 + timedelta(seconds=60))

        assert [s.cpu_index for s in samples] == [0, 1]
        assert samples[0].idle == 6000
        assert samples[0].user == 250
        assert samples[0].system == 0
        assert samples[1].idle == 3000
        assert all(s.timestamp == T0 + timedelta(seconds=60) for s in samples)

    def test_idle_regression_skips_tick_and_rebases(self, monkeypatch):
        """idle goes 20000 → 19500 jiffies: nothing emitted, next tick measured from 19500."""
        readings = iter([[cpu_times(200.0)], [cpu_times(195.0)], [cpu_times(195.1)]])
        monkeypatch.setattr(psutil, "cpu_times", lambda percpu: next(readings))
        collector = CpuCollector("host", RateTracker(), ticks_per_second=100)

        assert collector.collect(T0) == []
        assert collector.collect(T0 + timedelta(seconds=60)) == []
        samples = collector.collect(T0 + timedelta(seconds=120))
        assert len(samples) == 1
        assert samples[0].idle == 10

    def test_read_failure(self, monkeypatch):
        def boom(percpu):
            raise OSError("no /proc")
        monkeypatch.setattr(psutil, "cpu_times", boom)
        with pytest.raises(CollectionError):
            CpuCollector("host", RateTracker(), ticks_per_second=100).collect(T0)


def test_io_collector_rates(monkeypatch):
    readings = iter([
        {"sda": DiskIO(1000, 0)},
        {"sda": DiskIO(1500, 6000), "sdb": DiskIO(5, 5)},
    ])
    monkeypatch.setattr(psutil, "disk_io_counters", lambda perdisk: next(readings))
    collector = IoCollector("host", RateTracker())

    assert collector.collect(T0) == []
    samples = collector.collect(T0 + timedelta(seconds=60))

    assert len(samples) == 1
    assert samples[0].device == "sda"
    assert samples[0].read_rate == pytest.approx(500 / 60)
    assert samples[0].write_rate == pytest.approx(100.0)


def test_network_collector_skips_loopback(monkeypatch):
    readings = iter([
        {"lo": NetIO(0, 0), "eth0": NetIO(1000, 0)},
        {"lo": NetIO(50, 50), "eth0": NetIO(4000, 600)},
    ])
    monkeypatch.setattr(psutil, "net_io_counters", lambda pernic: next(readings))
    collector = NetworkCollector("host", RateTracker())

    collector.collect(T0)
    samples = collector.collect(T0 + timedelta(seconds=60))

    assert [s.device for s in samples] == ["eth0"]
    assert samples[0].rx_rate == pytest.approx(10.0)
    assert samples[0].tx_rate == pytest.approx(50.0)


def test_network_collector_interface_filter(monkeypatch):
    counters = {"eth0": NetIO(0, 0), "eth1": NetIO(0, 0)}
    monkeypatch.setattr(psutil, "net_io_counters", lambda pernic: counters)
    tracker = RateTracker()
    collector = NetworkCollector("host", tracker, interface="eth1")
    collector.collect(T0)
    assert tracker.baseline("network", "eth1") == (0, 0)
    assert tracker.baseline("network", "eth0") is None


def test_network_collector_missing_interface_yields_nothing(monkeypatch):
    readings = iter([
        {"eth0": NetIO(0, 0), "docker0": NetIO(0, 0)},
        {"eth0": NetIO(6000, 6000), "docker0": NetIO(600, 600)},
    ])
    monkeypatch.setattr(psutil, "net_io_counters", lambda pernic: next(readings))
    tracker = RateTracker()
    collector = NetworkCollector("host", tracker, interface="eth1")

    assert collector.collect(T0) == []
    assert collector.collect(T0 + timedelta(seconds=60)) == []
    assert tracker.baseline("network", "eth0") is None
    assert tracker.baseline("network", "docker0") is None


def test_load_average_collector(monkeypatch):
    monkeypatch.setattr(psutil, "getloadavg", lambda: (0.5, 1.25, 2.0))
    samples = LoadAverageCollector("host").collect(T0)
    assert len(samples) == 1
    assert (samples[0].one, samples[0].five, samples[0].fifteen) == (0.5, 1.25, 2.0)
    assert samples[0].hostname == "host"


def test_memory_collector(monkeypatch):
    Vmem = namedtuple("Vmem", "total available percent used free buffers cached")
    Swap = namedtuple("Swap", "total used free percent sin sout")
    monkeypatch.setattr(psutil, "virtual_memory", lambda: Vmem(8000, 4000, 50.0, 3000, 1000, 200, 1500))
    monkeypatch.setattr(psutil, "swap_memory", lambda: Swap(2000, 500, 1500, 25.0, 0, 0))

    samples = MemoryCollector("host").collect(T0)

    assert len(samples) == 1
    mem = samples[0]
    assert (mem.total, mem.free, mem.available, mem.buffers, mem.cached) == (8000, 1000, 4000, 200, 1500)
    assert (mem.swap_total, mem.swap_free) == (2000, 1500)


def test_filesystem_collector_excludes_pseudo_filesystems(monkeypatch):
    partitions = [
        Partition("/dev/sda1", "/", "ext4", "rw"),
        Partition("/dev/sda1", "/var/lib/docker", "ext4", "rw"),
        Partition("tmpfs", "/run", "tmpfs", "rw"),
        Partition("/dev/loop0", "/snap/core", "squashfs", "ro"),
        Partition("sshfs", "/mnt/remote", "fuse.sshfs", "rw"),
        Partition("/dev/sdb1", "/data", "xfs", "rw"),
    ]
    usage = {"/": Usage(100, 40, 60, 40.0), "/data": Usage(500, 100, 400, 20.0)}
    monkeypatch.setattr(psutil, "disk_partitions", lambda all=False: partitions)
    monkeypatch.setattr(psutil, "disk_usage", lambda path: usage[path])

    collector = FilesystemCollector("host", ["squashfs", "devtmpfs", "tmpfs", "fuse"])
    samples = collector.collect(T0)

    assert [(s.filesystem, s.total, s.used) for s in samples] == [
        ("/dev/sda1", 100, 40),
        ("/dev/sdb1", 500, 100),
    ]


def test_filesystem_collector_skips_unreadable_mount(monkeypatch):
    def usage(path):
        raise PermissionError(path)
    monkeypatch.setattr(psutil, "disk_partitions", lambda all=False: [Partition("/dev/sdc1", "/secret", "ext4", "rw")])
    monkeypatch.setattr(psutil, "disk_usage", usage)
    assert FilesystemCollector("host").collect(T0) == []
