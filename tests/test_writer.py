"""Tests for batch grouping and retrying writes."""

from datetime import datetime, timezone

import pytest

from metrics_agent.config import WriterConfig
from metrics_agent.errors import PersistenceError, TransientStoreError
from metrics_agent.samples import CpuSample, MemorySample, NetworkSample
from metrics_agent.store.base import BaseStore
from metrics_agent.store.writer import BatchWriter, group_samples

TS = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeStore(BaseStore):
    """Records insert calls; fails the first *failures* of them."""

    def __init__(self, failures=0, error=TransientStoreError):
        self.failures = failures
        self.error = error
        self.calls = []
        self.inserts = []

    def connect(self):
        pass

    def insert_batches(self, batches):
        self.calls.append(batches)
        if self.failures:
            self.failures -= 1
            raise self.error("store unavailable")
        self.inserts.extend(batches)

    def close(self):
        pass


def cpu(i):
    return CpuSample("host", TS, i, 1, 0, 1, 10, 0, 0, 0, 0, 0, 0)


def memory():
    return MemorySample("host", TS, 8, 1, 4, 1, 1, 2, 2)


def test_group_samples_one_batch_per_table():
    samples = [cpu(0), memory(), cpu(1), cpu(2), memory()]
    batches = group_samples(samples)

    assert [b.table for b in batches] == ["metric_cpu", "metric_memory"]
    assert [len(b) for b in batches] == [3, 2]
    assert batches[0].columns == CpuSample.columns()
    assert batches[0].rows[1][2] == 1


def test_three_cpu_two_memory_is_two_inserts():
    store = FakeStore()
    writer = BatchWriter(store, sleep=lambda _: None)

    assert writer.write([cpu(0), cpu(1), cpu(2), memory(), memory()]) is True

    assert len(store.calls) == 1
    assert len(store.inserts) == 2
    assert {b.table: len(b) for b in store.inserts} == {"metric_cpu": 3, "metric_memory": 2}


def test_empty_tick_writes_nothing():
    store = FakeStore()
    assert BatchWriter(store).write([]) is True
    assert store.calls == []


def test_transient_failure_is_retried_with_backoff():
    store = FakeStore(failures=2)
    delays = []
    writer = BatchWriter(store, WriterConfig(max_attempts=5, base_delay_seconds=0.5), sleep=delays.append)

    assert writer.write([memory()]) is True
    assert len(store.calls) == 3
    assert delays == [0.5, 1.0]
    assert len(store.inserts) == 1


def test_batches_dropped_after_retry_budget():
    store = FakeStore(failures=100)
    delays = []
    config = WriterConfig(max_attempts=4, base_delay_seconds=1.0, max_delay_seconds=3.0)
    writer = BatchWriter(store, config, sleep=delays.append)

    assert writer.write([cpu(0), memory()]) is False
    assert len(store.calls) == 4
    assert delays == [1.0, 2.0, 3.0]
    assert store.inserts == []


def test_non_transient_failure_is_not_retried():
    store = FakeStore(failures=1, error=PersistenceError)
    delays = []
    writer = BatchWriter(store, sleep=delays.append)

    assert writer.write([cpu(0)]) is False
    assert len(store.calls) == 1
    assert delays == []


@pytest.mark.parametrize("attempt, expected", [(1, 0.5), (2, 1.0), (3, 2.0), (6, 10.0)])
def test_backoff_is_capped(attempt, expected):
    writer = BatchWriter(FakeStore(), WriterConfig(base_delay_seconds=0.5, max_delay_seconds=10.0))
    assert writer.backoff(attempt) == expected


def test_samples_of_one_tick_share_rows_order():
    samples = [NetworkSample("host", TS, "eth0", 1.0, 2.0), NetworkSample("host", TS, "eth1", 3.0, 4.0)]
    (batch,) = group_samples(samples)
    assert batch.rows == [("host", TS, "eth0", 1.0, 2.0), ("host", TS, "eth1", 3.0, 4.0)]
