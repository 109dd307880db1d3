import time

import pytest

from mountperf.common import (
    LockIndex,
    MountHistory,
    NetworkSample,
    OperationKind,
    OperationRecord,
)


def test_lock_index():
    index = LockIndex()

    with index.lock("a"):
        with index.lock("b"):
            with index.lock("c"):
                assert index.lock_count == 3

        assert index.lock_count == 1

    assert index.lock_count == 0


def test_history_unknown_mount():
    history = MountHistory(10)

    assert history.get("nope") is None
    assert history.count("nope") == 0
    assert len(history) == 0


def test_history_append():
    history = MountHistory(10)

    history.append("a", 1)
    history.append("a", 2)
    history.append("b", 3)

    assert history.get("a") == [1, 2]
    assert history.get("b") == [3]
    assert history.mount_ids() == ["a", "b"]


def test_history_evicts_oldest():
    history = MountHistory(1000)

    for i in range(1500):
        history.append("a", i)

    assert history.get("a") == list(range(500, 1500))
    assert history.count("a") == 1000


def test_history_snapshot_is_a_copy():
    history = MountHistory(10)
    history.append("a", 1)

    snapshot = history.get("a")
    snapshot.append(2)

    assert history.get("a") == [1]


def test_history_clear_single_mount():
    history = MountHistory(10)
    history.append("a", 1)
    history.append("b", 2)

    history.clear("a")

    assert history.get("a") is None
    assert history.get("b") == [2]


def test_history_clear_all():
    history = MountHistory(10)
    history.append("a", 1)
    history.append("b", 2)

    history.clear()

    assert len(history) == 0
    assert history.mount_ids() == []


def test_history_invalid_capacity():
    with pytest.raises(ValueError):
        MountHistory(0)


def test_operation_record_hour():
    timestamp = 1_600_000_000.0

    record = OperationRecord(
        kind=OperationKind.READ,
        duration=1,
        success=True,
        local_uri="mount://a/b",
        remote_uri="ssh://host/b",
        mount_id="a",
        timestamp=timestamp,
    )

    assert record.hour == time.localtime(timestamp).tm_hour
    assert not record.cache_hit
    assert record.size is None


def test_network_sample_default_timestamp():
    before = time.time()
    sample = NetworkSample(latency=10, bandwidth=1000, packet_loss=0)

    assert sample.timestamp >= before
