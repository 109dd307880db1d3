import pytest

from mountperf.common import OperationKind
from mountperf.recorder import MetricsRecorder
from mountperf.timer import EMPTY_HANDLE, OperationTimer


def create_timer(clock, **recorder_args):
    recorder = MetricsRecorder(clock=clock, **recorder_args)
    return recorder, OperationTimer(recorder, clock=clock)


def begin_write(timer, mount_id="m1"):
    return timer.begin(
        OperationKind.WRITE, "mount://m1/notes.md", "ssh://host/notes.md", mount_id
    )


def test_begin_end(clock):
    recorder, timer = create_timer(clock)

    handle = begin_write(timer)
    clock.advance(0.25)
    timer.end(handle, True, size=42)

    (record,) = recorder.history("m1")

    assert record.kind == OperationKind.WRITE
    assert record.duration == pytest.approx(250)
    assert record.success
    assert record.size == 42
    assert record.local_uri == "mount://m1/notes.md"
    assert record.remote_uri == "ssh://host/notes.md"
    assert timer.pending_count == 0


def test_handles_increase(clock):
    _, timer = create_timer(clock)

    handles = [begin_write(timer) for _ in range(3)]

    assert handles == ["op_1", "op_2", "op_3"]
    assert timer.pending_count == 3


def test_interleaved_operations(clock):
    recorder, timer = create_timer(clock)

    first = begin_write(timer, "m1")
    clock.advance(1)
    second = begin_write(timer, "m2")
    clock.advance(1)

    timer.end(second, False, error=IOError("disk full"))
    timer.end(first, True)

    assert recorder.history("m1")[0].duration == pytest.approx(2000)
    assert recorder.history("m2")[0].duration == pytest.approx(1000)
    assert isinstance(recorder.history("m2")[0].error, IOError)


def test_begin_disabled(clock):
    recorder, timer = create_timer(clock, enabled=False)

    handle = begin_write(timer)

    assert handle == EMPTY_HANDLE
    assert timer.pending_count == 0

    timer.end(handle, True)

    assert recorder.history("m1") is None


def test_end_unknown_handle(clock):
    recorder, timer = create_timer(clock)

    timer.end("op_12345", True)
    timer.end(EMPTY_HANDLE, True)

    assert recorder.mount_ids() == []


def test_end_twice(clock):
    recorder, timer = create_timer(clock)

    handle = begin_write(timer)
    timer.end(handle, True)
    timer.end(handle, True)

    assert len(recorder.history("m1")) == 1


def test_end_after_disabling_discards(clock):
    recorder, timer = create_timer(clock)

    handle = begin_write(timer)
    recorder.set_enabled(False)
    timer.end(handle, True)

    assert timer.pending_count == 0
    assert recorder.history("m1") is None


def test_clock_going_backwards(clock):
    recorder, timer = create_timer(clock)

    handle = begin_write(timer)
    clock.advance(-5)
    timer.end(handle, True)

    assert recorder.history("m1")[0].duration == 0


def test_clear(clock):
    _, timer = create_timer(clock)

    begin_write(timer)
    begin_write(timer)
    timer.clear()

    assert timer.pending_count == 0


def test_measure(clock):
    recorder, timer = create_timer(clock)

    with timer.measure(OperationKind.LIST, "mount://m1/", "ssh://host/", "m1"):
        clock.advance(0.1)

    (record,) = recorder.history("m1")

    assert record.kind == OperationKind.LIST
    assert record.success
    assert record.duration == pytest.approx(100)


def test_measure_failure(clock):
    recorder, timer = create_timer(clock)

    with pytest.raises(FileNotFoundError):
        with timer.measure(OperationKind.STAT, "mount://m1/x", "ssh://host/x", "m1"):
            raise FileNotFoundError("x")

    (record,) = recorder.history("m1")

    assert not record.success
    assert isinstance(record.error, FileNotFoundError)
    assert timer.pending_count == 0
