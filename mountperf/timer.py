"""
Module for timing mount operations whose completion is observed asynchronously.

Many mount operations are started in one place and only complete later, somewhere else
entirely (e.g. in a callback of the remote connection). Rather than having every call
site compute its own duration, the start of an operation is registered with begin(),
which hands back an opaque handle, and end() is called with that handle once the outcome
is known. The timer then records a single complete operation.

Both calls are synchronous. A handle that is never ended simply stays pending until the
timer is cleared.
"""

from contextlib import contextmanager
from dataclasses import dataclass
import itertools
import time
from typing import Callable, Dict, Iterator, Optional

from mountperf.common import OperationKind
from mountperf.recorder import MetricsRecorder

# Handle returned when nothing is being timed because monitoring is disabled.
EMPTY_HANDLE = ""


@dataclass
class PendingOperation:
    """Context of an operation that has started but not yet ended."""

    kind: OperationKind
    local_uri: str
    remote_uri: str
    mount_id: str
    start_time: float


class OperationTimer:
    """Correlates begin/end pairs of operations into recorded durations."""

    def __init__(
        self, recorder: MetricsRecorder, clock: Callable[[], float] = time.time
    ) -> None:
        """Instantiate a timer that records finished operations with the recorder."""
        self._recorder = recorder
        self._clock = clock

        self._counter = itertools.count(1)
        self._pending: Dict[str, PendingOperation] = {}

    def begin(
        self, kind: OperationKind, local_uri: str, remote_uri: str, mount_id: str
    ) -> str:
        """Register the start of an operation and return a handle to end it with."""
        if not self._recorder.is_enabled():
            return EMPTY_HANDLE

        handle = f"op_{next(self._counter)}"

        self._pending[handle] = PendingOperation(
            kind=kind,
            local_uri=local_uri,
            remote_uri=remote_uri,
            mount_id=mount_id,
            start_time=self._clock(),
        )

        return handle

    def end(
        self,
        handle: str,
        success: bool,
        size: Optional[int] = None,
        error: Optional[Exception] = None,
        cache_hit: bool = False,
    ) -> None:
        """
        Record the outcome of the operation identified by the handle.

        The pending operation is always discarded. Empty and unknown handles (e.g. ones
        that were already ended) are silently ignored.
        """
        pending = self._pending.pop(handle, None)

        if pending is None:
            return

        duration = max(0.0, (self._clock() - pending.start_time) * 1000)

        self._recorder.record(
            pending.kind,
            duration,
            success,
            pending.local_uri,
            pending.remote_uri,
            pending.mount_id,
            size=size,
            error=error,
            cache_hit=cache_hit,
        )

    @contextmanager
    def measure(
        self, kind: OperationKind, local_uri: str, remote_uri: str, mount_id: str
    ) -> Iterator[str]:
        """
        Time the operation performed within the context.

        The operation is recorded as failed if the context raises, after which the
        exception continues to propagate.
        """
        handle = self.begin(kind, local_uri, remote_uri, mount_id)

        try:
            yield handle
        except Exception as e:
            self.end(handle, False, error=e)
            raise
        else:
            self.end(handle, True)

    @property
    def pending_count(self) -> int:
        """Return the number of operations that have started but not yet ended."""
        return len(self._pending)

    def clear(self) -> None:
        """Forget all pending operations."""
        self._pending.clear()
