"""Module that ingests the outcomes of mount operations into a bounded history."""

import logging
import time
from typing import Callable, List, Optional

import mountperf.constants as constants
from mountperf.common import MountHistory, OperationKind, OperationRecord
from mountperf.logger import log, summarize

RecordListener = Callable[[OperationRecord], None]


class MetricsRecorder:
    """
    Recorder of completed mount operations.

    Recording is called inline by the file system handlers of a mount, so it is kept to
    a single append into the history of that mount. Nothing is parsed or validated, and
    nothing that happens here is allowed to raise into the operation being observed.

    The recorder also owns the global monitoring switch. While it is disabled, every
    ingestion call is a no-op, but the existing history can still be queried.
    """

    def __init__(
        self,
        capacity: int = constants.MAX_OPERATION_RECORDS,
        enabled: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Instantiate a recorder that keeps up to capacity records per mount."""
        self._history: MountHistory[OperationRecord] = MountHistory(capacity)
        self._enabled = enabled
        self._clock = clock

        self._listeners: List[RecordListener] = []

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable the ingestion of new records."""
        self._enabled = enabled

    def is_enabled(self) -> bool:
        """Return whether new records are being ingested."""
        return self._enabled

    def record(
        self,
        kind: OperationKind,
        duration: float,
        success: bool,
        local_uri: str,
        remote_uri: str,
        mount_id: str,
        size: Optional[int] = None,
        error: Optional[Exception] = None,
        cache_hit: bool = False,
    ) -> Optional[OperationRecord]:
        """Record the outcome of an operation and return it (None if disabled)."""
        if not self._enabled:
            return None

        record = OperationRecord(
            kind=kind,
            duration=duration,
            success=success,
            local_uri=local_uri,
            remote_uri=remote_uri,
            mount_id=mount_id,
            size=size,
            error=error,
            cache_hit=cache_hit,
            timestamp=self._clock(),
        )

        self._history.append(mount_id, record)

        # Explicit check before logging because summarize is relatively slow
        if log.isEnabledFor(logging.DEBUG):
            log.debug(
                f"{mount_id}::{kind.value}({summarize(local_uri, 80)})"
                f" - {duration} ms, success={success}"
            )

        self._notify(record)

        return record

    def history(self, mount_id: str) -> Optional[List[OperationRecord]]:
        """Return the buffered records of a mount, oldest first, or None."""
        return self._history.get(mount_id)

    def mount_ids(self) -> List[str]:
        """Return the identifiers of all mounts with recorded operations."""
        return self._history.mount_ids()

    def clear(self, mount_id: Optional[str] = None) -> None:
        """Drop the records of the specified mount, or of all mounts if omitted."""
        self._history.clear(mount_id)

    def add_listener(self, listener: RecordListener) -> None:
        """Register a function to be called with every newly recorded operation."""
        self._listeners.append(listener)

    def remove_listener(self, listener: RecordListener) -> None:
        """Unregister a previously added listener (ignored if it isn't registered)."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, record: OperationRecord) -> None:
        """Pass a record to all listeners without letting their errors escape."""
        for listener in list(self._listeners):
            try:
                listener(record)
            except Exception as e:
                log.error(f"operation listener {listener} failed: {e}")
