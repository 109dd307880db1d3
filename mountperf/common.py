"""Data structures used by multiple telemetry components."""

from __future__ import annotations

import collections
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
import threading
import time
from typing import Any, Deque, Dict, Generic, Iterator, List, Optional, TypeVar


class OperationKind(Enum):
    """Types of operations performed against a mounted remote folder."""

    READ = "read"
    WRITE = "write"
    DELETE = "delete"
    CREATE = "create"
    RENAME = "rename"
    LIST = "list"
    STAT = "stat"


@dataclass(frozen=True)
class OperationRecord:
    """
    Outcome of a single operation against a mount.

    The URIs are kept as opaque strings. They are never parsed or validated, so a
    malformed URI can't cause recording to fail. The duration is in milliseconds and the
    timestamp in seconds since the epoch.
    """

    kind: OperationKind
    duration: float
    success: bool
    local_uri: str
    remote_uri: str
    mount_id: str
    size: Optional[int] = None
    error: Optional[Exception] = None
    cache_hit: bool = False
    timestamp: float = field(default_factory=time.time)

    @property
    def hour(self) -> int:
        """Return the local hour of the day at which the operation was recorded."""
        return time.localtime(self.timestamp).tm_hour


@dataclass(frozen=True)
class NetworkSample:
    """Network conditions observed for a mount (ms, bytes/sec and percent)."""

    latency: float
    bandwidth: float
    packet_loss: float
    timestamp: float = field(default_factory=time.time)


class LockIndex:
    """
    Collection of mutexes to lock critical sections by arbitrary values.

    Its use case is to lock critical sections based on unpredictable input values, like
    mount identifiers. Locks are automatically garbage collected when no longer in use
    (no threads in the critical section and none waiting to enter).
    """

    def __init__(self) -> None:
        """Instantiate a LockIndex."""
        self._global_lock = threading.Lock()

        self._locks: Dict[Any, threading.Lock] = collections.defaultdict(threading.Lock)
        self._lock_users: Dict[Any, int] = collections.defaultdict(int)

    @contextmanager
    def lock(self, key: Any, blocking=True) -> Iterator[bool]:
        """Lock a critical section based on the specified key."""
        # Retrieve lock and increment user count
        with self._global_lock:
            self._lock_users[key] += 1
            lock = self._locks[key]

        acquired = lock.acquire(blocking)

        try:
            yield acquired
        finally:
            if acquired:
                lock.release()

            # Decrement user count and delete lock if there are none left
            with self._global_lock:
                self._lock_users[key] -= 1

                if self._lock_users[key] == 0:
                    del self._lock_users[key]
                    del self._locks[key]

    @property
    def lock_count(self):
        """Return the number of locks currently in use."""
        with self._global_lock:
            return len(self._locks)


T = TypeVar("T")


class MountHistory(Generic[T]):
    """
    Bounded per-mount history of recorded items.

    Every mount gets its own FIFO buffer on first use. Once a buffer is at capacity,
    appending evicts the oldest item, so it always holds the most recent window in the
    order the items were appended. A mount without any items has no buffer at all,
    which lets queries distinguish "no history" from an empty summary.

    Each buffer is guarded by its own lock so that items may be appended from a
    background thread (like a periodic network sampler) while the host thread queries.
    """

    def __init__(self, capacity: int) -> None:
        """Instantiate an empty history that keeps up to capacity items per mount."""
        if capacity <= 0:
            raise ValueError(f"history capacity must be positive, got {capacity}")

        self._capacity = capacity

        self._buffers: Dict[str, Deque[T]] = {}
        self._locks = LockIndex()

    @property
    def capacity(self) -> int:
        """Return the maximum number of items kept per mount."""
        return self._capacity

    def append(self, mount_id: str, item: T) -> None:
        """Append an item to the history of a mount, evicting the oldest if full."""
        with self._locks.lock(mount_id):
            buffer = self._buffers.get(mount_id)

            if buffer is None:
                buffer = collections.deque(maxlen=self._capacity)
                self._buffers[mount_id] = buffer

            buffer.append(item)

    def get(self, mount_id: str) -> Optional[List[T]]:
        """Return a snapshot of the history of a mount, or None if it has none."""
        with self._locks.lock(mount_id):
            buffer = self._buffers.get(mount_id)

            if not buffer:
                return None

            return list(buffer)

    def count(self, mount_id: str) -> int:
        """Return the number of items currently kept for a mount."""
        with self._locks.lock(mount_id):
            return len(self._buffers.get(mount_id, ()))

    def mount_ids(self) -> List[str]:
        """Return the identifiers of all mounts with history, oldest first."""
        return list(self._buffers)

    def clear(self, mount_id: Optional[str] = None) -> None:
        """Drop the history of the specified mount, or of all mounts if omitted."""
        if mount_id is None:
            self._buffers.clear()
        else:
            with self._locks.lock(mount_id):
                self._buffers.pop(mount_id, None)

    def __len__(self) -> int:
        """Return the number of mounts with history."""
        return len(self._buffers)
