"""
Performance telemetry and cache advice for mounted remote folders.

Every operation that the file system bridge of a mount performs against the remote side
(read, write, delete, create, rename, list and stat) is reported here along with its
duration and outcome, as are samples of the network conditions of the connection. From
that history, mountperf derives three things on demand:

* A usage pattern per mount: how busy it is, which operations and files dominate, how
  reliable it is and at which hours it is used.
* A classification of the network quality and the direction it is trending in.
* Recommendations for the cache, prefetch and compression settings of the mount.

Recording happens inline with the operations being observed, so it is limited to a
single append into a bounded per-mount history and never raises. The history of each
mount is capped (1000 operations and 100 network samples by default) and always keeps
the most recent entries. Nothing is persisted; all summaries are recomputed from the
buffered history on every query.

mountperf does not cache anything or measure the network itself. It only observes and
advises, leaving it up to the owner of the mount to apply the advice.
"""

from .advisor import CacheSettings, Priority, Recommendation, RecommendationCategory
from .common import NetworkSample, OperationKind, OperationRecord
from .config import Config
from .monitor import MountPerformanceMonitor
from .network import NetworkQuality, NetworkStatistics, Trend
from .timer import EMPTY_HANDLE
from .usage import UsagePattern

__all__ = [
    "CacheSettings",
    "Config",
    "EMPTY_HANDLE",
    "MountPerformanceMonitor",
    "NetworkQuality",
    "NetworkSample",
    "NetworkStatistics",
    "OperationKind",
    "OperationRecord",
    "Priority",
    "Recommendation",
    "RecommendationCategory",
    "Trend",
    "UsagePattern",
]
