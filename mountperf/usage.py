"""
Module that derives usage summaries from the recorded operations of mounts.

Everything in here is a pure function of the history that the recorder currently holds
for a mount. Summaries are recomputed on every query and never stored, so querying twice
without recording anything in between yields equal results.
"""

from __future__ import annotations

import collections
from dataclasses import dataclass, field
from typing import Any, Counter, Dict, List, Optional

import mountperf.constants as constants
from mountperf.common import OperationKind, OperationRecord
from mountperf.recorder import MetricsRecorder


@dataclass
class UsagePattern:
    """
    Summary of how a mount has been used.

    Only successful operations contribute to the counts, durations, frequent files and
    hourly activity. The success rate (in percent) is the exception, since it relates
    the successful operations to all buffered ones.

    The hourly activity has 24 slots indexed by the local hour of the day.
    """

    mount_id: str
    operation_count: int
    total_duration: float
    average_duration: float
    success_rate: float
    most_common_operation: OperationKind
    last_activity: float
    frequent_files: List[str] = field(default_factory=list)
    read_write_ratio: float = 0.0
    average_file_size: float = 0.0
    hourly_activity: List[int] = field(default_factory=lambda: [0] * 24)


@dataclass
class OperationStatistics:
    """Aggregated statistics for a single kind of operation."""

    kind: OperationKind
    count: int
    total_duration: float
    average_duration: float
    min_duration: float
    max_duration: float
    success_count: int
    failure_count: int
    success_rate: float
    total_data_size: Optional[int] = None
    average_data_size: Optional[float] = None
    cache_hit_rate: float = 0.0


@dataclass
class MonitorSummary:
    """Totals across all mounts, e.g. for a status indicator."""

    operation_count: int
    success_rate: float


def resource_name(uri: Any) -> Optional[str]:
    """
    Extract the name of the file or directory that a URI refers to.

    This is the last path segment, or the one before it if the URI ends with a slash.
    It's a best effort for arbitrary strings and returns None if no name is found.
    """
    if not isinstance(uri, str):
        return None

    segments = uri.split("/")

    name = segments[-1]
    if not name and len(segments) > 1:
        name = segments[-2]

    return name or None


class UsageAnalyzer:
    """Computes usage patterns and statistics from the history of a recorder."""

    def __init__(self, recorder: MetricsRecorder) -> None:
        """Instantiate an analyzer for the operations recorded by the recorder."""
        self._recorder = recorder

    def pattern(self, mount_id: str) -> Optional[UsagePattern]:
        """Return the usage pattern of a mount, or None if it has no history."""
        records = self._recorder.history(mount_id)

        if not records:
            return None

        return self._summarize(mount_id, records)

    def all_patterns(self) -> List[UsagePattern]:
        """Return the usage patterns of all mounts with history."""
        patterns = []

        for mount_id in self._recorder.mount_ids():
            pattern = self.pattern(mount_id)

            if pattern:
                patterns.append(pattern)

        return patterns

    @staticmethod
    def _summarize(mount_id: str, records: List[OperationRecord]) -> UsagePattern:
        operations = [r for r in records if r.success]

        total_duration = sum(r.duration for r in operations)
        success_rate = len(operations) / len(records) * 100

        # Ties resolve to the kind that was encountered first. This is not something
        # callers should rely upon.
        kind_counts: Counter[OperationKind] = collections.Counter(
            r.kind for r in operations
        )
        if kind_counts:
            most_common_operation = kind_counts.most_common(1)[0][0]
        else:
            most_common_operation = OperationKind.READ

        reads = kind_counts[OperationKind.READ]
        writes = kind_counts[OperationKind.WRITE]
        read_write_ratio = reads / writes if writes > 0 else float(reads)

        sizes = [r.size for r in operations if r.size]
        average_file_size = sum(sizes) / len(sizes) if sizes else 0.0

        file_counts: Counter[str] = collections.Counter()
        for r in operations:
            name = resource_name(r.local_uri)
            if name:
                file_counts[name] += 1

        frequent_files = [
            name for name, _ in file_counts.most_common(constants.MAX_FREQUENT_FILES)
        ]

        hourly_activity = [0] * 24
        for r in operations:
            hourly_activity[r.hour] += 1

        if operations:
            last_activity = operations[-1].timestamp
        else:
            last_activity = records[-1].timestamp

        return UsagePattern(
            mount_id=mount_id,
            operation_count=len(operations),
            total_duration=total_duration,
            average_duration=total_duration / len(operations) if operations else 0.0,
            success_rate=success_rate,
            most_common_operation=most_common_operation,
            last_activity=last_activity,
            frequent_files=frequent_files,
            read_write_ratio=read_write_ratio,
            average_file_size=average_file_size,
            hourly_activity=hourly_activity,
        )

    def operation_statistics(
        self, mount_id: Optional[str] = None
    ) -> Dict[OperationKind, OperationStatistics]:
        """
        Return statistics per kind of operation.

        Statistics cover the specified mount, or all mounts if it is omitted. Unlike
        usage patterns these include failed operations. Kinds that were never recorded
        are left out.
        """
        if mount_id is None:
            mount_ids = self._recorder.mount_ids()
        else:
            mount_ids = [mount_id]

        by_kind: Dict[OperationKind, List[OperationRecord]] = collections.defaultdict(
            list
        )

        for m in mount_ids:
            for record in self._recorder.history(m) or []:
                by_kind[record.kind].append(record)

        return {
            kind: self._operation_statistics(kind, records)
            for kind, records in by_kind.items()
        }

    @staticmethod
    def _operation_statistics(
        kind: OperationKind, records: List[OperationRecord]
    ) -> OperationStatistics:
        durations = [r.duration for r in records]
        success_count = sum(1 for r in records if r.success)

        stats = OperationStatistics(
            kind=kind,
            count=len(records),
            total_duration=sum(durations),
            average_duration=sum(durations) / len(records),
            min_duration=min(durations),
            max_duration=max(durations),
            success_count=success_count,
            failure_count=len(records) - success_count,
            success_rate=success_count / len(records),
            cache_hit_rate=sum(1 for r in records if r.cache_hit) / len(records),
        )

        sizes = [r.size for r in records if r.size is not None]
        if sizes:
            stats.total_data_size = sum(sizes)
            stats.average_data_size = stats.total_data_size / len(sizes)

        return stats

    def summary(self) -> MonitorSummary:
        """Return the number of buffered operations and their overall success rate."""
        total = 0
        successful = 0

        for mount_id in self._recorder.mount_ids():
            records = self._recorder.history(mount_id) or []

            total += len(records)
            successful += sum(1 for r in records if r.success)

        return MonitorSummary(
            operation_count=total,
            success_rate=successful / total * 100 if total > 0 else 0.0,
        )
