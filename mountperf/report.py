"""Module that bundles everything known about a mount into a single report."""

from __future__ import annotations

from dataclasses import dataclass, field
import time
from typing import List, Optional

from mountperf.advisor import CacheSettings, Recommendation
from mountperf.common import OperationRecord
from mountperf.encoding import Encoding
from mountperf.network import NetworkStatistics
from mountperf.usage import UsagePattern

# Number of failed operations that are included in a report.
MAX_REPORTED_FAILURES = 10


@dataclass
class PerformanceReport:
    """
    Point in time view of the performance of a mount, e.g. for a metrics dashboard.

    Usage and network statistics are None if nothing has been recorded for the mount.
    The recent failures are the newest failed operations, newest first.
    """

    mount_id: str
    settings: CacheSettings
    usage: Optional[UsagePattern] = None
    network: Optional[NetworkStatistics] = None
    recommendations: List[Recommendation] = field(default_factory=list)
    recent_failures: List[OperationRecord] = field(default_factory=list)
    generated_at: float = field(default_factory=time.time)


def recent_failures(
    records: Optional[List[OperationRecord]], limit: int = MAX_REPORTED_FAILURES
) -> List[OperationRecord]:
    """Return the newest failed operations among the records, newest first."""
    failures = [r for r in reversed(records or []) if not r.success]
    return failures[:limit]


# (De)serializer for reports, including all nested types
encoding = Encoding(PerformanceReport)
