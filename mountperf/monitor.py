"""
Module exposing the performance monitor of mounted remote folders.

A MountPerformanceMonitor is created by whoever owns the mounts and is passed to the
file system handlers, which report every operation to it, and to the presentation
layer, which queries it. It is an ordinary object rather than a process-wide singleton,
so any number of independent monitors can exist side by side.

Example:
```
monitor = MountPerformanceMonitor(Config.load("/etc/mountperf.ini"))

handle = monitor.begin_operation(OperationKind.READ, local_uri, remote_uri, "m1")
...
monitor.end_operation(handle, success=True, size=len(data))

for recommendation in monitor.generate_optimization_recommendations("m1"):
    print(recommendation.description)
```
"""

import time
from typing import Callable, Dict, List, Optional

import mountperf.constants as constants
from mountperf.advisor import CacheAdvisor, CacheSettings, Recommendation
from mountperf.common import OperationKind
from mountperf.config import Config
from mountperf.logger import log
from mountperf.network import (
    NetworkMonitor,
    NetworkProbe,
    NetworkStatistics,
    PeriodicSampler,
)
from mountperf.recorder import MetricsRecorder, RecordListener
from mountperf.report import PerformanceReport, recent_failures
from mountperf.timer import OperationTimer
from mountperf.usage import (
    MonitorSummary,
    OperationStatistics,
    UsageAnalyzer,
    UsagePattern,
)


class MountPerformanceMonitor:
    """
    Telemetry and cache advice for all mounts of a session.

    Ingestion methods never raise and are no-ops while monitoring is disabled or after
    the monitor has been disposed. Query methods always work on whatever history is
    currently buffered and return None (or an empty list) for unknown mounts.
    """

    def __init__(
        self, config: Optional[Config] = None, clock: Callable[[], float] = time.time
    ) -> None:
        """Instantiate a monitor with the given configuration (or the defaults)."""
        self._config = config or Config()
        self._clock = clock
        self._disposed = False

        self._recorder = MetricsRecorder(
            capacity=self._config.monitor.max_operations,
            enabled=self._config.monitor.enabled,
            clock=clock,
        )
        self._timer = OperationTimer(self._recorder, clock=clock)
        self._analyzer = UsageAnalyzer(self._recorder)
        self._network = NetworkMonitor(
            capacity=self._config.monitor.max_network_samples,
            is_enabled=self._recorder.is_enabled,
            clock=clock,
        )
        self._advisor = CacheAdvisor(self._analyzer, self._network, self._config.cache)

        self._samplers: Dict[str, PeriodicSampler] = {}

    #
    # Monitoring switch
    #

    def set_enabled(self, enabled: bool) -> None:
        """Enable or disable the ingestion of operations and network samples."""
        if self._disposed:
            return

        self._recorder.set_enabled(enabled)
        log.info(f"mount performance monitoring {'enabled' if enabled else 'disabled'}")

    def is_enabled(self) -> bool:
        """Return whether operations and network samples are being ingested."""
        return self._recorder.is_enabled()

    #
    # Ingestion
    #

    def record_operation(
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
    ) -> None:
        """Record a completed operation against a mount."""
        self._recorder.record(
            kind,
            duration,
            success,
            local_uri,
            remote_uri,
            mount_id,
            size=size,
            error=error,
            cache_hit=cache_hit,
        )

    def begin_operation(
        self, kind: OperationKind, local_uri: str, remote_uri: str, mount_id: str
    ) -> str:
        """Start timing an operation and return the handle to end it with."""
        return self._timer.begin(kind, local_uri, remote_uri, mount_id)

    def end_operation(
        self,
        handle: str,
        success: bool,
        size: Optional[int] = None,
        error: Optional[Exception] = None,
        cache_hit: bool = False,
    ) -> None:
        """Finish timing an operation and record its outcome."""
        self._timer.end(handle, success, size=size, error=error, cache_hit=cache_hit)

    def record_network_sample(
        self, mount_id: str, latency: float, bandwidth: float, packet_loss: float
    ) -> None:
        """Record the network conditions observed for a mount."""
        self._network.sample(mount_id, latency, bandwidth, packet_loss)

    def add_listener(self, listener: RecordListener) -> None:
        """Register a function to be called with every recorded operation."""
        self._recorder.add_listener(listener)

    def remove_listener(self, listener: RecordListener) -> None:
        """Unregister a function previously passed to add_listener."""
        self._recorder.remove_listener(listener)

    #
    # Queries
    #

    def get_usage_pattern(self, mount_id: str) -> Optional[UsagePattern]:
        """Return the usage pattern of a mount, or None if it has no history."""
        return self._analyzer.pattern(mount_id)

    def get_all_usage_patterns(self) -> List[UsagePattern]:
        """Return the usage patterns of all mounts with history."""
        return self._analyzer.all_patterns()

    def get_operation_statistics(
        self, mount_id: Optional[str] = None
    ) -> Dict[OperationKind, OperationStatistics]:
        """Return statistics per kind of operation for a mount or all mounts."""
        return self._analyzer.operation_statistics(mount_id)

    def get_summary(self) -> MonitorSummary:
        """Return the total number of buffered operations and their success rate."""
        return self._analyzer.summary()

    def get_network_statistics(self, mount_id: str) -> Optional[NetworkStatistics]:
        """Return the network statistics of a mount, or None if it has no samples."""
        return self._network.statistics(mount_id)

    def get_adaptive_cache_settings(self, mount_id: str) -> CacheSettings:
        """Return the cache settings that recommendations for a mount start from."""
        return self._advisor.settings(mount_id)

    def generate_optimization_recommendations(
        self, mount_id: str
    ) -> List[Recommendation]:
        """Return the recommendations for a mount, most urgent first."""
        return self._advisor.recommendations(mount_id)

    def build_report(self, mount_id: str) -> PerformanceReport:
        """Bundle everything known about a mount into a single report."""
        return PerformanceReport(
            mount_id=mount_id,
            settings=self.get_adaptive_cache_settings(mount_id),
            usage=self.get_usage_pattern(mount_id),
            network=self.get_network_statistics(mount_id),
            recommendations=self.generate_optimization_recommendations(mount_id),
            recent_failures=recent_failures(self._recorder.history(mount_id)),
            generated_at=self._clock(),
        )

    #
    # Background sampling
    #

    def start_network_sampling(
        self, mount_id: str, probe: NetworkProbe, interval_ms: Optional[int] = None
    ) -> None:
        """
        Periodically sample the network conditions of a mount with the given probe.

        Any sampler that was already running for the mount is replaced. Without a
        positive interval the configured one is used.
        """
        if self._disposed:
            return

        if interval_ms is None or interval_ms <= 0:
            interval_ms = self._config.monitor.network_sample_interval
        if interval_ms <= 0:
            interval_ms = constants.DEFAULT_NETWORK_SAMPLE_INTERVAL

        self.stop_network_sampling(mount_id)

        sampler = PeriodicSampler(self._network, mount_id, probe, interval_ms)
        self._samplers[mount_id] = sampler

        sampler.start()

    def stop_network_sampling(self, mount_id: str) -> None:
        """Stop periodically sampling the network conditions of a mount."""
        sampler = self._samplers.pop(mount_id, None)

        if sampler is not None:
            sampler.stop()

    def is_sampling(self, mount_id: str) -> bool:
        """Return whether the network conditions of a mount are being sampled."""
        sampler = self._samplers.get(mount_id)
        return sampler is not None and sampler.running

    #
    # Lifecycle
    #

    def clear_metrics(self, mount_id: Optional[str] = None) -> None:
        """Drop the history of the specified mount, or of all mounts if omitted."""
        self._recorder.clear(mount_id)
        self._network.clear(mount_id)

        if mount_id is None:
            log.info("cleared mount performance metrics")

    def dispose(self) -> None:
        """
        Drop all history and pending operations and stop all background sampling.

        The monitor stays inert afterwards and should be replaced by a new one.
        """
        for mount_id in list(self._samplers):
            self.stop_network_sampling(mount_id)

        self._recorder.set_enabled(False)
        self._disposed = True

        self._timer.clear()
        self.clear_metrics()

        log.info("disposed mount performance monitor")

    @property
    def disposed(self) -> bool:
        """Return whether the monitor has been disposed."""
        return self._disposed
