"""
Module that keeps track of the network conditions of mounts.

Network samples (latency, bandwidth and packet loss) are handed to the monitor by
whoever measures them, either directly or through a PeriodicSampler that calls a probe
at a fixed interval. The monitor never measures anything on its own.

The continuous measurements are turned into a discrete quality classification of the
most recent sample, using fixed thresholds that are evaluated in order:

* Excellent: latency <= 50 ms, bandwidth >= 10 MB/s and packet loss <= 0.1%
* Good: latency <= 100 ms, bandwidth >= 5 MB/s and packet loss <= 1%
* Fair: latency <= 200 ms, bandwidth >= 1 MB/s and packet loss <= 5%
* Offline: no bandwidth at all or total packet loss
* Poor: anything else

The trend compares the latency of the oldest and newest of the last three samples.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import statistics as stats
import threading
import time
from typing import Callable, List, Optional, Sequence, Tuple

import mountperf.constants as constants
from mountperf.common import MountHistory, NetworkSample
from mountperf.logger import log

# Measures the network conditions of a mount as (latency, bandwidth, packet loss).
NetworkProbe = Callable[[str], Tuple[float, float, float]]


class NetworkQuality(Enum):
    """Classification of network conditions."""

    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    OFFLINE = "offline"


class Trend(Enum):
    """Direction in which the latency of a connection is moving."""

    IMPROVING = "improving"
    DEGRADING = "degrading"
    STABLE = "stable"


@dataclass
class NetworkStatistics:
    """Network conditions of a mount derived from its buffered samples."""

    current: NetworkSample
    quality: NetworkQuality
    average_latency: float
    average_bandwidth: float
    average_packet_loss: float
    stability: float
    trend: Trend


def classify(sample: NetworkSample) -> NetworkQuality:
    """Classify the network quality of a single sample."""
    latency, bandwidth, loss = sample.latency, sample.bandwidth, sample.packet_loss

    if latency <= 50 and bandwidth >= 10_000_000 and loss <= 0.1:
        return NetworkQuality.EXCELLENT
    elif latency <= 100 and bandwidth >= 5_000_000 and loss <= 1:
        return NetworkQuality.GOOD
    elif latency <= 200 and bandwidth >= 1_000_000 and loss <= 5:
        return NetworkQuality.FAIR
    elif bandwidth == 0 or loss >= 100:
        return NetworkQuality.OFFLINE
    else:
        return NetworkQuality.POOR


def trend(samples: Sequence[NetworkSample]) -> Trend:
    """
    Determine the latency trend over the last few samples.

    The latency is improving if the newest sample is at least 20% lower than the oldest
    one in the window, and degrading if it is at least 20% higher. Fewer samples than
    the window size are always considered stable, as is a window starting at zero
    latency since there is nothing to compare a relative change against.
    """
    if len(samples) < constants.TREND_WINDOW:
        return Trend.STABLE

    window = samples[-constants.TREND_WINDOW :]
    first = window[0].latency
    last = window[-1].latency

    if first <= 0:
        return Trend.STABLE
    elif last <= first * 0.8:
        return Trend.IMPROVING
    elif last >= first * 1.2:
        return Trend.DEGRADING
    else:
        return Trend.STABLE


def stability(samples: Sequence[NetworkSample]) -> float:
    """
    Score how steady the latency is on a scale from 0 (erratic) to 1 (constant).

    The score is one minus the coefficient of variation of the latency, clamped to the
    [0, 1] range.
    """
    latencies = [s.latency for s in samples]

    if len(latencies) < 2:
        return 1.0

    mean = stats.mean(latencies)
    if mean <= 0:
        return 1.0

    return min(1.0, max(0.0, 1.0 - stats.pstdev(latencies) / mean))


class NetworkMonitor:
    """Keeps a bounded history of network samples per mount and summarizes it."""

    def __init__(
        self,
        capacity: int = constants.MAX_NETWORK_SAMPLES,
        is_enabled: Callable[[], bool] = lambda: True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Instantiate a network monitor that keeps up to capacity samples per mount.

        The is_enabled function is consulted on every sample so that the monitor can
        share its on/off switch with the operation recorder.
        """
        self._history: MountHistory[NetworkSample] = MountHistory(capacity)
        self._is_enabled = is_enabled
        self._clock = clock

    def sample(
        self, mount_id: str, latency: float, bandwidth: float, packet_loss: float
    ) -> Optional[NetworkSample]:
        """Record a network sample for a mount and return it (None if disabled)."""
        if not self._is_enabled():
            return None

        sample = NetworkSample(
            latency=latency,
            bandwidth=bandwidth,
            packet_loss=packet_loss,
            timestamp=self._clock(),
        )

        self._history.append(mount_id, sample)

        return sample

    def history(self, mount_id: str) -> Optional[List[NetworkSample]]:
        """Return the buffered samples of a mount, oldest first, or None."""
        return self._history.get(mount_id)

    def statistics(self, mount_id: str) -> Optional[NetworkStatistics]:
        """Return the network statistics of a mount, or None if it has no samples."""
        samples = self._history.get(mount_id)

        if not samples:
            return None

        current = samples[-1]

        return NetworkStatistics(
            current=current,
            quality=classify(current),
            average_latency=stats.mean(s.latency for s in samples),
            average_bandwidth=stats.mean(s.bandwidth for s in samples),
            average_packet_loss=stats.mean(s.packet_loss for s in samples),
            stability=stability(samples),
            trend=trend(samples),
        )

    def clear(self, mount_id: Optional[str] = None) -> None:
        """Drop the samples of the specified mount, or of all mounts if omitted."""
        self._history.clear(mount_id)


class PeriodicSampler:
    """
    Background task that samples the network conditions of a mount at an interval.

    The probe is called on a daemon thread and its result is handed to the monitor. A
    failing probe is logged and retried at the next interval rather than stopping the
    sampler.
    """

    def __init__(
        self,
        monitor: NetworkMonitor,
        mount_id: str,
        probe: NetworkProbe,
        interval_ms: int = constants.DEFAULT_NETWORK_SAMPLE_INTERVAL,
    ) -> None:
        """Instantiate a sampler that calls the probe every interval_ms milliseconds."""
        if interval_ms <= 0:
            raise ValueError(f"sample interval must be positive, got {interval_ms}")

        self._monitor = monitor
        self._mount_id = mount_id
        self._probe = probe
        self._interval = interval_ms / 1000

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        """Return whether the sampler thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sampling in the background (no-op if already running)."""
        if self.running:
            return

        self._stop_event.clear()

        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        log.debug(f"started network sampling for {self._mount_id}")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop sampling and wait for the thread to exit."""
        self._stop_event.set()

        if self._thread is not None:
            if self._thread is not threading.current_thread():
                self._thread.join(timeout)

            self._thread = None

            log.debug(f"stopped network sampling for {self._mount_id}")

    def sample_once(self) -> Optional[NetworkSample]:
        """Take a single sample with the probe and record it."""
        try:
            latency, bandwidth, packet_loss = self._probe(self._mount_id)
        except Exception as e:
            log.error(f"failed to measure network conditions of {self._mount_id}: {e}")
            return None

        return self._monitor.sample(self._mount_id, latency, bandwidth, packet_loss)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            self.sample_once()
