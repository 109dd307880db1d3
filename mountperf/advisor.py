"""
Module that turns usage patterns and network conditions into cache advice.

The advisor never touches a cache. It describes the current cache settings of a mount
and suggests changes to them, which the owner of the mount may choose to apply with
apply_recommendation().

Recommendations come from a few independent rules. All rules that apply are returned,
ranked by priority:

* Directory listings dominate: enable prefetching (medium).
* Poor network quality: double the cache TTL to 10 minutes (high).
* More than 100 successful operations: raise the cache size limit to 100 MB (medium).
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from mountperf.common import OperationKind
from mountperf.config import CacheConfig
from mountperf.network import NetworkMonitor, NetworkQuality
from mountperf.usage import UsageAnalyzer

# Thresholds and values used by the recommendation rules
HIGH_ACTIVITY_OPERATION_COUNT = 100
RECOMMENDED_POOR_NETWORK_TTL = 600_000  # 10 minutes
RECOMMENDED_HIGH_ACTIVITY_SIZE_LIMIT = 100 * 1024 * 1024  # 100 MB


@dataclass
class CacheSettings:
    """Cache configuration of a mount (size limit in bytes, TTL in milliseconds)."""

    mount_id: str
    enabled: bool
    size_limit: int
    ttl: int
    prefetch: bool
    compression: bool


class RecommendationCategory(Enum):
    """Aspect of a mount that a recommendation is about."""

    CACHE_SIZE = "cache_size"
    CACHE_TTL = "cache_ttl"
    PREFETCH = "prefetch"
    COMPRESSION = "compression"
    CONNECTION = "connection"
    FILE_TRANSFER = "file_transfer"


class Priority(Enum):
    """Urgency of a recommendation."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Return a number that increases with the urgency."""
        return list(Priority).index(self)


@dataclass
class Recommendation:
    """Suggested change to the settings of a mount."""

    category: RecommendationCategory
    priority: Priority
    description: str
    impact: str
    implementation: str
    recommended_value: Any
    current_value: Optional[Any] = None


# Settings that each category of recommendation changes when it is applied
_SETTING_BY_CATEGORY = {
    RecommendationCategory.CACHE_SIZE: "size_limit",
    RecommendationCategory.CACHE_TTL: "ttl",
    RecommendationCategory.PREFETCH: "prefetch",
    RecommendationCategory.COMPRESSION: "compression",
}


def apply_recommendation(
    settings: CacheSettings, recommendation: Recommendation
) -> CacheSettings:
    """
    Return a copy of the settings with the recommendation applied.

    Recommendations that aren't about cache settings (e.g. connection advice) leave the
    settings unchanged.
    """
    setting = _SETTING_BY_CATEGORY.get(recommendation.category)

    if setting is None:
        return dataclasses.replace(settings)

    return dataclasses.replace(settings, **{setting: recommendation.recommended_value})


class CacheAdvisor:
    """Combines usage and network state into cache settings and recommendations."""

    def __init__(
        self,
        analyzer: UsageAnalyzer,
        network: NetworkMonitor,
        config: Optional[CacheConfig] = None,
    ) -> None:
        """Instantiate an advisor that starts from the configured cache settings."""
        self._analyzer = analyzer
        self._network = network
        self._config = config or CacheConfig()

    def settings(self, mount_id: str) -> CacheSettings:
        """
        Return the cache settings of a mount.

        There is always a result, even for mounts without any history, since the
        configured defaults are a valid baseline for any mount.
        """
        return CacheSettings(
            mount_id=mount_id,
            enabled=True,
            size_limit=self._config.size_limit,
            ttl=self._config.ttl,
            prefetch=self._config.prefetch,
            compression=self._config.compression,
        )

    def recommendations(self, mount_id: str) -> List[Recommendation]:
        """Return recommendations for a mount, most urgent first."""
        pattern = self._analyzer.pattern(mount_id)

        if pattern is None:
            return []

        network = self._network.statistics(mount_id)
        current = self.settings(mount_id)

        recommendations = []

        if pattern.most_common_operation == OperationKind.LIST:
            recommendations.append(
                Recommendation(
                    category=RecommendationCategory.PREFETCH,
                    priority=Priority.MEDIUM,
                    description="Enable prefetching for frequently accessed directories",
                    impact="Reduces latency for directory operations",
                    implementation="Enable prefetch in mount settings",
                    recommended_value=True,
                    current_value=current.prefetch,
                )
            )

        if network and network.quality == NetworkQuality.POOR:
            recommendations.append(
                Recommendation(
                    category=RecommendationCategory.CACHE_TTL,
                    priority=Priority.HIGH,
                    description="Increase cache TTL due to poor network conditions",
                    impact="Reduces network requests and improves performance",
                    implementation="Increase cache TTL to 10 minutes",
                    recommended_value=RECOMMENDED_POOR_NETWORK_TTL,
                    current_value=current.ttl,
                )
            )

        # Only activity volume is considered here, not the actual cache hit rate.
        if pattern.operation_count > HIGH_ACTIVITY_OPERATION_COUNT:
            recommendations.append(
                Recommendation(
                    category=RecommendationCategory.CACHE_SIZE,
                    priority=Priority.MEDIUM,
                    description="Increase cache size due to high activity",
                    impact="Improves cache hit rate and reduces network requests",
                    implementation="Increase cache size to 100MB",
                    recommended_value=RECOMMENDED_HIGH_ACTIVITY_SIZE_LIMIT,
                    current_value=current.size_limit,
                )
            )

        # Stable sort keeps the rule order within the same priority
        recommendations.sort(key=lambda r: r.priority.rank, reverse=True)

        return recommendations
