"""Module for configuration variables with defaults that are overridable by a file."""

from __future__ import annotations

from configparser import ConfigParser, SectionProxy
from dataclasses import dataclass, field
from typing import List

import mountperf.constants as constants
from mountperf.logger import log


@dataclass
class MonitorConfig:
    """Configuration variables related to collecting telemetry."""

    enabled: bool = True

    max_operations: int = constants.MAX_OPERATION_RECORDS
    max_network_samples: int = constants.MAX_NETWORK_SAMPLES

    network_sample_interval: int = constants.DEFAULT_NETWORK_SAMPLE_INTERVAL  # ms

    @staticmethod
    def load(section: SectionProxy) -> MonitorConfig:
        """Load overridden variables from a section within a config file."""
        config = MonitorConfig()

        config.enabled = section.getboolean("enabled", fallback=config.enabled)

        config.max_operations = _positive_int(
            section, "max_operations", config.max_operations
        )
        config.max_network_samples = _positive_int(
            section, "max_network_samples", config.max_network_samples
        )

        config.network_sample_interval = _positive_int(
            section, "network_sample_interval", config.network_sample_interval
        )

        return config


@dataclass
class CacheConfig:
    """
    Configuration variables of the mount cache that recommendations are based on.

    These mirror the cache options of a mount. The core only reads them to describe the
    current settings, it never changes a live cache. The watch excludes are not used by
    the core itself, but are part of the same mount options record.
    """

    size_limit_mb: int = constants.DEFAULT_CACHE_SIZE_LIMIT_MB
    ttl: int = constants.DEFAULT_CACHE_TTL  # ms

    prefetch: bool = False
    compression: bool = False

    watch_excludes: List[str] = field(default_factory=list)

    @property
    def size_limit(self) -> int:
        """Return the cache size limit in bytes."""
        return self.size_limit_mb * 1024 * 1024

    @staticmethod
    def load(section: SectionProxy) -> CacheConfig:
        """Load overridden variables from a section within a config file."""
        config = CacheConfig()

        config.size_limit_mb = section.getint(
            "size_limit_mb", fallback=config.size_limit_mb
        )
        config.ttl = section.getint("ttl", fallback=config.ttl)

        config.prefetch = section.getboolean("prefetch", fallback=config.prefetch)
        config.compression = section.getboolean(
            "compression", fallback=config.compression
        )

        excludes = section.get("watch_excludes", fallback="")
        config.watch_excludes = [
            pattern.strip()
            for pattern in excludes.replace("\n", ",").split(",")
            if pattern.strip()
        ]

        return config


@dataclass
class Config:
    """Configuration variables."""

    monitor: MonitorConfig = field(default_factory=MonitorConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)

    @staticmethod
    def load(filename: str) -> Config:
        """Load overridden configuration variables from a config file."""
        parser = ConfigParser()

        config = Config()

        try:
            with open(filename, "r") as f:
                parser.read_string(f.read(), filename)

            if "monitor" in parser:
                config.monitor = MonitorConfig.load(parser["monitor"])
            if "cache" in parser:
                config.cache = CacheConfig.load(parser["cache"])
        except FileNotFoundError:
            log.info(f"no config file at {filename}")
        except Exception as e:
            # An unreadable config file is not considered a fatal error since we can
            # fall back to defaults.
            log.error(f"failed to read config file {filename}: {e}")
            config = Config()
        else:
            log.info(f"loaded config: {config}")

        return config


def _positive_int(section: SectionProxy, key: str, default: int) -> int:
    """Read an integer that must be positive, keeping the default otherwise."""
    value = section.getint(key, fallback=default)

    if value <= 0:
        log.error(f"invalid value {value} for {key}, must be positive, using {default}")
        return default

    return value
