"""Module defining various global constants."""

# mountperf version
VERSION = "1.0.0"

# Per-mount history limits. Insertion beyond these evicts the oldest entries.
MAX_OPERATION_RECORDS = 1000
MAX_NETWORK_SAMPLES = 100

# Number of entries reported as the most frequently accessed resources of a mount.
MAX_FREQUENT_FILES = 10

# Number of most recent network samples that the trend is derived from.
TREND_WINDOW = 3

# Default cache settings that recommendations are compared against.
DEFAULT_CACHE_SIZE_LIMIT_MB = 50
DEFAULT_CACHE_TTL = 300_000  # 5 minutes

# Interval between samples taken by a periodic network sampler.
DEFAULT_NETWORK_SAMPLE_INTERVAL = 60_000  # 1 minute
