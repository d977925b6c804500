from __future__ import annotations

# Version metadata (printed by --version)
NAME = "sheetping"
AUTHOR = "sheetping contributors"
VERSION = "0.1.0"
COMMIT = "none"
BUILD_DATE = "unknown"

# Worksheet holding one row per host
CONFIG_WORKSHEET = "CONFIG"
TARGET_KEY_PREFIX = "target_"

# Seconds between pulls of the host config
CONFIG_PULL_INTERVAL_SECONDS = 300.0
# Retry delay when a refresh fails before any host was ever resolved
FALLBACK_RETRY_SECONDS = 60.0

# Probe settings
PROBE_SPACING_SECONDS = 1.0  # gap between samples sent to one target
PROBE_TIMEOUT_SECONDS = 3.0  # wait for each reply
PROBE_GRACE_SECONDS = 2.0  # extra slack before the ping process is killed

# Worksheet layout
TIMESTAMP_COLUMN = "TIMESTAMP"
METRICS: tuple[str, ...] = ("RTT", "JTT", "SENT", "DROPS")
RESERVED_ROWS = 2  # header + latest snapshot
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"  # UTC

# Logging
LOG_TIME_FORMAT = "[%Y-%m-%d %H:%M:%S]"
