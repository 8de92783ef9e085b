"""Project-wide constants and lightweight helpers."""

from __future__ import annotations

import os
from pathlib import Path

# The whole live-probe phase has to fit inside the host widget's run budget.
PROBE_TIMEOUT_SECONDS = 5.0

HISTORY_RETENTION_DAYS = 10
WEEK_BUCKETS = 8
SECONDS_PER_DAY = 60 * 60 * 24

SERVER_DATA_DIRNAME = "mc_server_data"
CACHED_FAVICON_FILENAME = "cached_favicon"
WEEK_STATS_FILENAME = "week_stats"

FAVICON_PREFIX = "data:image/png;base64,"

# Identicon geometry: a 9x9 grid of 6px cells inside a 6px transparent border.
IDENTICON_GRID = 9
IDENTICON_CELL_PX = 6
IDENTICON_BORDER_PX = 6


def default_data_dir() -> str:
    """Data root used by the CLI when none is given."""
    env_dir = os.getenv("MCPING_DATA_DIR")
    if env_dir:
        return str(Path(env_dir).expanduser())
    return str(Path.home() / ".mcping-widget")


# Logging
LOG_FILE_DIR = os.getenv("MCPING_LOG_FILE_DIR")
LOG_FILE_NAME = "mcping-widget.log"
LOG_FILE_MAX_BYTES = int(os.getenv("MCPING_LOG_FILE_MAX_BYTES", "1048576"))
LOG_FILE_BACKUPS = int(os.getenv("MCPING_LOG_FILE_BACKUPS", "3"))
