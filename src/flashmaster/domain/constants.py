"""Centralized constants for the flashmaster domain.

Scheduling bounds, snapshot format details and storage defaults live here so
every layer imports from a single source of truth.
"""

# ---------- Easiness factor ----------
EF_MIN = 1.3
EF_MAX = 2.8
EF_DEFAULT = 2.5

# ---------- Scheduling ----------
FIRST_INTERVAL_DAYS = 1
SECOND_INTERVAL_DAYS = 6
LAPSE_INTERVAL_DAYS = 1
LAPSED_AFTER_HOURS = 24

# ---------- Snapshot file ----------
SNAPSHOT_VERSION = 1
STORE_FILE_NAME = "flashmaster.json"
BACKUPS_DIR_NAME = "backups"
BACKUP_PREFIX = "flashmaster-"
BACKUP_SUFFIX = ".json"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S-%f"

# ---------- Retention ----------
DEFAULT_MAX_BACKUPS = 10
MIN_BACKUPS = 1

# ---------- Review session ----------
DEFAULT_REVIEW_MAX = 50

# ---------- Export bundle ----------
EXPORT_VERSION = 1
CSV_HEADER = ["deck", "front", "back", "hint", "tags", "suspended"]
TAG_SEPARATOR = ";"
