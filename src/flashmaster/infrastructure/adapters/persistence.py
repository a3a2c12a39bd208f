"""
Crash-safe snapshot writing.

The primary file is only ever replaced atomically: bytes go to a temp file
in the same directory, are fsynced, and then `os.replace`d over the target.
Each write also lands in a timestamped backup, and old backups are rotated.

All functions here block and raise OSError; callers translate.
"""

import logging
import os
import tempfile
from datetime import datetime
from pathlib import Path

from flashmaster.domain.constants import (
    BACKUP_PREFIX,
    BACKUP_SUFFIX,
    BACKUP_TIMESTAMP_FORMAT,
    MIN_BACKUPS,
)
from flashmaster.domain.models import utcnow

logger = logging.getLogger(__name__)


def _fsync_dir(directory: Path) -> None:
    if os.name != "posix":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def atomic_write(path: Path, data: bytes) -> None:
    """
    Replace `path` with `data` so readers see either the old or the new file.

    The temp file is removed if anything fails before the replace.
    """
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=directory)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    _fsync_dir(directory)


def backup_name(moment: datetime) -> str:
    return f"{BACKUP_PREFIX}{moment.strftime(BACKUP_TIMESTAMP_FORMAT)}{BACKUP_SUFFIX}"


def list_backups(backups_dir: Path, exclude: Path | None = None) -> list[Path]:
    """
    Backup files, oldest first (by mtime, then name).

    Only names written by `backup_name` count; `exclude` (the primary store
    file, when it shares the directory) is never listed.
    """
    if not backups_dir.is_dir():
        return []
    skip = exclude.resolve() if exclude else None
    entries = [
        p
        for p in backups_dir.glob(f"{BACKUP_PREFIX}*{BACKUP_SUFFIX}")
        if p.is_file() and p.resolve() != skip
    ]
    return sorted(entries, key=lambda p: (p.stat().st_mtime_ns, p.name))


def rotate_backups(backups_dir: Path, keep: int, exclude: Path | None = None) -> list[Path]:
    """Delete the oldest backups beyond `keep`. Returns the deleted paths."""
    keep = max(keep, MIN_BACKUPS)
    entries = list_backups(backups_dir, exclude)
    doomed = entries[: max(len(entries) - keep, 0)]
    for p in doomed:
        p.unlink(missing_ok=True)
        logger.debug(f"Rotated out backup {p.name}")
    return doomed


def write_backup(backups_dir: Path, data: bytes, moment: datetime | None = None) -> Path:
    backups_dir.mkdir(parents=True, exist_ok=True)
    target = backups_dir / backup_name(moment or utcnow())
    atomic_write(target, data)
    return target


def write_snapshot(
    path: Path,
    backups_dir: Path,
    max_backups: int,
    data: bytes,
    moment: datetime | None = None,
) -> Path:
    """
    Persist one snapshot: primary file, timestamped backup, then rotation.

    Returns:
        Path of the backup that was written.
    """
    atomic_write(path, data)
    backup = write_backup(backups_dir, data, moment)
    rotate_backups(backups_dir, max_backups, exclude=path)
    return backup
