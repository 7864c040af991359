from __future__ import annotations

import logging
import shutil
import sqlite3
from datetime import datetime
from pathlib import Path

from config.settings import CONFIG
from db.sqlite import get_connection

logger = logging.getLogger(__name__)

BACKUP_PREFIX = "backup_sitebook_"


def backup_sqlite_db(db_path: Path | str, backups_dir: Path | str | None = None, max_backups: int | None = None) -> Path | None:
    db_path = Path(db_path)
    if not db_path.exists():
        logger.info("Backup skipped: database file not found: %s", db_path)
        return None

    backups_dir = Path(backups_dir) if backups_dir else CONFIG.backups_dir
    backups_dir.mkdir(parents=True, exist_ok=True)
    max_backups = max_backups or CONFIG.max_backup_files

    ts = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
    backup_path = backups_dir / f"{BACKUP_PREFIX}{ts}{db_path.suffix}"

    # SQLite online backup gives a consistent copy even with WAL enabled
    try:
        with get_connection(db_path) as src:
            with sqlite3.connect(backup_path) as dest:
                src.backup(dest)
            dest.close()
        logger.info("Database backup created (online backup): %s", backup_path)
    except sqlite3.Error as exc:
        # Plain file copy may be inconsistent while WAL is active
        shutil.copy2(db_path, backup_path)
        logger.warning("Online backup failed (%s). Copied the file instead: %s", exc, backup_path)

    rotate_backups(backups_dir, prefix=BACKUP_PREFIX, suffix=db_path.suffix, keep=max_backups)
    return backup_path


def rotate_backups(backups_dir: Path, prefix: str, suffix: str, keep: int) -> None:
    files = sorted(
        (p for p in backups_dir.glob(f"{prefix}*{suffix}") if p.is_file()),
        key=lambda p: p.name,
        reverse=True,
    )
    for path in files[keep:]:
        try:
            path.unlink()
            logger.info("Removed old backup: %s", path)
        except OSError as exc:
            logger.warning("Could not remove backup %s: %s", path, exc)
