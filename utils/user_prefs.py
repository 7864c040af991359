from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path

from config.settings import CONFIG

logger = logging.getLogger(__name__)


@dataclass
class UserPrefs:
    # Path to the database file; None means CONFIG.db_path
    db_path: str | None = None
    # WAL preference; None means CONFIG.enable_wal
    enable_wal: bool | None = None
    # Materials below this quantity are flagged as low stock
    low_stock_threshold: float | None = None


def load_prefs(path: Path | None = None) -> UserPrefs:
    path = Path(path) if path else CONFIG.user_settings_path
    try:
        if path.exists():
            data = json.loads(path.read_text(encoding="utf-8"))
            threshold = data.get("low_stock_threshold")
            return UserPrefs(
                db_path=data.get("db_path") or None,
                enable_wal=data.get("enable_wal") if data.get("enable_wal") is not None else None,
                low_stock_threshold=float(threshold) if threshold is not None else None,
            )
    except (OSError, ValueError, TypeError) as exc:
        logger.warning("Could not read user settings %s: %s", path, exc)
    return UserPrefs()


def save_prefs(prefs: UserPrefs, path: Path | None = None) -> None:
    path = Path(path) if path else CONFIG.user_settings_path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(prefs), ensure_ascii=False, indent=2), encoding="utf-8")
    except OSError as exc:
        logger.warning("Could not save user settings %s: %s", path, exc)


# ---- Helpers for DB settings ----

def get_current_db_path(path: Path | None = None) -> Path:
    """Return the configured DB path: the user's one from prefs or CONFIG's default.

    Makes sure the parent directory exists.
    """
    prefs = load_prefs(path)
    db_path = Path(prefs.db_path) if prefs.db_path else Path(CONFIG.db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


def set_db_path(new_path: Path | str, path: Path | None = None) -> None:
    prefs = load_prefs(path)
    prefs.db_path = str(Path(new_path))
    save_prefs(prefs, path)


def get_enable_wal(path: Path | None = None) -> bool:
    prefs = load_prefs(path)
    if prefs.enable_wal is None:
        return bool(CONFIG.enable_wal)
    return bool(prefs.enable_wal)


def get_low_stock_threshold(path: Path | None = None) -> float:
    prefs = load_prefs(path)
    if prefs.low_stock_threshold is None:
        return CONFIG.low_stock_threshold
    return prefs.low_stock_threshold


def set_low_stock_threshold(value: float, path: Path | None = None) -> None:
    prefs = load_prefs(path)
    prefs.low_stock_threshold = float(value)
    save_prefs(prefs, path)
