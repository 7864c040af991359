from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class AppConfig:
    app_name: str = "SiteBook"
    base_dir: Path = Path(os.environ.get("SITEBOOK_BASE_DIR", Path.cwd()))

    data_dir: Path = base_dir / "data"
    db_path: Path = data_dir / "sitebook.db"
    user_settings_path: Path = data_dir / "user_settings.json"

    backups_dir: Path = base_dir / "backups"
    logs_dir: Path = base_dir / "logs"

    # Attendance partitions use YYYYMMDD keys
    attendance_key_format: str = "%Y%m%d"

    # Views
    low_stock_threshold: float = 10.0
    default_worker_types: tuple[str, ...] = (
        "Mason",
        "Laborer",
        "Carpenter",
        "Plumber",
        "Electrician",
        "Painter",
        "Welder",
        "Machine Operator",
        "Supervisor",
        "Helper",
    )
    payment_types: tuple[str, ...] = ("Cash", "Bank Transfer", "UPI", "Check", "Credit Card")
    default_payment_type: str = "Cash"

    # Backup
    max_backup_files: int = 20

    # DB
    enable_wal: bool = True
    busy_timeout_ms: int = 10000


CONFIG = AppConfig()


def ensure_data_directories(config: AppConfig = CONFIG) -> None:
    """Create data, backups and logs directories. Call explicitly during startup.

    This avoids side-effects at module import time and makes the operation
    explicit and testable.
    """
    config.data_dir.mkdir(parents=True, exist_ok=True)
    config.backups_dir.mkdir(parents=True, exist_ok=True)
    config.logs_dir.mkdir(parents=True, exist_ok=True)
