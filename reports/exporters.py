from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from reports.pdf_reportlab import save_pdf
from utils.text import sanitize_filename

logger = logging.getLogger(__name__)

FORMATS = ("csv", "xlsx", "pdf")


def export_df(
    df: pd.DataFrame,
    out_dir: str | Path,
    name: str,
    fmt: str = "csv",
    title: str | None = None,
    context: dict[str, Any] | None = None,
) -> Path:
    """Write df to out_dir/<name>.<fmt> and return the path."""
    fmt = fmt.lower()
    if fmt not in FORMATS:
        raise ValueError(f"Unsupported export format: {fmt}")
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"{sanitize_filename(name)}.{fmt}"
    if fmt == "csv":
        df.to_csv(path, index=False, encoding="utf-8")
    elif fmt == "xlsx":
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name=sanitize_filename(name, max_length=31))
    else:
        save_pdf(df, path, title=title or name, context=context)
    logger.info("Exported %s row(s) to %s", len(df), path)
    return path
