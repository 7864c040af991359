from __future__ import annotations

from typing import Any, Mapping, Sequence

import pandas as pd

from services import derivation as d

# (row key, column title); derived keys are filled by the derivation helpers
WORKER_COLUMNS = (
    ("name", "Name"),
    ("type", "Type"),
    ("wage", "Daily Wage"),
    ("contact", "Contact"),
    ("joiningDate", "Joining Date"),
    ("address", "Address"),
    ("isRegular", "Regular"),
)

MATERIAL_COLUMNS = (
    ("name", "Material"),
    ("quantity", "Quantity"),
    ("unit", "Unit"),
    ("price", "Price"),
    ("lineTotal", "Total"),
    ("supplier", "Supplier"),
    ("date", "Date"),
)

CLIENT_COLUMNS = (
    ("name", "Client"),
    ("contact", "Contact"),
    ("budget", "Budget"),
    ("received", "Received"),
    ("pending", "Pending"),
    ("status", "Status"),
    ("paymentType", "Payment Type"),
    ("joinDate", "Join Date"),
)

ATTENDANCE_COLUMNS = (
    ("workerId", "Worker ID"),
    ("name", "Worker"),
    ("present", "Present"),
    ("wage", "Wage"),
    ("time", "Marked At"),
)

COLUMNS = {
    "workers": WORKER_COLUMNS,
    "materials": MATERIAL_COLUMNS,
    "clients": CLIENT_COLUMNS,
}


def rows_df(rows: Sequence[Mapping[str, Any]], columns: Sequence[tuple[str, str]]) -> pd.DataFrame:
    data = [{title: row.get(key) for key, title in columns} for row in rows]
    return pd.DataFrame(data, columns=[title for _, title in columns])


def view_df(entity: str, view: d.View) -> pd.DataFrame:
    """Table of a derived view's rows in display order."""
    try:
        columns = COLUMNS[entity]
    except KeyError:
        raise ValueError(f"Unknown collection: {entity}") from None
    return rows_df(view.rows, columns)


def attendance_df(records: Mapping[str, Mapping[str, Any]], workers: Mapping[str, Mapping[str, Any]] | None = None) -> pd.DataFrame:
    """Attendance for one day. Workers removed since marking keep their row with an empty name."""
    workers = workers or {}
    rows = [
        {
            "workerId": worker_id,
            "name": (workers.get(worker_id) or {}).get("name", ""),
            "present": bool(record.get("present")),
            "wage": d.to_number(record.get("wage")),
            "time": record.get("time", ""),
        }
        for worker_id, record in records.items()
    ]
    return rows_df(rows, ATTENDANCE_COLUMNS)


def summary_context(summary: Any) -> dict[str, Any]:
    """Footer values of a view summary, keyed by readable labels."""
    if isinstance(summary, d.MaterialSummary):
        return {"Items": summary.item_count, "Total cost": summary.total_cost, "Low stock": summary.low_stock_count}
    if isinstance(summary, d.ClientSummary):
        return {
            "Total budget": summary.total_budget,
            "Received": summary.total_received,
            "Pending": summary.total_pending,
            "Progress %": round(summary.payment_progress_percent, 2),
        }
    if isinstance(summary, d.WorkerSummary):
        return {
            "Workers": summary.total_workers,
            "Average wage": round(summary.average_wage, 2),
            "Daily wage bill": summary.total_daily_wage,
            "Most common type": summary.most_common_type or "N/A",
        }
    return {}
