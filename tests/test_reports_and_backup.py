from __future__ import annotations

import pandas as pd
import pytest

from reports.exporters import export_df
from reports.report_builders import attendance_df, summary_context, view_df
from services.derivation import SortState, ViewState, client_view, material_view, worker_view
from utils.backup import BACKUP_PREFIX, backup_sqlite_db, rotate_backups

MATERIALS = {
    "m1": {"name": "Cement", "quantity": 5, "unit": "bags", "price": 400, "supplier": "Ultra"},
    "m2": {"name": "Bricks", "quantity": 50, "unit": "pcs", "price": 8},
}


def test_view_df_follows_view_order():
    view = material_view(MATERIALS, ViewState(sort=SortState("lineTotal")))
    df = view_df("materials", view)
    assert list(df["Material"]) == ["Bricks", "Cement"]
    assert list(df["Total"]) == [400, 2000]
    assert list(df.columns)[:3] == ["Material", "Quantity", "Unit"]


def test_view_df_unknown_entity():
    with pytest.raises(ValueError):
        view_df("projects", material_view(MATERIALS))


def test_attendance_df_keeps_removed_workers():
    df = attendance_df(
        {"w1": {"present": True, "wage": 500, "time": "2024-05-01T09:00:00"}, "gone": {"present": True, "wage": "300"}},
        {"w1": {"name": "Ravi"}},
    )
    assert list(df["Worker"]) == ["Ravi", ""]
    assert list(df["Wage"]) == [500, 300]


def test_summary_context():
    workers = worker_view({"w1": {"name": "Ravi", "type": "Mason", "wage": 500}}).summary
    assert summary_context(workers)["Most common type"] == "Mason"
    clients = client_view({"c1": {"budget": 1000, "received": 250}}).summary
    assert summary_context(clients)["Progress %"] == 25
    assert summary_context(object()) == {}


@pytest.mark.parametrize("fmt", ["csv", "xlsx", "pdf"])
def test_export_formats(tmp_path, fmt):
    view = material_view(MATERIALS)
    path = export_df(view_df("materials", view), tmp_path, "materials/p1", fmt, context=summary_context(view.summary))
    assert path.name == f"materials_p1.{fmt}"
    assert path.stat().st_size > 0


def test_csv_export_content(tmp_path):
    path = export_df(view_df("materials", material_view(MATERIALS)), tmp_path, "materials", "csv")
    df = pd.read_csv(path)
    assert list(df["Material"]) == ["Cement", "Bricks"]


def test_xlsx_export_content(tmp_path):
    path = export_df(view_df("clients", client_view({"c1": {"name": "Mehta", "budget": 1000, "received": 400}})), tmp_path, "clients", "xlsx")
    df = pd.read_excel(path, engine="openpyxl")
    assert df.loc[0, "Pending"] == 600
    assert df.loc[0, "Status"] == "pending"


def test_pdf_export_of_empty_view(tmp_path):
    path = export_df(view_df("workers", worker_view({})), tmp_path, "workers", "pdf")
    assert path.read_bytes().startswith(b"%PDF")


def test_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        export_df(pd.DataFrame(), tmp_path, "x", "docx")


def test_backup_and_rotation(store, tmp_path):
    store.set("c/r1", {"v": 1})
    backups = tmp_path / "backups"
    paths = [backup_sqlite_db(store.db_path, backups, max_backups=2) for _ in range(3)]
    remaining = sorted(p.name for p in backups.glob("*.db"))
    assert len(remaining) == 2
    assert remaining == sorted(p.name for p in paths[1:])
    assert all(name.startswith(BACKUP_PREFIX) for name in remaining)


def test_backup_missing_db(tmp_path):
    assert backup_sqlite_db(tmp_path / "none.db", tmp_path / "b") is None


def test_rotate_ignores_other_files(tmp_path):
    (tmp_path / "notes.txt").write_text("keep")
    for i in range(3):
        (tmp_path / f"{BACKUP_PREFIX}2024010{i}.db").write_text("x")
    rotate_backups(tmp_path, BACKUP_PREFIX, ".db", keep=1)
    assert sorted(p.name for p in tmp_path.iterdir()) == [f"{BACKUP_PREFIX}20240102.db", "notes.txt"]
