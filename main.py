from __future__ import annotations

import argparse
import locale
import logging
import sys
from pathlib import Path
from typing import Any, Sequence

from config.settings import CONFIG, ensure_data_directories
from db.store import RecordStore, StoreUnavailableError
from reports.exporters import FORMATS, export_df
from reports.report_builders import attendance_df, summary_context, view_df
from services.attendance import AttendanceLedger
from services.common import collection_path
from services.dashboard import DashboardService
from services.derivation import SortState, ViewState, get_view, snapshot_rows
from services.entities import ClientsService, MaterialsService, WorkersService
from services.suggestions import TypeSuggestions
from services.validation import ValidationError
from utils.backup import backup_sqlite_db
from utils.logging import configure_logging
from utils.user_prefs import (
    get_current_db_path,
    get_enable_wal,
    get_low_stock_threshold,
    set_db_path,
    set_low_stock_threshold,
)

logger = logging.getLogger(__name__)

ENTITIES = ("workers", "materials", "clients")


def _print_rows(rows: list[dict[str, Any]], keys: Sequence[str]) -> None:
    for row in rows:
        print("  " + " | ".join(f"{k}={row.get(k, '')}" for k in keys))


def _print_summary(summary: Any) -> None:
    for label, value in summary_context(summary).items():
        print(f"{label}: {value}")


def _view_state(args: argparse.Namespace) -> ViewState:
    sort = SortState()
    if args.sort:
        sort = sort.toggle(args.sort)
        if args.desc:
            sort = sort.toggle(args.sort)
    return ViewState(
        search_term=args.search or "",
        sort=sort,
        worker_type=args.type,
        regular_only=args.regular_only,
        show_low_stock=args.low_stock,
        low_stock_threshold=args.threshold if args.threshold is not None else get_low_stock_threshold(),
        client_status=args.status,
    )


def cmd_project(store: RecordStore, args: argparse.Namespace) -> int:
    DashboardService(store, args.project).save_project(
        {"name": args.name, "deadline": args.deadline, "tasks": args.tasks, "completedTasks": args.completed, "priority": args.priority}
    )
    print(f"Project {args.project} saved")
    return 0


def cmd_add(store: RecordStore, args: argparse.Namespace) -> int:
    bad = [field for field in args.fields if "=" not in field]
    if bad:
        raise ValidationError(f"Expected key=value, got: {', '.join(bad)}")
    form = dict(field.split("=", 1) for field in args.fields)
    if args.entity == "workers":
        new_id, _ = WorkersService(store, args.project).create(form)
    elif args.entity == "materials":
        new_id = MaterialsService(store, args.project).create(form)
    else:
        new_id = ClientsService(store, args.project).create(form)
    print(new_id)
    return 0


def cmd_types(store: RecordStore, args: argparse.Namespace) -> int:
    workers = snapshot_rows(WorkersService(store, args.project).current())
    for tag in TypeSuggestions().absorb(workers).matching(args.prefix, args.limit):
        print(tag)
    return 0


def cmd_list(store: RecordStore, args: argparse.Namespace) -> int:
    snapshot = store.snapshot(collection_path(args.project, args.entity))
    view = get_view(args.entity, snapshot, _view_state(args))
    keys = {
        "workers": ("id", "name", "type", "wage", "contact", "isRegular"),
        "materials": ("id", "name", "quantity", "unit", "price", "lineTotal", "isLowStock"),
        "clients": ("id", "name", "budget", "received", "pending", "status", "paymentType"),
    }[args.entity]
    _print_rows(view.rows, keys)
    _print_summary(view.summary)
    return 0


def cmd_delete(store: RecordStore, args: argparse.Namespace) -> int:
    service = {"workers": WorkersService, "materials": MaterialsService, "clients": ClientsService}[args.entity](store, args.project)
    record = store.snapshot(collection_path(args.project, args.entity)).get(args.id)
    if record is None:
        print(f"No such record: {args.id}", file=sys.stderr)
        return 2
    request = service.request_delete(args.id, str(record.get("name", args.id)))
    answer = "y" if args.yes else input(f"{request.prompt} [y/N] ")
    if answer.strip().lower() in {"y", "yes"}:
        request.confirm()
        print("Deleted")
    else:
        request.decline()
    return 0


def cmd_mark(store: RecordStore, args: argparse.Namespace) -> int:
    entry = AttendanceLedger(store, args.project).mark_attendance(args.date, args.worker, not args.absent)
    print(f"{args.worker}: present={entry.present} wage={entry.wage}")
    return 0


def cmd_mark_regular(store: RecordStore, args: argparse.Namespace) -> int:
    marked = AttendanceLedger(store, args.project).mark_all_regular(args.date)
    print(f"Marked {len(marked)} regular worker(s) present")
    return 0


def cmd_day(store: RecordStore, args: argparse.Namespace) -> int:
    summary = AttendanceLedger(store, args.project).daily_summary(args.date)
    print(f"Present: {summary.present_count}")
    print(f"Wage liability: {summary.total_liability:.2f}")
    return 0


def cmd_dashboard(store: RecordStore, args: argparse.Namespace) -> int:
    stats = DashboardService(store, args.project).overview(get_low_stock_threshold())
    print(f"Status: {stats.status} ({stats.completion_percentage}% complete, {stats.days_remaining} day(s) remaining)")
    print(f"Workers: {stats.workers_count}  Materials: {stats.materials_count}  Clients: {stats.clients_count}")
    print(f"Budget: {stats.budget_total:.2f}  Received: {stats.budget_received:.2f}  Spent on materials: {stats.budget_spent:.2f}")
    return 0


def cmd_export(store: RecordStore, args: argparse.Namespace) -> int:
    if args.entity == "attendance":
        if not args.date:
            print("--date is required for attendance export", file=sys.stderr)
            return 2
        ledger = AttendanceLedger(store, args.project)
        df = attendance_df(ledger.day_records(args.date), store.snapshot(collection_path(args.project, "workers")))
        name, context = f"attendance_{args.project}_{args.date}", None
    else:
        view = get_view(args.entity, store.snapshot(collection_path(args.project, args.entity)), _view_state(args))
        df, name, context = view_df(args.entity, view), f"{args.entity}_{args.project}", summary_context(view.summary)
    path = export_df(df, args.out, name, args.format, title=name.replace("_", " ").title(), context=context)
    print(path)
    return 0


def cmd_backup(store: RecordStore, args: argparse.Namespace) -> int:
    path = backup_sqlite_db(store.db_path)
    print(path or "Nothing to back up")
    return 0


def cmd_settings(args: argparse.Namespace) -> int:
    if args.db_path:
        set_db_path(args.db_path)
    if args.threshold is not None:
        if args.threshold < 0:
            raise ValidationError("Low stock threshold cannot be negative")
        set_low_stock_threshold(args.threshold)
    print(f"Database: {get_current_db_path()}")
    print(f"Low stock threshold: {get_low_stock_threshold()}")
    return 0


def _add_view_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("--search")
    p.add_argument("--sort")
    p.add_argument("--desc", action="store_true")
    p.add_argument("--type", help="worker role filter")
    p.add_argument("--regular-only", action="store_true")
    p.add_argument("--low-stock", action="store_true")
    p.add_argument("--threshold", type=float)
    p.add_argument("--status", choices=("paid", "pending"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sitebook", description="Construction project records")
    parser.add_argument("--db", type=Path, help="database file (defaults to user settings)")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("project", help="create or update a project")
    p.add_argument("project")
    p.add_argument("--name", required=True)
    p.add_argument("--deadline")
    p.add_argument("--tasks", default="0")
    p.add_argument("--completed", default="0")
    p.add_argument("--priority", default="medium")
    p.set_defaults(func=cmd_project)

    p = sub.add_parser("add", help="add a record from key=value fields")
    p.add_argument("entity", choices=ENTITIES)
    p.add_argument("project")
    p.add_argument("fields", nargs="+", metavar="key=value")
    p.set_defaults(func=cmd_add)

    p = sub.add_parser("list", help="show a filtered, sorted view")
    p.add_argument("entity", choices=ENTITIES)
    p.add_argument("project")
    _add_view_options(p)
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("types", help="suggest worker roles, known ones plus those used in the project")
    p.add_argument("project")
    p.add_argument("--prefix", default="")
    p.add_argument("--limit", type=int)
    p.set_defaults(func=cmd_types)

    p = sub.add_parser("delete", help="delete a record after confirmation")
    p.add_argument("entity", choices=ENTITIES)
    p.add_argument("project")
    p.add_argument("id")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=cmd_delete)

    p = sub.add_parser("mark", help="mark attendance for one worker")
    p.add_argument("project")
    p.add_argument("date")
    p.add_argument("worker")
    p.add_argument("--absent", action="store_true")
    p.set_defaults(func=cmd_mark)

    p = sub.add_parser("mark-regular", help="mark all regular workers present")
    p.add_argument("project")
    p.add_argument("date")
    p.set_defaults(func=cmd_mark_regular)

    p = sub.add_parser("day", help="attendance summary for a date")
    p.add_argument("project")
    p.add_argument("date")
    p.set_defaults(func=cmd_day)

    p = sub.add_parser("dashboard", help="project overview")
    p.add_argument("project")
    p.set_defaults(func=cmd_dashboard)

    p = sub.add_parser("export", help="export a view to csv/xlsx/pdf")
    p.add_argument("entity", choices=ENTITIES + ("attendance",))
    p.add_argument("project")
    p.add_argument("--date")
    p.add_argument("--format", choices=FORMATS, default="csv")
    p.add_argument("--out", type=Path, default=CONFIG.data_dir / "exports")
    _add_view_options(p)
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("backup", help="back up the database")
    p.set_defaults(func=cmd_backup)

    p = sub.add_parser("settings", help="show or change user settings")
    p.add_argument("--db-path", type=Path)
    p.add_argument("--threshold", type=float, help="low stock threshold")
    p.set_defaults(func=cmd_settings, needs_store=False)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    ensure_data_directories()
    configure_logging(logging.DEBUG if args.verbose else logging.INFO)
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logger.warning("Using default collation: %s", exc)
    try:
        if not getattr(args, "needs_store", True):
            return args.func(args)
        store = RecordStore(args.db or get_current_db_path(), enable_wal=get_enable_wal())
        return args.func(store, args)
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except StoreUnavailableError as exc:
        logger.error("Store unavailable: %s", exc)
        print(f"Store unavailable: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
