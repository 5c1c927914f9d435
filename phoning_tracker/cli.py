#!/usr/bin/env python3
"""
Phoning tracker command line.

- import: parse a CSV/TSV file and merge it into the tracker (dry-run by default; use --apply)
- export: write every row as CSV
- set: update fields of one row
- stats: per-status counts
- reset: go back to the seed rows (asks for confirmation unless --yes)
- serve: run the HTTP API
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

from phoning_tracker.config import Settings
from phoning_tracker.importer import header_report, parse_import
from phoning_tracker.reconcile import (
    MATCH_BY_ID,
    MATCH_BY_NAME_ADDRESS,
    InvalidPatch,
    RowNotFound,
    rebind_by_name_address,
)
from phoning_tracker.tracker import Tracker, build_tracker


def print_audit(tracker: Tracker, text: str, match: str) -> None:
    result = parse_import(text)
    incoming = result.rows
    if match == MATCH_BY_NAME_ADDRESS:
        incoming = rebind_by_name_address(tracker.store.rows, incoming)

    print("\nHeader mapping")
    print("-" * 60)
    for field_name, header in header_report(text):
        print(f"{field_name:20} {header or '(none)'}")

    print("\nAudit log")
    print("-" * 100)
    print(f"{'id':36} {'stars':6} {'status':20} {'action':10} name")
    print("-" * 100)
    for row in incoming:
        existing = tracker.store.get(row.id)
        if existing is None:
            action = "create"
        elif existing == row:
            action = "unchanged"
        else:
            action = "update"
        print(f"{row.id[:36]:36} {row.stars:6} {row.status[:20]:20} {action:10} {row.name[:40]}")
    print("-" * 100)
    print(f"\nParsed={len(result.rows)} rejected={result.rejected} match={match}")


def cmd_import(tracker: Tracker, args) -> int:
    try:
        with open(args.file, encoding="utf-8-sig") as f:
            text = f.read()
    except OSError as e:
        print(f"ERROR: cannot read {args.file}: {e}", file=sys.stderr)
        return 2

    match = MATCH_BY_NAME_ADDRESS if args.match_by_name else MATCH_BY_ID
    print_audit(tracker, text, match)
    if not args.apply:
        print("dry_run=True (use --apply to write changes)")
        return 0

    result = tracker.import_text(text, match=match)
    if tracker.mirror is not None:
        tracker.mirror.flush()
    print(f"Imported={len(result.rows)} total={len(tracker.store.rows)}")
    return 0


def cmd_export(tracker: Tracker, args) -> int:
    csv_text = tracker.export_csv()
    if args.output in (None, "-"):
        sys.stdout.write(csv_text + "\n")
        return 0
    with open(args.output, "w", encoding="utf-8", newline="") as f:
        f.write(csv_text)
    print(f"Wrote {len(tracker.store.rows)} rows to {args.output}")
    return 0


def cmd_set(tracker: Tracker, args) -> int:
    patch = {}
    for assignment in args.fields:
        field_name, sep, value = assignment.partition("=")
        if not sep:
            print(f"ERROR: expected field=value, got {assignment!r}", file=sys.stderr)
            return 2
        patch[field_name.strip()] = value

    try:
        row = tracker.update_row(args.row_id, patch)
    except RowNotFound:
        print(f"ERROR: no row with id {args.row_id!r}", file=sys.stderr)
        return 2
    except InvalidPatch as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    if tracker.mirror is not None:
        tracker.mirror.flush()
    for field_name in patch:
        print(f"{field_name:20} {getattr(row, field_name)}")
    return 0


def cmd_stats(tracker: Tracker, args) -> int:
    stats = tracker.stats()
    for status, count in stats["by_status"].items():
        print(f"{status:24} {count:>5}")
    print(f"{'Total':24} {stats['total']:>5}")
    return 0


def cmd_reset(tracker: Tracker, args) -> int:
    confirmed = args.yes
    if not confirmed:
        answer = input("Réinitialiser toutes les données locales ? [y/N] ")
        confirmed = answer.strip().lower() in {"y", "yes", "o", "oui"}
    if not tracker.reset(confirm=confirmed):
        print("Reset cancelled")
        return 1
    print(f"Reset to {len(tracker.store.rows)} seed rows")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phoning", description="Restaurant phoning campaign tracker")
    parser.add_argument("--db", type=str, default=None, help="Path to the SQLite snapshot DB")
    sub = parser.add_subparsers(dest="command", required=True)

    p_import = sub.add_parser("import", help="Import a CSV/TSV file")
    p_import.add_argument("file", help="CSV or TSV file with a header row")
    p_import.add_argument("--apply", action="store_true", help="Apply changes (default: dry-run)")
    p_import.add_argument("--match-by-name", action="store_true",
                          help="Match existing rows by name and address instead of the generated id")

    p_export = sub.add_parser("export", help="Export every row as CSV")
    p_export.add_argument("-o", "--output", default=None, help="Output file (default: stdout)")

    p_set = sub.add_parser("set", help="Update fields of one row")
    p_set.add_argument("row_id", help="Row id")
    p_set.add_argument("fields", nargs="+", help="field=value pairs, e.g. status=\"Pas de réponse\" cv_sent=1")

    sub.add_parser("stats", help="Show per-status counts")

    p_reset = sub.add_parser("reset", help="Discard local data and restore the seed rows")
    p_reset.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    p_serve = sub.add_parser("serve", help="Run the HTTP API")
    p_serve.add_argument("--port", type=int, default=None, help="Port (default: PHONING_PORT or 5050)")
    return parser


COMMANDS = {
    "import": cmd_import,
    "export": cmd_export,
    "set": cmd_set,
    "stats": cmd_stats,
    "reset": cmd_reset,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    if args.db:
        settings.db_path = args.db
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.command == "serve":
        from phoning_tracker.app import run
        run(settings, port=args.port)
        return 0

    tracker = build_tracker(settings)
    try:
        tracker.load_remote()
        return COMMANDS[args.command](tracker, args)
    finally:
        tracker.close()


if __name__ == "__main__":
    raise SystemExit(main())
