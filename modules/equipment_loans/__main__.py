"""Command line entry for scheduled jobs.

Usage examples:
  - Run the overdue check now (for cron or another scheduler):
      python -m modules.equipment_loans sweep

  - Run it as of a given instant:
      python -m modules.equipment_loans sweep --now 2024-03-10T06:00:00Z

  - Create the SQLite tables at the configured path:
      python -m modules.equipment_loans init-db
"""
from __future__ import annotations

import argparse
import logging
from typing import Optional, Sequence

from utils.app_settings import load_settings
from utils.clock import parse_instant

from .factory import build_system
from .sql_repository import get_engine


def _sweep(args: argparse.Namespace) -> int:
    system = build_system(load_settings())
    now = parse_instant(args.now) if args.now else None
    report = system.sweep.run_daily_check(now)
    print(f"Scanned {report.scanned} open loan(s) at {report.now.isoformat()}")
    for loan_id in report.newly_overdue:
        print(f"   overdue: {loan_id}")
    for fine_id in report.fines_created:
        print(f"   fine:    {fine_id}")
    return 0


def _init_db(args: argparse.Namespace) -> int:
    settings = load_settings()
    db_path = args.db or settings.db_path
    get_engine(db_path)
    print(f"Tables ready in {db_path}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    ap = argparse.ArgumentParser(prog="python -m modules.equipment_loans")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = ap.add_subparsers(dest="command", required=True)

    sweep = sub.add_parser("sweep", help="Mark overdue loans and issue fines")
    sweep.add_argument("--now", help="ISO-8601 instant to check against (default: current UTC time)")
    sweep.set_defaults(handler=_sweep)

    init_db = sub.add_parser("init-db", help="Create the SQLite tables")
    init_db.add_argument("--db", help="Database path (default: LOANS_DB_PATH or data/equipment_loans.db)")
    init_db.set_defaults(handler=_init_db)

    args = ap.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.handler(args)


if __name__ == "__main__":
    raise SystemExit(main())
