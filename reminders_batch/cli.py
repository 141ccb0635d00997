"""
Command-line entry point for the reminders service.

examples:
    python3 -m reminders_batch jobs
    python3 -m reminders_batch run-cycle overdue-obligations
    python3 -m reminders_batch settle 0b5c...-...
    python3 -m reminders_batch serve --config /etc/reminders.yaml
"""

from __future__ import annotations

import argparse
import json
import sys
import threading
from dataclasses import asdict
from typing import Sequence
from uuid import UUID

from reminders_batch.app import RemindersApp
from reminders_config import load_config
from reminders_kernel.db.engine import create_tables, get_session_factory, init_engine_from_url
from reminders_kernel.exceptions import RemindersError
from reminders_kernel.logging_config import configure_logging, get_logger

logger = get_logger("batch.cli")


# =============================================================================
# Commands
# =============================================================================


def _cmd_jobs(app: RemindersApp, args: argparse.Namespace) -> int:
    jobs = app.build_job_registry()
    for status in jobs.status():
        cycle = app.cycles.get(status.name)
        print(f"{status.name:<24} {status.schedule:<14} {cycle.description}")
    return 0


def _cmd_run_cycle(app: RemindersApp, args: argparse.Namespace) -> int:
    result = app.dispatcher.run_cycle(args.name)
    print(json.dumps(
        {
            "cycle": result.cycle_name,
            "total": result.total,
            "succeeded": result.succeeded,
            "failed": result.failed,
            "skipped": result.skipped,
            "failures": list(result.failures),
            "duration_ms": result.duration_ms,
        },
        indent=2,
    ))
    return 0 if result.failed == 0 else 2


def _cmd_check_providers(app: RemindersApp, args: argparse.Namespace) -> int:
    report = app.sender.check_configuration()
    ready = True
    for channel, chain in report.items():
        names = ", ".join(f"{name}={'ok' if ok else 'missing'}" for name, ok in chain)
        print(f"{channel:<6} {names or '(none)'}")
        ready = ready and any(ok for _, ok in chain)
    return 0 if ready else 1


def _cmd_settle(app: RemindersApp, args: argparse.Namespace) -> int:
    try:
        obligation_id = UUID(args.obligation_id)
    except ValueError as exc:
        print(f"  ERROR: Invalid UUID: {exc}", file=sys.stderr)
        return 1

    result = app.engine.settle(obligation_id)
    print(json.dumps(
        {
            "obligation": asdict(result.obligation),
            "successor": asdict(result.successor) if result.successor else None,
            "warning": result.warning,
        },
        indent=2,
        default=str,
    ))
    return 0


def _cmd_serve(app: RemindersApp, args: argparse.Namespace) -> int:
    jobs = app.build_job_registry(poll_interval_seconds=args.poll_interval)
    jobs.start_all()
    logger.info("service_started", extra={"jobs": jobs.names})
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        jobs.stop_all()
        logger.info("service_stopped")
    return 0


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="reminders",
        description="Recurring obligations and notification cycles.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, default=None, help="YAML file merged over the defaults")
    parser.add_argument("--database-url", type=str, default=None, help="Overrides database_url from config")
    parser.add_argument("--log-level", type=str, default=None, help="Overrides log_level from config")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("jobs", help="List enabled cycles and their schedules")

    run = sub.add_parser("run-cycle", help="Run one cycle now")
    run.add_argument("name")

    sub.add_parser("check-providers", help="Report provider credentials per channel")

    settle = sub.add_parser("settle", help="Settle an obligation and roll its successor")
    settle.add_argument("obligation_id")

    serve = sub.add_parser("serve", help="Run every enabled cycle on its schedule")
    serve.add_argument("--poll-interval", type=float, default=30.0)

    return parser


_COMMANDS = {
    "jobs": _cmd_jobs,
    "run-cycle": _cmd_run_cycle,
    "check-providers": _cmd_check_providers,
    "settle": _cmd_settle,
    "serve": _cmd_serve,
}


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        configure_logging(level=(args.log_level or config.log_level).upper())
        init_engine_from_url(args.database_url or config.database_url)
        create_tables()
        app = RemindersApp.from_config(config, get_session_factory())
        return _COMMANDS[args.command](app, args)
    except RemindersError as exc:
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1
