#!/usr/bin/env python3
"""
Plot Desk management CLI.

Usage:
    python manage.py serve       Start the API server (scheduler included)
    python manage.py migrate     Apply pending database migrations
    python manage.py scan        Run one due/overdue reminder scan and exit
    python manage.py send ID     Send one reminder now
    python manage.py channels    Show notification channel configuration
"""

import argparse
import asyncio
import json
import subprocess
import sys
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parent


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


async def _prepare_storage() -> None:
    from plotdesk.config import get_settings

    if get_settings().storage.backend == "sqlite":
        from plotdesk.infrastructure.storage.sqlite.migrations import run_migrations

        await run_migrations()


async def _shutdown_storage() -> None:
    from plotdesk.application.services import reset_services
    from plotdesk.config import get_settings

    if get_settings().storage.backend == "sqlite":
        from plotdesk.infrastructure.storage.sqlite import close_pool

        await close_pool()
    reset_services()


def cmd_serve(args: argparse.Namespace) -> None:
    """Start uvicorn in the foreground."""
    uvicorn_cmd = [
        sys.executable, "-m", "uvicorn",
        "plotdesk.api.main:app",
        "--host", args.host,
        "--port", str(args.port),
    ]
    if args.reload:
        uvicorn_cmd.append("--reload")

    print(f"Starting server on {args.host}:{args.port}...")
    try:
        sys.exit(subprocess.call(uvicorn_cmd, cwd=str(ROOT_DIR)))
    except KeyboardInterrupt:
        print("\nServer stopped.")


def cmd_migrate(args: argparse.Namespace) -> None:
    """Apply pending migrations."""
    from plotdesk.infrastructure.storage.sqlite.migrations import run_migrations

    results = asyncio.run(run_migrations(create_backup_before=not args.no_backup))
    if not results:
        print("Database is up to date.")
        return
    for result in results:
        state = "ok" if result.success else f"FAILED ({result.error})"
        print(f"  {result.version}: {state}")
    if not all(r.success for r in results):
        sys.exit(1)


def cmd_scan(args: argparse.Namespace) -> None:
    """Run a single scan, as the scheduler would."""
    from plotdesk.application.services import get_reminder_scheduler

    async def _scan() -> dict[str, Any]:
        await _prepare_storage()
        try:
            scheduler = await get_reminder_scheduler()
            report = await scheduler.scan()
            return report.to_dict()
        finally:
            await _shutdown_storage()

    report = asyncio.run(_scan())
    _print_json(report)
    if report["skipped"]:
        sys.exit(1)


def cmd_send(args: argparse.Namespace) -> None:
    """Send one reminder now, bypassing its reminder date."""
    from plotdesk.application.services import get_reminder_scheduler
    from plotdesk.core.exceptions import PlotDeskError

    async def _send() -> dict[str, Any]:
        await _prepare_storage()
        try:
            scheduler = await get_reminder_scheduler()
            outcome = await scheduler.send_now(args.reminder_id)
            return outcome.to_dict()
        finally:
            await _shutdown_storage()

    try:
        outcome = asyncio.run(_send())
    except PlotDeskError as e:
        print(f"Error: {e.message}")
        sys.exit(1)
    _print_json(outcome)
    if not outcome["success"]:
        sys.exit(1)


def cmd_channels(args: argparse.Namespace) -> None:
    """Show channel flags without credentials."""
    from plotdesk.application.services import get_notification_dispatcher

    _print_json(get_notification_dispatcher().channel_config())


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Plot Desk management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    sub = parser.add_subparsers(dest="command")

    p_serve = sub.add_parser("serve", help="Start the API server")
    p_serve.add_argument("--host", default="0.0.0.0", help="Bind host (default 0.0.0.0)")
    p_serve.add_argument("--port", type=int, default=8000, help="Bind port (default 8000)")
    p_serve.add_argument("--reload", action="store_true", help="Reload on code changes")
    p_serve.set_defaults(func=cmd_serve)

    p_migrate = sub.add_parser("migrate", help="Apply pending database migrations")
    p_migrate.add_argument("--no-backup", action="store_true", help="Skip the pre-migration backup")
    p_migrate.set_defaults(func=cmd_migrate)

    p_scan = sub.add_parser("scan", help="Run one due/overdue scan")
    p_scan.set_defaults(func=cmd_scan)

    p_send = sub.add_parser("send", help="Send one reminder now")
    p_send.add_argument("reminder_id", type=int, help="Reminder id")
    p_send.set_defaults(func=cmd_send)

    p_channels = sub.add_parser("channels", help="Show notification channel configuration")
    p_channels.set_defaults(func=cmd_channels)

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == "__main__":
    main()
