"""
cli.py — Command-line management of scheduled jobs.

Every command prints JSON on stdout; errors print {"error": ...} on
stderr and exit with status 1.

Usage:
    python cli.py list [all]
    python cli.py create <name> <one_shot|recurring> <schedule> <prompt> [--description TEXT]
    python cli.py ensure <name> <one_shot|recurring> <schedule> <prompt> [--description TEXT]
    python cli.py get|pause|resume|delete <job-id>
"""

import argparse
import json
import sys
from typing import Any, Optional

from config.settings import settings
from core import job_service
from core.errors import SchedulerError
from core.job_store import JobStore
from core.schedule import resolve_timezone


def _json_out(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _dump(job) -> dict:
    return job.model_dump(mode="json")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jobs", description="Manage proactive scheduled jobs")
    parser.add_argument("--db", default=None, help="Path to the scheduler database")
    sub = parser.add_subparsers(dest="command", required=True)

    list_cmd = sub.add_parser("list", help="List jobs ordered by next run")
    list_cmd.add_argument("scope", nargs="?", choices=["all"], help="Include paused/completed/failed jobs")

    for name, help_text in (("create", "Create a job"), ("ensure", "Create a job unless one with the name exists")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("name")
        cmd.add_argument("job_type", metavar="job_type", help="one_shot or recurring")
        cmd.add_argument("schedule", help="ISO timestamp (one_shot) or cron expression (recurring)")
        cmd.add_argument("prompt")
        cmd.add_argument("--description", default=None)

    for name in ("get", "pause", "resume", "delete"):
        cmd = sub.add_parser(name, help=f"{name.capitalize()} a job by ID")
        cmd.add_argument("job_id")

    return parser


def run(args: argparse.Namespace, store: JobStore) -> Any:
    tz = resolve_timezone(settings.timezone)
    if args.command == "list":
        return [_dump(j) for j in job_service.list_jobs(store, include_all=args.scope == "all")]
    if args.command == "create":
        job = job_service.create_job(
            store, args.name, args.job_type, args.schedule, args.prompt, args.description, tz=tz
        )
        return _dump(job)
    if args.command == "ensure":
        job, created = job_service.ensure_job(
            store, args.name, args.job_type, args.schedule, args.prompt, args.description, tz=tz
        )
        return {"created": created, "job": _dump(job)}
    if args.command == "get":
        return _dump(job_service.get_job(store, args.job_id))
    if args.command == "pause":
        return _dump(job_service.pause_job(store, args.job_id))
    if args.command == "resume":
        return _dump(job_service.resume_job(store, args.job_id))
    if args.command == "delete":
        job_service.delete_job(store, args.job_id)
        return {"deleted": True, "id": args.job_id}
    raise SchedulerError(f"Unknown command: {args.command}")


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        with JobStore(args.db or settings.scheduler_db_path) as store:
            _json_out(run(args, store))
    except SchedulerError as e:
        print(json.dumps({"error": str(e)}), file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
