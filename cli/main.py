#!/usr/bin/env python3
"""
Structure Engine CLI - operator interface to the job queue and snapshots.
"""

import argparse
import json
import sys
from pathlib import Path

from structure_engine.config import load_config
from structure_engine.errors import JobNotFoundError, JobStateError, StructureError
from structure_engine.health import structure_health_summary
from structure_engine.jobs import (
    dispatch_structure_recompute,
    process_structure_job_queue,
    run_structure_job,
    sweep_stuck_jobs,
)
from structure_engine.observability import configure_logging
from structure_engine.projection import load_direction, load_shifts
from structure_engine.store import StructureStore


def print_header(text: str):
    """Print a section header."""
    print(f"\n{'═' * 50}")
    print(f"  {text}")
    print(f"{'═' * 50}")


def emit_json(data):
    print(json.dumps(data, indent=2, default=str))


def _store(args) -> StructureStore:
    store = StructureStore(args.db) if args.db else StructureStore()
    store.init_db()
    return store


def _config(args):
    return load_config(Path(args.config) if args.config else None)


def cmd_init(args):
    """Initialize database."""
    store = _store(args)
    print(f"Database ready: {store.db_path}")


def cmd_status(args):
    """Show table counts and integrity."""
    store = _store(args)
    ok, message = store.integrity_check()
    counts = store.table_counts()
    if args.json:
        emit_json({"db_path": str(store.db_path), "integrity_ok": ok, "counts": counts})
        return

    print_header("STRUCTURE ENGINE STATUS")
    print(f"DB: {store.db_path}")
    print(f"Integrity: {'ok' if ok else message}")
    for table, count in counts.items():
        print(f"  {table:<20} {count}")


def cmd_dispatch(args):
    """Queue a structure recompute for a user."""
    store = _store(args)
    try:
        result = dispatch_structure_recompute(
            store,
            user_id=args.user_id,
            reason=args.reason,
            debounce_key=args.debounce_key,
            config=_config(args),
        )
    except ValueError as e:
        print(f"Invalid dispatch: {e}", file=sys.stderr)
        return 2

    if args.json:
        emit_json(result.to_dict())
    elif result.debounced:
        print(f"Debounced: job {result.job_id} already in flight ({result.debounce_key})")
    else:
        print(f"Queued: {result.job_id} ({result.debounce_key})")
    return 0


def cmd_process(args):
    """Drain queued structure jobs."""
    result = process_structure_job_queue(
        _store(args), limit=args.limit, config=_config(args), sweep=not args.no_sweep
    )
    if args.json:
        emit_json(result.to_dict())
    else:
        print(
            f"Processed {result.processed}: "
            f"{len(result.succeeded)} succeeded, {len(result.failed)} failed, "
            f"{len(result.swept)} swept"
        )
        for job_id in result.failed:
            print(f"  ✗ {job_id}")
    return 1 if result.failed else 0


def cmd_run_job(args):
    """Run one queued job by id."""
    try:
        result = run_structure_job(_store(args), args.job_id, config=_config(args))
    except (JobNotFoundError, JobStateError) as e:
        print(f"Cannot run job: {e}", file=sys.stderr)
        return 2
    except StructureError as e:
        print(f"Job failed: {e}", file=sys.stderr)
        return 1

    if args.json:
        emit_json(result.to_dict())
    elif result.changed:
        print(f"Structure changed: {result.state_hash[:12]} pulses={result.pulse_types}")
    else:
        print(f"No structural change ({result.state_hash[:12]})")
    return 0


def cmd_sweep(args):
    """Fail running jobs past the stuck threshold."""
    config = _config(args)
    threshold = args.stuck_after or config.stuck_after_seconds
    swept = sweep_stuck_jobs(_store(args), threshold)
    if args.json:
        emit_json({"swept": swept})
    else:
        print(f"Swept {len(swept)} stuck job(s)")


def cmd_health(args):
    """Show queue and snapshot health."""
    config = _config(args)
    summary = structure_health_summary(_store(args), stuck_threshold_seconds=config.stuck_after_seconds)
    data = summary.to_dict()
    if args.json:
        emit_json(data)
        return 0 if summary.ok else 1

    print_header("STRUCTURE HEALTH")
    jobs = data["jobs"]
    print(f"ok: {data['ok']}")
    print(f"queued={jobs['queued']} running={jobs['running']} failed={jobs['failed']} stuck={jobs['stuck']}")
    print(f"last global snapshot: {data['snapshots']['global']['last_generated_at'] or '-'}")
    for warning in data["warnings"]:
        print(f"⚠️  {warning}")
    return 0 if summary.ok else 1


def cmd_direction(args):
    """Show the direction projection of the latest snapshot."""
    projection = load_direction(_store(args), args.user_id, args.scope)
    data = projection.to_dict() if projection else None
    if args.json:
        emit_json(data)
    elif data is None:
        print(f"No snapshot yet for {args.user_id}")
    else:
        for key, value in data.items():
            print(f"{key}: {value}")


def cmd_shifts(args):
    """Show shifts between the two latest snapshots."""
    projection = load_shifts(_store(args), args.user_id, args.scope)
    if args.json:
        emit_json(projection.to_dict())
    elif projection.has_shift:
        print("Shifts: " + ", ".join(projection.shift_types))
    else:
        print("No shift")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="structure-engine",
        description="Structure Engine - arcs, phases, snapshots and the recompute queue",
    )
    parser.add_argument("--db", help="SQLite database path (default: STRUCTURE_ENGINE_DB or app home)")
    parser.add_argument("--config", help="structure.yaml path")
    parser.add_argument("--json", action="store_true", help="Output JSON")
    parser.add_argument("--log-level", help="Log level (default: STRUCTURE_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("init", help="Initialize database")
    subparsers.add_parser("status", help="Show table counts and integrity")

    p = subparsers.add_parser("dispatch", help="Queue a structure recompute")
    p.add_argument("user_id")
    p.add_argument("--reason", "-r", default="manual",
                   choices=["ingestion", "decision_change", "manual", "backfill"])
    p.add_argument("--debounce-key", help="Defaults to <scope>:<reason>")

    p = subparsers.add_parser("process", help="Drain queued jobs")
    p.add_argument("--limit", "-l", type=int, help="Batch size (default 5, max 25)")
    p.add_argument("--no-sweep", action="store_true", help="Skip the stuck-job sweep")

    p = subparsers.add_parser("run-job", help="Run one queued job")
    p.add_argument("job_id")

    p = subparsers.add_parser("sweep", help="Fail stuck running jobs")
    p.add_argument("--stuck-after", type=int, help="Threshold in seconds")

    subparsers.add_parser("health", help="Queue and snapshot health")

    for name, help_text in (("direction", "Direction projection"), ("shifts", "Latest shifts")):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("user_id")
        p.add_argument("--scope", "-s", default="global", choices=["global", "project", "user"])

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level)

    # Dispatch
    commands = {
        "init": cmd_init,
        "status": cmd_status,
        "dispatch": cmd_dispatch,
        "process": cmd_process,
        "run-job": cmd_run_job,
        "sweep": cmd_sweep,
        "health": cmd_health,
        "direction": cmd_direction,
        "shifts": cmd_shifts,
    }

    if args.command in commands:
        return commands[args.command](args) or 0

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
