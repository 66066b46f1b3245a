import argparse
import logging
from typing import Optional, Sequence

from client import SyncClient, build_sync_client
from config import SyncConfig
from mutations import RecordNotFoundError


def log_set(client: SyncClient, args: argparse.Namespace) -> int:
    record = client.mutator.log_strength_set(
        exercise_name=args.exercise,
        reps=args.reps,
        weight=args.weight,
        set_number=args.set_number,
        muscle_group=args.muscle_group,
        work_time=args.work_time,
        is_completed=args.completed,
    )
    print(record.client_id)
    return 0


def log_cardio(client: SyncClient, args: argparse.Namespace) -> int:
    record = client.mutator.log_cardio_session(
        exercise_name=args.exercise,
        duration=args.duration,
        is_completed=args.completed,
    )
    print(record.client_id)
    return 0


def complete(client: SyncClient, args: argparse.Namespace) -> int:
    client.mutator.set_completed(args.client_id, not args.undo)
    return 0


def delete(client: SyncClient, args: argparse.Namespace) -> int:
    client.mutator.delete(args.client_id)
    return 0


def status(client: SyncClient, args: argparse.Namespace) -> int:
    config = client.config
    print(f"Server: {config.remote_url or 'not configured'}")
    print(f"API key: {config.masked_api_key or 'not configured'}")
    print(f"Pending: {client.engine.pending_count}")
    return 0


def sync(client: SyncClient, args: argparse.Namespace) -> int:
    """Manual "sync now": probe the server, then run one cycle."""
    client.connectivity.check()
    report = client.engine.sync_now()
    if report.ok:
        print(f"Sync succeeded: {report.message}")
        return 0
    print(f"Sync failed: {report.message}")
    return 1


COMMANDS = {
    "log-set": log_set,
    "log-cardio": log_cardio,
    "complete": complete,
    "delete": delete,
    "status": status,
    "sync": sync,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Log workouts and sync them")
    parser.add_argument("--verbose", "-v", action="store_true")
    sub = parser.add_subparsers(dest="cmd", required=True)

    strength = sub.add_parser("log-set")
    strength.add_argument("exercise")
    strength.add_argument("--reps", type=int, required=True)
    strength.add_argument("--weight", type=float, required=True)
    strength.add_argument("--set-number", type=int, default=1)
    strength.add_argument("--muscle-group", default="")
    strength.add_argument("--work-time", type=float)
    strength.add_argument("--completed", action="store_true")

    cardio = sub.add_parser("log-cardio")
    cardio.add_argument("exercise")
    cardio.add_argument("--duration", type=float, required=True, help="seconds")
    cardio.add_argument("--completed", action="store_true")

    done = sub.add_parser("complete")
    done.add_argument("client_id")
    done.add_argument("--undo", action="store_true")

    remove = sub.add_parser("delete")
    remove.add_argument("client_id")

    sub.add_parser("status")
    sub.add_parser("sync")
    return parser


def main(argv: Optional[Sequence[str]] = None, config: Optional[SyncConfig] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    client = build_sync_client(config or SyncConfig.from_env())
    try:
        return COMMANDS[args.cmd](client, args)
    except RecordNotFoundError as err:
        print(err)
        return 1
    finally:
        client.close()


if __name__ == "__main__":
    raise SystemExit(main())
