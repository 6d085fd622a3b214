"""
Event database maintenance.

    python -m logontrack.scripts.manage_db create
    python -m logontrack.scripts.manage_db stats
    python -m logontrack.scripts.manage_db purge [--yes]
    python -m logontrack.scripts.manage_db drop [--yes]
"""
import argparse
import asyncio
import sys

from logontrack.core.logging import get_logger, setup_logging
from logontrack.core.settings import get_settings
from logontrack.db.session import DATABASE_URL, SessionLocal, drop_models, engine, init_models
from logontrack.repositories.events import EventStore

log = get_logger(__name__)

ACTION_LABELS = {"C": "connect", "D": "disconnect", "M": "hardware"}


def _confirm(word: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    answer = input(f"Type '{word}' to continue: ").strip()
    return answer == word


async def _counts() -> dict:
    async with SessionLocal() as session:
        return await EventStore(session).count_by_action()


async def cmd_create(args) -> int:
    await init_models()
    log.info("db.created", url=DATABASE_URL)
    return 0


async def cmd_stats(args) -> int:
    counts = await _counts()
    print(f"total: {sum(counts.values())}")
    for action, n in counts.items():
        print(f"  {ACTION_LABELS.get(action, action)} ({action}): {n}")
    return 0


async def cmd_purge(args) -> int:
    counts = await _counts()
    total = sum(counts.values())
    if total == 0:
        print("database already empty")
        return 0
    print(f"{total} events will be deleted; the schema is kept.")
    if not _confirm("PURGE", args.yes):
        print("purge cancelled")
        return 1
    async with SessionLocal() as session:
        deleted = await EventStore(session).purge()
    log.info("db.purged", deleted=deleted)
    return 0


async def cmd_drop(args) -> int:
    print(f"All tables in {DATABASE_URL} will be dropped.")
    if not _confirm("DROP", args.yes):
        print("drop cancelled")
        return 1
    await drop_models()
    log.info("db.dropped", url=DATABASE_URL)
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="manage_db", description="logontrack event database maintenance")
    sub = ap.add_subparsers(dest="command", required=True)
    sub.add_parser("create", help="create tables").set_defaults(func=cmd_create)
    sub.add_parser("stats", help="row counts by action").set_defaults(func=cmd_stats)
    p = sub.add_parser("purge", help="delete every event, keep the schema")
    p.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    p.set_defaults(func=cmd_purge)
    p = sub.add_parser("drop", help="drop the schema")
    p.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    p.set_defaults(func=cmd_drop)
    return ap


async def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    setup_logging(json_output=settings.LOG_JSON, level=settings.LOG_LEVEL)
    try:
        return await args.func(args)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
