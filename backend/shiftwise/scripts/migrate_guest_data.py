"""Migrate guest data from the configured key-value store into a cloud account.

Usage:
    python -m shiftwise.scripts.migrate_guest_data --user-id <uuid> [--dry-run]

--dry-run prints what would be uploaded and writes nothing.
"""

import argparse
import asyncio
import sys
from typing import List, Optional
from uuid import UUID

from shiftwise.core.database import AsyncSessionLocal, close_db, init_db
from shiftwise.core.logging_config import setup_logging
from shiftwise.services.key_value_store import get_key_value_store
from shiftwise.services.local_storage_service import LocalStorageService
from shiftwise.services.migration.gate import migration_gate
from shiftwise.services.migration.snapshot_reader import snapshot_reader


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="migrate_guest_data",
        description="Upload guest-mode data into a cloud user account.",
    )
    parser.add_argument("--user-id", required=True, type=UUID, help="Authenticated user id")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the snapshot summary",
    )
    return parser


async def run(user_id: UUID, dry_run: bool) -> int:
    local_storage = LocalStorageService(get_key_value_store())

    snapshot = await snapshot_reader.get_snapshot(local_storage)
    if snapshot is None:
        print("No local data to migrate.")
        return 0

    print(
        f"Local snapshot: {len(snapshot.goals)} goals, {len(snapshot.shifts)} shifts, "
        f"{len(snapshot.allocations)} allocations, balance {snapshot.balance}"
    )
    if dry_run:
        print("Dry run, nothing written.")
        return 0

    await init_db()
    try:
        async with AsyncSessionLocal() as db:
            result = await migration_gate.run(db, user_id, local_storage, snapshot)
    finally:
        await close_db()

    if result is None:
        print("A migration is already running.")
        return 1

    if not result.success:
        print(f"❌ Migration failed: {result.error}")
        return 1

    print(
        f"✅ Migrated {result.migrated_goals} goals, {result.migrated_shifts} shifts, "
        f"{result.migrated_allocations} allocations "
        f"({result.matched_goals + result.matched_shifts + result.matched_allocations} already present)"
    )
    for skip in result.skipped:
        print(f"⚠️  Skipped {skip.entity_type} {skip.local_id}: {skip.reason}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()
    return asyncio.run(run(args.user_id, args.dry_run))


if __name__ == "__main__":
    sys.exit(main())
