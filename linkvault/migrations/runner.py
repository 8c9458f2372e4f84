"""Database migration runner.

Applied migrations are recorded by module name in ``_migrations``; each
module in ``MIGRATIONS`` exposes ``async upgrade(db)`` and is applied at
most once, in list order.
"""

import importlib
import logging

import aiosqlite

logger = logging.getLogger(__name__)

MIGRATIONS = [
    "linkvault.migrations.m001_initial",
    "linkvault.migrations.m002_repository_state",
]


async def run_migrations(db: aiosqlite.Connection) -> None:
    """Apply pending migrations."""
    await db.execute("""
        CREATE TABLE IF NOT EXISTS _migrations (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            applied_at TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    await db.commit()

    cursor = await db.execute("SELECT name FROM _migrations ORDER BY id")
    applied = [row[0] for row in await cursor.fetchall()]

    unknown = [name for name in applied if name not in MIGRATIONS]
    if unknown:
        # Database was written by a newer build; keep going, the schema only grows
        logger.warning("Database has migrations this build does not know: %s", ", ".join(unknown))

    pending = [name for name in MIGRATIONS if name not in applied]
    if not pending:
        logger.debug("Schema up to date (%d migrations)", len(applied))
        return

    for migration_name in pending:
        module = importlib.import_module(migration_name)
        await module.upgrade(db)
        await db.execute("INSERT INTO _migrations (name) VALUES (?)", (migration_name,))
        await db.commit()
        logger.info("Applied migration %s", migration_name)
