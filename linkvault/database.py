"""SQLite database connection management and initialization.

One aiosqlite connection is shared by every request, so every request
also shares its transaction. All writes go through ``write_transaction``,
which holds a lock from the first statement to the commit (or rollback);
statements from two requests can never end up in one transaction.
"""

import asyncio
from contextlib import asynccontextmanager

import aiosqlite

from linkvault.config import settings
from linkvault.migrations.runner import run_migrations

# SQLite caps the number of bound parameters per statement
IN_CHUNK_SIZE = 500

# Global connection reference
_db: aiosqlite.Connection | None = None
_write_lock: asyncio.Lock | None = None


async def get_db() -> aiosqlite.Connection:
    """Get the database connection. Raises if not initialized."""
    if _db is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _db


@asynccontextmanager
async def write_transaction():
    """Run a group of writes as one transaction on the shared connection.

    Commits when the block exits normally; rolls back (only this block's
    statements) if it raises.
    """
    db = await get_db()
    async with _write_lock:
        try:
            yield db
        except BaseException:
            await db.rollback()
            raise
        await db.commit()


async def fetch_in_chunks(sql: str, values: list, params: tuple = ()) -> list:
    """Run a SELECT whose ``{placeholders}`` is an ``IN`` list over ``values``.

    ``params`` are bound before the list. Rows from all chunks are
    concatenated.
    """
    db = await get_db()
    rows = []
    for i in range(0, len(values), IN_CHUNK_SIZE):
        chunk = values[i : i + IN_CHUNK_SIZE]
        placeholders = ", ".join(["?"] * len(chunk))
        cursor = await db.execute(sql.format(placeholders=placeholders), [*params, *chunk])
        rows.extend(await cursor.fetchall())
    return rows


async def init_db() -> None:
    """Initialize the database connection and run migrations."""
    global _db, _write_lock

    settings.db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(settings.db_path))
    _write_lock = asyncio.Lock()

    # WAL keeps readers (listing, metadata lookups) off the writers' lock
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")
    await _db.execute("PRAGMA busy_timeout=5000")

    await _db.commit()

    await run_migrations(_db)


async def close_db() -> None:
    """Close the database connection."""
    global _db, _write_lock
    if _db is not None:
        await _db.close()
        _db = None
        _write_lock = None
