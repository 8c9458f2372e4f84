"""Add the repository generation marker used to invalidate list cursors."""

import aiosqlite


async def upgrade(db: aiosqlite.Connection) -> None:
    await db.execute("""
        CREATE TABLE repository_state (
            key    TEXT PRIMARY KEY,
            value  INTEGER NOT NULL
        )
    """)
    await db.execute(
        "INSERT INTO repository_state (key, value) VALUES ('link_generation', 1)"
    )
    await db.commit()
