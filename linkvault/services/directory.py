"""Read-only lookups against the team and filesystem directories."""

from linkvault.database import fetch_in_chunks, get_db
from linkvault.models.member import Member


def _row_to_member(row) -> Member:
    member_id, team_id, email, email_verified, is_admin = row
    return Member(
        member_id=member_id,
        team_id=team_id,
        email=email,
        email_verified=bool(email_verified),
        is_admin=bool(is_admin),
    )


async def get_member(member_id: str) -> Member | None:
    """Get a single member by ID."""
    db = await get_db()
    cursor = await db.execute(
        """SELECT member_id, team_id, email, email_verified, is_admin
           FROM members WHERE member_id = ?""",
        (member_id,),
    )
    row = await cursor.fetchone()
    return _row_to_member(row) if row else None


async def get_team_member_ids(team_id: str, member_ids: list[str]) -> set[str]:
    """Return the subset of ``member_ids`` that belong to ``team_id``."""
    if not member_ids:
        return set()
    rows = await fetch_in_chunks(
        "SELECT member_id FROM members WHERE team_id = ? AND member_id IN ({placeholders})",
        list(dict.fromkeys(member_ids)),
        (team_id,),
    )
    return {row[0] for row in rows}


async def get_entry(path_lower: str) -> dict | None:
    """Get a filesystem entry by canonical path."""
    db = await get_db()
    cursor = await db.execute(
        "SELECT * FROM fs_entries WHERE path_lower = ?", (path_lower,)
    )
    columns = [desc[0] for desc in cursor.description]
    row = await cursor.fetchone()
    if row is None:
        return None
    return dict(zip(columns, row))


async def is_shared_folder_member(shared_folder_id: str, member_id: str) -> bool:
    db = await get_db()
    cursor = await db.execute(
        """SELECT 1 FROM shared_folder_members
           WHERE shared_folder_id = ? AND member_id = ?""",
        (shared_folder_id, member_id),
    )
    return await cursor.fetchone() is not None
