"""Policy store: read-only snapshots of team and shared folder link policies."""

from linkvault.database import get_db
from linkvault.services.paths import lineage
from linkvault.services.visibility import Policy


async def get_team_policy(team_id: str | None) -> Policy | None:
    """Get the link policy of a team, or None if the team has none."""
    if team_id is None:
        return None
    db = await get_db()
    cursor = await db.execute(
        """SELECT allowed_visibilities, forces_password, members_only
           FROM team_policies WHERE team_id = ?""",
        (team_id,),
    )
    row = await cursor.fetchone()
    if row is None:
        return None
    return Policy.from_row(*row)


async def get_containing_shared_folder(path_lower: str) -> dict | None:
    """Find the shared folder whose root is the nearest ancestor-or-self of a path."""
    candidates = lineage(path_lower)
    if not candidates:
        return None

    db = await get_db()
    placeholders = ", ".join(["?"] * len(candidates))
    cursor = await db.execute(
        f"SELECT * FROM shared_folders WHERE path_lower IN ({placeholders})",
        candidates,
    )
    columns = [desc[0] for desc in cursor.description]
    by_path = {row[columns.index("path_lower")]: dict(zip(columns, row))
               for row in await cursor.fetchall()}

    for candidate in candidates:
        if candidate in by_path:
            return by_path[candidate]
    return None


def folder_policy_of(shared_folder: dict | None) -> Policy | None:
    if shared_folder is None:
        return None
    return Policy.from_row(
        shared_folder["allowed_visibilities"],
        shared_folder["forces_password"],
        shared_folder["members_only"],
    )
