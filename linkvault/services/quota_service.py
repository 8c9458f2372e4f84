"""Team member custom quota service.

Every batch call runs in two stages that must stay separate:

1. Call-level checks (batch size, quota floor). Any failure rejects the
   whole call before the database is touched.
2. Per-member processing. A member outside the team yields an
   ``invalid_user`` entry; the rest of the batch still applies.
"""

import logging

from linkvault.config import settings
from linkvault.database import fetch_in_chunks, write_transaction
from linkvault.services.directory import get_team_member_ids
from linkvault.services.errors import InvalidQuotaError, TooManyUsersError

logger = logging.getLogger(__name__)


def _check_batch_size(count: int) -> None:
    if count > settings.max_quota_batch:
        raise TooManyUsersError(
            f"At most {settings.max_quota_batch} users per call, got {count}"
        )


def _check_quota_floor(entries: list[tuple[str, int]]) -> None:
    for member_id, quota_gb in entries:
        if quota_gb < settings.min_quota_gb:
            raise InvalidQuotaError(
                f"Quota for {member_id} is {quota_gb} GB; minimum is {settings.min_quota_gb} GB"
            )


def _success(member_id: str, quota_gb: int | None = None) -> dict:
    return {".tag": "success", "user": member_id, "quota_gb": quota_gb}


def _invalid_user(member_id: str) -> dict:
    return {".tag": "invalid_user", "user": member_id, "quota_gb": None}


async def set_custom_quota(team_id: str, entries: list[tuple[str, int]]) -> list[dict]:
    """Set custom quotas (GB) for team members.

    Returns one result per entry, in input order.
    """
    _check_batch_size(len(entries))
    _check_quota_floor(entries)

    valid = await get_team_member_ids(team_id, [member_id for member_id, _ in entries])

    results = []
    rows = []
    for member_id, quota_gb in entries:
        if member_id not in valid:
            results.append(_invalid_user(member_id))
            continue
        rows.append((member_id, quota_gb))
        results.append(_success(member_id, quota_gb))

    async with write_transaction() as db:
        await db.executemany(
            """INSERT INTO custom_quotas (member_id, quota_gb) VALUES (?, ?)
               ON CONFLICT(member_id) DO UPDATE SET
                   quota_gb = excluded.quota_gb,
                   updated_at = datetime('now')""",
            rows,
        )

    logger.info(
        "Team %s: set %d custom quotas (%d invalid users)",
        team_id, len(rows), len(results) - len(rows),
    )
    return results


async def remove_custom_quota(team_id: str, member_ids: list[str]) -> list[dict]:
    """Remove custom quotas so the team default applies again.

    Removing a member that has no override succeeds.
    """
    _check_batch_size(len(member_ids))

    valid = await get_team_member_ids(team_id, member_ids)

    async with write_transaction() as db:
        await db.executemany(
            "DELETE FROM custom_quotas WHERE member_id = ?",
            [(member_id,) for member_id in valid],
        )

    logger.info("Team %s: removed custom quotas for %d members", team_id, len(valid))
    return [
        _success(member_id) if member_id in valid else _invalid_user(member_id)
        for member_id in member_ids
    ]


async def get_custom_quota(team_id: str, member_ids: list[str]) -> list[dict]:
    """Get custom quotas; a member without an override gets ``quota_gb`` None."""
    _check_batch_size(len(member_ids))

    valid = await get_team_member_ids(team_id, member_ids)
    rows = await fetch_in_chunks(
        "SELECT member_id, quota_gb FROM custom_quotas WHERE member_id IN ({placeholders})",
        list(valid),
    )
    quotas = dict(rows)

    return [
        _success(member_id, quotas.get(member_id)) if member_id in valid
        else _invalid_user(member_id)
        for member_id in member_ids
    ]
