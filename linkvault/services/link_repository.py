"""Link repository: persistent store of shared link records.

Records are keyed by link id and URL, and by owning path for lookups.
Writes that must stay unique per key (one legacy link per path, one
settings link per path and owner) are conditional inserts backed by
unique indexes (INSERT ... ON CONFLICT DO NOTHING); the loser of a race
reads back the winner's record.

The repository also keeps a generation counter. Anything that rewrites
the stable ordering (compaction) bumps it so outstanding list cursors
are detected as stale instead of silently skipping records.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Protocol

import aiosqlite

from linkvault.database import get_db, write_transaction
from linkvault.services.visibility import Visibility

logger = logging.getLogger(__name__)

LEGACY = "legacy"
SETTINGS = "settings"

_COLUMNS = (
    "link_id, url, family, kind, owning_path, display_path, owner_id, "
    "requested_visibility, password_hash, expires_at, created_at, updated_at"
)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds")


def to_utc_iso(value: datetime) -> str:
    """Normalize a datetime to the stored ISO form (naive values are UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


@dataclass(frozen=True)
class LinkRecord:
    link_id: str
    url: str
    family: str
    kind: str
    owning_path: str
    display_path: str
    owner_id: str
    requested_visibility: Visibility = Visibility.PUBLIC
    password_hash: str | None = None
    expires_at: str | None = None
    created_at: str = ""
    updated_at: str = ""

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.created_at, self.link_id)

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    def is_expired(self, now: str | None = None) -> bool:
        if self.expires_at is None:
            return False
        return self.expires_at <= (now or utcnow_iso())

    @classmethod
    def from_row(cls, row) -> "LinkRecord":
        (link_id, url, family, kind, owning_path, display_path, owner_id,
         requested, password_hash, expires_at, created_at, updated_at) = row
        return cls(
            link_id=link_id,
            url=url,
            family=family,
            kind=kind,
            owning_path=owning_path,
            display_path=display_path,
            owner_id=owner_id,
            requested_visibility=Visibility(requested),
            password_hash=password_hash,
            expires_at=expires_at,
            created_at=created_at,
            updated_at=updated_at,
        )


class LinkRepository(Protocol):
    async def get_by_id(self, link_id: str) -> LinkRecord | None:
        """Point lookup by stable link id."""

    async def get_by_url(self, url: str) -> LinkRecord | None:
        """Point lookup by URL (identity key of the settings family)."""

    async def get_family_link(self, family: str, path: str, owner_id: str) -> LinkRecord | None:
        """The record occupying a family's uniqueness slot for a path."""

    async def list_on_paths(self, paths: list[str], owner_id: str | None = None) -> list[LinkRecord]:
        """All links whose owning path is one of ``paths``."""

    async def list_page(
        self, owner_id: str, after: tuple[str, str] | None, limit: int
    ) -> tuple[list[LinkRecord], bool]:
        """A page of an owner's links past ``after``; returns (records, has_more)."""

    async def anchor_exists(self, owner_id: str, sort_key: tuple[str, str]) -> bool:
        """Whether the record a cursor is anchored on still exists."""

    async def insert_if_absent(self, record: LinkRecord) -> tuple[LinkRecord, bool]:
        """Insert unless the family slot is taken; returns (stored, created)."""

    async def update_settings(
        self,
        link_id: str,
        requested_visibility: Visibility,
        password_hash: str | None,
        expires_at: str | None,
    ) -> LinkRecord | None:
        """Replace a link's settings."""

    async def delete(self, link_id: str) -> bool:
        """Remove a link."""

    async def get_generation(self) -> int:
        """Current ordering generation."""

    async def purge_expired(self, now: str | None = None) -> int:
        """Compact away expired links, bumping the generation if any went."""


class SQLiteLinkRepository:
    """LinkRepository backed by the shared aiosqlite connection."""

    async def _fetch_one(self, sql: str, params) -> LinkRecord | None:
        db = await get_db()
        cursor = await db.execute(sql, params)
        row = await cursor.fetchone()
        return LinkRecord.from_row(row) if row else None

    async def _fetch_all(self, sql: str, params) -> list[LinkRecord]:
        db = await get_db()
        cursor = await db.execute(sql, params)
        return [LinkRecord.from_row(row) for row in await cursor.fetchall()]

    async def get_by_id(self, link_id: str) -> LinkRecord | None:
        return await self._fetch_one(
            f"SELECT {_COLUMNS} FROM shared_links WHERE link_id = ?", (link_id,)
        )

    async def get_by_url(self, url: str) -> LinkRecord | None:
        return await self._fetch_one(
            f"SELECT {_COLUMNS} FROM shared_links WHERE url = ?", (url,)
        )

    async def get_family_link(self, family: str, path: str, owner_id: str) -> LinkRecord | None:
        if family == LEGACY:
            return await self._fetch_one(
                f"""SELECT {_COLUMNS} FROM shared_links
                    WHERE family = 'legacy' AND owning_path = ?""",
                (path,),
            )
        return await self._fetch_one(
            f"""SELECT {_COLUMNS} FROM shared_links
                WHERE family = 'settings' AND owning_path = ? AND owner_id = ?""",
            (path, owner_id),
        )

    async def list_on_paths(self, paths: list[str], owner_id: str | None = None) -> list[LinkRecord]:
        if not paths:
            return []
        placeholders = ", ".join(["?"] * len(paths))
        sql = f"SELECT {_COLUMNS} FROM shared_links WHERE owning_path IN ({placeholders})"
        params: list = list(paths)
        if owner_id is not None:
            sql += " AND owner_id = ?"
            params.append(owner_id)
        sql += " ORDER BY created_at, link_id"
        return await self._fetch_all(sql, params)

    async def list_page(
        self, owner_id: str, after: tuple[str, str] | None, limit: int
    ) -> tuple[list[LinkRecord], bool]:
        sql = f"SELECT {_COLUMNS} FROM shared_links WHERE owner_id = ?"
        params: list = [owner_id]
        if after is not None:
            sql += " AND (created_at, link_id) > (?, ?)"
            params.extend(after)
        # One extra row tells us whether another page exists
        sql += " ORDER BY created_at, link_id LIMIT ?"
        params.append(limit + 1)

        records = await self._fetch_all(sql, params)
        return records[:limit], len(records) > limit

    async def anchor_exists(self, owner_id: str, sort_key: tuple[str, str]) -> bool:
        db = await get_db()
        created_at, link_id = sort_key
        cursor = await db.execute(
            """SELECT 1 FROM shared_links
               WHERE link_id = ? AND owner_id = ? AND created_at = ?""",
            (link_id, owner_id, created_at),
        )
        return await cursor.fetchone() is not None

    async def insert_if_absent(self, record: LinkRecord) -> tuple[LinkRecord, bool]:
        now = utcnow_iso()
        record = replace(
            record,
            created_at=record.created_at or now,
            updated_at=record.updated_at or now,
        )
        async with write_transaction() as db:
            cursor = await db.execute(
                f"""INSERT INTO shared_links ({_COLUMNS})
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    ON CONFLICT DO NOTHING""",
                (
                    record.link_id, record.url, record.family, record.kind,
                    record.owning_path, record.display_path, record.owner_id,
                    record.requested_visibility.value, record.password_hash,
                    record.expires_at, record.created_at, record.updated_at,
                ),
            )
            inserted = cursor.rowcount > 0
        if inserted:
            return record, True

        existing = await self.get_family_link(
            record.family, record.owning_path, record.owner_id
        )
        if existing is None:
            raise RuntimeError(f"Link id or URL of {record.link_id} is already taken")
        logger.info(
            "Conditional insert lost to existing %s link %s on %s",
            record.family, existing.link_id, record.owning_path,
        )
        return existing, False

    async def update_settings(
        self,
        link_id: str,
        requested_visibility: Visibility,
        password_hash: str | None,
        expires_at: str | None,
    ) -> LinkRecord | None:
        async with write_transaction() as db:
            cursor = await db.execute(
                """UPDATE shared_links SET
                    requested_visibility = ?,
                    password_hash = ?,
                    expires_at = ?,
                    updated_at = ?
                WHERE link_id = ?""",
                (Visibility(requested_visibility).value, password_hash, expires_at,
                 utcnow_iso(), link_id),
            )
            updated = cursor.rowcount > 0
        if not updated:
            return None
        return await self.get_by_id(link_id)

    async def delete(self, link_id: str) -> bool:
        async with write_transaction() as db:
            cursor = await db.execute(
                "DELETE FROM shared_links WHERE link_id = ?", (link_id,)
            )
            return cursor.rowcount > 0

    async def get_generation(self) -> int:
        db = await get_db()
        cursor = await db.execute(
            "SELECT value FROM repository_state WHERE key = 'link_generation'"
        )
        row = await cursor.fetchone()
        return row[0] if row else 1

    async def bump_generation(self) -> int:
        async with write_transaction() as db:
            await _bump_generation(db)
        return await self.get_generation()

    async def purge_expired(self, now: str | None = None) -> int:
        # Deleting and bumping commit together so no cursor sees one without the other
        async with write_transaction() as db:
            cursor = await db.execute(
                "DELETE FROM shared_links WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (now or utcnow_iso(),),
            )
            removed = cursor.rowcount
            if removed > 0:
                await _bump_generation(db)
        if removed > 0:
            logger.info(
                "Purged %d expired links; link generation is now %d",
                removed, await self.get_generation(),
            )
        return removed


async def _bump_generation(db: aiosqlite.Connection) -> None:
    await db.execute(
        "UPDATE repository_state SET value = value + 1 WHERE key = 'link_generation'"
    )


# Singleton instance
repository = SQLiteLinkRepository()
