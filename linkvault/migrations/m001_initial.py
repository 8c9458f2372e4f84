"""Initial database schema.

Creates the team directory, filesystem directory, shared folder, shared link
and custom quota tables with their indexes.
"""

import aiosqlite


async def upgrade(db: aiosqlite.Connection) -> None:
    """Create the initial database schema."""

    # ── Teams & members ──────────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE teams (
            team_id     TEXT PRIMARY KEY,
            name        TEXT NOT NULL,
            created_at  TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.execute("""
        CREATE TABLE members (
            member_id       TEXT PRIMARY KEY,
            team_id         TEXT REFERENCES teams(team_id) ON DELETE SET NULL,
            email           TEXT NOT NULL,
            email_verified  INTEGER NOT NULL DEFAULT 1,
            is_admin        INTEGER NOT NULL DEFAULT 0,
            created_at      TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)
    await db.execute("CREATE INDEX idx_members_team_id ON members(team_id)")

    # Comma-separated visibility values; a missing row means no team policy
    await db.execute("""
        CREATE TABLE team_policies (
            team_id               TEXT PRIMARY KEY REFERENCES teams(team_id) ON DELETE CASCADE,
            allowed_visibilities  TEXT NOT NULL DEFAULT 'public,team_only,password',
            forces_password       INTEGER NOT NULL DEFAULT 0,
            members_only          INTEGER NOT NULL DEFAULT 0,
            updated_at            TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    # ── Filesystem directory ─────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE fs_entries (
            path_lower    TEXT PRIMARY KEY,
            path_display  TEXT NOT NULL,
            kind          TEXT NOT NULL CHECK (kind IN ('file', 'folder')),
            owner_id      TEXT REFERENCES members(member_id) ON DELETE SET NULL
        )
    """)

    # ── Shared folders ───────────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE shared_folders (
            shared_folder_id      TEXT PRIMARY KEY,
            path_lower            TEXT NOT NULL UNIQUE,
            allowed_visibilities  TEXT NOT NULL DEFAULT 'public,team_only,password',
            forces_password       INTEGER NOT NULL DEFAULT 0,
            members_only          INTEGER NOT NULL DEFAULT 0
        )
    """)

    await db.execute("""
        CREATE TABLE shared_folder_members (
            shared_folder_id  TEXT NOT NULL REFERENCES shared_folders(shared_folder_id) ON DELETE CASCADE,
            member_id         TEXT NOT NULL REFERENCES members(member_id) ON DELETE CASCADE,
            PRIMARY KEY (shared_folder_id, member_id)
        )
    """)

    # ── Shared links ─────────────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE shared_links (
            link_id               TEXT PRIMARY KEY,
            url                   TEXT NOT NULL UNIQUE,
            family                TEXT NOT NULL CHECK (family IN ('legacy', 'settings')),
            kind                  TEXT NOT NULL CHECK (kind IN ('file', 'folder')),
            owning_path           TEXT NOT NULL,
            display_path          TEXT NOT NULL,
            owner_id              TEXT NOT NULL,
            requested_visibility  TEXT NOT NULL DEFAULT 'public',
            password_hash         TEXT,
            expires_at            TEXT,
            created_at            TEXT NOT NULL,
            updated_at            TEXT NOT NULL
        )
    """)
    # One legacy link per path; one settings link per (path, owner)
    await db.execute(
        """CREATE UNIQUE INDEX idx_shared_links_legacy_path
           ON shared_links(owning_path) WHERE family = 'legacy'"""
    )
    await db.execute(
        """CREATE UNIQUE INDEX idx_shared_links_settings_path_owner
           ON shared_links(owning_path, owner_id) WHERE family = 'settings'"""
    )
    await db.execute(
        "CREATE INDEX idx_shared_links_owner_order ON shared_links(owner_id, created_at, link_id)"
    )
    await db.execute(
        "CREATE INDEX idx_shared_links_owning_path ON shared_links(owning_path)"
    )

    # ── Custom quotas ────────────────────────────────────────────────────
    await db.execute("""
        CREATE TABLE custom_quotas (
            member_id   TEXT PRIMARY KEY REFERENCES members(member_id) ON DELETE CASCADE,
            quota_gb    INTEGER NOT NULL CHECK (quota_gb >= 25),
            updated_at  TEXT NOT NULL DEFAULT (datetime('now'))
        )
    """)

    await db.commit()
