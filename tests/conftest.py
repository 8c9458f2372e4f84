"""Shared test fixtures for all test modules."""

import os
import tempfile

import pytest

# ── Environment overrides (must be set before importing linkvault modules) ──
_tmp = tempfile.mkdtemp(prefix="lv_pytest_")
os.environ["LINKVAULT_DATA_DIR"] = _tmp
os.environ["LINKVAULT_DB_PATH"] = os.path.join(_tmp, "test.db")
os.environ["LINKVAULT_SECRET_KEY"] = "pytest-secret-key"
os.environ["LINKVAULT_BASE_URL"] = "https://lv.test"
os.environ["LINKVAULT_DISABLE_AUTH"] = "false"


# ── Directory seed ───────────────────────────────────────────────────────────
# team-a: alice (admin), bob, carol (unverified email), erin
# team-b: dave
# /Shared is a shared folder with alice and bob as members.

MEMBERS = [
    ("dbmid:alice", "team-a", "alice@a.test", 1, 1),
    ("dbmid:bob", "team-a", "bob@a.test", 1, 0),
    ("dbmid:carol", "team-a", "carol@a.test", 0, 0),
    ("dbmid:erin", "team-a", "erin@a.test", 1, 0),
    ("dbmid:dave", "team-b", "dave@b.test", 1, 1),
]

FS_ENTRIES = [
    ("/projects", "/Projects", "folder", "dbmid:alice"),
    ("/projects/reports", "/Projects/Reports", "folder", "dbmid:alice"),
    ("/projects/reports/q1.pdf", "/Projects/Reports/Q1.pdf", "file", "dbmid:alice"),
    ("/projects/reports/q2.pdf", "/Projects/Reports/Q2.pdf", "file", "dbmid:alice"),
    ("/projects/notes.txt", "/Projects/Notes.txt", "file", "dbmid:alice"),
    ("/bob", "/Bob", "folder", "dbmid:bob"),
    ("/bob/todo.txt", "/Bob/todo.txt", "file", "dbmid:bob"),
    ("/shared", "/Shared", "folder", "dbmid:alice"),
    ("/shared/plan.docx", "/Shared/plan.docx", "file", "dbmid:alice"),
]


@pytest.fixture
async def db(tmp_path):
    """A fresh, migrated database for one test."""
    import linkvault.database as db_mod
    from linkvault.config import settings

    original_db_path = settings.db_path
    settings.db_path = tmp_path / "linkvault_test.db"

    if db_mod._db is not None:
        await db_mod.close_db()

    await db_mod.init_db()
    conn = await db_mod.get_db()

    yield conn

    await db_mod.close_db()
    settings.db_path = original_db_path


@pytest.fixture
async def seeded(db):
    """Database seeded with two teams, members, directory entries and a shared folder."""
    await db.execute("INSERT INTO teams (team_id, name) VALUES ('team-a', 'Team A')")
    await db.execute("INSERT INTO teams (team_id, name) VALUES ('team-b', 'Team B')")
    await db.executemany(
        """INSERT INTO members (member_id, team_id, email, email_verified, is_admin)
           VALUES (?, ?, ?, ?, ?)""",
        MEMBERS,
    )
    await db.executemany(
        "INSERT INTO fs_entries (path_lower, path_display, kind, owner_id) VALUES (?, ?, ?, ?)",
        FS_ENTRIES,
    )
    await db.execute(
        "INSERT INTO shared_folders (shared_folder_id, path_lower) VALUES ('sf-1', '/shared')"
    )
    await db.executemany(
        "INSERT INTO shared_folder_members (shared_folder_id, member_id) VALUES ('sf-1', ?)",
        [("dbmid:alice",), ("dbmid:bob",)],
    )
    await db.commit()
    return db


@pytest.fixture
def member(seeded):
    """Load a seeded member by short name, e.g. ``await member("alice")``."""
    from linkvault.services.directory import get_member

    async def _load(name: str):
        return await get_member(f"dbmid:{name}")

    return _load


@pytest.fixture
def team_policy(seeded):
    """Install a team link policy."""

    async def _set(team_id="team-a", allowed="public,team_only,password",
                   forces_password=False, members_only=False):
        await seeded.execute(
            """INSERT INTO team_policies (team_id, allowed_visibilities, forces_password, members_only)
               VALUES (?, ?, ?, ?)
               ON CONFLICT(team_id) DO UPDATE SET
                   allowed_visibilities = excluded.allowed_visibilities,
                   forces_password = excluded.forces_password,
                   members_only = excluded.members_only""",
            (team_id, allowed, int(forces_password), int(members_only)),
        )
        await seeded.commit()

    return _set


@pytest.fixture
def folder_policy(seeded):
    """Change the policy of a seeded shared folder."""

    async def _set(shared_folder_id="sf-1", allowed="public,team_only,password",
                   forces_password=False, members_only=False):
        await seeded.execute(
            """UPDATE shared_folders SET
                   allowed_visibilities = ?, forces_password = ?, members_only = ?
               WHERE shared_folder_id = ?""",
            (allowed, int(forces_password), int(members_only), shared_folder_id),
        )
        await seeded.commit()

    return _set
