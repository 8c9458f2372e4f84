"""Tests for core LinkVault services: database, auth, paths, cursors."""

import pytest

# Environment overrides are set in conftest.py (runs before this module).
# The settings singleton is created once at import time of linkvault.config.


# ── Database Tests ───────────────────────────────────────────────────────────


class TestDatabase:
    @pytest.mark.asyncio
    async def test_tables_exist(self, db):
        cursor = await db.execute(
            "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
        )
        table_names = [r[0] for r in await cursor.fetchall()]

        expected = [
            "teams", "members", "team_policies", "fs_entries", "shared_folders",
            "shared_folder_members", "shared_links", "custom_quotas",
            "repository_state", "_migrations",
        ]
        for table in expected:
            assert table in table_names, f"Missing table: {table}"

    @pytest.mark.asyncio
    async def test_wal_mode(self, db):
        cursor = await db.execute("PRAGMA journal_mode")
        row = await cursor.fetchone()
        assert row[0] == "wal"

    @pytest.mark.asyncio
    async def test_migrations_are_idempotent(self, db):
        from linkvault.migrations.runner import MIGRATIONS, run_migrations

        await run_migrations(db)
        cursor = await db.execute("SELECT COUNT(*) FROM _migrations")
        assert (await cursor.fetchone())[0] == len(MIGRATIONS)

    @pytest.mark.asyncio
    async def test_generation_starts_at_one(self, db):
        from linkvault.services.link_repository import repository

        assert await repository.get_generation() == 1

    @pytest.mark.asyncio
    async def test_unknown_applied_migration_is_tolerated(self, db, caplog):
        from linkvault.migrations.runner import run_migrations

        await db.execute("INSERT INTO _migrations (name) VALUES ('linkvault.migrations.m999_future')")
        await db.commit()
        await run_migrations(db)
        assert "m999_future" in caplog.text

    @pytest.mark.asyncio
    async def test_fetch_in_chunks_spans_chunks(self, db):
        from linkvault.database import IN_CHUNK_SIZE, fetch_in_chunks, write_transaction

        names = [f"t{i:04d}" for i in range(IN_CHUNK_SIZE * 2 + 7)]
        async with write_transaction() as conn:
            await conn.executemany(
                "INSERT INTO teams (team_id, name) VALUES (?, ?)", [(n, n) for n in names]
            )

        rows = await fetch_in_chunks(
            "SELECT team_id FROM teams WHERE name != ? AND team_id IN ({placeholders})",
            names + ["missing"],
            ("t0000",),
        )
        assert sorted(row[0] for row in rows) == names[1:]

    @pytest.mark.asyncio
    async def test_write_transaction_rolls_back_on_error(self, db):
        from linkvault.database import write_transaction

        with pytest.raises(RuntimeError):
            async with write_transaction() as conn:
                await conn.execute("INSERT INTO teams (team_id, name) VALUES ('t-x', 'X')")
                raise RuntimeError("boom")

        cursor = await db.execute("SELECT COUNT(*) FROM teams")
        assert (await cursor.fetchone())[0] == 0

    @pytest.mark.asyncio
    async def test_get_db_requires_init(self):
        from linkvault.database import get_db

        with pytest.raises(RuntimeError):
            await get_db()


# ── Auth Tests ───────────────────────────────────────────────────────────────


class TestAuth:
    def test_hash_password(self):
        from linkvault.auth import hash_password, verify_password

        hashed = hash_password("hunter22")
        assert hashed != "hunter22"
        assert verify_password("hunter22", hashed)
        assert not verify_password("wrong", hashed)

    def test_create_and_decode_token(self):
        from linkvault.auth import create_access_token, decode_token

        payload = decode_token(create_access_token("dbmid:alice", expires_days=1))
        assert payload["sub"] == "dbmid:alice"
        assert "exp" in payload

    def test_invalid_token_raises(self):
        from jose import JWTError

        from linkvault.auth import decode_token

        with pytest.raises(JWTError):
            decode_token("not.a.valid.token")

    def test_different_secrets_fail(self):
        from jose import JWTError, jwt

        from linkvault.auth import create_access_token

        token = create_access_token("dbmid:alice", expires_days=1)
        with pytest.raises(JWTError):
            jwt.decode(token, "wrong-secret", algorithms=["HS256"])


# ── Path Tests ───────────────────────────────────────────────────────────────


class TestPaths:
    @pytest.mark.parametrize("raw, expected", [
        ("/Projects/Reports", "/Projects/Reports"),
        ("/Projects//Reports/", "/Projects/Reports"),
        ("  /a  ", "/a"),
        ("/", ""),
        ("", ""),
    ])
    def test_normalize(self, raw, expected):
        from linkvault.services.paths import normalize_path

        assert normalize_path(raw) == expected

    @pytest.mark.parametrize("raw", [
        "relative/path",
        "/a/../b",
        "/a/./b",
        "/a\\b",
        "/a/\x00b",
        "/a/ b",
    ])
    def test_malformed(self, raw):
        from linkvault.services.paths import MalformedPathError, normalize_path

        with pytest.raises(MalformedPathError):
            normalize_path(raw)

    def test_canonical_is_lower_case(self):
        from linkvault.services.paths import canonical_path

        assert canonical_path("/Projects/Q1.PDF") == "/projects/q1.pdf"

    def test_lineage_is_leaf_first(self):
        from linkvault.services.paths import ancestor_paths, lineage

        assert lineage("/a/b/c") == ["/a/b/c", "/a/b", "/a"]
        assert ancestor_paths("/a") == []
        assert lineage("") == []

    def test_join_and_basename(self):
        from linkvault.services.paths import basename, join_path

        assert join_path("/Projects", "Reports/Q1.pdf") == "/Projects/Reports/Q1.pdf"
        assert join_path("/Projects", "/Reports") == "/Projects/Reports"
        assert basename("/Projects/Reports") == "Reports"
        assert basename("") == ""


# ── Cursor Tests ─────────────────────────────────────────────────────────────


class TestCursor:
    def _cursor(self):
        from linkvault.services.cursor import ListCursor

        return ListCursor(
            owner_id="dbmid:alice",
            generation=3,
            created_at="2026-01-01T00:00:00.000001+00:00",
            link_id="id:abc",
        )

    def test_roundtrip(self):
        from linkvault.services.cursor import decode_cursor, encode_cursor

        cursor = self._cursor()
        assert decode_cursor(encode_cursor(cursor)) == cursor

    def test_token_is_opaque(self):
        from linkvault.services.cursor import encode_cursor

        token = encode_cursor(self._cursor())
        assert "alice" not in token
        assert "id:abc" not in token

    def test_tampered_body_rejected(self):
        from linkvault.services.cursor import CursorError, decode_cursor, encode_cursor

        body, signature = encode_cursor(self._cursor()).split(".")
        forged = body[:-2] + ("AA" if body[-2:] != "AA" else "BB")
        with pytest.raises(CursorError) as exc_info:
            decode_cursor(f"{forged}.{signature}")
        assert exc_info.value.reason == "bad_signature"

    @pytest.mark.parametrize("token", ["", "garbage", "a.b.c"])
    def test_malformed_rejected(self, token):
        from linkvault.services.cursor import CursorError, decode_cursor

        with pytest.raises(CursorError):
            decode_cursor(token)

    def test_signed_garbage_rejected(self):
        from linkvault.services.cursor import CursorError, _b64url_encode, _sign, decode_cursor

        body = _b64url_encode(b'{"v": 1}')
        with pytest.raises(CursorError) as exc_info:
            decode_cursor(f"{body}.{_sign(body)}")
        assert exc_info.value.reason == "malformed"
