"""Tests for concurrent requests sharing the one database connection."""

import asyncio

import pytest

from linkvault.services.errors import LinkAlreadyExistsError


async def _add_members(db, count, team_id="team-a"):
    member_ids = [f"dbmid:bulk-{i:04d}" for i in range(count)]
    await db.executemany(
        "INSERT INTO members (member_id, team_id, email) VALUES (?, ?, ?)",
        [(m, team_id, f"{m}@a.test") for m in member_ids],
    )
    await db.commit()
    return member_ids


@pytest.mark.asyncio
async def test_concurrent_legacy_creates_share_one_link(member):
    from linkvault.services.link_repository import repository
    from linkvault.services.link_service import create_legacy_link

    alice = await member("alice")
    bob = await member("bob")

    results = await asyncio.gather(*[
        create_legacy_link(caller, "/Shared") for caller in (alice, bob, alice, bob, alice)
    ])

    assert len({link["id"] for link in results}) == 1
    links = await repository.list_on_paths(["/shared"])
    assert [link.family for link in links] == ["legacy"]


@pytest.mark.asyncio
async def test_concurrent_settings_creates_keep_one_winner(member):
    from linkvault.services.link_service import create_link

    alice = await member("alice")
    results = await asyncio.gather(
        create_link(alice, "/Projects"),
        create_link(alice, "/Projects"),
        create_link(alice, "/Projects"),
        return_exceptions=True,
    )

    created = [r for r in results if isinstance(r, dict)]
    conflicts = [r for r in results if isinstance(r, LinkAlreadyExistsError)]
    assert len(created) == 1
    assert len(conflicts) == 2
    assert {c.payload["metadata"]["id"] for c in conflicts} == {created[0]["id"]}


@pytest.mark.asyncio
async def test_quota_batch_survives_losing_link_insert(member, seeded):
    from linkvault.services.link_repository import LEGACY, LinkRecord, repository
    from linkvault.services.link_service import create_legacy_link
    from linkvault.services.quota_service import get_custom_quota, set_custom_quota

    member_ids = await _add_members(seeded, 400)
    alice = await member("alice")
    await create_legacy_link(alice, "/Projects")

    async def duplicate_inserts():
        for n in range(20):
            await asyncio.sleep(0.001)
            _, created = await repository.insert_if_absent(LinkRecord(
                link_id=f"id:dup-{n}",
                url=f"https://lv.test/s/dup-{n}",
                family=LEGACY,
                kind="folder",
                owning_path="/projects",
                display_path="/Projects",
                owner_id="dbmid:bob",
            ))
            assert created is False

    results, _ = await asyncio.gather(
        set_custom_quota("team-a", [(m, 50) for m in member_ids]),
        duplicate_inserts(),
    )

    assert all(r[".tag"] == "success" for r in results)
    stored = await get_custom_quota("team-a", member_ids)
    assert [r["user"] for r in stored if r["quota_gb"] != 50] == []


@pytest.mark.asyncio
async def test_failed_write_does_not_undo_another_request(seeded):
    from linkvault.database import write_transaction

    async def slow_writer():
        async with write_transaction() as db:
            await db.execute("INSERT INTO teams (team_id, name) VALUES ('team-y', 'Y')")
            await asyncio.sleep(0.01)

    async def failing_writer():
        async with write_transaction() as db:
            await db.execute("INSERT INTO teams (team_id, name) VALUES ('team-x', 'X')")
            raise RuntimeError("boom")

    results = await asyncio.gather(slow_writer(), failing_writer(), return_exceptions=True)
    assert results[0] is None
    assert isinstance(results[1], RuntimeError)

    cursor = await seeded.execute(
        "SELECT team_id FROM teams WHERE team_id IN ('team-x', 'team-y')"
    )
    assert [row[0] for row in await cursor.fetchall()] == ["team-y"]
