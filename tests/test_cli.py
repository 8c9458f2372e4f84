"""Tests for the linkvault_admin command-line client."""

import json

import httpx
import pytest

from cli.linkvault_admin import (
    LinkVaultClient,
    LinkVaultError,
    build_parser,
    parse_quota_entries,
    run_cli,
)


def _link(n: int) -> dict:
    return {
        ".tag": "folder",
        "url": f"https://lv.test/s/tok{n}",
        "id": f"id:{n}",
        "name": f"Folder{n}",
        "link_permissions": {"resolved_visibility": "public"},
    }


def _client(handler) -> LinkVaultClient:
    return LinkVaultClient("https://lv.test/", "tok", transport=httpx.MockTransport(handler))


def test_iter_links_follows_cursor():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append(body)
        assert request.headers["Authorization"] == "Bearer tok"
        if "cursor" not in body:
            return httpx.Response(200, json={"links": [_link(1), _link(2)], "has_more": True, "cursor": "c1"})
        return httpx.Response(200, json={"links": [_link(3)], "has_more": False, "cursor": "c2"})

    client = _client(handler)
    links = list(client.iter_links())

    assert [link["id"] for link in links] == ["id:1", "id:2", "id:3"]
    assert calls == [{"direct_only": False}, {"cursor": "c1"}]


def test_tagged_error_raised():
    def handler(request):
        return httpx.Response(409, json={"detail": {
            "error_summary": "access_denied/owner_only",
            "error": {".tag": "access_denied", "reason": "owner_only"},
        }})

    with pytest.raises(LinkVaultError) as exc_info:
        _client(handler).revoke("https://lv.test/s/x")
    assert exc_info.value.tag == "access_denied"
    assert str(exc_info.value) == "access_denied/owner_only"


def test_quota_calls_are_chunked():
    sizes = []

    def handler(request):
        users = json.loads(request.content)["users"]
        sizes.append(len(users))
        return httpx.Response(200, json={"results": [
            {".tag": "success", "user": u, "quota_gb": None} for u in users
        ]})

    results = _client(handler).get_quotas([f"dbmid:u{i}" for i in range(2500)])
    assert sizes == [1000, 1000, 500]
    assert len(results) == 2500


def test_parse_quota_entries():
    assert parse_quota_entries(["dbmid:bob=30", "dbmid:erin=100"]) == [
        ("dbmid:bob", 30), ("dbmid:erin", 100),
    ]
    for bad in ["dbmid:bob", "=30", "dbmid:bob=lots"]:
        with pytest.raises(ValueError):
            parse_quota_entries([bad])


def test_run_cli_exit_codes(capsys):
    def handler(request):
        if request.url.path.endswith("set_custom_quota"):
            body = json.loads(request.content)
            return httpx.Response(200, json={"results": [
                {".tag": "success", "user": e["user"], "quota_gb": e["quota_gb"]}
                for e in body["users_and_quotas"]
            ]})
        return httpx.Response(409, json={"detail": {
            "error_summary": "not_found", "error": {".tag": "not_found"},
        }})

    parser = build_parser()
    client = _client(handler)

    args = parser.parse_args(["--server", "s", "--token", "t", "quota", "set", "dbmid:bob=40"])
    assert run_cli(args, client) == 0
    assert "40 GB" in capsys.readouterr().out

    args = parser.parse_args(["--server", "s", "--token", "t", "revoke", "https://lv.test/s/x"])
    assert run_cli(args, client) == 1
    assert "not_found" in capsys.readouterr().err

    args = parser.parse_args(["--server", "s", "--token", "t", "quota", "set", "dbmid:bob"])
    assert run_cli(args, client) == 2
