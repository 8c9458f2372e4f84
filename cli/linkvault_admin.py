#!/usr/bin/env python3
"""
LinkVault admin: command-line client for a LinkVault server.

Usage:
    python linkvault_admin.py --server URL --token JWT links [--path P] [--direct-only]
    python linkvault_admin.py --server URL --token JWT revoke URL
    python linkvault_admin.py --server URL --token JWT quota get USER [USER ...]
    python linkvault_admin.py --server URL --token JWT quota set USER=GB [USER=GB ...]
    python linkvault_admin.py --server URL --token JWT quota remove USER [USER ...]
"""

from __future__ import annotations

import argparse
import json
import sys

import httpx

# Server-side limit on users per quota call
QUOTA_BATCH_SIZE = 1000


class LinkVaultError(Exception):
    """A tagged error returned by the server."""

    def __init__(self, error: dict):
        self.error = error
        self.tag = error.get("error", {}).get(".tag", "unknown")
        super().__init__(error.get("error_summary", self.tag))


# ---------------------------------------------------------------------------
# LinkVault API client
# ---------------------------------------------------------------------------

class LinkVaultClient:
    def __init__(self, server: str, token: str, transport: httpx.BaseTransport | None = None):
        self.client = httpx.Client(
            base_url=server.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=60.0,
            transport=transport,
        )

    def _call(self, route: str, body: dict) -> dict | None:
        resp = self.client.post(route, json=body)
        if resp.status_code == 409:
            raise LinkVaultError(resp.json().get("detail", {}))
        resp.raise_for_status()
        return resp.json()

    def iter_links(self, path: str | None = None, direct_only: bool = False):
        """Yield every link, following cursors until the listing is exhausted."""
        body: dict = {"direct_only": direct_only}
        if path is not None:
            body["path"] = path
        while True:
            page = self._call("/api/sharing/list_shared_links", body)
            yield from page["links"]
            if not page.get("has_more") or not page.get("cursor"):
                return
            body = {"cursor": page["cursor"]}

    def revoke(self, url: str) -> None:
        self._call("/api/sharing/revoke_shared_link", {"url": url})

    def get_quotas(self, users: list[str]) -> list[dict]:
        results = []
        for i in range(0, len(users), QUOTA_BATCH_SIZE):
            chunk = users[i : i + QUOTA_BATCH_SIZE]
            results.extend(self._call(
                "/api/team/member_space_limits/get_custom_quota", {"users": chunk}
            )["results"])
        return results

    def set_quotas(self, entries: list[tuple[str, int]]) -> list[dict]:
        results = []
        for i in range(0, len(entries), QUOTA_BATCH_SIZE):
            chunk = entries[i : i + QUOTA_BATCH_SIZE]
            body = {"users_and_quotas": [{"user": u, "quota_gb": q} for u, q in chunk]}
            results.extend(self._call(
                "/api/team/member_space_limits/set_custom_quota", body
            )["results"])
        return results

    def remove_quotas(self, users: list[str]) -> list[dict]:
        results = []
        for i in range(0, len(users), QUOTA_BATCH_SIZE):
            chunk = users[i : i + QUOTA_BATCH_SIZE]
            results.extend(self._call(
                "/api/team/member_space_limits/remove_custom_quota", {"users": chunk}
            )["results"])
        return results

    def close(self) -> None:
        self.client.close()


def parse_quota_entries(items: list[str]) -> list[tuple[str, int]]:
    """Parse ``USER=GB`` arguments."""
    entries = []
    for item in items:
        user, sep, gb = item.partition("=")
        if not sep or not user or not gb.isdigit():
            raise ValueError(f"Expected USER=GB, got {item!r}")
        entries.append((user, int(gb)))
    return entries


# ---------------------------------------------------------------------------
# CLI mode
# ---------------------------------------------------------------------------

def _print_quota_results(results: list[dict]) -> None:
    for r in results:
        if r[".tag"] == "success":
            quota = "team default" if r.get("quota_gb") is None else f"{r['quota_gb']} GB"
            print(f"  {r['user']:>30s}    {quota}")
        else:
            print(f"  {r['user']:>30s}    {r['.tag']}")


def run_cli(args: argparse.Namespace, client: LinkVaultClient) -> int:
    """Execute one subcommand. Returns the process exit code."""
    try:
        if args.command == "links":
            count = 0
            for link in client.iter_links(args.path, args.direct_only):
                perms = link["link_permissions"]
                print(f"{link['url']}  {link['.tag']:<6s}  {perms['resolved_visibility']:<18s}  {link['name']}")
                count += 1
            print(f"\n{count} links")
        elif args.command == "revoke":
            client.revoke(args.url)
            print(f"Revoked {args.url}")
        elif args.command == "quota":
            if args.action == "get":
                _print_quota_results(client.get_quotas(args.items))
            elif args.action == "set":
                _print_quota_results(client.set_quotas(parse_quota_entries(args.items)))
            else:
                _print_quota_results(client.remove_quotas(args.items))
    except LinkVaultError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        if args.verbose:
            print(json.dumps(e.error, indent=2), file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    return 0


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="LinkVault admin -- manage shared links and member quotas."
    )
    parser.add_argument("--server", required=True, help="LinkVault server URL.")
    parser.add_argument("--token", required=True, help="JWT for the LinkVault API.")
    parser.add_argument(
        "--verbose", action="store_true", help="Print full error bodies."
    )
    sub = parser.add_subparsers(dest="command", required=True)

    links = sub.add_parser("links", help="List your shared links.")
    links.add_argument("--path", default=None, help="Only links covering this path.")
    links.add_argument(
        "--direct-only", action="store_true", help="Skip links on ancestor folders."
    )

    revoke = sub.add_parser("revoke", help="Revoke a shared link.")
    revoke.add_argument("url")

    quota = sub.add_parser("quota", help="Team member custom quotas (admins only).")
    quota.add_argument("action", choices=["get", "set", "remove"])
    quota.add_argument("items", nargs="+", help="USER (get/remove) or USER=GB (set).")

    return parser


def main() -> None:
    args = build_parser().parse_args()
    client = LinkVaultClient(args.server, args.token)
    try:
        code = run_cli(args, client)
    finally:
        client.close()
    sys.exit(code)


if __name__ == "__main__":
    main()
