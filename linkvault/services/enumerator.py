"""Link enumeration: which links grant access to a path, and paging a caller's links.

Path-scoped listings walk from the target up through every ancestor
folder, so they are bounded by path depth and returned in one page
(most specific link first). Path-less listings page through the caller's
whole link set ordered by (created_at, link_id) with an opaque cursor.
"""

import logging
from dataclasses import dataclass, field

from linkvault.config import settings
from linkvault.services import directory
from linkvault.services.cursor import CursorError, ListCursor, decode_cursor, encode_cursor
from linkvault.services.errors import CursorResetError, PathLookupError
from linkvault.services.link_repository import LinkRecord, LinkRepository, repository
from linkvault.services.paths import MalformedPathError, canonical_path, lineage

logger = logging.getLogger(__name__)


@dataclass
class LinkPage:
    links: list[LinkRecord] = field(default_factory=list)
    has_more: bool = False
    cursor: str | None = None


async def resolve_existing_path(path: str, allow_root: bool = False) -> str:
    """Canonicalize a path and require it to exist in the directory.

    The root (``""``) always exists but carries no entry, so it is only
    accepted with ``allow_root``.
    """
    try:
        path_lower = canonical_path(path)
    except MalformedPathError as e:
        raise PathLookupError("malformed_path", path) from e
    if not path_lower:
        if allow_root:
            return path_lower
        raise PathLookupError("not_found", path)
    if await directory.get_entry(path_lower) is None:
        raise PathLookupError("not_found", path)
    return path_lower


def order_leaf_first(records: list[LinkRecord], paths: list[str]) -> list[LinkRecord]:
    """Order records by the position of their path in ``paths`` (leaf-first).

    Records on the same path keep their (created_at, link_id) order.
    """
    rank = {path: i for i, path in enumerate(paths)}
    return sorted(records, key=lambda r: (rank[r.owning_path], r.sort_key))


async def links_for_path(
    path_lower: str,
    owner_id: str | None = None,
    direct_only: bool = False,
    repo: LinkRepository = repository,
) -> list[LinkRecord]:
    """Links on a path and, unless ``direct_only``, on each ancestor folder."""
    paths = [path_lower] if direct_only else lineage(path_lower)
    records = await repo.list_on_paths(paths, owner_id=owner_id)
    return order_leaf_first(records, paths)


async def _load_cursor(
    token: str, owner_id: str, generation: int, repo: LinkRepository
) -> ListCursor:
    """Decode a cursor and confirm it can still be resumed."""
    try:
        cursor = decode_cursor(token)
    except CursorError as e:
        logger.warning("Rejected list cursor for %s: %s", owner_id, e.reason)
        raise CursorResetError("Cursor is invalid; start a new listing") from e

    if cursor.owner_id != owner_id:
        logger.warning("Rejected list cursor for %s: issued to another member", owner_id)
        raise CursorResetError("Cursor was issued to another member")

    if cursor.generation != generation:
        logger.warning(
            "Rejected list cursor for %s: generation %d != %d",
            owner_id, cursor.generation, generation,
        )
        raise CursorResetError("Link ordering changed; start a new listing")

    if not await repo.anchor_exists(owner_id, cursor.sort_key):
        logger.warning("Rejected list cursor for %s: anchor %s is gone", owner_id, cursor.link_id)
        raise CursorResetError("Cursor position no longer exists; start a new listing")

    return cursor


async def list_links(
    owner_id: str,
    path: str | None = None,
    cursor: str | None = None,
    direct_only: bool = False,
    limit: int | None = None,
    repo: LinkRepository = repository,
) -> LinkPage:
    """List the caller's links, either covering ``path`` or all of them.

    With a path, the result is complete in one page and carries no
    cursor. Without one, pages are ``limit`` records (default
    ``settings.list_page_size``) and ``cursor`` resumes after the last
    record returned. The root exists but never carries a link, so a
    root listing is an empty page rather than a lookup failure.
    """
    if path is not None:
        path_lower = await resolve_existing_path(path, allow_root=True)
        records = await links_for_path(path_lower, owner_id, direct_only, repo)
        return LinkPage(links=records, has_more=False, cursor=None)

    page_size = limit or settings.list_page_size
    generation = await repo.get_generation()
    after = None
    if cursor:
        after = (await _load_cursor(cursor, owner_id, generation, repo)).sort_key

    records, has_more = await repo.list_page(owner_id, after, page_size)

    next_cursor = None
    if records:
        last = records[-1]
        next_cursor = encode_cursor(ListCursor(
            owner_id=owner_id,
            generation=generation,
            created_at=last.created_at,
            link_id=last.link_id,
        ))
    elif cursor:
        next_cursor = cursor

    return LinkPage(links=records, has_more=has_more, cursor=next_cursor)
