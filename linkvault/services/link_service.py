"""Shared link service: create, look up, modify and revoke links.

Two link families coexist. Legacy links are identified by path (one per
path, creating again returns the same link). Settings links are
identified by URL and carry visibility/password/expiry settings; each
member may hold one per path, so several can exist for the same path.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime

from linkvault.auth import hash_password, verify_password
from linkvault.config import settings
from linkvault.models.link import LinkSettings
from linkvault.models.member import Member
from linkvault.services import directory, policy_store
from linkvault.services.enumerator import resolve_existing_path
from linkvault.services.errors import (
    AccessDeniedError,
    EmailNotVerifiedError,
    LinkAlreadyExistsError,
    LinkNotFoundError,
    MalformedLinkError,
    SettingsError,
    UnsupportedLinkTypeError,
)
from linkvault.services.link_repository import (
    LEGACY,
    SETTINGS,
    LinkRecord,
    repository,
    to_utc_iso,
    utcnow_iso,
)
from linkvault.services.paths import MalformedPathError, basename, canonical_path, join_path
from linkvault.services.visibility import (
    Policy,
    ResolvedAccess,
    Visibility,
    access_failure,
    resolve,
)

logger = logging.getLogger(__name__)


@dataclass
class LinkContext:
    """Everything resolution needs about a link beyond the record itself."""

    owner: Member | None
    team_policy: Policy | None
    shared_folder: dict | None

    @property
    def folder_policy(self) -> Policy | None:
        return policy_store.folder_policy_of(self.shared_folder)


async def load_context(record: LinkRecord) -> LinkContext:
    owner = await directory.get_member(record.owner_id)
    return LinkContext(
        owner=owner,
        team_policy=await policy_store.get_team_policy(owner.team_id if owner else None),
        shared_folder=await policy_store.get_containing_shared_folder(record.owning_path),
    )


def resolve_link(record: LinkRecord, context: LinkContext, caller: Member | None) -> ResolvedAccess:
    return resolve(
        record.requested_visibility,
        context.team_policy,
        context.folder_policy,
        record.has_password,
        caller=caller,
        owner=context.owner,
        owner_id=record.owner_id,
    )


def build_metadata(
    record: LinkRecord,
    access: ResolvedAccess,
    viewer: Member | None,
    entry: dict | None = None,
) -> dict:
    """Render link metadata; ``entry`` overrides the target for sub-path lookups."""
    is_owner = viewer is not None and viewer.member_id == record.owner_id
    display_path = entry["path_display"] if entry else record.display_path
    return {
        ".tag": entry["kind"] if entry else record.kind,
        "url": record.url,
        "id": record.link_id,
        "name": basename(display_path),
        "path_lower": display_path.lower() if is_owner else None,
        "expires": record.expires_at,
        "link_permissions": {
            "resolved_visibility": access.resolved_visibility.value,
            "requested_visibility": record.requested_visibility.value,
            "can_revoke": access.can_revoke,
            "revoke_failure_reason": (
                access.revoke_denial_reason.value if access.revoke_denial_reason else None
            ),
        },
    }


async def link_metadata(record: LinkRecord, viewer: Member | None) -> dict:
    context = await load_context(record)
    return build_metadata(record, resolve_link(record, context, viewer), viewer)


# ── Write-time validation ────────────────────────────────────────────────────

def _require_verified(caller: Member) -> None:
    if not caller.email_verified:
        raise EmailNotVerifiedError("Verify your email address before sharing links")


async def _require_path_access(caller: Member, path: str) -> dict:
    """Resolve ``path`` and check the caller may share it; returns the entry."""
    path_lower = await resolve_existing_path(path)
    entry = await directory.get_entry(path_lower)

    if entry["owner_id"] == caller.member_id:
        return entry
    shared_folder = await policy_store.get_containing_shared_folder(path_lower)
    if shared_folder and await directory.is_shared_folder_member(
        shared_folder["shared_folder_id"], caller.member_id
    ):
        return entry
    raise AccessDeniedError(message=f"No access to {path}")


def _default_visibility(team_policy: Policy | None) -> Visibility:
    if team_policy is None or team_policy.allows(Visibility.PUBLIC):
        return Visibility.PUBLIC
    return team_policy.floor()


def _validate_expiry(expires: datetime) -> str:
    expires_at = to_utc_iso(expires)
    if expires_at <= utcnow_iso():
        raise SettingsError("invalid_settings", "Expiration must be in the future")
    return expires_at


def _validate_settings(
    link_settings: LinkSettings,
    team_policy: Policy | None,
    current: LinkRecord | None = None,
    remove_expiration: bool = False,
) -> tuple[Visibility, str | None, str | None]:
    """Validate settings against team policy; returns (visibility, password_hash, expires_at).

    Requested values the team does not allow are rejected here rather than
    downgraded. ``current`` supplies values for settings left unset.
    """
    requested = link_settings.requested_visibility
    if requested is not None and team_policy is not None and not team_policy.allows(requested):
        raise SettingsError(
            "not_authorized",
            f"Team policy does not allow {requested.value} links",
        )
    if requested is None:
        requested = current.requested_visibility if current else _default_visibility(team_policy)

    password_hash = None
    if requested == Visibility.PASSWORD:
        if link_settings.link_password:
            password_hash = hash_password(link_settings.link_password)
        elif current is not None:
            password_hash = current.password_hash
        if password_hash is None:
            raise SettingsError("invalid_settings", "Password links need a link_password")
    elif link_settings.link_password:
        raise SettingsError(
            "invalid_settings", "link_password requires requested_visibility=password"
        )

    if remove_expiration:
        if link_settings.expires is not None:
            raise SettingsError(
                "invalid_settings", "Cannot set and remove the expiration at once"
            )
        expires_at = None
    elif link_settings.expires is not None:
        expires_at = _validate_expiry(link_settings.expires)
    else:
        expires_at = current.expires_at if current else None

    return requested, password_hash, expires_at


def _new_record(family: str, caller: Member, entry: dict, visibility: Visibility,
                password_hash: str | None = None, expires_at: str | None = None) -> LinkRecord:
    return LinkRecord(
        link_id=f"id:{secrets.token_urlsafe(16)}",
        url=f"{settings.link_url_prefix}{secrets.token_urlsafe(16)}",
        family=family,
        kind=entry["kind"],
        owning_path=entry["path_lower"],
        display_path=entry["path_display"],
        owner_id=caller.member_id,
        requested_visibility=visibility,
        password_hash=password_hash,
        expires_at=expires_at,
    )


# ── Operations ───────────────────────────────────────────────────────────────

async def create_legacy_link(caller: Member, path: str) -> dict:
    """Create the path's legacy link, or return the existing one."""
    _require_verified(caller)
    entry = await _require_path_access(caller, path)

    existing = await repository.get_family_link(LEGACY, entry["path_lower"], caller.member_id)
    if existing is not None:
        return await link_metadata(existing, caller)

    team_policy = await policy_store.get_team_policy(caller.team_id)
    record, created = await repository.insert_if_absent(
        _new_record(LEGACY, caller, entry, _default_visibility(team_policy))
    )
    if created:
        logger.info("Created legacy link %s on %s", record.link_id, record.owning_path)
    return await link_metadata(record, caller)


async def create_link(caller: Member, path: str, link_settings: LinkSettings | None = None) -> dict:
    """Create a settings-family link for ``path``.

    Raises LinkAlreadyExistsError (with the existing metadata) if the
    caller already holds a settings link on the path.
    """
    _require_verified(caller)
    entry = await _require_path_access(caller, path)

    team_policy = await policy_store.get_team_policy(caller.team_id)
    visibility, password_hash, expires_at = _validate_settings(
        link_settings or LinkSettings(), team_policy
    )

    record, created = await repository.insert_if_absent(
        _new_record(SETTINGS, caller, entry, visibility, password_hash, expires_at)
    )
    metadata = await link_metadata(record, caller)
    if not created:
        raise LinkAlreadyExistsError(metadata)

    logger.info(
        "Created %s link %s on %s", visibility.value, record.link_id, record.owning_path
    )
    return metadata


async def get_link_metadata(
    url: str,
    path: str | None = None,
    link_password: str | None = None,
    viewer: Member | None = None,
) -> dict:
    """Look up a link by URL on behalf of ``viewer`` (None for anonymous)."""
    record = await repository.get_by_url(url)
    if record is None or record.is_expired():
        raise LinkNotFoundError(f"No shared link at {url}")

    context = await load_context(record)
    access = resolve_link(record, context, viewer)

    is_folder_member = False
    if access.flags.folder and viewer is not None and context.shared_folder is not None:
        is_folder_member = await directory.is_shared_folder_member(
            context.shared_folder["shared_folder_id"], viewer.member_id
        )
    password_ok = bool(
        link_password
        and record.password_hash
        and verify_password(link_password, record.password_hash)
    )
    reason = access_failure(
        access,
        viewer,
        context.owner,
        is_folder_member=is_folder_member,
        password_ok=password_ok,
    )
    if reason is not None:
        raise AccessDeniedError(reason)

    entry = None
    if path:
        if record.kind != "folder":
            raise UnsupportedLinkTypeError("Sub-paths are only valid for folder links")
        try:
            target = canonical_path(join_path(record.display_path, path))
        except MalformedPathError as e:
            raise LinkNotFoundError(f"No entry {path!r} under this link") from e
        entry = await directory.get_entry(target)
        if entry is None or not target.startswith(record.owning_path + "/"):
            raise LinkNotFoundError(f"No entry {path!r} under this link")

    return build_metadata(record, access, viewer, entry)


async def modify_link_settings(
    caller: Member,
    url: str,
    link_settings: LinkSettings,
    remove_expiration: bool = False,
) -> dict:
    """Change the settings of a settings-family link."""
    record = await repository.get_by_url(url)
    if record is None:
        raise LinkNotFoundError(f"No shared link at {url}")
    if record.family == LEGACY:
        raise UnsupportedLinkTypeError("Legacy links have no settings to modify")

    context = await load_context(record)
    access = resolve_link(record, context, caller)
    if not access.can_revoke:
        raise AccessDeniedError(access.revoke_denial_reason)
    _require_verified(caller)

    visibility, password_hash, expires_at = _validate_settings(
        link_settings, context.team_policy, current=record, remove_expiration=remove_expiration
    )
    updated = await repository.update_settings(
        record.link_id, visibility, password_hash, expires_at
    )
    if updated is None:
        # Revoked concurrently
        raise LinkNotFoundError(f"No shared link at {url}")

    logger.info("Modified settings of link %s", record.link_id)
    return await link_metadata(updated, caller)


def _is_well_formed_url(url: str) -> bool:
    prefix = settings.link_url_prefix
    if not url.startswith(prefix):
        return False
    token = url[len(prefix):]
    return bool(token) and "/" not in token and "?" not in token


async def revoke_link(caller: Member, url: str) -> None:
    """Delete a link. Only its owner or an admin of the owner's team may."""
    if not _is_well_formed_url(url):
        raise MalformedLinkError(f"Not a shared link URL: {url}")

    record = await repository.get_by_url(url)
    if record is None:
        raise LinkNotFoundError(f"No shared link at {url}")

    context = await load_context(record)
    access = resolve_link(record, context, caller)
    if not access.can_revoke:
        logger.warning(
            "Member %s denied revoking link %s (%s)",
            caller.member_id, record.link_id, access.revoke_denial_reason.value,
        )
        raise AccessDeniedError(access.revoke_denial_reason)

    if not await repository.delete(record.link_id):
        raise LinkNotFoundError(f"No shared link at {url}")
    logger.info("Revoked link %s on %s", record.link_id, record.owning_path)


async def purge_expired_links() -> int:
    """Compact expired links out of the repository."""
    return await repository.purge_expired()
