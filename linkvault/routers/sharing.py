"""Sharing routes: shared link metadata, listing, creation, settings and revocation."""

from fastapi import APIRouter, Depends

from linkvault.auth import optional_auth, require_auth
from linkvault.models.link import (
    CreateSharedLinkRequest,
    CreateSharedLinkWithSettingsRequest,
    GetSharedLinkMetadataRequest,
    ListSharedLinksRequest,
    ListSharedLinksResponse,
    ModifySharedLinkSettingsRequest,
    RevokeSharedLinkRequest,
    SharedLinkMetadata,
)
from linkvault.models.member import Member
from linkvault.routers.errors import tagged_error
from linkvault.services import enumerator, link_service
from linkvault.services.errors import SharingError

router = APIRouter(prefix="/api/sharing", tags=["sharing"])


@router.post("/get_shared_link_metadata", response_model=SharedLinkMetadata)
async def get_shared_link_metadata(
    body: GetSharedLinkMetadataRequest,
    viewer: Member | None = Depends(optional_auth),
):
    """Get metadata for a link; anonymous viewers are allowed."""
    try:
        return await link_service.get_link_metadata(
            body.url, path=body.path, link_password=body.link_password, viewer=viewer
        )
    except SharingError as e:
        raise tagged_error(e)


@router.post(
    "/list_shared_links",
    response_model=ListSharedLinksResponse,
    response_model_exclude_unset=True,
)
async def list_shared_links(
    body: ListSharedLinksRequest,
    member: Member = Depends(require_auth),
):
    """List the caller's links, optionally only those covering a path."""
    try:
        page = await enumerator.list_links(
            member.member_id,
            path=body.path,
            cursor=body.cursor,
            direct_only=body.direct_only,
        )
        links = []
        for record in page.links:
            links.append(await link_service.link_metadata(record, member))
    except SharingError as e:
        raise tagged_error(e)

    result = {"links": links, "has_more": page.has_more}
    if page.cursor is not None:
        result["cursor"] = page.cursor
    return result


@router.post("/create_shared_link", response_model=SharedLinkMetadata)
async def create_shared_link(
    body: CreateSharedLinkRequest,
    member: Member = Depends(require_auth),
):
    """Create (or return the existing) legacy link for a path."""
    try:
        return await link_service.create_legacy_link(member, body.path)
    except SharingError as e:
        raise tagged_error(e)


@router.post("/create_shared_link_with_settings", response_model=SharedLinkMetadata)
async def create_shared_link_with_settings(
    body: CreateSharedLinkWithSettingsRequest,
    member: Member = Depends(require_auth),
):
    """Create a settings link for a path."""
    try:
        return await link_service.create_link(member, body.path, body.settings)
    except SharingError as e:
        raise tagged_error(e)


@router.post("/modify_shared_link_settings", response_model=SharedLinkMetadata)
async def modify_shared_link_settings(
    body: ModifySharedLinkSettingsRequest,
    member: Member = Depends(require_auth),
):
    """Change visibility, password or expiry of a settings link."""
    try:
        return await link_service.modify_link_settings(
            member, body.url, body.settings, remove_expiration=body.remove_expiration
        )
    except SharingError as e:
        raise tagged_error(e)


@router.post("/revoke_shared_link")
async def revoke_shared_link(
    body: RevokeSharedLinkRequest,
    member: Member = Depends(require_auth),
):
    """Revoke a link."""
    try:
        await link_service.revoke_link(member, body.url)
    except SharingError as e:
        raise tagged_error(e)
    return None
