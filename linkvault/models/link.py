"""Pydantic models for shared links."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from linkvault.services.errors import LinkAccessFailureReason
from linkvault.services.visibility import ResolvedVisibility, Visibility


class LinkSettings(BaseModel):
    requested_visibility: Visibility | None = None
    link_password: str | None = Field(default=None, min_length=1)
    expires: datetime | None = None


class LinkPermissions(BaseModel):
    resolved_visibility: ResolvedVisibility
    requested_visibility: Visibility
    can_revoke: bool
    revoke_failure_reason: LinkAccessFailureReason | None = None


class SharedLinkMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tag: Literal["file", "folder"] = Field(alias=".tag")
    url: str
    id: str
    name: str
    path_lower: str | None = None  # only revealed to the link owner
    expires: str | None = None
    link_permissions: LinkPermissions


# ── Requests ─────────────────────────────────────────────────────────────────

class GetSharedLinkMetadataRequest(BaseModel):
    url: str
    path: str | None = None  # sub-path inside a folder link
    link_password: str | None = None


class ListSharedLinksRequest(BaseModel):
    path: str | None = None
    cursor: str | None = None
    direct_only: bool = False


class CreateSharedLinkRequest(BaseModel):
    path: str = Field(..., min_length=1)


class CreateSharedLinkWithSettingsRequest(BaseModel):
    path: str = Field(..., min_length=1)
    settings: LinkSettings | None = None


class ModifySharedLinkSettingsRequest(BaseModel):
    url: str
    settings: LinkSettings = Field(default_factory=LinkSettings)
    remove_expiration: bool = False


class RevokeSharedLinkRequest(BaseModel):
    url: str


# ── Responses ────────────────────────────────────────────────────────────────

class ListSharedLinksResponse(BaseModel):
    links: list[SharedLinkMetadata]
    has_more: bool
    cursor: str | None = None
