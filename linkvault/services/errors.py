"""Typed failures for sharing and team operations.

Services raise these; routers turn them into tagged error bodies so no
exception crosses the HTTP boundary. Per-item quota failures are never
raised, they are entries in the batch result list.
"""

from enum import Enum


class LinkAccessFailureReason(str, Enum):
    """Why a caller cannot open or cannot revoke a link.

    One enumeration serves both questions.
    """

    LOGIN_REQUIRED = "login_required"
    EMAIL_VERIFY_REQUIRED = "email_verify_required"
    PASSWORD_REQUIRED = "password_required"
    TEAM_ONLY = "team_only"
    SHARED_FOLDER_ONLY = "shared_folder_only"
    OWNER_ONLY = "owner_only"


class SharingError(Exception):
    """Base class for all tagged sharing failures."""

    tag: str = "other"

    def __init__(self, message: str | None = None, **payload):
        self.payload = payload
        super().__init__(message or self.tag)

    def to_dict(self) -> dict:
        """Render the error as a tagged union body."""
        error = {".tag": self.tag}
        for key, value in self.payload.items():
            if isinstance(value, Enum):
                value = value.value
            error[key] = value
        summary = self.tag
        sub = self.payload.get("reason")
        if sub is not None:
            summary = f"{self.tag}/{sub.value if isinstance(sub, Enum) else sub}"
        return {"error_summary": summary, "error": error}


# ── Caller-input errors ──────────────────────────────────────────────────────

class PathLookupError(SharingError):
    """The requested path is malformed or does not exist."""

    tag = "path"

    def __init__(self, reason: str, path: str):
        super().__init__(f"Path lookup failed ({reason}): {path}", reason=reason)


class MalformedLinkError(SharingError):
    tag = "malformed"


class SettingsError(SharingError):
    """Requested link settings are invalid or not allowed by team policy."""

    tag = "settings_error"

    def __init__(self, reason: str, message: str | None = None):
        super().__init__(message or f"Invalid link settings: {reason}", reason=reason)


class TooManyUsersError(SharingError):
    tag = "too_many_users"


class InvalidQuotaError(SharingError):
    tag = "invalid_quota"


# ── State-conflict errors ────────────────────────────────────────────────────

class LinkAlreadyExistsError(SharingError):
    """A settings-family link by this owner already exists on the path."""

    tag = "already_exists"

    def __init__(self, metadata: dict):
        super().__init__("Shared link already exists", metadata=metadata)


class CursorResetError(SharingError):
    """The list cursor can no longer be resumed; request a fresh listing."""

    tag = "reset"


# ── Lookup / authorization errors ────────────────────────────────────────────

class LinkNotFoundError(SharingError):
    tag = "not_found"


class UnsupportedLinkTypeError(SharingError):
    tag = "unsupported_type"


class AccessDeniedError(SharingError):
    tag = "access_denied"

    def __init__(self, reason: LinkAccessFailureReason | None = None, message: str | None = None):
        payload = {"reason": reason} if reason is not None else {}
        super().__init__(message or "Access denied", **payload)


class EmailNotVerifiedError(SharingError):
    tag = "email_not_verified"
