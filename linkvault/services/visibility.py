"""Visibility resolution: reconcile a link's requested visibility with policy.

Resolution works on an orthogonal flag set (team-restricted,
password-required, shared-folder-restricted) and only projects to the
closed five-value ``ResolvedVisibility`` at the end:

    folder flag set           -> shared_folder_only (other flags still apply)
    team + password           -> team_and_password
    team                      -> team_only
    password                  -> password
    none                      -> public

Everything here is pure; callers load policies and members beforehand.
"""

from dataclasses import dataclass, field
from enum import Enum

from linkvault.models.member import Member
from linkvault.services.errors import LinkAccessFailureReason


class Visibility(str, Enum):
    """Visibility an owner can request for a link."""

    PUBLIC = "public"
    TEAM_ONLY = "team_only"
    PASSWORD = "password"


class ResolvedVisibility(str, Enum):
    """Visibility actually enforced after policies are applied."""

    PUBLIC = "public"
    TEAM_ONLY = "team_only"
    PASSWORD = "password"
    TEAM_AND_PASSWORD = "team_and_password"
    SHARED_FOLDER_ONLY = "shared_folder_only"


# Least to most restrictive
RESTRICTIVENESS: dict[ResolvedVisibility, int] = {
    ResolvedVisibility.PUBLIC: 0,
    ResolvedVisibility.TEAM_ONLY: 1,
    ResolvedVisibility.PASSWORD: 2,
    ResolvedVisibility.TEAM_AND_PASSWORD: 3,
    ResolvedVisibility.SHARED_FOLDER_ONLY: 4,
}

_REQUESTED_ORDER = [Visibility.PUBLIC, Visibility.TEAM_ONLY, Visibility.PASSWORD]


def parse_visibilities(raw: str | None) -> frozenset[Visibility]:
    """Parse a comma-separated list of visibility values."""
    if not raw:
        return frozenset()
    return frozenset(Visibility(part.strip()) for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Policy:
    """A team-level or shared-folder-level link policy snapshot.

    An empty ``allowed_visibilities`` places no constraint on the requested
    value.
    """

    allowed_visibilities: frozenset[Visibility] = field(default_factory=lambda: frozenset(Visibility))
    forces_password: bool = False
    members_only: bool = False

    @classmethod
    def from_row(cls, allowed: str | None, forces_password, members_only) -> "Policy":
        return cls(
            allowed_visibilities=parse_visibilities(allowed),
            forces_password=bool(forces_password),
            members_only=bool(members_only),
        )

    def allows(self, requested: Visibility) -> bool:
        return not self.allowed_visibilities or requested in self.allowed_visibilities

    def floor(self) -> Visibility:
        """Least restrictive value this policy allows."""
        return min(self.allowed_visibilities, key=_REQUESTED_ORDER.index)


@dataclass(frozen=True)
class AccessFlags:
    team: bool = False
    password: bool = False
    folder: bool = False

    def __or__(self, other: "AccessFlags") -> "AccessFlags":
        return AccessFlags(
            team=self.team or other.team,
            password=self.password or other.password,
            folder=self.folder or other.folder,
        )

    @classmethod
    def for_visibility(cls, visibility: Visibility) -> "AccessFlags":
        return cls(
            team=visibility == Visibility.TEAM_ONLY,
            password=visibility == Visibility.PASSWORD,
        )

    def project(self) -> ResolvedVisibility:
        """Collapse the flag set onto the closed resolved-visibility union."""
        if self.folder:
            return ResolvedVisibility.SHARED_FOLDER_ONLY
        if self.team and self.password:
            return ResolvedVisibility.TEAM_AND_PASSWORD
        if self.team:
            return ResolvedVisibility.TEAM_ONLY
        if self.password:
            return ResolvedVisibility.PASSWORD
        return ResolvedVisibility.PUBLIC


@dataclass(frozen=True)
class ResolvedAccess:
    resolved_visibility: ResolvedVisibility
    flags: AccessFlags
    can_revoke: bool
    revoke_denial_reason: LinkAccessFailureReason | None = None
    # Password flag is set but the link has no password to check against
    password_pending: bool = False


def policy_flags(requested: Visibility, policy: Policy) -> AccessFlags:
    """Flags a single policy adds on top of the requested visibility."""
    flags = AccessFlags()
    if not policy.allows(requested):
        flags |= AccessFlags.for_visibility(policy.floor())
    if policy.forces_password:
        flags |= AccessFlags(password=True)
    if policy.members_only:
        flags |= AccessFlags(folder=True)
    return flags


def revoke_eligibility(
    caller: Member | None, owner: Member | None, owner_id: str | None = None
) -> tuple[bool, LinkAccessFailureReason | None]:
    """Decide whether ``caller`` may revoke a link owned by ``owner``."""
    if caller is None:
        return False, LinkAccessFailureReason.LOGIN_REQUIRED

    owner_id = owner.member_id if owner is not None else owner_id
    if caller.member_id == owner_id:
        return True, None

    owner_team = owner.team_id if owner is not None else None
    if caller.is_admin_of(owner_team):
        return True, None
    if owner_team is None or caller.team_id != owner_team:
        return False, LinkAccessFailureReason.TEAM_ONLY
    return False, LinkAccessFailureReason.OWNER_ONLY


def resolve(
    requested: Visibility,
    team_policy: Policy | None = None,
    folder_policy: Policy | None = None,
    has_password: bool = False,
    *,
    caller: Member | None = None,
    owner: Member | None = None,
    owner_id: str | None = None,
) -> ResolvedAccess:
    """Compute the enforced visibility and revoke eligibility of a link.

    A requested value a policy does not allow is raised to that policy's
    least restrictive allowed value, never rejected; flags from every
    active policy are combined so the result is the most restrictive value
    compatible with all of them.
    """
    requested = Visibility(requested)
    flags = AccessFlags.for_visibility(requested)
    for policy in (team_policy, folder_policy):
        if policy is not None:
            flags |= policy_flags(requested, policy)

    can_revoke, reason = revoke_eligibility(caller, owner, owner_id)
    return ResolvedAccess(
        resolved_visibility=flags.project(),
        flags=flags,
        can_revoke=can_revoke,
        revoke_denial_reason=reason,
        password_pending=flags.password and not has_password,
    )


def access_failure(
    access: ResolvedAccess,
    viewer: Member | None,
    owner: Member | None,
    *,
    is_folder_member: bool = False,
    password_ok: bool = False,
) -> LinkAccessFailureReason | None:
    """Return why ``viewer`` cannot open the link, or None if they can."""
    if viewer is not None and owner is not None:
        if viewer.member_id == owner.member_id or viewer.is_admin_of(owner.team_id):
            return None

    flags = access.flags
    if (flags.folder or flags.team) and viewer is None:
        return LinkAccessFailureReason.LOGIN_REQUIRED
    if flags.folder and not is_folder_member:
        return LinkAccessFailureReason.SHARED_FOLDER_ONLY
    if flags.team:
        owner_team = owner.team_id if owner is not None else None
        if owner_team is None or viewer.team_id != owner_team:
            return LinkAccessFailureReason.TEAM_ONLY
    if flags.password and (access.password_pending or not password_ok):
        return LinkAccessFailureReason.PASSWORD_REQUIRED
    return None
