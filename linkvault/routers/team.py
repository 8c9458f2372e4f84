"""Team admin routes: member space limits (custom quotas)."""

from fastapi import APIRouter, Depends

from linkvault.auth import require_admin
from linkvault.models.member import Member
from linkvault.models.quota import CustomQuotaResultList, SetCustomQuotaRequest, UsersRequest
from linkvault.routers.errors import tagged_error
from linkvault.services import quota_service
from linkvault.services.errors import SharingError

router = APIRouter(prefix="/api/team/member_space_limits", tags=["team"])


@router.post("/set_custom_quota", response_model=CustomQuotaResultList)
async def set_custom_quota(
    body: SetCustomQuotaRequest,
    admin: Member = Depends(require_admin),
):
    """Set custom quotas for up to 1000 members."""
    entries = [(item.user, item.quota_gb) for item in body.users_and_quotas]
    try:
        results = await quota_service.set_custom_quota(admin.team_id, entries)
    except SharingError as e:
        raise tagged_error(e)
    return {"results": results}


@router.post("/remove_custom_quota", response_model=CustomQuotaResultList)
async def remove_custom_quota(
    body: UsersRequest,
    admin: Member = Depends(require_admin),
):
    """Remove custom quotas for up to 1000 members."""
    try:
        results = await quota_service.remove_custom_quota(admin.team_id, body.users)
    except SharingError as e:
        raise tagged_error(e)
    return {"results": results}


@router.post("/get_custom_quota", response_model=CustomQuotaResultList)
async def get_custom_quota(
    body: UsersRequest,
    admin: Member = Depends(require_admin),
):
    """Get custom quotas for up to 1000 members."""
    try:
        results = await quota_service.get_custom_quota(admin.team_id, body.users)
    except SharingError as e:
        raise tagged_error(e)
    return {"results": results}
