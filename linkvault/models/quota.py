"""Pydantic models for team member custom quotas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class UserCustomQuota(BaseModel):
    user: str
    quota_gb: int  # floor is enforced by the service, not here


class SetCustomQuotaRequest(BaseModel):
    users_and_quotas: list[UserCustomQuota]


class UsersRequest(BaseModel):
    users: list[str]


class CustomQuotaResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tag: Literal["success", "invalid_user"] = Field(alias=".tag")
    user: str
    quota_gb: int | None = None


class CustomQuotaResultList(BaseModel):
    results: list[CustomQuotaResult]
