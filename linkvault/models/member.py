"""Pydantic models for team members."""

from pydantic import BaseModel, ConfigDict


class Member(BaseModel):
    model_config = ConfigDict(frozen=True)

    member_id: str
    team_id: str | None = None
    email: str = ""
    email_verified: bool = True
    is_admin: bool = False

    def is_admin_of(self, team_id: str | None) -> bool:
        return self.is_admin and team_id is not None and self.team_id == team_id
