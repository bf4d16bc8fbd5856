from typing import Optional
from pydantic import BaseModel

from studio.access.service import AccessContext, Audience


class AccessResponse(BaseModel):
    can_read: bool
    can_write: bool
    can_approve: bool
    is_client_user: bool
    project_member_role: Optional[str] = None
    team_role: Optional[str] = None
    audience: Audience

    @classmethod
    def from_context(cls, access: Optional[AccessContext]) -> Optional["AccessResponse"]:
        if access is None:
            return None
        return cls(
            can_read=access.can_read,
            can_write=access.can_write,
            can_approve=access.can_approve,
            is_client_user=access.is_client_user,
            project_member_role=access.project_member_role.value if access.project_member_role else None,
            team_role=access.team_role.value if access.team_role else None,
            audience=access.audience,
        )
