from pydantic import BaseModel
from typing import Optional
from enum import Enum

class Role(str, Enum):
    """Account roles carried in the token"""
    ADMIN = "Admin"
    BACKOFFICE = "Backoffice"
    STATION_OPERATOR = "StationOperator"
    EV_OWNER = "EVOwner"

ADMIN_ROLES = (Role.ADMIN, Role.BACKOFFICE)

class CurrentUser(BaseModel):
    """Caller identity resolved from the bearer token"""
    user_id: str
    role: Role
    nic: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
