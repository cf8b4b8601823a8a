from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError

from ev_charging.config import settings
from ev_charging.auth.utils import verify_token
from ev_charging.auth.schemas import CurrentUser, Role

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")

def get_current_user(token: str = Depends(oauth2_scheme)) -> CurrentUser:
    """Get current authenticated caller from the token claims"""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = verify_token(token, credentials_exception)

    try:
        return CurrentUser(user_id=payload["sub"], role=payload["role"], nic=payload.get("nic"))
    except ValidationError:
        raise credentials_exception

def require_roles(*roles: Role):
    """Build a dependency that only admits the given roles"""
    allowed = set(roles)

    def checker(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if current_user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions"
            )
        return current_user

    return checker

require_admin = require_roles(Role.ADMIN, Role.BACKOFFICE)
