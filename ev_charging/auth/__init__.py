"""
Authentication boundary

Bearer JWT verification and role guards. Token issuance for interactive
logins lives outside this service; ``create_access_token`` is kept for
tooling and tests.
"""

from .dependencies import get_current_user, require_roles, require_admin
from .schemas import CurrentUser, Role
from .utils import create_access_token, verify_token

__all__ = [
    "get_current_user",
    "require_roles",
    "require_admin",
    "CurrentUser",
    "Role",
    "create_access_token",
    "verify_token"
]
