from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from community_watch.core.logging_config import set_user_id
from community_watch.core.security import Claims, validate_token, require_role, ROLE_ADMIN, ROLE_SUPERADMIN

# auto_error=False: a missing header is reported as 401 by validate_token, not 403
security = HTTPBearer(auto_error=False)


async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Claims:
    """Claims of the bearer token. Identity comes from the token alone, no lookup."""
    claims = validate_token(credentials.credentials if credentials else None)
    set_user_id(str(claims.user_id))
    return claims


async def get_current_admin(
    claims: Claims = Depends(get_current_claims)
) -> Claims:
    """Any administrator (admin or superadmin)"""
    return require_role(claims, ROLE_ADMIN)


async def get_current_superadmin(
    claims: Claims = Depends(get_current_claims)
) -> Claims:
    """Superadmin only"""
    return require_role(claims, ROLE_SUPERADMIN)
