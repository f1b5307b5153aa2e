"""
shared/middleware/auth.py
FastAPI dependency functions for authentication and authorization.
JWT is validated here; the caller's role comes from their Profile row.
"""

import uuid
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.models.models import Profile, User, UserRole
from shared.utils.errors import Forbidden, Unauthorized
from shared.utils.security import verify_access_token

security = HTTPBearer(auto_error=False)


class TokenData:
    def __init__(self, payload: dict):
        self.user_id: uuid.UUID = uuid.UUID(payload["sub"])
        self.email: Optional[str] = payload.get("email")
        self.jti: Optional[str] = payload.get("jti")


def _decode(credentials: Optional[HTTPAuthorizationCredentials]) -> Optional[TokenData]:
    if not credentials:
        return None
    try:
        return TokenData(verify_access_token(credentials.credentials))
    except (JWTError, ValueError):
        return None


async def get_token_data(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenData:
    """Extract and validate JWT from Authorization header."""
    token_data = _decode(credentials)
    if token_data is None:
        raise Unauthorized()
    return token_data


async def get_current_user(
    token_data: TokenData = Depends(get_token_data),
    db: AsyncSession = Depends(get_db),
) -> Profile:
    """Load the caller's Profile using the JWT sub claim."""
    profile = await db.get(Profile, token_data.user_id)

    if not profile or not profile.user:
        raise Unauthorized()
    if not profile.user.is_active or profile.is_suspended:
        raise Forbidden("Account suspended")
    return profile


class RoleRequired:
    """Dependency factory for role-based access control."""

    def __init__(self, *roles: UserRole):
        self.roles = roles

    async def __call__(
        self,
        current_user: Profile = Depends(get_current_user),
    ) -> Profile:
        if current_user.role not in self.roles:
            raise Forbidden()
        return current_user


# Convenience role dependencies
require_client = RoleRequired(UserRole.CLIENT, UserRole.ADMIN)
require_admin = RoleRequired(UserRole.ADMIN)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[Profile]:
    """Returns current profile if authenticated, None otherwise. For public endpoints."""
    token_data = _decode(credentials)
    if token_data is None:
        return None
    profile = await db.get(Profile, token_data.user_id)
    if not profile or profile.is_suspended:
        return None
    return profile


async def get_user_by_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    """Privileged identity lookup, used to resolve notification addresses."""
    return await db.get(User, user_id)
