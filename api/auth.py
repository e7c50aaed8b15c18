"""
JWT authentication for the FastAPI API server.

Stateless bearer tokens only. Issuing tokens (login, signup, invites) is
handled outside this service; routes here only verify them.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from api import config


# --- JWT TOKEN MANAGEMENT ---

_bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=config.JWT_EXPIRY_HOURS))
    to_encode['exp'] = expire
    to_encode['iat'] = datetime.now(timezone.utc)
    return jwt.encode(to_encode, config.JWT_SECRET, algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    """Decode a JWT access token. Returns None if invalid."""
    try:
        return jwt.decode(token, config.JWT_SECRET, algorithms=[config.JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


# --- USER INFO FROM TOKEN ---

class CurrentUser:
    """Represents the current authenticated user."""
    __slots__ = ('user_id', 'username', 'is_admin')

    def __init__(self, user_id, username='', is_admin=False):
        self.user_id = user_id
        self.username = username
        self.is_admin = is_admin

    def can_modify(self, owner_id):
        """Owners and admins may edit or delete a photo."""
        return self.is_admin or (owner_id is not None and owner_id == self.user_id)


# --- DEPENDENCY INJECTION ---

async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> Optional[CurrentUser]:
    """Extract user from JWT token if present, without requiring auth."""
    if credentials is None:
        return None

    payload = decode_access_token(credentials.credentials)
    if payload is None:
        return None

    try:
        user_id = int(payload.get('sub'))
    except (TypeError, ValueError):
        return None

    return CurrentUser(
        user_id=user_id,
        username=payload.get('username', ''),
        is_admin=bool(payload.get('admin', False)),
    )


async def require_authenticated(
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> CurrentUser:
    """Require an authenticated user. Raises 401 if not authenticated."""
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def ensure_owner_or_admin(user: CurrentUser, owner_id):
    """Raise 403 unless the user uploaded the photo or is an admin."""
    if not user.can_modify(owner_id):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only the uploader or an admin can change this photo",
        )
