"""Authentication routes.

Tokens are issued by the external auth service. This module only verifies
them and resolves the acting user; every other router depends on
``get_current_user``.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import pytz
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from config import ACCESS_TOKEN_EXPIRE_MINUTES, JWT_ALGORITHM, JWT_SECRET_KEY
from core.dependencies import UserManagerDep
from schemas.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

# Missing credentials are reported as 401 below rather than HTTPBearer's default
security = HTTPBearer(auto_error=False)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token.

    Args:
        data: Data to encode in the token. ``sub`` must hold the user ID.
        expires_delta: Optional expiration time delta.

    Returns:
        Encoded JWT token string.
    """
    to_encode = data.copy()
    if expires_delta:
        expire = datetime.now(pytz.utc) + expires_delta
    else:
        expire = datetime.now(pytz.utc) + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def verify_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Verify JWT token from Authorization header.

    Args:
        credentials: HTTP Bearer token credentials, if any were sent.

    Returns:
        Decoded token payload.

    Raises:
        HTTPException: If the token is missing, invalid or expired.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        payload = jwt.decode(
            credentials.credentials, JWT_SECRET_KEY, algorithms=[JWT_ALGORITHM]
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if payload.get("sub") is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return payload


def get_current_user(
    user_manager: UserManagerDep,
    token_payload: dict = Depends(verify_token),
) -> User:
    """Get current authenticated user.

    Args:
        user_manager: Injected UserManager instance.
        token_payload: Decoded JWT token payload.

    Returns:
        Current User object.

    Raises:
        HTTPException: If the user no longer exists.
    """
    user = user_manager.get_user_by_id(token_payload["sub"])
    if user is None:
        logger.debug("Token subject %s has no user record", token_payload["sub"])
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def get_current_teacher(current_user: User = Depends(get_current_user)) -> User:
    """Get the current user, who must hold the teacher role.

    Raises:
        HTTPException: 403 for any other role.
    """
    if current_user.role != "teacher":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only teachers can do this",
        )
    return current_user


@router.get("/me", response_model=User, summary="Current user")
def get_current_user_info(
    current_user: User = Depends(get_current_user),
) -> User:
    """Return the user the bearer token belongs to."""
    return current_user
