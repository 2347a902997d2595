"""
FastAPI dependencies for authentication and authorization.

The bearer token is checked once here and turned into a ``Principal`` that
handlers receive explicitly.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from ..core.security import decode_session_token
from ..database import get_db
from . import store
from .exceptions import (
    AuthenticationRequiredException,
    InvalidTokenException,
    PermissionDeniedException,
    UserNotFoundException
)
from .models import AccountStatus, UserRole

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of a request."""
    user_id: int
    email: str
    role: UserRole
    account_status: AccountStatus


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> Principal:
    """
    Resolve the session token in the Authorization header.

    Args:
        credentials: Parsed ``Authorization: Bearer <token>`` header
        db: Database session

    Returns:
        Principal: Current authenticated user

    Raises:
        AuthenticationRequiredException: If no bearer token was sent
        InvalidTokenException: If the token is invalid, expired or not a session token
        UserNotFoundException: If the token's user no longer exists (401)
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationRequiredException()

    payload = decode_session_token(credentials.credentials)
    if not payload:
        raise InvalidTokenException()

    user = store.get_user_by_id(db, payload["user_id"])
    if not user:
        raise UserNotFoundException(status_code=status.HTTP_401_UNAUTHORIZED)

    return Principal(
        user_id=user.id,
        email=user.email,
        role=user.role,
        account_status=user.account_status
    )


def require_roles(*allowed_roles: UserRole):
    """
    Dependency factory to require specific roles.

    Args:
        allowed_roles: Roles that are allowed access

    Returns:
        Function that checks if the principal has a required role
    """
    def role_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in allowed_roles:
            raise PermissionDeniedException()
        return principal
    return role_checker


# Convenience dependencies for specific roles
require_admin = require_roles(UserRole.ADMIN)
