"""
Core security utilities for password hashing and signed tokens.

Two token variants share one signing secret:
- session tokens carry ``user_id`` and ``email`` and live for days;
- reset tokens carry ``user_id``, ``purpose="password-reset"`` and a ``pwd``
  fingerprint of the password hash they may replace, and live for minutes.
  Once the password changes the fingerprint no longer matches, so each
  token authorizes at most one reset.
"""
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from ..config import settings

RESET_TOKEN_PURPOSE = "password-reset"

# Password hashing context
pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.bcrypt_rounds
)

def hash_password(password: str) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password

    Returns:
        str: Hashed password
    """
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against a hash.

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password to compare against

    Returns:
        bool: True if password matches hash
    """
    return pwd_context.verify(plain_password, hashed_password)

def dummy_verify_password() -> None:
    """Spend the same bcrypt work as a real verification when there is no user."""
    pwd_context.dummy_verify()

def password_fingerprint(password_hash: str) -> str:
    """
    Short keyed digest of a password hash.

    Args:
        password_hash: Stored bcrypt hash

    Returns:
        str: 16 hex characters that change whenever the hash changes
    """
    digest = hmac.new(settings.secret_key.encode(), password_hash.encode(), hashlib.sha256)
    return digest.hexdigest()[:16]

def _encode(claims: Dict[str, Any], lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    to_encode = dict(claims)
    to_encode.update({"iat": now, "exp": now + lifetime})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

def create_session_token(user_id: int, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a session token for general authenticated access.

    Args:
        user_id: ID of the authenticated user
        email: Email of the authenticated user
        expires_delta: Token lifetime (default: ``session_token_expire_days``)

    Returns:
        str: Encoded JWT token
    """
    lifetime = expires_delta or timedelta(days=settings.session_token_expire_days)
    return _encode({"user_id": user_id, "email": email}, lifetime)

def create_reset_token(
    user_id: int,
    password_hash: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a single-purpose token that authorizes one password reset.

    Args:
        user_id: ID of the user whose password may be reset
        password_hash: Current hash, fingerprinted into the token
        expires_delta: Token lifetime (default: ``reset_token_expire_minutes``)

    Returns:
        str: Encoded JWT token
    """
    lifetime = expires_delta or timedelta(minutes=settings.reset_token_expire_minutes)
    return _encode(
        {"user_id": user_id, "purpose": RESET_TOKEN_PURPOSE, "pwd": password_fingerprint(password_hash)},
        lifetime
    )

def decode_token(token: Any) -> Optional[Dict[str, Any]]:
    """
    Verify and decode a token.

    Never raises: malformed, tampered and expired tokens all yield None.

    Args:
        token: Encoded token

    Returns:
        Dict containing token payload if valid, None if invalid
    """
    if not token or not isinstance(token, str):
        return None
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except (JWTError, ValueError):
        return None

def decode_session_token(token: Any) -> Optional[Dict[str, Any]]:
    """Decode a token and accept it only if it is a session token."""
    payload = decode_token(token)
    if not payload or "purpose" in payload:
        return None
    if not isinstance(payload.get("user_id"), int) or not payload.get("email"):
        return None
    return payload

def decode_reset_token(token: Any) -> Optional[Dict[str, Any]]:
    """Decode a token and accept it only if it is a password reset token."""
    payload = decode_token(token)
    if not payload or payload.get("purpose") != RESET_TOKEN_PURPOSE:
        return None
    if not isinstance(payload.get("user_id"), int) or not isinstance(payload.get("pwd"), str):
        return None
    return payload
