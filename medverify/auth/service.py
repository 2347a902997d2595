"""
Authentication service layer for business logic.

Registration, login and the OTP password reset flow. Each function owns its
transaction: store calls only stage changes and the function commits once.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..core.notifications import dispatch_notification, send_otp_email
from ..core.otp import generate_otp, get_otp_expiry
from ..core.phone import normalize_phone
from ..core.security import (
    create_reset_token,
    create_session_token,
    decode_reset_token,
    dummy_verify_password,
    hash_password,
    password_fingerprint,
    verify_password
)
from . import store
from .exceptions import (
    AccountSuspendedException,
    EmailAlreadyExistsException,
    ExpiredOtpException,
    InvalidCredentialsException,
    InvalidOtpException,
    InvalidPhoneException,
    InvalidResetTokenException,
    InvalidRoleException,
    PhoneAlreadyExistsException
)
from .models import AccountStatus, User, UserRole

# Set up logging
logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If your email is registered, you will receive an OTP"
PASSWORD_RESET_MESSAGE = "Password reset successfully"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def initial_status_for_role(role: UserRole) -> AccountStatus:
    """Medical professionals start unverified; everyone else is active."""
    if role == UserRole.MED:
        return AccountStatus.PENDING_VERIFICATION
    return AccountStatus.ACTIVE


def register_user(
    db: Session,
    full_name: str,
    email: str,
    phone_number: str,
    password: str,
    role: Optional[UserRole] = None
) -> User:
    """
    Register a new USER or MED account.

    Args:
        db: Database session
        full_name: User's full name
        email: Email address (normalized to lowercase)
        phone_number: Phone number (normalized to E.164)
        password: Plain text password, hashed before storage
        role: USER (default) or MED

    Returns:
        User: The created user

    Raises:
        EmailAlreadyExistsException: If the email is taken
        PhoneAlreadyExistsException: If the phone number is taken
        InvalidRoleException: If ADMIN was requested
        InvalidPhoneException: If the phone number is not valid E.164
    """
    email = _normalize_email(email)
    try:
        phone_number = normalize_phone(phone_number)
    except ValueError:
        raise InvalidPhoneException()

    logger.info(f"Registration attempt for email: {email}")

    if store.get_user_by_email(db, email):
        logger.warning(f"Registration failed: Email {email} already registered")
        raise EmailAlreadyExistsException()

    if store.get_user_by_phone(db, phone_number):
        logger.warning(f"Registration failed: Phone number already registered ({email})")
        raise PhoneAlreadyExistsException()

    if role == UserRole.ADMIN:
        logger.warning(f"Registration failed: ADMIN role requested by {email}")
        raise InvalidRoleException()

    user_role = role or UserRole.USER

    try:
        user = store.create_user(
            db,
            full_name=full_name.strip(),
            email=email,
            phone_number=phone_number,
            password_hash=hash_password(password),
            role=user_role,
            account_status=initial_status_for_role(user_role)
        )
        db.commit()
    except IntegrityError:
        # A concurrent registration won the unique constraint
        db.rollback()
        if store.get_user_by_email(db, email):
            raise EmailAlreadyExistsException()
        raise PhoneAlreadyExistsException()

    db.refresh(user)
    logger.info(f"User account created: {user.id} ({user.role.value}, {user.account_status.value})")
    return user


def login_user(db: Session, email: str, password: str) -> Dict[str, Any]:
    """
    Authenticate a user and issue a session token.

    Unknown emails and wrong passwords fail identically, including the bcrypt
    work spent before failing. Accounts pending
    verification or rejected may still log in; only SUSPENDED is refused.

    Args:
        db: Database session
        email: User's email address
        password: User's password

    Returns:
        Dict with the session token and the user

    Raises:
        InvalidCredentialsException: If credentials are invalid
        AccountSuspendedException: If the account is suspended
    """
    email = _normalize_email(email)
    user = store.get_user_by_email(db, email)

    if not user:
        dummy_verify_password()
        logger.warning(f"Login failed: Invalid credentials for {email}")
        raise InvalidCredentialsException()

    if not verify_password(password, user.password_hash):
        logger.warning(f"Login failed: Invalid credentials for {email}")
        raise InvalidCredentialsException()

    if user.account_status == AccountStatus.SUSPENDED:
        logger.warning(f"Login failed: Account {user.id} is suspended")
        raise AccountSuspendedException()

    token = create_session_token(user.id, user.email)
    logger.info(f"Login successful: User {user.id} ({user.account_status.value})")

    return {"token": token, "user": user}


def forgot_password(
    db: Session,
    email: str,
    background_tasks: Optional[BackgroundTasks] = None
) -> Dict[str, Any]:
    """
    Issue a password reset OTP.

    The response is identical whether or not the email is registered and
    whether or not anything below fails, so the endpoint cannot be used to
    discover accounts.

    Args:
        db: Database session
        email: User's email address
        background_tasks: Used to send the email after the response

    Returns:
        Dict with the generic message
    """
    email = _normalize_email(email)
    try:
        user = store.get_user_by_email(db, email)
        if not user:
            logger.info(f"Password reset requested for unknown email {email}")
            return {"message": FORGOT_PASSWORD_MESSAGE}

        # Serializes concurrent requests for the same user
        store.lock_user(db, user.id)
        code = generate_otp()
        store.invalidate_unused_otps(db, user.id)
        store.create_otp(db, user.id, code, get_otp_expiry(settings.otp_expire_minutes))
        db.commit()
        logger.info(f"Password reset OTP issued for user {user.id}")

        dispatch_notification(background_tasks, send_otp_email, user.email, code)
    except Exception as e:
        db.rollback()
        logger.error(f"Password reset request failed for {email}: {str(e)}")

    return {"message": FORGOT_PASSWORD_MESSAGE}


def verify_otp(db: Session, email: str, code: str) -> Dict[str, Any]:
    """
    Exchange a valid OTP for a password reset token.

    Args:
        db: Database session
        email: Email the OTP was sent to
        code: The 6-digit code

    Returns:
        Dict with ``reset_token``

    Raises:
        InvalidOtpException: If the email is unknown
        ExpiredOtpException: If no unused, unexpired OTP matches
    """
    email = _normalize_email(email)
    user = store.get_user_by_email(db, email)
    if not user:
        logger.warning(f"OTP verification failed: Email {email} not found")
        raise InvalidOtpException()

    otp = store.get_active_otp(db, user.id, code)
    if not otp or not store.consume_otp(db, otp.id):
        db.rollback()
        logger.warning(f"OTP verification failed: Invalid or expired code for user {user.id}")
        raise ExpiredOtpException()

    db.commit()
    logger.info(f"OTP verified for user {user.id}")

    return {"reset_token": create_reset_token(user.id, user.password_hash)}


def reset_password(db: Session, reset_token: str, new_password: str) -> Dict[str, Any]:
    """
    Set a new password using a reset token.

    The token is bound to the password hash it was issued against, so it stops
    working once any reset has succeeded. Every OTP the user holds is
    invalidated afterwards, not only the one that produced the token.

    Args:
        db: Database session
        reset_token: Token returned by ``verify_otp``
        new_password: New password

    Returns:
        Dict with password reset success message

    Raises:
        InvalidResetTokenException: If the token is invalid, expired, already used
            or not a reset token
    """
    payload = decode_reset_token(reset_token)
    if not payload:
        logger.warning("Password reset failed: Invalid or expired reset token")
        raise InvalidResetTokenException()

    user_id = payload["user_id"]
    user = store.get_user_by_id(db, user_id)
    if not user or password_fingerprint(user.password_hash) != payload["pwd"]:
        logger.warning(f"Password reset failed: Token for user {user_id} is stale or the user is gone")
        raise InvalidResetTokenException()

    # Two requests racing with the same token: only the first swap matches
    swapped = store.update_user(
        db,
        user_id,
        match={"password_hash": user.password_hash},
        password_hash=hash_password(new_password)
    )
    if not swapped:
        db.rollback()
        logger.warning(f"Password reset failed: Password of user {user_id} changed concurrently")
        raise InvalidResetTokenException()

    store.invalidate_all_otps(db, user_id)
    db.commit()
    logger.info(f"Password reset successful for user {user_id}")

    return {"message": PASSWORD_RESET_MESSAGE}
