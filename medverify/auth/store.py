"""
Account store - persistence operations for users and OTPs.

These functions never commit. The calling service owns the transaction so that
multi-step sequences (invalidate old OTPs then insert a new one, check a status
then write the next one) are committed or rolled back together. Status checks are
done as conditional updates so concurrent transitions cannot both succeed.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from .models import AccountStatus, Otp, User, UserRole


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_user_by_phone(db: Session, phone_number: str) -> Optional[User]:
    return db.query(User).filter(User.phone_number == phone_number).first()


def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
    return db.query(User).filter(User.id == user_id).first()


def lock_user(db: Session, user_id: int) -> Optional[User]:
    """Load a user with a row lock held until the transaction ends."""
    return db.query(User).filter(User.id == user_id).with_for_update().first()


def create_user(db: Session, **fields) -> User:
    """
    Add a new user and flush it so the generated ID is available.

    Args:
        db: Database session
        **fields: Column values for the new user

    Returns:
        User: The pending user row
    """
    user = User(**fields)
    db.add(user)
    db.flush()
    return user


def update_user(
    db: Session,
    user_id: int,
    match: Optional[Dict[str, Any]] = None,
    **fields
) -> int:
    """
    Overwrite the given columns of a user.

    Args:
        db: Database session
        user_id: ID of the user to update
        match: Column values the row must still hold for the update to apply
        **fields: Column values to write

    Returns:
        int: Number of rows updated (0 if the user does not exist or no longer matches)
    """
    criteria = [User.id == user_id]
    for column, value in (match or {}).items():
        criteria.append(getattr(User, column) == value)
    fields["updated_at"] = datetime.now(timezone.utc)
    return (
        db.query(User)
        .filter(*criteria)
        .update(fields, synchronize_session="fetch")
    )


def transition_user(
    db: Session,
    user_id: int,
    expected_status: AccountStatus,
    **fields
) -> bool:
    """
    Update a user only if its account status still equals ``expected_status``.

    Args:
        db: Database session
        user_id: ID of the user to update
        expected_status: Status the account must currently be in
        **fields: Column values to write

    Returns:
        bool: True if the row matched and was updated
    """
    return update_user(db, user_id, match={"account_status": expected_status}, **fields) == 1


def get_pending_verifications(db: Session) -> List[User]:
    """
    Users waiting for review, oldest registration first.

    Only accounts that actually submitted documents (non-null license number)
    are part of the queue.
    """
    return (
        db.query(User)
        .filter(
            User.account_status == AccountStatus.PENDING_VERIFICATION,
            User.medical_license_number.isnot(None)
        )
        .order_by(User.created_at.asc(), User.id.asc())
        .all()
    )


def admin_exists(db: Session) -> bool:
    return db.query(User.id).filter(User.role == UserRole.ADMIN).first() is not None


def create_otp(db: Session, user_id: int, code: str, expires_at: datetime) -> Otp:
    otp = Otp(user_id=user_id, code=code, expires_at=expires_at, used=False)
    db.add(otp)
    db.flush()
    return otp


def get_active_otp(db: Session, user_id: int, code: str) -> Optional[Otp]:
    """
    Find an unused, unexpired OTP matching the code.

    Args:
        db: Database session
        user_id: Owner of the OTP
        code: Code supplied by the user

    Returns:
        Otp if one matches, None otherwise
    """
    now = datetime.now(timezone.utc)
    return (
        db.query(Otp)
        .filter(
            Otp.user_id == user_id,
            Otp.code == code,
            Otp.used.is_(False),
            Otp.expires_at > now
        )
        .order_by(Otp.id.desc())
        .first()
    )


def consume_otp(db: Session, otp_id: int) -> bool:
    """Mark an OTP used; False if it was already consumed."""
    updated = (
        db.query(Otp)
        .filter(Otp.id == otp_id, Otp.used.is_(False))
        .update({"used": True}, synchronize_session="fetch")
    )
    return updated == 1


def invalidate_unused_otps(db: Session, user_id: int) -> int:
    return (
        db.query(Otp)
        .filter(Otp.user_id == user_id, Otp.used.is_(False))
        .update({"used": True}, synchronize_session="fetch")
    )


def invalidate_all_otps(db: Session, user_id: int) -> int:
    return (
        db.query(Otp)
        .filter(Otp.user_id == user_id)
        .update({"used": True}, synchronize_session="fetch")
    )
