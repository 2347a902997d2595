"""
Creates the first admin account from configuration.

ADMIN can never be self-registered, so without this the review queue would
have no one to work it.
"""
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import store
from ..auth.models import AccountStatus, UserRole
from ..config import settings
from .phone import normalize_phone
from .security import hash_password

logger = logging.getLogger(__name__)


def create_bootstrap_admin(db: Session) -> bool:
    """
    Create the first admin user from settings.

    Args:
        db: Database session

    Returns:
        bool: True if the admin was created
    """
    email = settings.bootstrap_admin_email.strip().lower()
    try:
        phone_number = normalize_phone(settings.bootstrap_admin_phone)
    except ValueError:
        logger.error("Bootstrap admin not created: BOOTSTRAP_ADMIN_PHONE is not a valid phone number")
        return False

    if store.get_user_by_email(db, email) or store.get_user_by_phone(db, phone_number):
        logger.warning(f"Bootstrap admin not created: {email} or its phone number is already registered")
        return False

    try:
        admin = store.create_user(
            db,
            full_name=settings.bootstrap_admin_name,
            email=email,
            phone_number=phone_number,
            password_hash=hash_password(settings.bootstrap_admin_password),
            role=UserRole.ADMIN,
            account_status=AccountStatus.ACTIVE
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to create bootstrap admin: {str(e)}")
        return False

    logger.info(f"Bootstrap admin created: {admin.email} (ID: {admin.id})")
    return True


def bootstrap_admin_if_needed(db: Session) -> bool:
    """
    Create the bootstrap admin when configured and no admin exists yet.

    Args:
        db: Database session

    Returns:
        bool: True if an admin was created
    """
    if store.admin_exists(db):
        logger.info("Admin account present; bootstrap skipped")
        return False

    if not (
        settings.bootstrap_admin_email
        and settings.bootstrap_admin_password
        and settings.bootstrap_admin_phone
    ):
        logger.warning("No admin account exists and bootstrap admin credentials are not configured")
        return False

    return create_bootstrap_admin(db)
