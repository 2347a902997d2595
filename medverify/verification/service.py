"""
Verification service layer.

Account status moves PENDING_VERIFICATION -> ACTIVE (approve) or REJECTED
(reject), and REJECTED -> PENDING_VERIFICATION (resubmit). Every transition is
a compare-and-set on the current status, so two reviewers racing on the same
account cannot both win.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from ..auth import store
from ..auth.exceptions import PermissionDeniedException, UserNotFoundException
from ..auth.models import AccountStatus, User, UserRole
from ..core.notifications import (
    VERIFICATION_APPROVED,
    VERIFICATION_REJECTED,
    dispatch_notification,
    send_verification_status_email
)
from .exceptions import (
    NotEligibleForVerificationException,
    NotPendingVerificationException,
    OnlyRejectedCanResubmitException,
    RejectionReasonRequiredException
)

# Set up logging
logger = logging.getLogger(__name__)

SUBMITTED_MESSAGE = (
    "Verification documents submitted successfully. "
    "Your account will be reviewed by our team."
)
RESUBMITTED_MESSAGE = (
    "Verification documents resubmitted successfully. "
    "Your account will be reviewed again by our team."
)
APPROVED_MESSAGE = "User verification approved successfully"
REJECTED_MESSAGE = "User verification rejected"


def submit_verification(
    db: Session,
    user_id: int,
    medical_license_number: str,
    id_document_front_path: str,
    id_document_back_path: str
) -> Dict[str, str]:
    """
    Attach license and ID documents to an account awaiting verification.

    The account stays PENDING_VERIFICATION; it now waits for an admin.

    Args:
        db: Database session
        user_id: Submitting user
        medical_license_number: License number as entered
        id_document_front_path: Stored reference of the front image
        id_document_back_path: Stored reference of the back image

    Returns:
        Dict with the success message

    Raises:
        NotEligibleForVerificationException: If the account is not PENDING_VERIFICATION
    """
    updated = store.transition_user(
        db,
        user_id,
        AccountStatus.PENDING_VERIFICATION,
        has_submitted_verification=True,
        medical_license_number=medical_license_number,
        id_document_front_path=id_document_front_path,
        id_document_back_path=id_document_back_path
    )
    if not updated:
        db.rollback()
        logger.warning(f"Verification submission refused for user {user_id}: not pending verification")
        raise NotEligibleForVerificationException()

    db.commit()
    logger.info(f"Verification documents submitted by user {user_id}")
    return {"message": SUBMITTED_MESSAGE}


def resubmit_verification(
    db: Session,
    user_id: int,
    medical_license_number: str,
    id_document_front_path: str,
    id_document_back_path: str
) -> Dict[str, str]:
    """
    Replace the documents of a rejected account and put it back in the queue.

    The previous review (notes, reviewer, review time) is cleared.

    Raises:
        OnlyRejectedCanResubmitException: If the account is not REJECTED
    """
    updated = store.transition_user(
        db,
        user_id,
        AccountStatus.REJECTED,
        account_status=AccountStatus.PENDING_VERIFICATION,
        has_submitted_verification=True,
        medical_license_number=medical_license_number,
        id_document_front_path=id_document_front_path,
        id_document_back_path=id_document_back_path,
        verification_notes=None,
        verified_at=None,
        verified_by=None
    )
    if not updated:
        db.rollback()
        logger.warning(f"Verification resubmission refused for user {user_id}: not rejected")
        raise OnlyRejectedCanResubmitException()

    db.commit()
    logger.info(f"Verification documents resubmitted by user {user_id}")
    return {"message": RESUBMITTED_MESSAGE}


def _get_reviewer(db: Session, admin_id: int) -> User:
    admin = store.get_user_by_id(db, admin_id)
    if not admin or admin.role != UserRole.ADMIN:
        logger.warning(f"Verification review refused: user {admin_id} is not an admin")
        raise PermissionDeniedException()
    return admin


def _review(
    db: Session,
    user_id: int,
    admin_id: int,
    outcome: AccountStatus,
    notes: Optional[str]
) -> User:
    _get_reviewer(db, admin_id)

    user = store.get_user_by_id(db, user_id)
    if not user:
        logger.warning(f"Verification review failed: user {user_id} not found")
        raise UserNotFoundException()

    updated = store.transition_user(
        db,
        user_id,
        AccountStatus.PENDING_VERIFICATION,
        account_status=outcome,
        verified_at=datetime.now(timezone.utc),
        verified_by=admin_id,
        verification_notes=notes
    )
    if not updated:
        db.rollback()
        logger.warning(f"Verification review failed: user {user_id} is not pending verification")
        raise NotPendingVerificationException()

    db.commit()
    db.refresh(user)
    logger.info(f"Verification of user {user_id} set to {outcome.value} by admin {admin_id}")
    return user


def approve_verification(
    db: Session,
    user_id: int,
    admin_id: int,
    notes: Optional[str] = None,
    background_tasks: Optional[BackgroundTasks] = None
) -> Dict[str, str]:
    """
    Approve a pending medical professional.

    The approval is committed before the user is notified; a failed email
    does not undo it.

    Args:
        db: Database session
        user_id: Account under review
        admin_id: Reviewing admin
        notes: Optional reviewer notes
        background_tasks: Used to send the email after the response

    Returns:
        Dict with the success message

    Raises:
        PermissionDeniedException: If admin_id is not an ADMIN
        UserNotFoundException: If the user does not exist
        NotPendingVerificationException: If the account is not PENDING_VERIFICATION
    """
    user = _review(db, user_id, admin_id, AccountStatus.ACTIVE, notes)
    dispatch_notification(
        background_tasks,
        send_verification_status_email,
        user.email,
        VERIFICATION_APPROVED,
        user.full_name
    )
    return {"message": APPROVED_MESSAGE}


def reject_verification(
    db: Session,
    user_id: int,
    admin_id: int,
    notes: str,
    background_tasks: Optional[BackgroundTasks] = None
) -> Dict[str, str]:
    """
    Reject a pending medical professional with a reason.

    Raises:
        RejectionReasonRequiredException: If notes is empty
        PermissionDeniedException: If admin_id is not an ADMIN
        UserNotFoundException: If the user does not exist
        NotPendingVerificationException: If the account is not PENDING_VERIFICATION
    """
    if not notes or not notes.strip():
        raise RejectionReasonRequiredException()
    reason = notes.strip()

    user = _review(db, user_id, admin_id, AccountStatus.REJECTED, reason)
    dispatch_notification(
        background_tasks,
        send_verification_status_email,
        user.email,
        VERIFICATION_REJECTED,
        user.full_name,
        reason
    )
    return {"message": REJECTED_MESSAGE}


def get_pending_verifications(db: Session) -> List[User]:
    """Accounts with submitted documents awaiting review, oldest first."""
    return store.get_pending_verifications(db)
