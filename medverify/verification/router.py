"""
Verification routes.

Medical professionals upload their license number and both sides of an ID
document; admins review the queue and approve or reject.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from ..auth.dependencies import Principal, get_current_principal, require_admin
from ..config import settings
from ..core.responses import ApiResponse
from ..core.storage import discard_document, save_document
from ..database import get_db
from ..exceptions import (
    AppException,
    Operation,
    OperationFailedException,
    ValidationFailedException
)
from .schemas import (
    ApproveVerificationRequest,
    PendingVerificationResponse,
    RejectVerificationRequest
)
from .service import (
    approve_verification,
    get_pending_verifications,
    reject_verification,
    resubmit_verification,
    submit_verification
)

# Set up logging
logger = logging.getLogger(__name__)

# Create API routers
router = APIRouter(prefix="/api/verification", tags=["Verification"])
admin_router = APIRouter(prefix="/api/admin/verifications", tags=["Admin Verification"])


def _validate_submission(
    medical_license_number: Optional[str],
    front: Optional[UploadFile],
    back: Optional[UploadFile]
) -> str:
    errors = []
    if not medical_license_number or not medical_license_number.strip():
        errors.append("Medical license number is required")
    if front is None:
        errors.append("Front side of ID document is required")
    if back is None:
        errors.append("Back side of ID document is required")
    if errors:
        raise ValidationFailedException(errors)
    return medical_license_number.strip()


async def _store_documents(user_id: int, front: UploadFile, back: UploadFile) -> List[str]:
    """Persist both sides, removing the first if the second fails."""
    # One byte over the limit is enough for validation to reject the file
    limit = settings.max_document_size + 1
    front_data = await front.read(limit)
    back_data = await back.read(limit)

    front_ref = save_document(user_id, "front", front.filename, front.content_type, front_data)
    try:
        back_ref = save_document(user_id, "back", back.filename, back.content_type, back_data)
    except Exception:
        discard_document(front_ref)
        raise
    return [front_ref, back_ref]


async def _handle_submission(
    operation: Operation,
    transition,
    db: Session,
    principal: Principal,
    medical_license_number: Optional[str],
    front: Optional[UploadFile],
    back: Optional[UploadFile]
) -> ApiResponse:
    license_number = _validate_submission(medical_license_number, front, back)
    references: List[str] = []
    try:
        references = await _store_documents(principal.user_id, front, back)
        result = transition(
            db=db,
            user_id=principal.user_id,
            medical_license_number=license_number,
            id_document_front_path=references[0],
            id_document_back_path=references[1]
        )
    except AppException:
        for reference in references:
            discard_document(reference)
        raise
    except Exception as e:
        for reference in references:
            discard_document(reference)
        logger.error(f"Unexpected error during {operation.value} for user {principal.user_id}: {str(e)}")
        raise OperationFailedException(operation)

    return ApiResponse(message=result["message"])


@router.post("/submit", response_model=ApiResponse[None], summary="Submit Verification Documents")
async def submit_verification_route(
    medicalLicenseNumber: Optional[str] = Form(None),
    idDocumentFront: Optional[UploadFile] = File(None),
    idDocumentBack: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """
    Submit license number and ID document images for review.

    Args:
        medicalLicenseNumber: Medical license number
        idDocumentFront: Front side of the ID document (JPEG, PNG or WebP, max 5MB)
        idDocumentBack: Back side of the ID document
        principal: Authenticated user
        db: Database session

    Returns:
        ApiResponse with the submission message
    """
    return await _handle_submission(
        Operation.SUBMIT_VERIFICATION,
        submit_verification,
        db,
        principal,
        medicalLicenseNumber,
        idDocumentFront,
        idDocumentBack
    )


@router.post("/resubmit", response_model=ApiResponse[None], summary="Resubmit Verification Documents")
async def resubmit_verification_route(
    medicalLicenseNumber: Optional[str] = Form(None),
    idDocumentFront: Optional[UploadFile] = File(None),
    idDocumentBack: Optional[UploadFile] = File(None),
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Replace the documents of a rejected account and request a new review."""
    return await _handle_submission(
        Operation.RESUBMIT_VERIFICATION,
        resubmit_verification,
        db,
        principal,
        medicalLicenseNumber,
        idDocumentFront,
        idDocumentBack
    )


@admin_router.get(
    "/pending",
    response_model=ApiResponse[List[PendingVerificationResponse]],
    summary="List Pending Verifications"
)
def pending_verifications_route(
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        users = get_pending_verifications(db)
    except Exception as e:
        logger.error(f"Unexpected error while listing pending verifications: {str(e)}")
        raise OperationFailedException(Operation.GET_PENDING_VERIFICATIONS)

    return ApiResponse(
        message="Pending verifications retrieved successfully",
        data=[PendingVerificationResponse.model_validate(user) for user in users]
    )


@admin_router.post("/approve", response_model=ApiResponse[None], summary="Approve Verification")
def approve_verification_route(
    review: ApproveVerificationRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Approve a pending medical professional.

    Args:
        review: Target user and optional notes
        background_tasks: Sends the approval email after the response
        principal: Authenticated admin
        db: Database session

    Returns:
        ApiResponse with the approval message
    """
    try:
        result = approve_verification(
            db=db,
            user_id=review.user_id,
            admin_id=principal.user_id,
            notes=review.notes,
            background_tasks=background_tasks
        )
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error while approving user {review.user_id}: {str(e)}")
        raise OperationFailedException(Operation.APPROVE_VERIFICATION)

    return ApiResponse(message=result["message"])


@admin_router.post("/reject", response_model=ApiResponse[None], summary="Reject Verification")
def reject_verification_route(
    review: RejectVerificationRequest,
    background_tasks: BackgroundTasks,
    principal: Principal = Depends(require_admin),
    db: Session = Depends(get_db)
):
    try:
        result = reject_verification(
            db=db,
            user_id=review.user_id,
            admin_id=principal.user_id,
            notes=review.notes,
            background_tasks=background_tasks
        )
    except AppException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error while rejecting user {review.user_id}: {str(e)}")
        raise OperationFailedException(Operation.REJECT_VERIFICATION)

    return ApiResponse(message=result["message"])
