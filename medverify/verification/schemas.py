"""
Verification Schemas - admin review requests and the pending queue projection.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from ..auth.schemas import CamelModel


class ApproveVerificationRequest(CamelModel):
    user_id: int
    notes: Optional[str] = None

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip() or None


class RejectVerificationRequest(CamelModel):
    """
    Rejection Schema

    Fields:
    - user_id: Account under review
    - notes: Reason shown to the user, required
    """
    user_id: int
    notes: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("notes")
    @classmethod
    def validate_notes(cls, v: Optional[str]) -> str:
        if v is None or not v.strip():
            raise ValueError("Rejection reason is required")
        return v.strip()


class PendingVerificationResponse(CamelModel):
    """One entry of the admin review queue."""
    id: int
    full_name: str
    email: str
    phone_number: str
    medical_license_number: Optional[str] = None
    id_document_front_path: Optional[str] = None
    id_document_back_path: Optional[str] = None
    created_at: datetime
