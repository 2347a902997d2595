"""
User and OTP Models - Accounts, credentials, verification artifacts and password reset codes.
"""
from datetime import datetime, timezone
import enum

from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserRole(str, enum.Enum):
    """
    Enumeration for user roles.

    Roles:
    - USER: Regular users, active immediately after registration
    - MED: Medical professionals who must pass identity verification
    - ADMIN: Reviewers of verification requests (never self-registered)
    """
    USER = "USER"
    MED = "MED"
    ADMIN = "ADMIN"


class AccountStatus(str, enum.Enum):
    """
    Enumeration for account status types.

    Status Types:
    - ACTIVE: Account usable without restriction
    - PENDING_VERIFICATION: Medical professional awaiting document review
    - REJECTED: Verification rejected; the user may resubmit documents
    - SUSPENDED: Account blocked from logging in (set manually only)
    """
    ACTIVE = "ACTIVE"
    PENDING_VERIFICATION = "PENDING_VERIFICATION"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class User(Base):
    """
    User Model - Stores all user information in the system

    Fields:
    - id: Primary key for user identification
    - full_name: User's complete name
    - email: Unique, lowercase email address used for login
    - phone_number: Unique phone number in E.164 format
    - password_hash: Bcrypt hash of the password (raw passwords are never stored)
    - role: USER, MED or ADMIN
    - account_status: Current position in the verification state machine
    - has_submitted_verification: Whether documents were submitted at least once
    - medical_license_number: License number from the latest submission
    - id_document_front_path / id_document_back_path: Storage references of the ID images
    - verification_notes: Reviewer notes (the reason, for rejections)
    - verified_at: When an admin last approved or rejected the account
    - verified_by: ID of that admin
    - created_at: Timestamp when user was created (orders the review queue)
    - updated_at: Timestamp when user was last updated
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    phone_number = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(UserRole, name="user_role"), nullable=False, default=UserRole.USER)
    account_status = Column(
        Enum(AccountStatus, name="account_status"),
        nullable=False,
        default=AccountStatus.ACTIVE,
        index=True
    )

    # Verification fields
    has_submitted_verification = Column(Boolean, nullable=False, default=False)
    medical_license_number = Column(String, nullable=True)
    id_document_front_path = Column(String, nullable=True)
    id_document_back_path = Column(String, nullable=True)
    verification_notes = Column(Text, nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verified_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=utcnow)

    # Relationships
    otps = relationship("Otp", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<User(id={self.id}, role='{self.role}', status='{self.account_status}')>"


class Otp(Base):
    """
    OTP Model - One-time passcodes for password reset

    Fields:
    - id: Primary key
    - code: Six ASCII digits
    - user_id: Owner of the code
    - expires_at: Absolute expiry; checked lazily when the code is used
    - used: Set when the code is consumed or superseded
    - created_at: When the code was issued
    """
    __tablename__ = "otps"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(6), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    user = relationship("User", back_populates="otps")

    def __repr__(self):
        return f"<Otp(id={self.id}, user_id={self.user_id}, used={self.used})>"
