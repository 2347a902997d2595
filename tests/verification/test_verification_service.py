"""
Tests for the verification state machine.
"""
import pytest

from medverify.auth.exceptions import PermissionDeniedException, UserNotFoundException
from medverify.auth.models import AccountStatus, UserRole
from medverify.verification.exceptions import (
    NotEligibleForVerificationException,
    NotPendingVerificationException,
    OnlyRejectedCanResubmitException,
    RejectionReasonRequiredException
)
from medverify.verification.service import (
    APPROVED_MESSAGE,
    REJECTED_MESSAGE,
    RESUBMITTED_MESSAGE,
    SUBMITTED_MESSAGE,
    approve_verification,
    get_pending_verifications,
    reject_verification,
    resubmit_verification,
    submit_verification
)

DOCUMENTS = {
    "medical_license_number": "LIC-001",
    "id_document_front_path": "uploads/verifications/front.png",
    "id_document_back_path": "uploads/verifications/back.png",
}


@pytest.fixture
def med_user(make_user):
    return make_user(role=UserRole.MED, account_status=AccountStatus.PENDING_VERIFICATION)


@pytest.fixture
def submitted_med(db, med_user):
    submit_verification(db, med_user.id, **DOCUMENTS)
    db.refresh(med_user)
    return med_user


class TestSubmit:
    def test_submit_keeps_status_and_stores_documents(self, db, med_user):
        assert submit_verification(db, med_user.id, **DOCUMENTS) == {"message": SUBMITTED_MESSAGE}
        db.refresh(med_user)
        assert med_user.account_status == AccountStatus.PENDING_VERIFICATION
        assert med_user.has_submitted_verification is True
        assert med_user.medical_license_number == "LIC-001"
        assert med_user.id_document_front_path == DOCUMENTS["id_document_front_path"]

    @pytest.mark.parametrize("status", [AccountStatus.ACTIVE, AccountStatus.REJECTED, AccountStatus.SUSPENDED])
    def test_submit_requires_pending_verification(self, db, make_user, status):
        user = make_user(role=UserRole.MED, account_status=status)
        with pytest.raises(NotEligibleForVerificationException):
            submit_verification(db, user.id, **DOCUMENTS)
        db.refresh(user)
        assert user.medical_license_number is None


class TestReview:
    def test_approve(self, db, submitted_med, admin, outbox):
        result = approve_verification(db, submitted_med.id, admin.id, notes="Looks good")
        assert result == {"message": APPROVED_MESSAGE}

        db.refresh(submitted_med)
        assert submitted_med.account_status == AccountStatus.ACTIVE
        assert submitted_med.verified_by == admin.id
        assert submitted_med.verified_at is not None
        assert submitted_med.verification_notes == "Looks good"
        assert outbox == [{
            "kind": "approved",
            "email": submitted_med.email,
            "full_name": submitted_med.full_name,
            "reason": None,
        }]

    def test_reject(self, db, submitted_med, admin, outbox):
        result = reject_verification(db, submitted_med.id, admin.id, notes="  License expired ")
        assert result == {"message": REJECTED_MESSAGE}

        db.refresh(submitted_med)
        assert submitted_med.account_status == AccountStatus.REJECTED
        assert submitted_med.verified_by == admin.id
        assert submitted_med.verification_notes == "License expired"
        assert outbox[0]["kind"] == "rejected"
        assert outbox[0]["reason"] == "License expired"

    @pytest.mark.parametrize("notes", ["", "   ", None])
    def test_reject_requires_reason(self, db, submitted_med, admin, notes):
        with pytest.raises(RejectionReasonRequiredException):
            reject_verification(db, submitted_med.id, admin.id, notes=notes)

    @pytest.mark.parametrize("status", [AccountStatus.ACTIVE, AccountStatus.REJECTED, AccountStatus.SUSPENDED])
    def test_review_requires_pending_verification(self, db, make_user, admin, status, outbox):
        user = make_user(role=UserRole.MED, account_status=status)
        with pytest.raises(NotPendingVerificationException):
            approve_verification(db, user.id, admin.id)
        with pytest.raises(NotPendingVerificationException):
            reject_verification(db, user.id, admin.id, notes="No")
        db.refresh(user)
        assert user.account_status == status
        assert outbox == []

    def test_second_review_loses(self, db, submitted_med, admin, outbox):
        approve_verification(db, submitted_med.id, admin.id)
        with pytest.raises(NotPendingVerificationException):
            reject_verification(db, submitted_med.id, admin.id, notes="Too late")
        db.refresh(submitted_med)
        assert submitted_med.account_status == AccountStatus.ACTIVE
        assert len(outbox) == 1

    def test_reviewer_must_be_admin(self, db, submitted_med, make_user):
        impostor = make_user(role=UserRole.USER)
        with pytest.raises(PermissionDeniedException):
            approve_verification(db, submitted_med.id, impostor.id)
        db.refresh(submitted_med)
        assert submitted_med.account_status == AccountStatus.PENDING_VERIFICATION
        assert submitted_med.verified_by is None

    def test_unknown_user(self, db, admin):
        with pytest.raises(UserNotFoundException):
            approve_verification(db, 9999, admin.id)

    def test_notification_failure_does_not_undo_approval(self, db, submitted_med, admin, monkeypatch):
        def broken_sender(*args, **kwargs):
            raise RuntimeError("smtp down")

        monkeypatch.setattr("medverify.verification.service.send_verification_status_email", broken_sender)
        approve_verification(db, submitted_med.id, admin.id)
        db.refresh(submitted_med)
        assert submitted_med.account_status == AccountStatus.ACTIVE


class TestResubmit:
    def test_resubmit_after_rejection_clears_review(self, db, submitted_med, admin, outbox):
        reject_verification(db, submitted_med.id, admin.id, notes="Blurry photo")

        result = resubmit_verification(
            db,
            submitted_med.id,
            medical_license_number="LIC-002",
            id_document_front_path="new-front.png",
            id_document_back_path="new-back.png"
        )
        assert result == {"message": RESUBMITTED_MESSAGE}

        db.refresh(submitted_med)
        assert submitted_med.account_status == AccountStatus.PENDING_VERIFICATION
        assert submitted_med.medical_license_number == "LIC-002"
        assert submitted_med.verification_notes is None
        assert submitted_med.verified_at is None
        assert submitted_med.verified_by is None

    @pytest.mark.parametrize("status", [AccountStatus.ACTIVE, AccountStatus.PENDING_VERIFICATION, AccountStatus.SUSPENDED])
    def test_resubmit_requires_rejected(self, db, make_user, status):
        user = make_user(role=UserRole.MED, account_status=status)
        with pytest.raises(OnlyRejectedCanResubmitException):
            resubmit_verification(db, user.id, **DOCUMENTS)


class TestPendingQueue:
    def test_only_submitted_pending_accounts_oldest_first(self, db, make_user, admin):
        first = make_user(role=UserRole.MED, account_status=AccountStatus.PENDING_VERIFICATION)
        not_submitted = make_user(role=UserRole.MED, account_status=AccountStatus.PENDING_VERIFICATION)
        second = make_user(role=UserRole.MED, account_status=AccountStatus.PENDING_VERIFICATION)
        approved = make_user(role=UserRole.MED, account_status=AccountStatus.PENDING_VERIFICATION)

        for user in (second, first, approved):
            submit_verification(db, user.id, **DOCUMENTS)
        approve_verification(db, approved.id, admin.id)

        pending = get_pending_verifications(db)
        assert [user.id for user in pending] == [first.id, second.id]
        assert not_submitted.id not in [user.id for user in pending]
