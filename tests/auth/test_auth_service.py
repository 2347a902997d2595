"""
Tests for the authentication service: registration, login and password reset.
"""
from datetime import datetime, timedelta, timezone

import pytest

from medverify.auth import service, store
from medverify.auth.exceptions import (
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
from medverify.auth.models import AccountStatus, Otp, UserRole
from medverify.auth.service import (
    FORGOT_PASSWORD_MESSAGE,
    forgot_password,
    login_user,
    register_user,
    reset_password,
    verify_otp
)
from medverify.core.security import create_reset_token, decode_session_token, verify_password


def _register(db, **overrides):
    fields = {
        "full_name": "Ada Lovelace",
        "email": "ada@medmail.org",
        "phone_number": "+14155552671",
        "password": "Password123!",
    }
    fields.update(overrides)
    return register_user(db, **fields)


class TestRegister:
    def test_user_role_is_active(self, db):
        user = _register(db, role=UserRole.USER)
        assert user.role == UserRole.USER
        assert user.account_status == AccountStatus.ACTIVE

    def test_omitted_role_defaults_to_active_user(self, db):
        user = _register(db)
        assert user.role == UserRole.USER
        assert user.account_status == AccountStatus.ACTIVE
        assert user.has_submitted_verification is False

    def test_med_role_is_pending_verification(self, db):
        user = _register(db, role=UserRole.MED)
        assert user.account_status == AccountStatus.PENDING_VERIFICATION

    def test_admin_role_is_refused(self, db):
        with pytest.raises(InvalidRoleException):
            _register(db, role=UserRole.ADMIN)
        assert store.get_user_by_email(db, "ada@medmail.org") is None

    def test_email_and_phone_are_normalized(self, db):
        user = _register(db, email="  Ada@MedMail.ORG ", phone_number="+1 (415) 555-2671")
        assert user.email == "ada@medmail.org"
        assert user.phone_number == "+14155552671"

    def test_password_is_hashed(self, db):
        user = _register(db)
        assert user.password_hash != "Password123!"
        assert verify_password("Password123!", user.password_hash)

    def test_duplicate_email_is_refused_case_insensitively(self, db):
        _register(db)
        with pytest.raises(EmailAlreadyExistsException):
            _register(db, email="ADA@medmail.org", phone_number="+14155550000")

    def test_duplicate_phone_is_refused(self, db):
        _register(db)
        with pytest.raises(PhoneAlreadyExistsException):
            _register(db, email="other@medmail.org", phone_number="+1-415-555-2671")

    def test_invalid_phone_is_refused(self, db):
        with pytest.raises(InvalidPhoneException):
            _register(db, phone_number="555")


class TestLogin:
    def test_login_returns_session_token(self, db, make_user):
        user = make_user(email="nurse@medmail.org")
        result = login_user(db, "Nurse@MedMail.org", "Password123!")
        payload = decode_session_token(result["token"])
        assert payload["user_id"] == user.id
        assert payload["email"] == "nurse@medmail.org"
        assert result["user"].id == user.id

    def test_unknown_email_and_wrong_password_fail_identically(self, db, make_user):
        make_user(email="nurse@medmail.org")
        with pytest.raises(InvalidCredentialsException) as unknown:
            login_user(db, "ghost@medmail.org", "Password123!")
        with pytest.raises(InvalidCredentialsException) as wrong:
            login_user(db, "nurse@medmail.org", "not-the-password")
        assert unknown.value.detail == wrong.value.detail == "Invalid email or password"

    def test_unknown_email_spends_hashing_work(self, db, make_user, monkeypatch):
        make_user(email="nurse@medmail.org")
        real_verify = service.verify_password
        calls = []

        def spy_dummy_verify():
            calls.append("dummy")

        def spy_verify(plain, hashed):
            calls.append("verify")
            return real_verify(plain, hashed)

        monkeypatch.setattr("medverify.auth.service.dummy_verify_password", spy_dummy_verify)
        monkeypatch.setattr("medverify.auth.service.verify_password", spy_verify)

        with pytest.raises(InvalidCredentialsException):
            login_user(db, "ghost@medmail.org", "Password123!")
        with pytest.raises(InvalidCredentialsException):
            login_user(db, "nurse@medmail.org", "not-the-password")

        assert calls == ["dummy", "verify"]

    def test_suspended_account_is_refused(self, db, make_user):
        make_user(email="bad@medmail.org", account_status=AccountStatus.SUSPENDED)
        with pytest.raises(AccountSuspendedException):
            login_user(db, "bad@medmail.org", "Password123!")

    @pytest.mark.parametrize("status", [AccountStatus.PENDING_VERIFICATION, AccountStatus.REJECTED])
    def test_unverified_accounts_may_log_in(self, db, make_user, status):
        make_user(role=UserRole.MED, email="doc@medmail.org", account_status=status)
        assert login_user(db, "doc@medmail.org", "Password123!")["token"]


class TestPasswordReset:
    def test_forgot_password_is_identical_for_unknown_email(self, db, make_user, outbox):
        make_user(email="known@medmail.org")
        known = forgot_password(db, "known@medmail.org")
        unknown = forgot_password(db, "unknown@medmail.org")
        assert known == unknown == {"message": FORGOT_PASSWORD_MESSAGE}
        assert [m["email"] for m in outbox] == ["known@medmail.org"]

    def test_forgot_password_stores_a_fresh_otp(self, db, make_user, outbox):
        user = make_user(email="known@medmail.org")
        forgot_password(db, "known@medmail.org")
        otps = db.query(Otp).filter(Otp.user_id == user.id).all()
        assert len(otps) == 1
        assert otps[0].code == outbox[0]["code"]
        assert otps[0].used is False

    def test_new_otp_supersedes_previous_ones(self, db, make_user, outbox):
        make_user(email="known@medmail.org")
        forgot_password(db, "known@medmail.org")
        forgot_password(db, "known@medmail.org")
        first, second = outbox[0]["code"], outbox[1]["code"]
        if first != second:
            with pytest.raises(ExpiredOtpException):
                verify_otp(db, "known@medmail.org", first)
        assert verify_otp(db, "known@medmail.org", second)["reset_token"]

    def test_forgot_password_survives_sender_failure(self, db, make_user, monkeypatch):
        make_user(email="known@medmail.org")

        def broken_sender(email, code):
            raise RuntimeError("smtp down")

        monkeypatch.setattr("medverify.auth.service.send_otp_email", broken_sender)
        assert forgot_password(db, "known@medmail.org") == {"message": FORGOT_PASSWORD_MESSAGE}

    def test_full_reset_flow(self, db, make_user, outbox):
        user = make_user(email="known@medmail.org")
        forgot_password(db, "known@medmail.org")
        reset_token = verify_otp(db, "known@medmail.org", outbox[0]["code"])["reset_token"]

        assert reset_password(db, reset_token, "BrandNew456!") == {"message": "Password reset successfully"}

        db.refresh(user)
        assert verify_password("BrandNew456!", user.password_hash)
        assert login_user(db, "known@medmail.org", "BrandNew456!")["token"]
        with pytest.raises(InvalidCredentialsException):
            login_user(db, "known@medmail.org", "Password123!")

    def test_otp_is_single_use(self, db, make_user, outbox):
        make_user(email="known@medmail.org")
        forgot_password(db, "known@medmail.org")
        code = outbox[0]["code"]
        verify_otp(db, "known@medmail.org", code)
        with pytest.raises(ExpiredOtpException):
            verify_otp(db, "known@medmail.org", code)

    def test_expired_otp_is_refused(self, db, make_user):
        user = make_user(email="known@medmail.org")
        store.create_otp(db, user.id, "654321", datetime.now(timezone.utc) - timedelta(minutes=1))
        db.commit()
        with pytest.raises(ExpiredOtpException):
            verify_otp(db, "known@medmail.org", "654321")

    def test_wrong_code_is_refused(self, db, make_user, outbox):
        make_user(email="known@medmail.org")
        forgot_password(db, "known@medmail.org")
        wrong = "100000" if outbox[0]["code"] != "100000" else "100001"
        with pytest.raises(ExpiredOtpException):
            verify_otp(db, "known@medmail.org", wrong)

    def test_otp_for_unknown_email(self, db):
        with pytest.raises(InvalidOtpException):
            verify_otp(db, "ghost@medmail.org", "123456")

    def test_reset_invalidates_every_otp(self, db, make_user):
        user = make_user(email="known@medmail.org")
        expiry = datetime.now(timezone.utc) + timedelta(minutes=10)
        store.create_otp(db, user.id, "111111", expiry)
        store.create_otp(db, user.id, "222222", expiry)
        db.commit()

        reset_token = verify_otp(db, "known@medmail.org", "111111")["reset_token"]
        reset_password(db, reset_token, "BrandNew456!")

        with pytest.raises(ExpiredOtpException):
            verify_otp(db, "known@medmail.org", "222222")

    def test_session_token_cannot_reset_password(self, db, make_user):
        user = make_user(email="known@medmail.org")
        session_token = login_user(db, "known@medmail.org", "Password123!")["token"]
        with pytest.raises(InvalidResetTokenException):
            reset_password(db, session_token, "BrandNew456!")
        db.refresh(user)
        assert verify_password("Password123!", user.password_hash)

    def test_expired_reset_token_is_refused(self, db, make_user):
        user = make_user(email="known@medmail.org")
        token = create_reset_token(user.id, user.password_hash, expires_delta=timedelta(seconds=-1))
        with pytest.raises(InvalidResetTokenException):
            reset_password(db, token, "BrandNew456!")

    def test_reset_token_for_deleted_user_is_refused(self, db):
        with pytest.raises(InvalidResetTokenException):
            reset_password(db, create_reset_token(9999, "$2b$04$missinguser"), "BrandNew456!")

    def test_reset_token_works_only_once(self, db, make_user, outbox):
        user = make_user(email="known@medmail.org")
        forgot_password(db, "known@medmail.org")
        reset_token = verify_otp(db, "known@medmail.org", outbox[0]["code"])["reset_token"]

        reset_password(db, reset_token, "FirstNewPass1")
        with pytest.raises(InvalidResetTokenException):
            reset_password(db, reset_token, "SecondNewPass2")

        db.refresh(user)
        assert verify_password("FirstNewPass1", user.password_hash)

    def test_older_reset_token_dies_with_the_password(self, db, make_user):
        user = make_user(email="known@medmail.org")
        expiry = datetime.now(timezone.utc) + timedelta(minutes=10)
        store.create_otp(db, user.id, "111111", expiry)
        db.commit()
        first_token = verify_otp(db, "known@medmail.org", "111111")["reset_token"]

        store.create_otp(db, user.id, "222222", expiry)
        db.commit()
        second_token = verify_otp(db, "known@medmail.org", "222222")["reset_token"]

        reset_password(db, second_token, "BrandNew456!")
        with pytest.raises(InvalidResetTokenException):
            reset_password(db, first_token, "Attacker789!")

    def test_forgot_password_locks_the_user_row(self, db, make_user, outbox, monkeypatch):
        user = make_user(email="known@medmail.org")
        real_lock_user = store.lock_user
        locked = []

        def spy_lock_user(session, user_id):
            locked.append(user_id)
            return real_lock_user(session, user_id)

        monkeypatch.setattr("medverify.auth.store.lock_user", spy_lock_user)
        forgot_password(db, "known@medmail.org")

        assert locked == [user.id]
        assert len(outbox) == 1
