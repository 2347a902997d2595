"""
Test configuration for the MedVerify backend.
"""
import os

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-medverify")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
for key in ("MAIL_SERVER", "CLOUDINARY_CLOUD_NAME", "BOOTSTRAP_ADMIN_EMAIL"):
    os.environ[key] = ""

import pytest
from fastapi.testclient import TestClient

from medverify.auth import store
from medverify.auth.models import AccountStatus, UserRole
from medverify.config import settings
from medverify.core.security import create_session_token, hash_password
from medverify.database import Base, SessionLocal, engine, get_db
from medverify.main import app

DEFAULT_PASSWORD = "Password123!"


@pytest.fixture(autouse=True)
def upload_dir(tmp_path, monkeypatch):
    """
    Keep stored documents inside the test's temporary directory.
    """
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path))
    return tmp_path


@pytest.fixture(scope="function")
def db():
    """
    Create a fresh database for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """
    Create a test client with a test database session.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client

    app.dependency_overrides = {}


@pytest.fixture
def outbox(monkeypatch):
    """
    Capture notifications instead of sending them.
    """
    sent = []

    def fake_send_otp_email(email, code):
        sent.append({"kind": "otp", "email": email, "code": code})
        return True

    def fake_send_verification_status_email(email, status, full_name, reason=None):
        sent.append({"kind": status, "email": email, "full_name": full_name, "reason": reason})
        return True

    monkeypatch.setattr("medverify.auth.service.send_otp_email", fake_send_otp_email)
    monkeypatch.setattr(
        "medverify.verification.service.send_verification_status_email",
        fake_send_verification_status_email
    )
    return sent


@pytest.fixture
def make_user(db):
    """
    Insert a user directly, bypassing registration rules.
    """
    counter = {"n": 0}

    def _make_user(
        role=UserRole.USER,
        account_status=AccountStatus.ACTIVE,
        email=None,
        password=DEFAULT_PASSWORD,
        **fields
    ):
        counter["n"] += 1
        n = counter["n"]
        fields.setdefault("full_name", f"Test User {n}")
        fields.setdefault("phone_number", f"+1555000{n:04d}")
        user = store.create_user(
            db,
            email=email or f"user{n}@medmail.org",
            password_hash=hash_password(password),
            role=role,
            account_status=account_status,
            **fields
        )
        db.commit()
        db.refresh(user)
        return user

    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN, email="admin@medmail.org", full_name="Admin")


def auth_header(user):
    return {"Authorization": f"Bearer {create_session_token(user.id, user.email)}"}


@pytest.fixture
def auth_headers():
    return auth_header
