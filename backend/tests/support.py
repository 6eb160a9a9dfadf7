"""Test harness: app factory wiring with in-memory SQLite and fake collaborators."""
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
import os
import sys
import uuid
from urllib.parse import quote

from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.orm import sessionmaker

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from forum import models  # noqa: E402,F401
from forum.config import Settings  # noqa: E402
from forum.database import Base  # noqa: E402
from forum.main import create_app  # noqa: E402
from forum.models.user import User  # noqa: E402
from forum.services.email import ResendMailer  # noqa: E402
from forum.services.identity import IdentityProviderError  # noqa: E402
from forum.services.storage import StorageClient, StorageError  # noqa: E402

TEST_JWT_SECRET = "Zx9Qw2Er7Ty4Ui1Op6As3Df8Gh5Jk0LmNbVcXaYs"
TEST_AUTH_URL = "http://auth.test"
TEST_PASSWORD = "TestPass123!"


def make_settings(**overrides) -> Settings:
    values = {
        "supabase_url": TEST_AUTH_URL,
        "supabase_anon_key": "anon-key",
        "supabase_service_role_key": "service-key",
        "supabase_jwt_secret": TEST_JWT_SECRET,
        "database_url": "sqlite://",
        "allowed_oauth_redirects": "http://localhost:5173",
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeIdentityProvider:
    """In-memory stand-in for the hosted auth API that mints real HS256 tokens."""

    def __init__(self, secret: str, audience: str = "authenticated"):
        self.secret = secret
        self.audience = audience
        self.accounts: dict[str, dict] = {}
        self.oauth_codes: dict[str, dict] = {}
        self.deleted: list[str] = []
        self.password_updates: list[tuple[str, str]] = []
        self.require_email_confirmation = False
        self.fail_password_update = False

    def mint_token(self, user_id: str, email: str, expires_in: timedelta = timedelta(hours=1)) -> str:
        claims = {
            "sub": user_id,
            "email": email,
            "aud": self.audience,
            "role": "authenticated",
            "exp": datetime.now(timezone.utc) + expires_in,
        }
        return jwt.encode(claims, self.secret, algorithm="HS256")

    def sign_up(self, email: str, password: str, name: str) -> dict:
        if email in self.accounts:
            raise IdentityProviderError("User already registered", 422)
        user_id = str(uuid.uuid4())
        self.accounts[email] = {"id": user_id, "password": password, "name": name}
        body = {"user": {"id": user_id, "email": email}}
        if not self.require_email_confirmation:
            body["access_token"] = self.mint_token(user_id, email)
        return body

    def sign_in_with_password(self, email: str, password: str) -> dict:
        account = self.accounts.get(email)
        if not account or account["password"] != password:
            raise IdentityProviderError("Invalid login credentials", 400)
        return {
            "access_token": self.mint_token(account["id"], email),
            "user": {"id": account["id"], "email": email},
        }

    def exchange_code(self, code: str, code_verifier: str = "") -> dict:
        identity_user = self.oauth_codes.pop(code, None)
        if identity_user is None:
            raise IdentityProviderError("invalid flow state", 400)
        return {
            "access_token": self.mint_token(identity_user["id"], identity_user.get("email", "")),
            "user": identity_user,
        }

    def update_password(self, user_id: str, password: str) -> None:
        if self.fail_password_update:
            raise IdentityProviderError("Password update rejected", 500)
        self.password_updates.append((user_id, password))
        for account in self.accounts.values():
            if account["id"] == user_id:
                account["password"] = password

    def delete_user(self, user_id: str) -> None:
        self.deleted.append(user_id)

    def authorize_url(self, provider: str, redirect_to: str, state: str) -> str:
        return (
            f"{TEST_AUTH_URL}/auth/v1/authorize?provider={provider}"
            f"&redirect_to={quote(redirect_to, safe='')}&state={state}"
        )


class FakeStorage(StorageClient):
    """Keeps uploaded objects in a dict; URL helpers are the real ones."""

    def __init__(self, base_url: str = TEST_AUTH_URL, bucket: str = "media"):
        super().__init__(base_url, "service-key", bucket, http=None)
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_delete = False

    def upload(self, path: str, content: bytes, content_type: str) -> None:
        self.objects[path] = content

    def delete(self, path: str) -> None:
        self.deleted.append(path)
        if self.fail_delete:
            raise StorageError("Delete failed", 500)
        self.objects.pop(path, None)


class FakeMailer(ResendMailer):
    """Records messages instead of calling the email API."""

    def __init__(self):
        super().__init__("test-key", "noreply@example.com", "http://email.test/emails", http=None)
        self.sent: list[tuple[str, str, str]] = []
        self.codes: list[tuple[str, str, str]] = []

    def send(self, to_email: str, subject: str, html_content: str) -> None:
        self.sent.append((to_email, subject, html_content))

    def send_otp(self, to_email: str, code: str, otp_type: str, ttl_minutes: int) -> None:
        self.codes.append((to_email, code, otp_type))
        super().send_otp(to_email, code, otp_type, ttl_minutes)

    def last_code(self, email: str, otp_type: str) -> str:
        for to_email, code, kind in reversed(self.codes):
            if to_email == email and kind == otp_type:
                return code
        raise AssertionError(f"no {otp_type} code sent to {email}")


@dataclass
class ForumHarness:
    client: TestClient
    session_factory: sessionmaker
    identity: FakeIdentityProvider
    storage: FakeStorage
    mailer: FakeMailer
    settings: Settings
    tokens: dict[str, str] = field(default_factory=dict)


def build_test_client(**settings_overrides) -> ForumHarness:
    settings = make_settings(**settings_overrides)
    identity = FakeIdentityProvider(settings.supabase_jwt_secret)
    storage = FakeStorage(settings.supabase_url, settings.storage_bucket)
    mailer = FakeMailer()

    app = create_app(settings, identity=identity, storage=storage, mailer=mailer)
    Base.metadata.create_all(bind=app.state.engine)

    return ForumHarness(
        client=TestClient(app, raise_server_exceptions=False),
        session_factory=app.state.session_factory,
        identity=identity,
        storage=storage,
        mailer=mailer,
        settings=settings,
    )


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def signup(harness: ForumHarness, email: str, name: str = "Test User", password: str = TEST_PASSWORD) -> dict:
    response = harness.client.post(
        "/api/v1/auth/signup",
        json={"email": email, "password": password, "name": name},
    )
    assert response.status_code == 201, response.text
    data = response.json()
    harness.tokens[email] = data["token"]
    return data


def set_role(harness: ForumHarness, user_id: str, role: str) -> None:
    db = harness.session_factory()
    try:
        user = db.query(User).filter(User.id == user_id).first()
        user.role = role
        user.is_admin = role in ("admin", "super_admin")
        db.commit()
    finally:
        db.close()


def create_post(harness: ForumHarness, token: str, title: str = "Hello", content: str = "First post", **extra) -> dict:
    response = harness.client.post(
        "/api/v1/posts",
        json={"title": title, "content": content, "category": "general", **extra},
        headers=auth_headers(token),
    )
    assert response.status_code == 201, response.text
    return response.json()
