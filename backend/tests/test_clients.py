import json
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import httpx
import pytest

from forum.services.email import EmailDeliveryError, ResendMailer, generate_otp_html
from forum.services.identity import IdentityProviderError, SupabaseAuthClient
from forum.services.storage import StorageClient, StorageError

BASE_URL = "https://project.supabase.co"


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_sign_in_posts_password_grant():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"access_token": "abc", "user": {"id": "u1"}})

    auth = SupabaseAuthClient(BASE_URL, "anon", "service", _client(handler))
    body = auth.sign_in_with_password("a@example.com", "secret123")

    assert body["access_token"] == "abc"
    request = seen[0]
    assert str(request.url) == f"{BASE_URL}/auth/v1/token?grant_type=password"
    assert request.headers["apikey"] == "anon"
    assert json.loads(request.content) == {"email": "a@example.com", "password": "secret123"}


def test_provider_error_message_is_surfaced():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error_description": "Invalid login credentials"})

    auth = SupabaseAuthClient(BASE_URL, "anon", "service", _client(handler))

    with pytest.raises(IdentityProviderError) as excinfo:
        auth.sign_in_with_password("a@example.com", "wrong")
    assert excinfo.value.message == "Invalid login credentials"
    assert excinfo.value.status_code == 400


def test_exchange_code_falls_back_to_authorization_code_grant():
    grants = []

    def handler(request: httpx.Request) -> httpx.Response:
        grant = request.url.params["grant_type"]
        grants.append(grant)
        if grant == "pkce":
            return httpx.Response(400, json={"msg": "invalid flow state"})
        return httpx.Response(200, json={"access_token": "t", "user": {"id": "g1"}})

    auth = SupabaseAuthClient(BASE_URL, "anon", "service", _client(handler))

    assert auth.exchange_code("code-1")["user"]["id"] == "g1"
    assert grants == ["pkce", "authorization_code"]


def test_admin_calls_use_service_role_and_ignore_missing_user_on_delete():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if request.method == "DELETE":
            return httpx.Response(404, json={"msg": "User not found"})
        return httpx.Response(200, json={})

    auth = SupabaseAuthClient(BASE_URL, "anon", "service", _client(handler))
    auth.update_password("u1", "NewPass123")
    auth.delete_user("u1")

    assert [request.method for request in seen] == ["PUT", "DELETE"]
    assert all(request.headers["authorization"] == "Bearer service" for request in seen)
    assert seen[0].url.path == "/auth/v1/admin/users/u1"


def test_unreachable_provider_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    auth = SupabaseAuthClient(BASE_URL, "anon", "service", _client(handler))

    with pytest.raises(IdentityProviderError, match="unreachable"):
        auth.sign_up("a@example.com", "secret123", "A")


def test_authorize_url_encodes_redirect():
    auth = SupabaseAuthClient(BASE_URL, "anon", "service", None)

    url = auth.authorize_url("google", "https://app.example.com/cb?x=1", "st")

    assert url.startswith(f"{BASE_URL}/auth/v1/authorize?provider=google&redirect_to=https%3A%2F%2F")
    assert url.endswith("&state=st")


def test_storage_upload_and_delete_paths():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"Key": "media/x"})

    storage = StorageClient(BASE_URL, "service", "media", _client(handler))
    storage.upload("abc/my file.png", b"data", "image/png")
    public_url = storage.public_url("abc/my file.png")
    storage.delete(storage.path_from_public_url(public_url))

    assert public_url == f"{BASE_URL}/storage/v1/object/public/media/abc/my%20file.png"
    assert [request.url.raw_path for request in seen] == [
        b"/storage/v1/object/media/abc/my%20file.png",
        b"/storage/v1/object/media/abc/my%20file.png",
    ]
    assert seen[0].headers["x-upsert"] == "false"
    assert seen[0].headers["content-type"] == "image/png"


def test_storage_rejects_foreign_urls_and_errors():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(409, text="Duplicate")

    storage = StorageClient(BASE_URL, "service", "media", _client(handler))

    assert storage.path_from_public_url("https://elsewhere.example.com/a.png") is None
    with pytest.raises(StorageError) as excinfo:
        storage.upload("a.png", b"x", "image/png")
    assert excinfo.value.status_code == 409


def test_mailer_sends_html_with_plain_text_fallback():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"id": "email-1"})

    mailer = ResendMailer("re_key", "noreply@example.com", "https://api.resend.test/emails", _client(handler))
    mailer.send_otp("to@example.com", "482913", "password_reset", 10)

    payload = json.loads(seen[0].content)
    assert payload["to"] == ["to@example.com"]
    assert payload["subject"] == "Reset your password"
    assert "482913" in payload["html"]
    assert "482913" in payload["text"]
    assert "<p" not in payload["text"]
    assert seen[0].headers["authorization"] == "Bearer re_key"


def test_mailer_without_key_is_disabled():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    mailer = ResendMailer("", "noreply@example.com", "https://api.resend.test/emails", _client(handler))

    assert not mailer.enabled
    mailer.send("to@example.com", "Subject", "<p>Hi</p>")


def test_mailer_raises_on_api_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "invalid from"})

    mailer = ResendMailer("re_key", "bad", "https://api.resend.test/emails", _client(handler))

    with pytest.raises(EmailDeliveryError):
        mailer.send("to@example.com", "Subject", "<p>Hi</p>")


def test_otp_html_mentions_expiry():
    html = generate_otp_html("123456", "2fa", 10)

    assert "123456" in html
    assert "10 minutes" in html
