"""Client for the hosted Supabase-compatible Auth REST API.

Passwords never touch this service's database: signup, password checks,
password changes and OAuth code exchange are all forwarded to the provider.
"""
import logging
from urllib.parse import quote, urlencode

import httpx

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """The auth provider rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class SupabaseAuthClient:
    """Thin wrapper over the `/auth/v1` endpoints."""

    def __init__(self, base_url: str, anon_key: str, service_role_key: str, http: httpx.Client):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.service_role_key = service_role_key
        self.http = http

    def _public_headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", "apikey": self.anon_key}

    def _admin_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }

    def _post(self, path: str, payload: dict, headers: dict[str, str]) -> dict:
        try:
            response = self.http.post(f"{self.base_url}{path}", json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Auth provider unreachable: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.is_error:
            message = (
                body.get("msg")
                or body.get("error_description")
                or body.get("message")
                or body.get("error")
                or f"Auth provider returned {response.status_code}"
            )
            raise IdentityProviderError(str(message), response.status_code)
        return body

    def sign_up(self, email: str, password: str, name: str) -> dict:
        """Create an identity; the response carries `user` and, unless email
        confirmation is required, an `access_token`."""
        return self._post(
            "/auth/v1/signup",
            {"email": email, "password": password, "data": {"name": name}},
            self._public_headers(),
        )

    def sign_in_with_password(self, email: str, password: str) -> dict:
        """Password grant. Raises IdentityProviderError on bad credentials."""
        return self._post(
            "/auth/v1/token?grant_type=password",
            {"email": email, "password": password},
            self._public_headers(),
        )

    def exchange_code(self, code: str, code_verifier: str = "") -> dict:
        """Exchange an OAuth authorization code, trying PKCE first."""
        try:
            return self._post(
                "/auth/v1/token?grant_type=pkce",
                {"auth_code": code, "code_verifier": code_verifier},
                self._public_headers(),
            )
        except IdentityProviderError as exc:
            logger.info(f"PKCE exchange failed ({exc.message}), retrying with authorization_code grant")
        return self._post(
            "/auth/v1/token?grant_type=authorization_code",
            {"code": code},
            self._public_headers(),
        )

    def update_password(self, user_id: str, password: str) -> None:
        try:
            response = self.http.put(
                f"{self.base_url}/auth/v1/admin/users/{quote(user_id, safe='')}",
                json={"password": password},
                headers=self._admin_headers(),
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Auth provider unreachable: {exc}") from exc
        if response.is_error:
            raise IdentityProviderError("Password update rejected", response.status_code)

    def delete_user(self, user_id: str) -> None:
        try:
            response = self.http.delete(
                f"{self.base_url}/auth/v1/admin/users/{quote(user_id, safe='')}",
                headers=self._admin_headers(),
            )
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Auth provider unreachable: {exc}") from exc
        if response.is_error and response.status_code != 404:
            raise IdentityProviderError("User deletion rejected", response.status_code)

    def authorize_url(self, provider: str, redirect_to: str, state: str) -> str:
        query = urlencode({"provider": provider, "redirect_to": redirect_to, "state": state})
        return f"{self.base_url}/auth/v1/authorize?{query}"
