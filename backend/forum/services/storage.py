"""Client for the hosted object storage REST API."""
from urllib.parse import quote, unquote

import httpx


class StorageError(Exception):
    """Object storage rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StorageClient:
    """Upload and delete objects in a single public bucket."""

    def __init__(self, base_url: str, service_role_key: str, bucket: str, http: httpx.Client):
        self.base_url = base_url.rstrip("/")
        self.service_role_key = service_role_key
        self.bucket = bucket
        self.http = http

    @property
    def public_prefix(self) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/"

    def _object_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/{self.bucket}/{quote(path)}"

    def public_url(self, path: str) -> str:
        return f"{self.public_prefix}{quote(path)}"

    def path_from_public_url(self, url: str) -> str | None:
        """Object path for a URL minted by public_url, or None if foreign."""
        if not url.startswith(self.public_prefix):
            return None
        return unquote(url[len(self.public_prefix):]) or None

    def upload(self, path: str, content: bytes, content_type: str) -> None:
        try:
            response = self.http.post(
                self._object_url(path),
                content=content,
                headers={
                    "Authorization": f"Bearer {self.service_role_key}",
                    "Content-Type": content_type or "application/octet-stream",
                    "x-upsert": "false",
                },
            )
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage unreachable: {exc}") from exc
        if response.is_error:
            raise StorageError(f"Upload failed: {response.text}", response.status_code)

    def delete(self, path: str) -> None:
        try:
            response = self.http.delete(
                self._object_url(path),
                headers={"Authorization": f"Bearer {self.service_role_key}"},
            )
        except httpx.HTTPError as exc:
            raise StorageError(f"Storage unreachable: {exc}") from exc
        if response.is_error:
            raise StorageError(f"Delete failed: {response.text}", response.status_code)
