"""Token, code and hashing primitives."""
import base64
import hashlib
import secrets

import bcrypt
from jose import JWTError, jwt

OTP_MIN = 100000
OTP_MAX = 999999


class InvalidTokenError(Exception):
    """Bearer token failed signature, expiry or claim checks."""


def decode_access_token(token: str, secret: str, algorithm: str, audience: str | None) -> dict:
    """Verify a provider-issued access token and return its claims."""
    try:
        claims = jwt.decode(token, secret, algorithms=[algorithm], audience=audience)
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc
    if not claims.get("sub"):
        raise InvalidTokenError("Token has no subject")
    return claims


def generate_opaque_token(num_bytes: int = 32) -> str:
    """Random URL-safe token without padding, used for session ids and OAuth state."""
    return base64.urlsafe_b64encode(secrets.token_bytes(num_bytes)).decode("ascii").rstrip("=")


def generate_otp_code() -> str:
    """Six-digit numeric code from the OS CSPRNG."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def hash_otp_code(code: str) -> str:
    """Hash a one-time code before persisting."""
    return bcrypt.hashpw(code.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_otp_code(code: str, hashed_code: str) -> bool:
    """Verify a one-time code against its stored hash."""
    try:
        return bcrypt.checkpw(code.encode("utf-8"), hashed_code.encode("utf-8"))
    except ValueError:
        return False


def content_hash(author_id: str, title: str, content: str) -> str:
    """Fingerprint used to reject identical repeated posts from one author."""
    return hashlib.sha256(f"{author_id}:{title}:{content}".encode("utf-8")).hexdigest()
