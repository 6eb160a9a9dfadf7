"""Authentication schemas."""
from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from forum.schemas.user import UserResponse


def _require_email(value: str) -> str:
    value = value.strip()
    if not value or "@" not in value:
        raise ValueError("Valid email is required")
    return value


class SignupRequest(BaseModel):
    """User signup request."""

    email: str = ""
    password: str = ""
    name: str = ""

    class Config:
        validate_default = True

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _require_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("Password must be at least 8 characters")
        return value

    @field_validator("name")
    @classmethod
    def validate_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Name is required")
        return value.strip()


class LoginRequest(BaseModel):
    """User login request."""

    email: str = ""
    password: str = ""

    class Config:
        validate_default = True

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        return _require_email(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Password is required")
        return value


class RefreshRequest(BaseModel):
    """Token refresh request; the refresh token is a session id."""

    refresh_token: str = Field("", alias="refreshToken")

    class Config:
        populate_by_name = True
        validate_default = True

    @field_validator("refresh_token")
    @classmethod
    def validate_refresh_token(cls, value: str) -> str:
        if not value:
            raise ValueError("Refresh token is required")
        return value


class LogoutRequest(BaseModel):
    """Logout request naming the session to end."""

    refresh_token: str | None = Field(
        None,
        validation_alias=AliasChoices("refreshToken", "sessionId", "refresh_token"),
    )


class ChangePasswordRequest(BaseModel):
    current_password: str | None = Field(None, alias="currentPassword")
    new_password: str = Field("", alias="newPassword")

    class Config:
        populate_by_name = True
        validate_default = True

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        if len(value) < 8:
            raise ValueError("New password must be at least 8 characters")
        return value


class EmailRequest(BaseModel):
    """Request carrying only an email (send OTP, reset password)."""

    email: str = ""

    class Config:
        validate_default = True

    @field_validator("email")
    @classmethod
    def require_email(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Email is required")
        return value.strip()


class VerifyOTPRequest(BaseModel):
    code: str = ""
    email: str | None = None

    class Config:
        validate_default = True

    @field_validator("code")
    @classmethod
    def require_code(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Code is required")
        return value.strip()


class ResetPasswordConfirm(BaseModel):
    """Password reset confirmation with the emailed code."""

    email: str = ""
    otp_code: str = Field("", alias="otpCode")
    new_password: str = Field("", alias="newPassword")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def check_fields(self) -> "ResetPasswordConfirm":
        if not self.email or not self.otp_code or not self.new_password:
            raise ValueError("Email, OTP code, and new password are required")
        if len(self.new_password) < 8:
            raise ValueError("Password must be at least 8 characters")
        return self


class AuthResponse(BaseModel):
    """Bearer token, refresh handle and the caller's profile."""

    token: str
    refresh_token: str = Field(serialization_alias="refreshToken")
    expires_in: int = Field(86400, serialization_alias="expiresIn")
    user: UserResponse
    roles: list[str]
    permissions: list[str]


class VerifyResponse(BaseModel):
    user: UserResponse


class OAuthStartResponse(BaseModel):
    auth_url: str
    state: str
