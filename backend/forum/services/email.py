"""Transactional email through the Resend HTTP API."""
import logging
import re

import httpx

logger = logging.getLogger(__name__)

OTP_SUBJECTS = {
    "2fa": "Your verification code",
    "password_reset": "Reset your password",
}


class EmailDeliveryError(Exception):
    """The email API rejected a message or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ResendMailer:
    """Send HTML email; disabled when no API key is configured."""

    def __init__(self, api_key: str, sender: str, api_url: str, http: httpx.Client):
        self.api_key = api_key
        self.sender = sender
        self.api_url = api_url
        self.http = http

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    def send(self, to_email: str, subject: str, html_content: str) -> None:
        if not self.enabled:
            logger.info(f"Email not configured, skipping message to {to_email}")
            return

        # Plain text fallback
        text = re.sub(r"<[^>]+>", "", html_content.replace("<br>", "\n").replace("</p>", "\n\n")).strip()
        try:
            response = self.http.post(
                self.api_url,
                json={
                    "from": self.sender,
                    "to": [to_email],
                    "subject": subject,
                    "html": html_content,
                    "text": text,
                },
                headers={"Authorization": f"Bearer {self.api_key}"},
            )
        except httpx.HTTPError as exc:
            raise EmailDeliveryError(f"Email API unreachable: {exc}") from exc
        if response.is_error:
            raise EmailDeliveryError(f"Email API returned {response.status_code}", response.status_code)

    def send_otp(self, to_email: str, code: str, otp_type: str, ttl_minutes: int) -> None:
        subject = OTP_SUBJECTS.get(otp_type, "Your verification code")
        self.send(to_email, subject, generate_otp_html(code, otp_type, ttl_minutes))


def generate_otp_html(code: str, otp_type: str, ttl_minutes: int) -> str:
    """HTML body for a one-time code message."""
    if otp_type == "password_reset":
        intro = "Use this code to reset your Tech Bant Community password."
    else:
        intro = "Use this code to finish signing in to Tech Bant Community."
    return f"""
    <html>
    <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
        <p>{intro}</p>
        <p style="font-size: 28px; font-weight: bold; letter-spacing: 6px;">{code}</p>
        <p>The code expires in {ttl_minutes} minutes.</p>
        <p style="margin-top: 24px; padding-top: 16px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 12px;">
            If you did not request this code you can ignore this email.
        </p>
    </body>
    </html>
    """
