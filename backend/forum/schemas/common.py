"""Shared schema helpers."""
import re

from pydantic import BaseModel

TAG_PATTERN = re.compile(r"<[^>]*>")


def strip_tags(value: str) -> str:
    """Remove anything that looks like an HTML tag."""
    return TAG_PATTERN.sub("", value)


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str
