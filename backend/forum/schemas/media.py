"""Media schemas."""
from pydantic import BaseModel


class MediaResponse(BaseModel):
    """Uploaded media item."""

    id: str
    type: str
    url: str
    name: str | None = None
    size: int

    class Config:
        from_attributes = True
