"""Media upload endpoints."""
import logging
import uuid

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from forum.api.deps import get_current_user, get_db, get_storage
from forum.models.media import Media
from forum.models.user import User
from forum.schemas.common import MessageResponse
from forum.schemas.media import MediaResponse
from forum.services.storage import StorageClient, StorageError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/media", tags=["media"])


def media_type_for(content_type: str | None) -> str:
    return "video" if (content_type or "").startswith("video") else "image"


@router.post("/upload", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
def upload_media(
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage),
):
    """Store a file in the bucket and record it for the caller."""
    if file is None or not file.filename:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File is required",
        )

    content = file.file.read()
    media_id = str(uuid.uuid4())
    object_path = f"{media_id}/{file.filename}"
    content_type = file.content_type or "application/octet-stream"

    try:
        storage.upload(object_path, content, content_type)
    except StorageError as exc:
        logger.error(f"Upload of {object_path} failed: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Upload failed",
        )

    media = Media(
        id=media_id,
        user_id=current_user.id,
        url=storage.public_url(object_path),
        type=media_type_for(content_type),
        name=file.filename,
        size=len(content),
    )
    try:
        db.add(media)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(f"Failed to record media {media_id}, removing uploaded object")
        try:
            storage.delete(object_path)
        except StorageError as exc:
            logger.warning(f"Cleanup of {object_path} failed: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create media record",
        )

    db.refresh(media)
    return media


@router.delete("/{media_id}", response_model=MessageResponse)
def delete_media(
    media_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    storage: StorageClient = Depends(get_storage),
):
    """Delete a media item the caller uploaded."""
    media = db.query(Media).filter(Media.id == media_id).first()
    if not media:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Media not found",
        )
    if media.user_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        )

    object_path = storage.path_from_public_url(media.url)
    if object_path:
        try:
            storage.delete(object_path)
        except StorageError as exc:
            logger.warning(f"Best-effort delete of {object_path} failed: {exc.message}")

    db.delete(media)
    db.commit()
    return MessageResponse(message="Media deleted successfully")
