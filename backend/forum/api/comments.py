"""Comment API endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload

from forum.api.deps import get_current_user, get_db
from forum.models.post import Comment, Like, Post
from forum.models.user import User
from forum.schemas.common import MessageResponse
from forum.schemas.post import CommentCreate, CommentResponse, LikeToggleResponse
from forum.services.counters import decrement

router = APIRouter(prefix="/comments", tags=["comments"])


def get_owned_comment(db: Session, comment_id: str, user: User) -> Comment:
    comment = db.query(Comment).options(joinedload(Comment.author)).filter(Comment.id == comment_id).first()
    if not comment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found",
        )
    if comment.author_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        )
    return comment


def count_comment_likes(db: Session, comment_id: str) -> int:
    return db.query(Like).filter(Like.comment_id == comment_id).count()


@router.put("/{comment_id}", response_model=CommentResponse)
def update_comment(
    comment_id: str,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Edit a comment the caller wrote."""
    comment = get_owned_comment(db, comment_id, current_user)
    comment.content = payload.content
    db.commit()
    db.refresh(comment)
    return CommentResponse.from_comment(comment, count_comment_likes(db, comment.id))


@router.delete("/{comment_id}", response_model=MessageResponse)
def delete_comment(
    comment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a comment the caller wrote."""
    comment = get_owned_comment(db, comment_id, current_user)
    post_id = comment.post_id
    db.delete(comment)
    db.flush()
    decrement(db, Post.comments_count, post_id)
    db.commit()
    return MessageResponse(message="Comment deleted successfully")


@router.post("/{comment_id}/like", response_model=LikeToggleResponse)
def toggle_comment_like(
    comment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Like or unlike a comment."""
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if not comment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found",
        )

    existing = db.query(Like).filter(
        Like.comment_id == comment.id,
        Like.user_id == current_user.id,
    ).first()
    if existing:
        db.delete(existing)
        message, liked = "Comment unliked", False
    else:
        db.add(Like(comment_id=comment.id, user_id=current_user.id))
        message, liked = "Comment liked", True
    db.commit()

    return LikeToggleResponse(message=message, liked=liked, likes=count_comment_likes(db, comment.id))
