"""Posts API endpoints, including likes, bookmarks and comments on a post."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from forum.api.deps import Page, get_current_user, get_db, pagination_params
from forum.models.media import Media
from forum.models.post import Bookmark, Comment, Like, Post
from forum.models.user import User
from forum.schemas.common import MessageResponse
from forum.schemas.post import (
    BookmarkToggleResponse,
    CommentCreate,
    CommentResponse,
    LikeToggleResponse,
    PostCreate,
    PostResponse,
    PostUpdate,
)
from forum.services.counters import decrement, increment
from forum.services.security import content_hash

router = APIRouter(prefix="/posts", tags=["posts"])


def get_post_or_404(db: Session, post_id: str) -> Post:
    post = db.query(Post).options(joinedload(Post.author)).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    return post


def get_owned_post(db: Session, post_id: str, user: User) -> Post:
    post = get_post_or_404(db, post_id)
    if post.author_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized",
        )
    return post


def delete_post(db: Session, post: Post) -> None:
    """Delete a post with its comments, likes and bookmarks; media is detached."""
    author_id = post.author_id
    db.delete(post)
    db.flush()
    decrement(db, User.posts_count, author_id)


def comment_like_counts(db: Session, comment_ids: list[str]) -> dict[str, int]:
    if not comment_ids:
        return {}
    rows = db.query(Like.comment_id, func.count(Like.id)).filter(
        Like.comment_id.in_(comment_ids),
    ).group_by(Like.comment_id).all()
    return {comment_id: count for comment_id, count in rows}


@router.get("", response_model=list[PostResponse])
def list_posts(
    category: str | None = Query(None),
    page: Page = Depends(pagination_params),
    db: Session = Depends(get_db),
):
    """List posts, newest first."""
    query = db.query(Post).options(joinedload(Post.author))
    if category:
        query = query.filter(Post.category == category)
    posts = query.order_by(Post.created_at.desc()).offset(page.offset).limit(page.limit).all()
    return [PostResponse.from_post(post) for post in posts]


@router.post("", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
def create_post(
    payload: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Create a post; identical title and content from the same author is rejected."""
    fingerprint = content_hash(current_user.id, payload.title, payload.content)
    duplicate = db.query(Post.id).filter(
        Post.author_id == current_user.id,
        Post.content_hash == fingerprint,
    ).first()
    if duplicate:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Duplicate post detected",
        )

    post = Post(
        author_id=current_user.id,
        title=payload.title,
        content=payload.content,
        category=payload.category,
        tags=payload.tags,
        location=payload.location or None,
        content_hash=fingerprint,
    )
    db.add(post)
    db.flush()

    if payload.media_ids:
        db.query(Media).filter(
            Media.id.in_(payload.media_ids),
            Media.user_id == current_user.id,
        ).update({"post_id": post.id}, synchronize_session=False)

    increment(db, User.posts_count, current_user.id)
    db.commit()

    return PostResponse.from_post(get_post_or_404(db, post.id))


@router.get("/{post_id}", response_model=PostResponse)
def get_post(post_id: str, db: Session = Depends(get_db)):
    """Get a post and count the view."""
    post = get_post_or_404(db, post_id)
    increment(db, Post.views, post.id)
    db.commit()
    return PostResponse.from_post(get_post_or_404(db, post_id))


@router.put("/{post_id}", response_model=PostResponse)
def update_post(
    post_id: str,
    payload: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update a post the caller owns."""
    post = get_owned_post(db, post_id, current_user)

    for field in ("title", "content", "category", "tags", "location"):
        value = getattr(payload, field)
        if value:
            setattr(post, field, value)
    if payload.title or payload.content:
        post.content_hash = content_hash(post.author_id, post.title, post.content)

    db.commit()
    return PostResponse.from_post(get_post_or_404(db, post_id))


@router.delete("/{post_id}", response_model=MessageResponse)
def remove_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Delete a post the caller owns."""
    post = get_owned_post(db, post_id, current_user)
    delete_post(db, post)
    db.commit()
    return MessageResponse(message="Post deleted successfully")


@router.post("/{post_id}/like", response_model=LikeToggleResponse)
def toggle_post_like(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Like or unlike a post."""
    post = get_post_or_404(db, post_id)
    existing = db.query(Like).filter(
        Like.post_id == post.id,
        Like.user_id == current_user.id,
    ).first()

    if existing:
        db.delete(existing)
        decrement(db, Post.likes_count, post.id)
        message, liked = "Post unliked", False
    else:
        db.add(Like(post_id=post.id, user_id=current_user.id))
        increment(db, Post.likes_count, post.id)
        message, liked = "Post liked", True
    db.commit()

    likes = db.query(Post.likes_count).filter(Post.id == post.id).scalar() or 0
    return LikeToggleResponse(message=message, liked=liked, likes=likes)


@router.post("/{post_id}/bookmark", response_model=BookmarkToggleResponse)
def toggle_bookmark(
    post_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Bookmark or unbookmark a post."""
    post = get_post_or_404(db, post_id)
    existing = db.query(Bookmark).filter(
        Bookmark.post_id == post.id,
        Bookmark.user_id == current_user.id,
    ).first()

    if existing:
        db.delete(existing)
        db.commit()
        return BookmarkToggleResponse(message="Post unbookmarked", bookmarked=False)

    db.add(Bookmark(post_id=post.id, user_id=current_user.id))
    db.commit()
    return BookmarkToggleResponse(message="Post bookmarked", bookmarked=True)


@router.get("/{post_id}/comments", response_model=list[CommentResponse])
def list_comments(
    post_id: str,
    page: Page = Depends(pagination_params),
    db: Session = Depends(get_db),
):
    """List comments on a post, newest first, with like counts."""
    comments = db.query(Comment).options(joinedload(Comment.author)).filter(
        Comment.post_id == post_id,
    ).order_by(Comment.created_at.desc()).offset(page.offset).limit(page.limit).all()

    likes = comment_like_counts(db, [comment.id for comment in comments])
    return [CommentResponse.from_comment(comment, likes.get(comment.id, 0)) for comment in comments]


@router.post("/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def create_comment(
    post_id: str,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Comment on a post."""
    post = get_post_or_404(db, post_id)
    comment = Comment(post_id=post.id, author_id=current_user.id, content=payload.content)
    db.add(comment)
    db.flush()
    increment(db, Post.comments_count, post.id)
    db.commit()
    db.refresh(comment)
    return CommentResponse.from_comment(comment, 0)
