"""User profile and follow graph endpoints."""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from forum.api.deps import Page, get_current_user, get_db, pagination_params
from forum.models.post import Bookmark, Post
from forum.models.user import Follow, User
from forum.schemas.common import MessageResponse
from forum.schemas.post import PostResponse
from forum.schemas.user import UserResponse, UserSummary, UserUpdate
from forum.services.counters import decrement, increment

router = APIRouter(prefix="/users", tags=["users"])

SEARCH_DEFAULT_LIMIT = 10
SEARCH_MAX_LIMIT = 100


def get_user_or_404(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


def reconcile_posts_count(db: Session, user: User) -> User:
    """Repair a drifted posts_count from the real number of posts."""
    actual = db.query(Post).filter(Post.author_id == user.id).count()
    if actual != user.posts_count:
        user.posts_count = actual
        db.commit()
        db.refresh(user)
    return user


@router.get("/search", response_model=list[UserResponse])
def search_users(
    q: str = Query(""),
    limit: int = Query(SEARCH_DEFAULT_LIMIT),
    db: Session = Depends(get_db),
):
    """Case-insensitive name/email search."""
    if not q:
        return []
    if limit <= 0:
        limit = SEARCH_DEFAULT_LIMIT
    limit = min(limit, SEARCH_MAX_LIMIT)

    pattern = f"%{q}%"
    return db.query(User).filter(
        or_(User.name.ilike(pattern), User.email.ilike(pattern)),
    ).order_by(User.name).limit(limit).all()


@router.get("/me", response_model=UserResponse)
def get_me(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return reconcile_posts_count(db, current_user)


@router.put("/me", response_model=UserResponse)
def update_me(
    payload: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update the caller's profile; omitted fields are left unchanged."""
    if payload.name is not None:
        current_user.name = payload.name
    for field in ("bio", "location", "website", "avatar"):
        if field in payload.model_fields_set:
            setattr(current_user, field, getattr(payload, field))
    db.commit()
    db.refresh(current_user)
    return current_user


@router.get("/me/bookmarks", response_model=list[PostResponse])
def get_my_bookmarks(
    page: Page = Depends(pagination_params),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Posts the caller bookmarked, most recently saved first."""
    bookmarks = db.query(Bookmark).options(
        joinedload(Bookmark.post).joinedload(Post.author),
    ).filter(
        Bookmark.user_id == current_user.id,
    ).order_by(Bookmark.created_at.desc()).offset(page.offset).limit(page.limit).all()
    return [PostResponse.from_post(bookmark.post) for bookmark in bookmarks]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(user_id: str, db: Session = Depends(get_db)):
    return reconcile_posts_count(db, get_user_or_404(db, user_id))


@router.get("/{user_id}/posts", response_model=list[PostResponse])
def get_user_posts(
    user_id: str,
    page: Page = Depends(pagination_params),
    db: Session = Depends(get_db),
):
    posts = db.query(Post).filter(
        Post.author_id == user_id,
    ).order_by(Post.created_at.desc()).offset(page.offset).limit(page.limit).all()
    return [PostResponse.from_post(post, include_author=False) for post in posts]


@router.post("/{user_id}/follow", response_model=MessageResponse)
def toggle_follow(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Follow or unfollow another user."""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot follow yourself",
        )
    target = get_user_or_404(db, user_id)

    existing = db.query(Follow).filter(
        Follow.follower_id == current_user.id,
        Follow.following_id == target.id,
    ).first()

    if existing:
        db.delete(existing)
        decrement(db, User.following_count, current_user.id)
        decrement(db, User.followers_count, target.id)
        message = "Unfollowed successfully"
    else:
        db.add(Follow(follower_id=current_user.id, following_id=target.id))
        increment(db, User.following_count, current_user.id)
        increment(db, User.followers_count, target.id)
        message = "Followed successfully"
    db.commit()
    return MessageResponse(message=message)


@router.get("/{user_id}/followers", response_model=list[UserSummary])
def get_followers(user_id: str, db: Session = Depends(get_db)):
    return db.query(User).join(Follow, Follow.follower_id == User.id).filter(
        Follow.following_id == user_id,
    ).order_by(Follow.created_at.desc()).all()


@router.get("/{user_id}/following", response_model=list[UserSummary])
def get_following(user_id: str, db: Session = Depends(get_db)):
    return db.query(User).join(Follow, Follow.following_id == User.id).filter(
        Follow.follower_id == user_id,
    ).order_by(Follow.created_at.desc()).all()
