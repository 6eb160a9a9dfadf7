"""Admin console endpoints: user management, moderation, reports and stats."""
from datetime import datetime, time
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from forum.api.deps import (
    Page,
    get_client_ip,
    get_current_admin,
    get_current_super_admin,
    get_current_user,
    get_db,
    get_identity,
    get_user_agent,
    pagination_params,
)
from forum.api.posts import delete_post, get_post_or_404
from forum.database import utc_now
from forum.models.media import Media
from forum.models.post import Bookmark, Comment, Like, Post
from forum.models.report import Report
from forum.models.user import DEFAULT_AVATAR, User
from forum.schemas.admin import (
    AdminCreate,
    AdminPostUpdate,
    AdminUserUpdate,
    PromoteRequest,
    ReportCreate,
    ReportResolve,
    ReportResolveResponse,
    ReportResponse,
    ReportStatusUpdate,
    StatsResponse,
)
from forum.schemas.common import MessageResponse
from forum.schemas.post import PostResponse
from forum.schemas.user import UserResponse
from forum.services.audit import log_security_event
from forum.services.identity import IdentityProviderError, SupabaseAuthClient
from forum.services.lockout import clear_lockout
from forum.services.permissions import ADMIN_ROLES, is_admin_role

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


def get_target_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user


def reject_self(admin: User, user_id: str, action: str) -> None:
    if admin.id == user_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot {action} yourself",
        )


def get_report_or_404(db: Session, report_id: str) -> Report:
    report = db.query(Report).options(joinedload(Report.reporter)).filter(Report.id == report_id).first()
    if not report:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Report not found",
        )
    return report


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

@router.post("/create", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_admin(
    payload: AdminCreate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_super_admin),
    identity: SupabaseAuthClient = Depends(get_identity),
):
    """Create an admin or super admin account."""
    if db.query(User).filter(User.email == payload.email).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already exists",
        )

    try:
        auth_data = identity.sign_up(payload.email, payload.password, payload.name)
    except IdentityProviderError as exc:
        logger.error(f"Auth provider refused admin account for {payload.email}: {exc.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user in auth",
        )

    user_id = (auth_data.get("user") or {}).get("id") or auth_data.get("id")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user in auth",
        )

    user = User(
        id=user_id,
        name=payload.name.strip(),
        email=payload.email,
        avatar=DEFAULT_AVATAR,
        is_admin=True,
        is_verified=True,
        is_active=True,
        role=payload.role,
        provider="email",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Super admin {current_admin.id} created {payload.role} {user.id}")
    return user


@router.get("/users", response_model=list[UserResponse])
def list_users(
    search: str = Query(""),
    role: str = Query(""),
    page: Page = Depends(pagination_params),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """List users, newest first, optionally filtered by name/email and role."""
    query = db.query(User)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if role:
        query = query.filter(User.role == role)
    return query.order_by(User.created_at.desc()).offset(page.offset).limit(page.limit).all()


@router.put("/users/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: AdminUserUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Change a user's role or active flag."""
    user = get_target_user(db, user_id)
    if payload.role:
        user.role = payload.role
        user.is_admin = is_admin_role(payload.role)
    if payload.is_active is not None:
        user.is_active = payload.is_active
    db.commit()
    db.refresh(user)
    return user


@router.delete("/users/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_super_admin),
    identity: SupabaseAuthClient = Depends(get_identity),
):
    """Delete a user from the auth provider and locally."""
    reject_self(current_admin, user_id, "delete")
    user = get_target_user(db, user_id)

    try:
        identity.delete_user(user.id)
    except IdentityProviderError as exc:
        logger.warning(f"Auth provider delete of {user.id} failed, removing local profile anyway: {exc.message}")

    db.delete(user)
    db.commit()
    return MessageResponse(message="User deleted successfully")


@router.post("/users/{user_id}/ban", response_model=MessageResponse)
def ban_user(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    reject_self(current_admin, user_id, "ban")
    user = get_target_user(db, user_id)
    user.is_active = False
    log_security_event(
        db,
        "user_banned",
        True,
        user_id=user.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        details=f"Banned by admin {current_admin.id}",
    )
    db.commit()
    return MessageResponse(message="User banned successfully")


@router.post("/users/{user_id}/unban", response_model=MessageResponse)
def unban_user(
    user_id: str,
    request: Request,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Reactivate a user and clear any login lockout."""
    user = get_target_user(db, user_id)
    user.is_active = True
    clear_lockout(db, user.id)
    log_security_event(
        db,
        "user_unbanned",
        True,
        user_id=user.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        details=f"Unbanned by admin {current_admin.id}",
    )
    db.commit()
    return MessageResponse(message="User unbanned successfully")


@router.post("/users/{user_id}/promote", response_model=MessageResponse)
def promote_user(
    user_id: str,
    request: Request,
    payload: PromoteRequest | None = Body(None),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_super_admin),
):
    """Set a user's role (defaults to admin)."""
    reject_self(current_admin, user_id, "promote")
    role = payload.role if payload else "admin"
    user = get_target_user(db, user_id)
    user.role = role
    user.is_admin = is_admin_role(role)
    log_security_event(
        db,
        "user_promoted",
        True,
        user_id=user.id,
        ip_address=get_client_ip(request),
        user_agent=get_user_agent(request),
        details=f"Promoted to {role} by super_admin {current_admin.id}",
    )
    db.commit()
    return MessageResponse(message="User promoted successfully")


@router.post("/users/{user_id}/verify", response_model=MessageResponse)
def verify_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    user = get_target_user(db, user_id)
    user.is_verified = True
    db.commit()
    return MessageResponse(message="User verified successfully")


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------

@router.get("/posts", response_model=list[PostResponse])
def list_all_posts(
    page: Page = Depends(pagination_params),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    posts = db.query(Post).options(joinedload(Post.author)).order_by(
        Post.created_at.desc(),
    ).offset(page.offset).limit(page.limit).all()
    return [PostResponse.from_post(post) for post in posts]


@router.put("/posts/{post_id}", response_model=PostResponse)
def moderate_post(
    post_id: str,
    payload: AdminPostUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Pin or flag a post as hot."""
    post = get_post_or_404(db, post_id)
    if payload.is_pinned is not None:
        post.is_pinned = payload.is_pinned
    if payload.is_hot is not None:
        post.is_hot = payload.is_hot
    db.commit()
    return PostResponse.from_post(get_post_or_404(db, post_id))


@router.delete("/posts/{post_id}", response_model=MessageResponse)
def remove_any_post(
    post_id: str,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    post = get_post_or_404(db, post_id)
    delete_post(db, post)
    db.commit()
    logger.info(f"Admin {current_admin.id} deleted post {post_id}")
    return MessageResponse(message="Post deleted successfully")


# ---------------------------------------------------------------------------
# Stats
# ---------------------------------------------------------------------------

@router.get("/stats", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Dashboard counts; "today" starts at UTC midnight."""
    today = datetime.combine(utc_now().date(), time.min)
    total_users = db.query(User).count()
    return StatsResponse(
        total_users=total_users,
        total_posts=db.query(Post).count(),
        total_comments=db.query(Comment).count(),
        total_admins=db.query(User).filter(User.role.in_(ADMIN_ROLES)).count(),
        active_users=db.query(User).filter(User.is_active.is_(True)).count(),
        new_users_today=db.query(User).filter(User.created_at >= today).count(),
        new_posts_today=db.query(Post).filter(Post.created_at >= today).count(),
        new_comments_today=db.query(Comment).filter(Comment.created_at >= today).count(),
        total_likes=db.query(Like).count(),
        total_bookmarks=db.query(Bookmark).count(),
        total_media=db.query(Media).count(),
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------

@router.get("/reports", response_model=list[ReportResponse])
def list_reports(
    report_status: str = Query("", alias="status"),
    page: Page = Depends(pagination_params),
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    query = db.query(Report).options(joinedload(Report.reporter))
    if report_status:
        query = query.filter(Report.status == report_status)
    return query.order_by(Report.created_at.desc()).offset(page.offset).limit(page.limit).all()


@router.post("/reports", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
def create_report(
    payload: ReportCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """File a report; open to any signed-in user."""
    if payload.post_id and not db.query(Post.id).filter(Post.id == payload.post_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found",
        )
    if payload.comment_id and not db.query(Comment.id).filter(Comment.id == payload.comment_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Comment not found",
        )

    report = Report(
        reporter_id=current_user.id,
        post_id=payload.post_id or None,
        comment_id=payload.comment_id or None,
        reason=payload.reason,
        status="pending",
    )
    db.add(report)
    db.commit()
    return get_report_or_404(db, report.id)


@router.put("/reports/{report_id}", response_model=ReportResponse)
def update_report(
    report_id: str,
    payload: ReportStatusUpdate,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    """Record a review decision."""
    report = get_report_or_404(db, report_id)
    report.status = payload.status
    report.reviewed_by = current_admin.id
    report.reviewed_at = utc_now()
    db.commit()
    return get_report_or_404(db, report_id)


@router.post("/reports/{report_id}/resolve", response_model=ReportResolveResponse)
def resolve_report(
    report_id: str,
    payload: ReportResolve,
    db: Session = Depends(get_db),
    current_admin: User = Depends(get_current_admin),
):
    report = get_report_or_404(db, report_id)
    report.status = payload.status
    report.resolved_by = current_admin.id
    report.resolved_at = utc_now()
    db.commit()
    return ReportResolveResponse(
        message="Report resolved successfully",
        report=ReportResponse.model_validate(get_report_or_404(db, report_id)),
    )
