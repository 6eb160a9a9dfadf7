"""Post and comment schemas."""
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from forum.models.post import Comment, Post
from forum.schemas.common import strip_tags
from forum.schemas.media import MediaResponse
from forum.schemas.user import UserSummary


class PostCreate(BaseModel):
    """New post request."""

    title: str = ""
    content: str = ""
    category: str = ""
    tags: list[str] = Field(default_factory=list)
    location: str | None = None
    media_ids: list[str] = Field(default_factory=list, alias="mediaIds")

    class Config:
        populate_by_name = True
        validate_default = True

    @field_validator("title")
    @classmethod
    def require_title(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Title is required")
        return value

    @field_validator("content")
    @classmethod
    def require_content(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Content is required")
        return value

    @field_validator("category")
    @classmethod
    def require_category(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Category is required")
        return value


class PostUpdate(BaseModel):
    """Partial post update; empty values are ignored."""

    title: str | None = None
    content: str | None = None
    category: str | None = None
    tags: list[str] | None = None
    location: str | None = None


class PostResponse(BaseModel):
    """Post with counters and author summary."""

    id: str
    title: str
    content: str
    author_id: str
    category: str
    tags: list[str]
    likes: int
    comments: int
    views: int
    shares: int
    is_pinned: bool
    is_hot: bool
    location: str | None = None
    published_at: datetime
    created_at: datetime
    updated_at: datetime
    author: UserSummary | None = None
    media: list[MediaResponse] = []

    @classmethod
    def from_post(cls, post: Post, include_author: bool = True) -> "PostResponse":
        return cls(
            id=post.id,
            title=post.title,
            content=post.content,
            author_id=post.author_id,
            category=post.category,
            tags=post.tags or [],
            likes=post.likes_count,
            comments=post.comments_count,
            views=post.views,
            shares=post.shares,
            is_pinned=post.is_pinned,
            is_hot=post.is_hot,
            location=post.location,
            published_at=post.published_at,
            created_at=post.created_at,
            updated_at=post.updated_at,
            author=UserSummary.model_validate(post.author) if include_author and post.author else None,
            media=[MediaResponse.model_validate(item) for item in post.media],
        )


class LikeToggleResponse(BaseModel):
    message: str
    liked: bool
    likes: int


class BookmarkToggleResponse(BaseModel):
    message: str
    bookmarked: bool


class CommentCreate(BaseModel):
    """Comment body; HTML tags are stripped."""

    content: str = ""

    class Config:
        validate_default = True

    @field_validator("content")
    @classmethod
    def clean_content(cls, value: str) -> str:
        content = strip_tags(value.strip())
        if not content.strip():
            raise ValueError("Content is required")
        return content


class CommentResponse(BaseModel):
    """Comment with its live like count."""

    id: str
    post_id: str
    author_id: str
    content: str
    likes: int = 0
    created_at: datetime
    updated_at: datetime
    author: UserSummary | None = None

    @classmethod
    def from_comment(cls, comment: Comment, likes: int = 0) -> "CommentResponse":
        return cls(
            id=comment.id,
            post_id=comment.post_id,
            author_id=comment.author_id,
            content=comment.content,
            likes=likes,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
            author=UserSummary.model_validate(comment.author) if comment.author else None,
        )
