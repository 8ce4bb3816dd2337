"""Pydantic schemas for request and response validation."""

from datetime import datetime, timezone
from typing import Optional, List
from pydantic import BaseModel, EmailStr, field_validator


# Auth Schemas
def normalize_email(value: str) -> str:
    """Emails are stored and looked up trimmed and lowercased."""
    if not value or not value.strip():
        raise ValueError('Email cannot be empty')
    return value.strip().lower()


class UserRegister(BaseModel):
    """Schema for user registration request."""

    name: str
    email: EmailStr
    password: str

    @field_validator('name')
    @classmethod
    def name_not_empty(cls, v: str) -> str:
        """Validate that name is not empty."""
        if not v or not v.strip():
            raise ValueError('Name cannot be empty')
        return v.strip()

    @field_validator('email')
    @classmethod
    def email_normalized(cls, v: str) -> str:
        return normalize_email(v)

    @field_validator('password')
    @classmethod
    def password_long_enough(cls, v: str) -> str:
        """Validate that password has at least 8 characters."""
        if not v or len(v.strip()) < 8:
            raise ValueError('Password must be at least 8 characters')
        return v


class UserLogin(BaseModel):
    """Schema for user login request."""

    email: str
    password: str

    @field_validator('email')
    @classmethod
    def email_normalized(cls, v: str) -> str:
        """Validate that email is not empty."""
        return normalize_email(v)

    @field_validator('password')
    @classmethod
    def password_not_empty(cls, v: str) -> str:
        """Validate that password is not empty."""
        if not v or not v.strip():
            raise ValueError('Password cannot be empty')
        return v


class Token(BaseModel):
    """Schema for JWT token response."""

    access_token: str
    token_type: str


class UserProfile(BaseModel):
    """Schema for the authenticated user's profile."""

    id: int
    name: str
    email: str
    is_admin: bool
    email_verified_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class ForgotPasswordRequest(BaseModel):
    """Schema for forgot password request."""

    email: EmailStr

    @field_validator('email')
    @classmethod
    def email_normalized(cls, v: str) -> str:
        return normalize_email(v)


class ResetPasswordRequest(BaseModel):
    """Schema for reset password request."""

    token: str
    new_password: str

    @field_validator('new_password')
    @classmethod
    def password_long_enough(cls, v: str) -> str:
        if not v or len(v.strip()) < 8:
            raise ValueError('Password must be at least 8 characters')
        return v


class VerifyEmailRequest(BaseModel):
    """Schema for redeeming an email verification token."""

    token: str


# Post Schemas
def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Publish timestamps are stored as naive UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class PostCreate(BaseModel):
    """Schema for post creation request."""

    title: str
    content: str
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    published: bool = False
    published_at: Optional[datetime] = None

    @field_validator('title')
    @classmethod
    def title_not_empty(cls, v: str) -> str:
        """Validate that title is not empty."""
        if not v or not v.strip():
            raise ValueError('Title cannot be empty')
        return v.strip()

    @field_validator('published_at')
    @classmethod
    def published_at_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)


class PostUpdate(BaseModel):
    """Schema for post update request. Only fields that are sent are changed."""

    title: Optional[str] = None
    content: Optional[str] = None
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    published: Optional[bool] = None
    published_at: Optional[datetime] = None

    @field_validator('published_at')
    @classmethod
    def published_at_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _naive_utc(v)


class AuthorSummary(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class PostSummary(BaseModel):
    """Schema for post listings."""

    id: int
    title: str
    slug: str
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    published: bool
    published_at: Optional[datetime] = None
    author: AuthorSummary

    class Config:
        from_attributes = True


class PostDetail(PostSummary):
    """Schema for post detail response."""

    content: str
    created_at: datetime
    updated_at: datetime


class PostPage(BaseModel):
    items: List[PostSummary]
    page: int
    per_page: int
    total: int
    pages: int


# Comment Schemas
class CommentCreate(BaseModel):
    """Schema for comment creation; length rules are enforced by the moderation layer."""

    content: str
    parent_id: Optional[int] = None


class CommentOut(BaseModel):
    id: int
    content: str
    approved: bool
    post_id: int
    parent_id: Optional[int] = None
    author: AuthorSummary
    created_at: datetime

    class Config:
        from_attributes = True


class CommentThread(CommentOut):
    """A top-level comment with its direct replies."""

    replies: List[CommentOut] = []


class PostReference(BaseModel):
    id: int
    title: str
    slug: str

    class Config:
        from_attributes = True


class ModerationComment(CommentOut):
    """Comment as shown in the administrator moderation queue."""

    post: PostReference


class ModerationPage(BaseModel):
    items: List[ModerationComment]
    page: int
    per_page: int
    total: int
    pages: int
