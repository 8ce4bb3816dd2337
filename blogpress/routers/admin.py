"""Admin router for post management and comment moderation."""

import logging
from typing import Optional, Literal
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from blogpress import moderation, publishing
from blogpress.auth import require_admin
from blogpress.database import get_db
from blogpress.models import User
from blogpress.schemas import (
    ModerationComment,
    ModerationPage,
    CommentOut,
    PostCreate,
    PostDetail,
    PostPage,
    PostSummary,
    PostUpdate,
)

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])

STATUS_FILTERS = {"pending": False, "approved": True}


@router.get("/posts", response_model=PostPage)
def list_all_posts(
    page: int = Query(1, ge=1),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List every post, drafts and scheduled posts included, newest first."""
    logger.info(f"Admin post listing (page {page}) by {current_user.email}")
    result = publishing.list_all_posts(db, page)
    return PostPage(
        items=[PostSummary.model_validate(post) for post in result.items],
        page=result.page,
        per_page=result.per_page,
        total=result.total,
        pages=result.pages
    )


@router.post("/posts", response_model=PostDetail, status_code=status.HTTP_201_CREATED)
def create_post(
    post_data: PostCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Create a post owned by the current administrator.

    Raises:
        ValidationFailed: If an explicit slug is already in use
    """
    logger.info(f"Creating new post: {post_data.title}")
    return publishing.create_post(db, current_user, post_data)


@router.patch("/posts/{post_id}", response_model=PostDetail)
def update_post(
    post_id: int,
    update_data: PostUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Update post fields; omitted fields are left unchanged.

    Raises:
        NotFound: If post not found
        ValidationFailed: If the title is blanked or the slug is taken
    """
    logger.info(f"Updating post {post_id}")
    post = publishing.get_post(db, post_id)
    return publishing.update_post(db, post, update_data)


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_post(
    post_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a post together with all of its comments."""
    logger.info(f"Post {post_id} deletion requested by {current_user.email}")
    post = publishing.get_post(db, post_id)
    publishing.delete_post(db, post)


@router.get("/comments", response_model=ModerationPage)
def list_comments(
    page: int = Query(1, ge=1),
    status_filter: Optional[Literal["pending", "approved"]] = Query(None, alias="status"),
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Moderation queue: all comments across posts, newest first.

    Args:
        page: 1-based page number
        status_filter: "pending" or "approved" to narrow the queue
    """
    logger.info(f"Moderation listing (page {page}, status {status_filter}) by {current_user.email}")
    approved = STATUS_FILTERS.get(status_filter) if status_filter else None
    result = moderation.list_for_moderation(db, page, approved=approved)
    return ModerationPage(
        items=[ModerationComment.model_validate(comment) for comment in result.items],
        page=result.page,
        per_page=result.per_page,
        total=result.total,
        pages=result.pages
    )


@router.patch("/comments/{comment_id}/toggle-approval", response_model=CommentOut)
def toggle_comment_approval(
    comment_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Approve a pending comment, or hide an approved one."""
    comment = moderation.get_comment(db, comment_id)
    return moderation.toggle_approval(db, comment, current_user)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_comment(
    comment_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete any comment, with its replies."""
    comment = moderation.get_comment(db, comment_id)
    moderation.delete_comment(db, comment, current_user)
