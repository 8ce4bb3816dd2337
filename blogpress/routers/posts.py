"""Public blog router: post listing, post detail and comment threads."""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from blogpress import moderation, publishing
from blogpress.auth import get_current_user, get_optional_user
from blogpress.database import get_db
from blogpress.models import User
from blogpress.schemas import (
    CommentCreate,
    CommentOut,
    CommentThread,
    PostDetail,
    PostPage,
    PostSummary,
)

# Configure logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["Blog"])


def thread_to_schema(thread: moderation.CommentThread) -> CommentThread:
    """Serialize a comment thread with its replies."""
    data = CommentOut.model_validate(thread.comment).model_dump()
    data["replies"] = [CommentOut.model_validate(reply) for reply in thread.replies]
    return CommentThread(**data)


# GET /posts
@router.get("", response_model=PostPage)
def list_posts(page: int = Query(1, ge=1), db: Session = Depends(get_db)):
    """
    List public posts, most recently published first.

    Args:
        page: 1-based page number
        db: Database session

    Returns:
        PostPage: One page of public posts
    """
    logger.info(f"Fetching public posts, page {page}")
    result = publishing.list_public_posts(db, page)
    return PostPage(
        items=[PostSummary.model_validate(post) for post in result.items],
        page=result.page,
        per_page=result.per_page,
        total=result.total,
        pages=result.pages
    )


# GET /posts/{slug}
@router.get("/{slug}", response_model=PostDetail)
def get_post(
    slug: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """
    Get a public post by slug. Administrators may also open drafts and scheduled posts.

    Raises:
        NotFound: If the post does not exist or is hidden from the viewer
    """
    logger.info(f"Fetching post {slug}")
    return publishing.get_visible_post(db, slug, viewer)


# GET /posts/{slug}/comments
@router.get("/{slug}/comments", response_model=List[CommentThread])
def get_post_comments(
    slug: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """List the approved comment threads of a post, newest first."""
    post = publishing.get_visible_post(db, slug, viewer)
    threads = moderation.comment_tree(db, post, viewer)
    return [thread_to_schema(thread) for thread in threads]


# POST /posts/{slug}/comments
@router.post("/{slug}/comments", response_model=CommentOut, status_code=status.HTTP_201_CREATED)
def create_comment(
    slug: str,
    comment_data: CommentCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Submit a comment or a reply. It stays hidden until an administrator approves it.

    Raises:
        NotFound: If the post is not visible to the user
        ValidationFailed: If content or parent_id is invalid
    """
    logger.info(f"Comment submitted on post {slug} by {current_user.email}")
    post = publishing.get_visible_post(db, slug, current_user)
    return moderation.create_comment(
        db,
        post,
        current_user,
        comment_data.content,
        parent_id=comment_data.parent_id
    )
