"""Comment threads and the approval workflow.

Comments form a two-level tree: top-level comments attach to a post and
replies attach to a top-level comment of the same post. New comments start
unapproved; ordinary readers only ever see approved ones.

Approval is tracked per comment. Approving or un-approving a parent does not
touch its replies, and an approved reply is shown whenever its parent is shown.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from blogpress.exceptions import AuthorizationFailed, NotFound, ValidationFailed
from blogpress.models import Comment, Post, User
from blogpress.pagination import Page, paginate

# Configure logging
logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 1000
COMMENTS_PER_PAGE = 20


@dataclass
class CommentThread:
    """A top-level comment and its direct replies, both newest first."""

    comment: Comment
    replies: List[Comment] = field(default_factory=list)


def can_see_pending(post: Post, viewer: Optional[User]) -> bool:
    """Administrators and the post's owner see unapproved comments."""
    if viewer is None:
        return False
    return bool(viewer.is_admin) or viewer.id == post.user_id


def comment_tree(db: Session, post: Post, viewer: Optional[User] = None) -> List[CommentThread]:
    """
    Build the comment tree of a post as seen by viewer.

    Loads all visible comments of the post in one query, indexes them by id
    and attaches each reply to its parent's thread.

    Args:
        db: Database session
        post: Post whose comments are listed
        viewer: Requesting user, or None for anonymous readers

    Returns:
        List[CommentThread]: Top-level comments newest first, each with its replies newest first
    """
    query = (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.post_id == post.id)
    )
    if not can_see_pending(post, viewer):
        query = query.filter(Comment.approved.is_(True))

    comments = query.order_by(Comment.created_at.desc(), Comment.id.desc()).all()

    threads = {}
    ordered = []
    for comment in comments:
        if comment.parent_id is None:
            thread = CommentThread(comment=comment)
            threads[comment.id] = thread
            ordered.append(thread)

    for comment in comments:
        if comment.parent_id is not None and comment.parent_id in threads:
            threads[comment.parent_id].replies.append(comment)

    logger.info(f"Comment tree for post {post.id}: {len(ordered)} threads, {len(comments)} comments")
    return ordered


def get_comment(db: Session, comment_id: int) -> Comment:
    """Fetch a comment by id."""
    comment = db.query(Comment).filter(Comment.id == comment_id).first()
    if comment is None:
        logger.warning(f"Comment not found: {comment_id}")
        raise NotFound("Comment not found")
    return comment


def validate_content(content: Optional[str]) -> str:
    """Return trimmed content, or raise ValidationFailed if it is empty or too long."""
    text = (content or "").strip()
    if not text:
        raise ValidationFailed("Comment content is required")
    if len(text) > MAX_COMMENT_LENGTH:
        raise ValidationFailed(f"Comment is too long (max {MAX_COMMENT_LENGTH} characters)")
    return text


def create_comment(
    db: Session,
    post: Post,
    author: User,
    content: str,
    parent_id: Optional[int] = None
) -> Comment:
    """
    Create an unapproved comment, or a reply when parent_id is given.

    Raises:
        ValidationFailed: Empty or oversized content, or a parent that is
            missing, belongs to another post, or is itself a reply
    """
    text = validate_content(content)

    if parent_id is not None:
        parent = db.query(Comment).filter(Comment.id == parent_id).first()
        if parent is None:
            logger.warning(f"Reply to unknown comment {parent_id} on post {post.id}")
            raise ValidationFailed("Parent comment does not exist")
        if parent.post_id != post.id:
            logger.warning(f"Reply to comment {parent_id} from another post (post {post.id})")
            raise ValidationFailed("Parent comment belongs to a different post")
        if parent.parent_id is not None:
            raise ValidationFailed("Replies cannot be nested more than one level")

    comment = Comment(
        content=text,
        approved=False,
        post_id=post.id,
        user_id=author.id,
        parent_id=parent_id
    )
    db.add(comment)
    db.commit()
    db.refresh(comment)

    logger.info(f"Comment {comment.id} created on post {post.id} by {author.email} (pending approval)")
    return comment


def toggle_approval(db: Session, comment: Comment, actor: User) -> Comment:
    """Flip the approval flag. Replies keep their own flag."""
    if not actor.is_admin:
        logger.warning(f"Approval toggle denied for {actor.email} on comment {comment.id}")
        raise AuthorizationFailed("Only administrators can moderate comments")

    comment.approved = not comment.approved
    db.commit()
    db.refresh(comment)

    logger.info(f"Comment {comment.id} approved={comment.approved} by {actor.email}")
    return comment


def delete_comment(db: Session, comment: Comment, actor: User) -> None:
    """
    Delete a comment and, through the foreign key cascade, its replies.

    Raises:
        AuthorizationFailed: If actor is neither the author nor an administrator
    """
    if not actor.is_admin and comment.user_id != actor.id:
        logger.warning(f"Delete denied for {actor.email} on comment {comment.id}")
        raise AuthorizationFailed("You can only delete your own comments")

    comment_id = comment.id
    db.delete(comment)
    db.commit()
    logger.info(f"Comment {comment_id} deleted by {actor.email}")


def list_for_moderation(db: Session, page: int = 1, approved: Optional[bool] = None) -> Page:
    """
    List comments across all posts for the moderation queue, newest first.

    Args:
        db: Database session
        page: 1-based page number
        approved: Restrict to approved (True) or pending (False); None lists everything
    """
    query = db.query(Comment).options(joinedload(Comment.author), joinedload(Comment.post))
    if approved is not None:
        query = query.filter(Comment.approved.is_(approved))
    query = query.order_by(Comment.created_at.desc(), Comment.id.desc())
    return paginate(query, page, COMMENTS_PER_PAGE)
