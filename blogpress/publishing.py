"""Post publishing: visibility rule, slugs, and post management."""

import logging
from datetime import datetime
from typing import Optional

from slugify import slugify
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from blogpress.exceptions import NotFound, ValidationFailed
from blogpress.models import Post, User
from blogpress.pagination import Page, paginate
from blogpress.schemas import PostCreate, PostUpdate

# Configure logging
logger = logging.getLogger(__name__)

POSTS_PER_PAGE = 10
SLUG_MAX_LENGTH = 255


def is_public(post: Post, now: Optional[datetime] = None) -> bool:
    """A post is public iff published, timestamped, and the timestamp is not in the future."""
    return post.is_public(now)


def slugify_title(title: str) -> str:
    """
    Turn a title into a URL slug.

    Titles that slugify to nothing (only punctuation, for instance) fall back
    to "post" so the unique slug column always has a value.
    """
    return slugify(title, max_length=SLUG_MAX_LENGTH - 10) or "post"


def unique_slug(db: Session, base: str, exclude_id: Optional[int] = None) -> str:
    """
    Return base, or base-2, base-3, ... whichever is not taken by another post.

    Args:
        db: Database session
        base: Desired slug
        exclude_id: Post id that may keep its own slug (used on updates)
    """
    candidate = base
    suffix = 2
    while True:
        query = db.query(Post.id).filter(Post.slug == candidate)
        if exclude_id is not None:
            query = query.filter(Post.id != exclude_id)
        if query.first() is None:
            return candidate
        candidate = f"{base}-{suffix}"
        suffix += 1


def _custom_slug(db: Session, requested: str, exclude_id: Optional[int] = None) -> str:
    slug = slugify(requested, max_length=SLUG_MAX_LENGTH)
    if not slug:
        raise ValidationFailed("Slug must contain at least one letter or digit")

    query = db.query(Post.id).filter(Post.slug == slug)
    if exclude_id is not None:
        query = query.filter(Post.id != exclude_id)
    if query.first() is not None:
        logger.warning(f"Slug already taken: {slug}")
        raise ValidationFailed(f"Slug '{slug}' is already in use")
    return slug


def list_public_posts(db: Session, page: int = 1, now: Optional[datetime] = None) -> Page:
    """
    List public posts, most recently published first.

    Args:
        db: Database session
        page: 1-based page number
        now: Reference time for the visibility rule (defaults to current UTC time)

    Returns:
        Page: POSTS_PER_PAGE posts and pagination totals
    """
    now = now or datetime.utcnow()
    query = (
        db.query(Post)
        .filter(Post.public_clause(now))
        .order_by(Post.published_at.desc(), Post.id.desc())
    )
    result = paginate(query, page, POSTS_PER_PAGE)
    logger.info(f"Listed {len(result.items)} public posts (page {result.page} of {result.pages})")
    return result


def list_all_posts(db: Session, page: int = 1) -> Page:
    """List every post, drafts included, newest first, for administrators."""
    query = db.query(Post).order_by(Post.created_at.desc(), Post.id.desc())
    return paginate(query, page, POSTS_PER_PAGE)


def get_post(db: Session, post_id: int) -> Post:
    """Fetch a post by id regardless of visibility."""
    post = db.query(Post).filter(Post.id == post_id).first()
    if post is None:
        logger.warning(f"Post not found: {post_id}")
        raise NotFound("Post not found")
    return post


def get_visible_post(
    db: Session,
    slug: str,
    viewer: Optional[User] = None,
    now: Optional[datetime] = None
) -> Post:
    """
    Fetch a post by slug for a given viewer.

    Non-public posts are reported as missing to everyone except administrators,
    so drafts and scheduled posts cannot be discovered by probing slugs.

    Raises:
        NotFound: If the slug is unknown or the post is hidden from the viewer
    """
    post = db.query(Post).filter(Post.slug == slug).first()
    if post is None:
        logger.warning(f"Post not found: {slug}")
        raise NotFound("Post not found")

    if post.is_public(now):
        return post

    if viewer is not None and viewer.is_admin:
        logger.info(f"Admin {viewer.email} viewing non-public post: {slug}")
        return post

    logger.warning(f"Non-public post requested: {slug}")
    raise NotFound("Post not found")


def create_post(db: Session, author: User, data: PostCreate) -> Post:
    """
    Create a post owned by author.

    The slug is generated from the title unless one is supplied; a supplied
    slug is kept across later title edits.
    """
    if data.slug:
        slug = _custom_slug(db, data.slug)
        slug_is_custom = True
    else:
        slug = unique_slug(db, slugify_title(data.title))
        slug_is_custom = False

    post = Post(
        title=data.title,
        slug=slug,
        slug_is_custom=slug_is_custom,
        excerpt=data.excerpt,
        content=data.content,
        featured_image=data.featured_image,
        published=data.published,
        published_at=data.published_at,
        user_id=author.id
    )
    db.add(post)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Slug collision while creating post: {slug}")
        raise ValidationFailed(f"Slug '{slug}' is already in use")
    db.refresh(post)

    logger.info(f"Post created: {post.id} ({post.slug}) by {author.email}")
    return post


def update_post(db: Session, post: Post, data: PostUpdate) -> Post:
    """
    Apply the fields present in data to post.

    A new title regenerates the slug only while the slug is still the
    generated one; an explicit slug in the same update wins.
    """
    changes = data.model_dump(exclude_unset=True)

    if "title" in changes:
        title = (changes["title"] or "").strip()
        if not title:
            raise ValidationFailed("Title cannot be empty")
        title_changed = title != post.title
        post.title = title
        if title_changed and not post.slug_is_custom and not changes.get("slug"):
            post.slug = unique_slug(db, slugify_title(title), exclude_id=post.id)
            logger.debug(f"Regenerated slug for post {post.id}: {post.slug}")

    if changes.get("slug"):
        post.slug = _custom_slug(db, changes["slug"], exclude_id=post.id)
        post.slug_is_custom = True

    if "content" in changes:
        if changes["content"] is None:
            raise ValidationFailed("Content cannot be null")
        post.content = changes["content"]

    for field in ("excerpt", "featured_image", "published_at"):
        if field in changes:
            setattr(post, field, changes[field])

    if changes.get("published") is not None:
        post.published = changes["published"]

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.warning(f"Slug collision while updating post {post.id}")
        raise ValidationFailed("Slug is already in use")
    db.refresh(post)

    logger.info(f"Post {post.id} updated successfully")
    return post


def delete_post(db: Session, post: Post) -> None:
    """Delete a post; its comments and replies go with it."""
    post_id = post.id
    db.delete(post)
    db.commit()
    logger.info(f"Post {post_id} deleted")
