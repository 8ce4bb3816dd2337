"""Demo content for local development."""

import logging
from datetime import datetime, timedelta
from sqlalchemy.orm import Session

from blogpress.auth import hash_password
from blogpress.models import Comment, Post, User
from blogpress.publishing import slugify_title, unique_slug

# Configure logging
logger = logging.getLogger(__name__)

DEMO_AUTHOR_EMAIL = "author@example.com"
DEMO_READER_EMAIL = "reader@example.com"
DEMO_PASSWORD = "password"


def _get_or_create_user(db: Session, name: str, email: str) -> User:
    user = db.query(User).filter(User.email == email).first()
    if user:
        return user
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(DEMO_PASSWORD),
        email_verified_at=datetime.utcnow()
    )
    db.add(user)
    db.flush()
    return user


def _add_post(db: Session, author: User, title: str, published: bool, published_at) -> Post:
    post = Post(
        title=title,
        slug=unique_slug(db, slugify_title(title)),
        excerpt=f"A short introduction to {title.lower()}.",
        content=f"# {title}\n\nThis is demo content for the post \"{title}\".",
        published=published,
        published_at=published_at,
        user_id=author.id
    )
    db.add(post)
    db.flush()
    return post


def seed_demo_content(db: Session) -> bool:
    """
    Insert a demo author, reader, posts in every publish state, and comments.

    Does nothing if the demo author already exists.

    Returns:
        bool: True if content was created
    """
    if db.query(User).filter(User.email == DEMO_AUTHOR_EMAIL).first():
        logger.info("Demo content already present, skipping")
        return False

    now = datetime.utcnow()
    author = _get_or_create_user(db, "Demo Author", DEMO_AUTHOR_EMAIL)
    reader = _get_or_create_user(db, "Demo Reader", DEMO_READER_EMAIL)

    published = _add_post(db, author, "Getting Started With The Blog", True, now - timedelta(days=1))
    _add_post(db, author, "Coming Next Week", True, now + timedelta(days=7))
    _add_post(db, author, "Unfinished Draft", False, None)

    welcome = Comment(content="Great first post!", approved=True, post_id=published.id, user_id=reader.id)
    pending = Comment(content="Waiting for moderation.", approved=False, post_id=published.id, user_id=reader.id)
    db.add_all([welcome, pending])
    db.flush()

    db.add_all([
        Comment(content="Thanks for reading!", approved=True, post_id=published.id,
                user_id=author.id, parent_id=welcome.id),
        Comment(content="A reply still in the queue.", approved=False, post_id=published.id,
                user_id=reader.id, parent_id=welcome.id),
    ])
    db.commit()

    logger.info("Demo content seeded")
    return True
