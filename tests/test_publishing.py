"""Tests for post visibility, listing and slug handling."""

from datetime import datetime, timedelta

import pytest

from blogpress import publishing
from blogpress.exceptions import NotFound, ValidationFailed
from blogpress.models import Post
from blogpress.schemas import PostCreate, PostUpdate


NOW = datetime(2026, 6, 1, 12, 0, 0)


@pytest.mark.parametrize("published, published_at, expected", [
    (True, NOW - timedelta(days=1), True),
    (True, NOW, True),
    (True, NOW + timedelta(seconds=1), False),
    (True, None, False),
    (False, NOW - timedelta(days=1), False),
    (False, None, False),
])
def test_is_public(published, published_at, expected):
    post = Post(title="t", slug="t", content="c", published=published, published_at=published_at)
    assert publishing.is_public(post, NOW) is expected


def test_listing_excludes_drafts_and_scheduled_posts(db, author, make_post):
    make_post(author, "Yesterday", published_at=NOW - timedelta(days=1))
    make_post(author, "Tomorrow", published_at=NOW + timedelta(days=1))
    make_post(author, "Draft", published=False, published_at=NOW - timedelta(days=1))
    make_post(author, "Undated", published_at=None)

    result = publishing.list_public_posts(db, 1, now=NOW)

    assert [post.title for post in result.items] == ["Yesterday"]
    assert result.total == 1


def test_listing_is_newest_first_and_paginated(db, author, make_post):
    for day in range(12):
        make_post(author, f"Post {day}", published_at=NOW - timedelta(days=day + 1))

    first = publishing.list_public_posts(db, 1, now=NOW)
    second = publishing.list_public_posts(db, 2, now=NOW)

    assert first.per_page == publishing.POSTS_PER_PAGE
    assert first.total == 12
    assert first.pages == 2
    assert [post.title for post in first.items][:3] == ["Post 0", "Post 1", "Post 2"]
    assert [post.title for post in second.items] == ["Post 10", "Post 11"]

    assert publishing.list_public_posts(db, 3, now=NOW).items == []
    assert publishing.list_public_posts(db, 10 ** 20, now=NOW).items == []


def test_scheduled_post_hidden_from_readers_but_not_admins(db, author, reader, admin, make_post):
    make_post(author, "Tomorrow", published_at=datetime.utcnow() + timedelta(days=1))

    with pytest.raises(NotFound):
        publishing.get_visible_post(db, "tomorrow")
    with pytest.raises(NotFound):
        publishing.get_visible_post(db, "tomorrow", reader)

    assert publishing.get_visible_post(db, "tomorrow", admin).title == "Tomorrow"


def test_unknown_slug_is_not_found_even_for_admins(db, admin):
    with pytest.raises(NotFound):
        publishing.get_visible_post(db, "missing", admin)


def test_slug_generated_from_title(author, make_post):
    post = make_post(author, "Hello, World: A First Post!")
    assert post.slug == "hello-world-a-first-post"
    assert post.slug_is_custom is False


def test_generated_slugs_are_unique(author, make_post):
    first = make_post(author, "Same Title")
    second = make_post(author, "Same Title")
    third = make_post(author, "Same Title")
    assert [first.slug, second.slug, third.slug] == ["same-title", "same-title-2", "same-title-3"]


def test_explicit_slug_is_kept_and_must_be_unique(author, make_post):
    post = make_post(author, "Title", slug="My Custom Slug")
    assert post.slug == "my-custom-slug"
    assert post.slug_is_custom is True

    with pytest.raises(ValidationFailed):
        make_post(author, "Another", slug="my-custom-slug")


def test_title_edit_regenerates_generated_slug(db, author, make_post):
    post = make_post(author, "Old Title")
    publishing.update_post(db, post, PostUpdate(title="New Title"))
    assert post.slug == "new-title"


def test_title_edit_keeps_explicit_slug(db, author, make_post):
    post = make_post(author, "Old Title", slug="pinned")
    publishing.update_post(db, post, PostUpdate(title="New Title"))
    assert post.title == "New Title"
    assert post.slug == "pinned"


def test_update_with_explicit_slug_pins_it(db, author, make_post):
    post = make_post(author, "Old Title")
    publishing.update_post(db, post, PostUpdate(slug="fixed-slug"))
    publishing.update_post(db, post, PostUpdate(title="Renamed"))
    assert post.slug == "fixed-slug"
    assert post.slug_is_custom is True


def test_update_rejects_blank_title(db, author, make_post):
    post = make_post(author, "Title")
    with pytest.raises(ValidationFailed):
        publishing.update_post(db, post, PostUpdate(title="   "))


def test_update_only_touches_sent_fields(db, author, make_post):
    post = make_post(author, "Title", excerpt="Keep me")
    publishing.update_post(db, post, PostUpdate(content="Changed"))
    assert post.content == "Changed"
    assert post.excerpt == "Keep me"
    assert post.published is True


def test_aware_publish_timestamp_is_stored_as_utc(db, author):
    data = PostCreate(title="Zoned", content="c", published=True,
                      published_at="2026-01-01T10:00:00+02:00")
    post = publishing.create_post(db, author, data)
    assert post.published_at == datetime(2026, 1, 1, 8, 0, 0)


def test_delete_post(db, author, make_post):
    post = make_post(author, "Doomed")
    publishing.delete_post(db, post)
    assert db.query(Post).filter(Post.slug == "doomed").first() is None
