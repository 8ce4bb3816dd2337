import os
import tempfile
from datetime import datetime, timedelta

import pytest

_tmp_dir = tempfile.mkdtemp(prefix="blogpress-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_tmp_dir, 'test.db')}"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["MAIL_SUPPRESS_SEND"] = "True"
os.environ["LOG_FILE"] = os.path.join(_tmp_dir, "test.log")
os.environ["EMAIL_ADMIN_LIST"] = ""
os.environ["SEED_DEMO_CONTENT"] = "False"

from fastapi.testclient import TestClient  # noqa: E402

from blogpress import publishing  # noqa: E402
from blogpress.auth import create_access_token, hash_password  # noqa: E402
from blogpress.database import SessionLocal, engine  # noqa: E402
from blogpress.main import app  # noqa: E402
from blogpress.models import Base, User  # noqa: E402
from blogpress.routers import auth as auth_router  # noqa: E402
from blogpress.schemas import PostCreate  # noqa: E402

# One hash for every fixture user keeps bcrypt out of the hot path
PASSWORD = "password123"
PASSWORD_HASH = hash_password(PASSWORD)


@pytest.fixture(autouse=True)
def clean_database():
    """Recreate all tables before each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    auth_router.email_requests.clear()
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    """Create test client"""
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make_user(name="Reader", email="reader@example.com", is_admin=False):
        user = User(name=name, email=email, password_hash=PASSWORD_HASH, is_admin=is_admin)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def admin(make_user):
    return make_user(name="Admin", email="admin@example.com", is_admin=True)


@pytest.fixture
def author(make_user):
    return make_user(name="Author", email="author@example.com")


@pytest.fixture
def reader(make_user):
    return make_user(name="Reader", email="reader@example.com")


@pytest.fixture
def other_reader(make_user):
    return make_user(name="Other", email="other@example.com")


@pytest.fixture
def make_post(db):
    def _make_post(owner, title="Hello World", published=True, published_at="yesterday", **kwargs):
        if published_at == "yesterday":
            published_at = datetime.utcnow() - timedelta(days=1)
        data = PostCreate(
            title=title,
            content=kwargs.pop("content", "Body text"),
            published=published,
            published_at=published_at,
            **kwargs
        )
        return publishing.create_post(db, owner, data)
    return _make_post


def auth_headers(user):
    token = create_access_token(data={"sub": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return auth_headers
