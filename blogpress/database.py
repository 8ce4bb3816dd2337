"""Database configuration and session management."""

import os
import logging
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from dotenv import load_dotenv

from blogpress.models import Base, User

# Load environment variables
load_dotenv()

# Configure logging
logger = logging.getLogger(__name__)

# Get database configuration from environment
DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    PATH_DATABASE = os.getenv("PATH_DATABASE")
    NAME_DB = os.getenv("NAME_DB")

    if not PATH_DATABASE or not NAME_DB:
        raise ValueError("DATABASE_URL or PATH_DATABASE and NAME_DB must be set in .env file")

    # Ensure database directory exists
    db_dir = Path(PATH_DATABASE)
    db_dir.mkdir(parents=True, exist_ok=True)

    database_path = db_dir / NAME_DB
    DATABASE_URL = f"sqlite:///{database_path}"

logger.info(f"Database URL: {DATABASE_URL}")

connect_args = {}
if DATABASE_URL.startswith("sqlite"):
    connect_args["check_same_thread"] = False  # Needed for SQLite

# Create engine
engine = create_engine(DATABASE_URL, connect_args=connect_args)


@event.listens_for(engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if engine.dialect.name != "sqlite":
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# Create session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db():
    """Initialize the database by creating all tables."""
    logger.info("Initializing database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created successfully")


def seed_admin_user():
    """
    Create the administrator account from environment variables on startup.

    Creates a user with:
    - Email: First email from EMAIL_ADMIN_LIST
    - Password: PASSWORD_ADMIN
    - is_admin: True

    Only creates if user doesn't already exist. An existing account with that
    email is promoted to administrator.
    """
    # Import here to avoid circular import
    from blogpress.auth import hash_password

    logger.info("Checking admin user seed...")

    admin_list_str = os.getenv("EMAIL_ADMIN_LIST", "")
    admin_password = os.getenv("PASSWORD_ADMIN", "")

    if not admin_list_str:
        logger.warning("EMAIL_ADMIN_LIST not configured, skipping admin user seed")
        return

    if not admin_password:
        logger.warning("PASSWORD_ADMIN not configured, skipping admin user seed")
        return

    # Get first email from comma-separated list
    admin_emails = [email.strip().lower() for email in admin_list_str.split(",")]
    admin_email = admin_emails[0]

    logger.info(f"Attempting to seed admin user: {admin_email}")

    db = SessionLocal()
    try:
        existing_user = db.query(User).filter(User.email == admin_email).first()

        if existing_user:
            if not existing_user.is_admin:
                existing_user.is_admin = True
                db.commit()
                logger.info(f"Existing user promoted to admin: {admin_email}")
            else:
                logger.info(f"Admin user already exists: {admin_email}")
            return

        admin_user = User(
            name="Administrator",
            email=admin_email,
            password_hash=hash_password(admin_password),
            is_admin=True
        )

        db.add(admin_user)
        db.commit()
        db.refresh(admin_user)

        logger.info(f"Admin user created successfully: {admin_email}")

    except Exception as e:
        logger.error(f"Failed to seed admin user: {e}")
        db.rollback()
        raise
    finally:
        db.close()


def get_db():
    """
    Dependency function to get database session.

    Yields:
        Session: SQLAlchemy database session
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
