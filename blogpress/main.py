"""Main FastAPI application for BlogPressAPI."""

import os
import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dotenv import load_dotenv

from blogpress.database import SessionLocal, init_db, seed_admin_user
from blogpress.exceptions import BlogError
from blogpress.routers import auth, posts, comments, admin

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler(os.getenv("LOG_FILE", "blogpress_api.log"))
    ]
)

logger = logging.getLogger(__name__)

NAME_APP = os.getenv("NAME_APP", "BlogPressAPI")
SEED_DEMO_CONTENT = os.getenv("SEED_DEMO_CONTENT", "False").lower() == "true"

# Create FastAPI application
app = FastAPI(
    title=NAME_APP,
    description="Blog API with user accounts, scheduled publishing and moderated comment threads",
    version="1.0.0"
)

# Configure CORS (adjust origins as needed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(comments.router)
app.include_router(admin.router)


@app.exception_handler(BlogError)
async def blog_error_handler(request: Request, exc: BlogError) -> JSONResponse:
    """Turn validation, authorization and not-found failures into JSON responses."""
    logger.warning(
        f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
def startup_event():
    """Initialize database and seed the admin user (and demo content if enabled)."""
    logger.info(f"Starting {NAME_APP}")
    init_db()
    logger.info("Database initialized successfully")
    seed_admin_user()
    logger.info("Admin user seed completed")

    if SEED_DEMO_CONTENT:
        from blogpress.seeders import seed_demo_content

        db = SessionLocal()
        try:
            seed_demo_content(db)
        finally:
            db.close()


@app.get("/")
def root():
    """Root endpoint."""
    return {
        "name": NAME_APP,
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
