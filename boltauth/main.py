"""
Bolt accounts - Main Application
"""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.responses import PlainTextResponse

from .auth import IdentityService
from .config import settings
from .db import DatabaseError
from .dependencies import init_dependencies, close_dependencies, get_identity
from .routes import auth_router, profile_router

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    logger.info("Starting Bolt accounts...")
    await init_dependencies(app)
    logger.info("Application ready")
    yield
    logger.info("Shutting down...")
    await close_dependencies(app)


# Create app
app = FastAPI(
    title="Bolt accounts",
    description="Username/password accounts with signed cookie sessions",
    version="1.0.0",
    lifespan=lifespan
)

# Include routers
app.include_router(auth_router)
app.include_router(profile_router)


@app.exception_handler(DatabaseError)
async def database_error_handler(request: Request, exc: DatabaseError):
    """Storage failures become a generic 500 without internal details."""
    logger.error(f"Unhandled database error on {request.url.path}: {exc}")
    return PlainTextResponse("Something went wrong. Please try again.", status_code=500)


@app.get("/")
async def root(request: Request, identity: IdentityService = Depends(get_identity)):
    """Current user, or null when signed out."""
    user = await identity.current_user(request)
    return {"user": user.public().model_dump(mode="json") if user else None}


@app.get("/health")
async def health():
    """Health check endpoint (no auth required)."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "boltauth.main:app",
        host=settings.host,
        port=settings.port,
        reload=True
    )
