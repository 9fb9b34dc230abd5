"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from yup_rsvp.config import settings
from yup_rsvp.database import Base, engine

from yup_rsvp.routers import users, events, responses, invitations, admin, branding

# Import all models so Base.metadata knows about them
from yup_rsvp.models.user import User                # noqa: F401
from yup_rsvp.models.event import Event              # noqa: F401
from yup_rsvp.models.invitation import Invitation    # noqa: F401
from yup_rsvp.models.response import Response        # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Yup.RSVP",
    description="Event invitations and RSVP tracking",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(events.router, prefix="/api/events", tags=["Events"])
app.include_router(responses.router, prefix="/api/events", tags=["Responses"])
app.include_router(invitations.router, prefix="/api", tags=["Invitations"])
app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])
app.include_router(branding.router, tags=["Branding"])


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
