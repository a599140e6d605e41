"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from gleaner_users.acl import get_acl
from gleaner_users.api import router as api_router
from gleaner_users.core.config import settings
from gleaner_users.core.database import SessionLocal
from gleaner_users.core.errors import UsersApiError, register_exception_handlers
from gleaner_users.core.middleware import setup_middleware
from gleaner_users.services.authorization import api_resources
from gleaner_users.services.bootstrap import ensure_admin

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Install the admin role grants (and the first admin, if configured) on startup."""
    db = SessionLocal()
    try:
        password = settings.ADMIN_PASSWORD.get_secret_value() if settings.ADMIN_PASSWORD else None
        ensure_admin(
            db,
            get_acl(db),
            api_resources(app, settings.API_PREFIX),
            username=settings.ADMIN_USERNAME,
            email=settings.ADMIN_EMAIL,
            password=password,
        )
    except (SQLAlchemyError, UsersApiError, ValueError) as e:
        logger.warning("Admin bootstrap skipped: %s", e)
    finally:
        db.close()
    yield


app = FastAPI(
    title="Gleaner Users API",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

setup_middleware(app)
register_exception_handlers(app)

app.include_router(api_router, prefix=settings.API_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Gleaner Users API", "api": settings.API_PREFIX}
