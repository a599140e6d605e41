"""Health check endpoint with optional database connectivity check."""

from fastapi import APIRouter

from gleaner_users.api.deps import DbSession
from gleaner_users.core.config import settings
from gleaner_users.core.database import check_db_connected
from gleaner_users.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(db: DbSession) -> HealthResponse:
    """
    Return service health status and database connectivity.
    Used by load balancers and monitoring.
    """
    db_status = "connected" if check_db_connected(db) else "disconnected"

    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database=db_status,
        acl_backend=settings.ACL_BACKEND,
    )
