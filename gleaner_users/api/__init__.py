"""API routes."""

from fastapi import APIRouter

from gleaner_users.api import applications, auth, authorize, health, roles, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(roles.router, prefix="/roles", tags=["roles"])
router.include_router(applications.router, prefix="/applications", tags=["applications"])
router.include_router(authorize.router, prefix="/authorize", tags=["authorize"])
