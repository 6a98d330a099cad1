"""Main API router that aggregates all route modules."""

from fastapi import APIRouter

from userhub.api import health, users

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
