"""API route registration."""

from fastapi import APIRouter

from mountgate.api.routes import files, health, mounts

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(files.router, prefix="/machines/files", tags=["files"])
api_router.include_router(mounts.router, prefix="/machines", tags=["mounts"])
