"""Top-level API router."""

from fastapi import APIRouter

from momentum.api.routes.exports import router as exports_router
from momentum.api.routes.health import router as health_router
from momentum.api.routes.progress import router as progress_router
from momentum.api.routes.projects import router as projects_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(projects_router)
api_router.include_router(progress_router)
api_router.include_router(exports_router)
