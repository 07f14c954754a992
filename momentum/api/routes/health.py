"""Liveness endpoint for the desktop shell and load balancers."""

from fastapi import APIRouter

from momentum.core.config import get_settings

router = APIRouter()


@router.get("/health")
def health() -> dict[str, str]:
    settings = get_settings()
    return {"status": "ok", "service": settings.app_name, "environment": settings.app_env}
