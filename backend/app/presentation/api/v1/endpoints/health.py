"""Liveness endpoint — answers without touching the database or the provider."""

from fastapi import APIRouter

from app.config import get_settings

router = APIRouter(tags=["Health"])


@router.get("/health")
async def health_check() -> dict:
    settings = get_settings()
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.app_env,
        "embedding_model": settings.embedding_model,
        "blob_backend": settings.blob_backend,
    }
