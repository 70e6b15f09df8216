"""Health check endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from .. import __version__

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@router.get("/")
async def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "timestamp": _now(),
        "service": "transform-pack",
        "version": __version__,
    }


@router.get("/ready")
async def readiness_check(request: Request):
    """Ready once configuration and the prompt catalog are loaded."""
    catalog = getattr(request.app.state, "catalog", None)
    return {
        "ready": catalog is not None,
        "prompts": len(catalog) if catalog is not None else 0,
        "timestamp": _now(),
    }
