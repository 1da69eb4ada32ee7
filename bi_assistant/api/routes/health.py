"""Health check routes."""

from fastapi import APIRouter

from bi_assistant import __version__

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok", "version": __version__}
