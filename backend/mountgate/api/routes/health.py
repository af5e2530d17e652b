"""Health check."""

from fastapi import APIRouter

from mountgate import __version__
from mountgate.schemas.system import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Lightweight connectivity check — used by load balancers and the UI."""
    return HealthResponse(version=__version__)


@router.get("/ping")
async def ping():
    """Ultra-lightweight ping."""
    return {"status": "ok"}
