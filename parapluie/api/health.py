"""Health check endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

router = APIRouter()


@router.get("/health/live")
def health_live() -> dict[str, str]:
    """Health check endpoint for liveness probe."""
    return {"status": "ok"}


@router.get("/health/ready")
async def health_ready(request: Request) -> dict[str, Any]:
    """Health check endpoint for readiness probe."""
    if not await _check_local_store(request):
        raise HTTPException(
            status_code=503,
            detail={"status": "unready", "errors": ["local_store_unavailable"]},
        )
    return {"status": "ready", "sessions": len(request.app.state.sessions)}


async def _check_local_store(request: Request) -> bool:
    """Check the local flag store is reachable."""
    try:
        async with request.app.state.local_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
