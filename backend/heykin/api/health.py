"""Health check endpoint."""

from fastapi import APIRouter

from heykin.services.scan_scheduler import scanner_running

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    """API status plus whether the background scanner is running in this process."""
    return {"status": "ok", "scanner": "running" if scanner_running() else "stopped"}
