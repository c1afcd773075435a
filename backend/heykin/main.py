"""HeyKin FastAPI application."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from heykin.api import alerts, auth, checkins, circle, health, pokes, schedules, webhooks
from heykin.core.config import settings
from heykin.services.scan_scheduler import shutdown_scanner, start_scanner

app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(schedules.router)
app.include_router(checkins.router)
app.include_router(circle.router)
app.include_router(alerts.router)
app.include_router(pokes.router)
app.include_router(webhooks.router)


@app.on_event("startup")
def _start_background_scanner() -> None:
    if settings.scanner_enabled:
        start_scanner()


@app.on_event("shutdown")
def _stop_background_scanner() -> None:
    shutdown_scanner()
