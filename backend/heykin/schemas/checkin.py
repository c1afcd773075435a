"""Check-in schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CheckInCreate(BaseModel):
    mental_score: int = Field(ge=1, le=5)
    body_score: int = Field(ge=1, le=5)
    mood_score: int = Field(ge=1, le=5)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    location_name: str | None = Field(default=None, max_length=255)
    address: str | None = None


class CheckInUpdate(BaseModel):
    mental_score: int | None = Field(default=None, ge=1, le=5)
    body_score: int | None = Field(default=None, ge=1, le=5)
    mood_score: int | None = Field(default=None, ge=1, le=5)
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)
    location_name: str | None = Field(default=None, max_length=255)
    address: str | None = None


class CheckInResponse(BaseModel):
    id: int
    user_id: int
    timestamp: datetime
    mental_score: int
    body_score: int
    mood_score: int
    latitude: float | None = None
    longitude: float | None = None
    location_name: str | None = None
    address: str | None = None
    is_manual: bool

    model_config = {"from_attributes": True}


class CheckInResult(CheckInResponse):
    """Check-in plus how many open alerts it closed."""

    alerts_resolved: int = 0


class CheckInStatsResponse(BaseModel):
    total: int
    current_streak: int
    average_mental: float | None = None
    average_body: float | None = None
    average_mood: float | None = None

    model_config = {"from_attributes": True}
