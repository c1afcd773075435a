"""Circle link schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class CircleMemberCreate(BaseModel):
    supporter_email: str | None = None
    supporter_id: int | None = None
    supporter_display_name: str | None = Field(default=None, max_length=100)
    contact_phone: str | None = Field(default=None, pattern=r"^\+[1-9]\d{6,14}$")
    contact_email: str | None = None
    alert_priority: int = Field(ge=1, le=10, default=1)
    alert_via_push: bool = True
    alert_via_sms: bool = False
    alert_via_email: bool = False
    is_emergency_contact: bool = False
    can_poke: bool = True
    can_see_mood: bool = True
    can_see_location: bool = False
    can_see_selfie: bool = False


class CircleMemberUpdate(BaseModel):
    supporter_display_name: str | None = Field(default=None, max_length=100)
    contact_phone: str | None = Field(default=None, pattern=r"^\+[1-9]\d{6,14}$")
    contact_email: str | None = None
    alert_priority: int | None = Field(default=None, ge=1, le=10)
    alert_via_push: bool | None = None
    alert_via_sms: bool | None = None
    alert_via_email: bool | None = None
    is_emergency_contact: bool | None = None
    can_poke: bool | None = None
    can_see_mood: bool | None = None
    can_see_location: bool | None = None
    can_see_selfie: bool | None = None


class CircleLinkResponse(BaseModel):
    id: int
    checker_id: int
    supporter_id: int
    supporter_display_name: str | None = None
    supporter_phone: str | None = None
    supporter_email: str | None = None
    alert_priority: int
    alert_via_push: bool
    alert_via_sms: bool
    alert_via_email: bool
    is_emergency_contact: bool
    can_poke: bool
    can_see_mood: bool
    can_see_location: bool
    can_see_selfie: bool
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CircleLinkWithUser(CircleLinkResponse):
    """Link with the other person's name (supporter for a checker, checker for a supporter)."""

    other_email: str = ""
    other_name: str = ""
