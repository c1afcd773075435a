"""Poke schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class PokeCreate(BaseModel):
    to_user_id: int
    message: str | None = Field(default=None, max_length=500)


class PokeResponse(BaseModel):
    id: int
    from_user_id: int
    to_user_id: int
    message: str | None = None
    sent_at: datetime
    seen_at: datetime | None = None
    responded_at: datetime | None = None

    model_config = {"from_attributes": True}


class PokeWithSender(PokeResponse):
    from_name: str = ""


class PokeSent(PokeResponse):
    notified_via: list[str] = []


class UnseenCount(BaseModel):
    count: int
