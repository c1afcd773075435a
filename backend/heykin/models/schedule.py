"""Check-in schedule model."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from heykin.db.base import Base
from heykin.db.types import UTCDateTime

ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]


class Schedule(Base):
    """Daily check-in window for a checker. Soft-deactivated, never deleted."""

    __tablename__ = "schedules"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    window_start_hour: Mapped[int] = mapped_column(Integer, nullable=False, default=7)
    window_start_minute: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    window_end_hour: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    window_end_minute: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    timezone_identifier: Mapped[str] = mapped_column(String(64), nullable=False, default="UTC")
    active_days: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=lambda: list(ALL_DAYS))  # 0=Sunday
    grace_period_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    reminder_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    reminder_minutes_before: Mapped[int] = mapped_column(Integer, nullable=False, default=30)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )
