"""Notification attempt log model. Rows are appended, never updated."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column

from heykin.db.base import Base
from heykin.db.types import UTCDateTime, str_enum
from heykin.models.enums import AttemptOutcome, Channel


class NotificationAttempt(Base):
    __tablename__ = "notification_attempts"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    alert_id: Mapped[int] = mapped_column(ForeignKey("alerts.id", ondelete="CASCADE"), index=True, nullable=False)
    recipient_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)
    channel: Mapped[Channel] = mapped_column(str_enum(Channel), nullable=False)
    outcome: Mapped[AttemptOutcome] = mapped_column(str_enum(AttemptOutcome), nullable=False)
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    provider_message_id: Mapped[str | None] = mapped_column(String(100), index=True, nullable=True)
    is_fallback: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )
