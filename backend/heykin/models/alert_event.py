"""Alert event model."""

from datetime import date, datetime

from sqlalchemy import Date, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from heykin.db.base import Base
from heykin.db.types import UTCDateTime, str_enum
from heykin.models.enums import OPEN_STATUSES, AlertLevel, AlertStatus, Resolution


class AlertEvent(Base):
    """Escalation record for one missed check-in day."""

    __tablename__ = "alerts"
    __table_args__ = (
        # open_day mirrors missed_day while the alert is non-terminal and is
        # NULL afterwards, so at most one open alert exists per checker per day.
        UniqueConstraint("checker_id", "open_day", name="uq_alert_open_checker_day"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    checker_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)
    checker_name: Mapped[str] = mapped_column(String(100), nullable=False)
    level: Mapped[AlertLevel] = mapped_column(str_enum(AlertLevel), nullable=False)
    status: Mapped[AlertStatus] = mapped_column(str_enum(AlertStatus), nullable=False, default=AlertStatus.PENDING)

    triggered_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    missed_window_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    missed_day: Mapped[date] = mapped_column(Date, nullable=False)
    open_day: Mapped[date | None] = mapped_column(Date, nullable=True)

    last_checkin_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    last_known_location: Mapped[str | None] = mapped_column(String(255), nullable=True)

    acknowledged_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    acknowledged_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    resolved_by: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolution: Mapped[Resolution | None] = mapped_column(str_enum(Resolution), nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    notified_supporter_ids: Mapped[list[int]] = mapped_column(JSON, nullable=False, default=list)

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES
