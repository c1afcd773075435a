"""Circle link model."""

from datetime import datetime

from sqlalchemy import Boolean, ForeignKey, Integer, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from heykin.db.base import Base
from heykin.db.types import UTCDateTime


class CircleLink(Base):
    """Directed link from a checker to a supporter who receives alerts."""

    __tablename__ = "circle_links"
    __table_args__ = (
        UniqueConstraint("checker_id", "supporter_id", name="uq_circle_link_checker_supporter"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    checker_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    supporter_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    supporter_display_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # Contact overrides; fall back to the supporter's account details
    supporter_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    supporter_email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    can_see_mood: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    can_see_location: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_see_selfie: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    can_poke: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    alert_priority: Mapped[int] = mapped_column(Integer, nullable=False, default=1)  # 1 = contacted first
    alert_via_push: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    alert_via_sms: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    alert_via_email: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_emergency_contact: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        nullable=False,
    )
