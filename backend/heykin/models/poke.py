"""Poke model."""

from datetime import datetime

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from heykin.db.base import Base
from heykin.db.types import UTCDateTime


class Poke(Base):
    """A supporter's nudge asking a checker to check in."""

    __tablename__ = "pokes"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    from_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    to_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    message: Mapped[str | None] = mapped_column(String(500), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    seen_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    # Set by the checker's next check-in
    responded_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
