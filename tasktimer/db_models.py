# PURPOSE: define how a Task row looks in the database.

from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base


def now_utc():
    """Return timezone-aware UTC datetime (stored in DB)."""
    return datetime.now(UTC)


class TaskDB(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    timer_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    hours: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0..23
    minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0..59
    seconds: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # 0..59
    # NULL only on legacy rows; store_db.backfill_positions fills them at startup
    position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=now_utc)
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), default=now_utc)

    def __repr__(self) -> str:
        return f"<TaskDB id={self.id} position={self.position} title={self.title!r}>"


# Canonical order is (position, created_at); index the pair used by every list read
Index("ix_tasks_position_created", TaskDB.position, TaskDB.created_at)
