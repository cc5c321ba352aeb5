"""
Pitchside — Event Model

One fixture. Name convention is "Home vs Away". Revenue, units and sale
count are derived from sales at aggregation time and never stored here.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from pitchside.models.base import Base, new_id


class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String, nullable=False)
    category_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )
    event_date: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    venue: Mapped[str | None] = mapped_column(String, nullable=True)
    round: Mapped[str | None] = mapped_column(
        String,
        nullable=True,
        comment="Tournament round label, e.g. 'Group A', 'Quarter-Final'",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_events_category_date", "category_id", "event_date"),
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id!r} name={self.name!r} date={self.event_date}>"
