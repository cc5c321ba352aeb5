"""
Pitchside — Sale Model

Fact table of resale transactions. The revenue contribution
(ticket_price x quantity) is never stored; it is recomputed on every
aggregation.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    INTEGER,
    TIMESTAMP,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from pitchside.models.base import Base, new_id


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    event_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("events.id", ondelete="SET NULL"),
        nullable=True,
        comment="NULL means the sale is unattached to any event",
    )
    section: Mapped[str | None] = mapped_column(String, nullable=True)
    quantity: Mapped[int] = mapped_column(INTEGER, nullable=False, default=1)
    ticket_price: Mapped[Decimal] = mapped_column(DECIMAL(10, 2), nullable=False)
    platform: Mapped[str] = mapped_column(String, nullable=False)
    sold_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_sales_quantity_positive"),
        CheckConstraint("ticket_price >= 0", name="ck_sales_price_non_negative"),
        Index("ix_sales_event_sold_at", "event_id", "sold_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Sale id={self.id!r} event_id={self.event_id!r} qty={self.quantity} "
            f"price={self.ticket_price} platform={self.platform!r}>"
        )
