"""
Pitchside — Operational Self-Monitoring Models

service_health holds one row per checked service (latest status wins);
health_logs is an append-only console of check output. Neither feeds the
analytics engine.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, CheckConstraint, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from pitchside.models.base import Base, new_id


class ServiceHealth(Base):
    __tablename__ = "service_health"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    service_name: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String, nullable=False)
    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_seen: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('ok', 'warn', 'error', 'pending')", name="ck_service_health_status"
        ),
    )


class HealthLog(Base):
    __tablename__ = "health_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    service_name: Mapped[str] = mapped_column(String, nullable=False)
    level: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        CheckConstraint("level IN ('INFO', 'WARN', 'ERROR')", name="ck_health_logs_level"),
    )
