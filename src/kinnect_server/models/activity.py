"""Logged activity model."""

from datetime import date
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Date, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from kinnect_server.models.base import Base, TimestampMixin, UserScopedMixin, generate_uuid


class ActivitySource(str, Enum):
    """Where an activity record came from."""

    MANUAL = "manual"
    STRAVA = "strava"


class QCStatus(str, Enum):
    """Quality-control outcome stored with the activity."""

    ACCEPTED = "accepted"
    ACCEPTED_WITH_WARNINGS = "accepted_with_warnings"


class Activity(Base, UserScopedMixin, TimestampMixin):
    """An accepted exercise activity.

    Only records that passed quality control are ever stored, so every row
    has been scored and credited to the user's progress.
    """

    __tablename__ = "activities"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "source", "external_activity_id", name="uq_activities_user_external_id"
        ),
        Index("idx_activities_user_date", "user_id", "activity_date"),
        {"comment": "Manually logged and imported activities"},
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=generate_uuid,
    )

    activity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    title: Mapped[str | None] = mapped_column(Text)
    distance_km: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    duration_minutes: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    activity_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Scoring
    calories_estimate: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    points_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Provenance
    source: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ActivitySource.MANUAL.value
    )
    external_activity_id: Mapped[str | None] = mapped_column(String(64), index=True)

    # Quality control
    qc_status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=QCStatus.ACCEPTED.value
    )
    qc_warnings: Mapped[list[str] | None] = mapped_column(JSON)
    qc_metrics: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Activity(user_id={self.user_id}, type={self.activity_type}, "
            f"date={self.activity_date}, points={self.points_earned})>"
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.activity_type,
            "title": self.title,
            "distance_km": self.distance_km,
            "duration_minutes": self.duration_minutes,
            "date": str(self.activity_date),
            "calories_estimate": self.calories_estimate,
            "points_earned": self.points_earned,
            "source": self.source,
            "external_activity_id": self.external_activity_id,
            "qc_status": self.qc_status,
            "qc_warnings": self.qc_warnings or [],
            "qc_metrics": self.qc_metrics,
        }
