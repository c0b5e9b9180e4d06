"""Pydantic schemas for activity submission and import requests."""

from pydantic import BaseModel, Field

from kinnect_server.services.quality_control import ActivityCandidate


class ActivitySubmission(BaseModel):
    """A manually logged activity.

    Values are only type-checked here; plausibility is decided by quality
    control so every problem can be reported together.
    """

    type: str | None = Field(default=None, description="run, walk, workout, bike, swim, ...")
    distance_km: float = Field(default=0.0, description="Distance in kilometres")
    duration_minutes: float = Field(default=0.0, description="Duration in minutes")
    date: str | None = Field(default=None, description="Activity date (YYYY-MM-DD), default today")
    title: str | None = Field(default=None, description="Optional free-text title")

    def to_candidate(self) -> ActivityCandidate:
        """Convert to a quality-control candidate."""
        return ActivityCandidate(
            activity_type=self.type,
            distance_km=self.distance_km,
            duration_minutes=self.duration_minutes,
            activity_date=self.date,
            title=self.title,
        )


class StravaImportRequest(BaseModel):
    """Which Strava activities to import."""

    strava_activity_ids: list[int | str] | None = Field(
        default=None, description="Specific Strava activity IDs"
    )
    import_all: bool = Field(
        default=False, description="Import all recent activities (page-capped)"
    )
