"""Strava activity transformer.

Converts a Strava activity payload (from /athlete/activities or
/activities/{id}) into an activity candidate with our type taxonomy.
"""

from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Any

from kinnect_server.services.quality_control import ActivityCandidate, ActivityType
from kinnect_server.services.scoring import round_half_up

# Strava sport type -> our activity type. Unlisted sports map to "other".
STRAVA_TYPE_MAP: dict[str, ActivityType] = {
    "Run": ActivityType.RUN,
    "TrailRun": ActivityType.RUN,
    "VirtualRun": ActivityType.RUN,
    "Walk": ActivityType.WALK,
    "Hike": ActivityType.HIKE,
    "Ride": ActivityType.BIKE,
    "EBikeRide": ActivityType.BIKE,
    "VirtualRide": ActivityType.BIKE,
    "MountainBikeRide": ActivityType.BIKE,
    "GravelRide": ActivityType.BIKE,
    "Swim": ActivityType.SWIM,
    "Yoga": ActivityType.YOGA,
    "WeightTraining": ActivityType.WORKOUT,
    "Workout": ActivityType.WORKOUT,
    "Crossfit": ActivityType.WORKOUT,
    "HighIntensityIntervalTraining": ActivityType.WORKOUT,
}


@dataclass
class ImportedActivity:
    """A candidate activity together with its provider identity."""

    external_activity_id: str
    candidate: ActivityCandidate
    activity_date: date


class StravaActivityTransformer:
    """Transform Strava activity payload -> ImportedActivity.

    Strava Fields -> Candidate Fields:
    - id -> external_activity_id (as string)
    - sport_type / type -> activity_type (MAPPED, see STRAVA_TYPE_MAP)
    - distance (metres) -> distance_km
    - moving_time, else elapsed_time (seconds) -> duration_minutes (ROUNDED)
    - start_date_local, else start_date -> activity_date (DATE PART)
    - name -> title
    """

    @staticmethod
    def map_type(payload: dict[str, Any]) -> str:
        """Map Strava's sport type to an activity type tag."""
        sport = payload.get("sport_type") or payload.get("type") or ""
        return STRAVA_TYPE_MAP.get(sport, ActivityType.OTHER).value

    @staticmethod
    def parse_date(payload: dict[str, Any]) -> date:
        """Calendar date of the activity in the athlete's local time.

        Raises:
            ValueError: If the payload carries no usable start date
        """
        local = payload.get("start_date_local")
        if isinstance(local, str) and local:
            return date.fromisoformat(local.split("T")[0])

        start = payload.get("start_date")
        if isinstance(start, (int, float)):
            return datetime.fromtimestamp(start, tz=UTC).date()
        if isinstance(start, str) and start:
            return date.fromisoformat(start.split("T")[0])

        raise ValueError("Strava activity has no start date")

    @staticmethod
    def transform(payload: dict[str, Any]) -> ImportedActivity:
        """Convert a Strava payload to an ImportedActivity.

        Args:
            payload: Strava activity JSON

        Returns:
            ImportedActivity ready for de-duplication and validation

        Raises:
            KeyError: If the payload has no id
            TypeError: If the payload is not a JSON object
            ValueError: If the start date cannot be parsed
        """
        if not isinstance(payload, dict):
            raise TypeError(
                f"Strava activity payload must be an object, got {type(payload).__name__}"
            )

        seconds = payload.get("moving_time") or payload.get("elapsed_time") or 0
        activity_date = StravaActivityTransformer.parse_date(payload)

        candidate = ActivityCandidate(
            activity_type=StravaActivityTransformer.map_type(payload),
            distance_km=(payload.get("distance") or 0) / 1000,
            duration_minutes=float(round_half_up(seconds / 60)),
            activity_date=activity_date,
            title=payload.get("name"),
        )
        return ImportedActivity(
            external_activity_id=str(payload["id"]),
            candidate=candidate,
            activity_date=activity_date,
        )
