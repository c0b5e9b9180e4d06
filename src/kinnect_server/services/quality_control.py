"""Activity quality control (QC).

Decides whether a submitted activity is physiologically plausible before it
is scored and stored. Problems are reported as values, never raised:

    errors   - blocking; the activity must not be stored or scored
    warnings - advisory; the activity is accepted and scored normally

Rules are applied in a fixed order and every rule runs (apart from the
missing-type check, which ends validation immediately):

    1. Activity type present and known
    2. Date parses, is not in the future, warn if older than a year
    3. Duration bounds (global, then per activity type)
    4. Distance bounds (global, then per activity type)
    5. Speed and pace plausibility (only when distance and duration > 0)
    6. Advisories for distance-without-duration and duration-without-distance

All thresholds live in QC_RULES so the rule set can be audited in one place.
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from types import MappingProxyType
from typing import Any


class ActivityType(str, Enum):
    """Supported activity types."""

    RUN = "run"
    WALK = "walk"
    WORKOUT = "workout"
    BIKE = "bike"
    SWIM = "swim"
    HIKE = "hike"
    YOGA = "yoga"
    OTHER = "other"

    @classmethod
    def values(cls) -> list[str]:
        """All type tags in declaration order."""
        return [member.value for member in cls]


@dataclass(frozen=True)
class Bounds:
    """Global bounds with optional per-activity-type caps."""

    min: float | None
    max: float | None
    per_type_max: Mapping[str, float]


@dataclass(frozen=True)
class QCRules:
    """Thresholds used by validate_activity.

    Attributes:
        duration: Minutes
        distance: Kilometres
        speed: km/h (min is global, per_type_max caps speed)
        pace: min/km (per_type_max only, run and walk)
        long_ago_days: Age after which a date draws a warning
    """

    duration: Bounds
    distance: Bounds
    speed: Bounds
    pace: Bounds
    long_ago_days: int = 365


def _caps(**caps: float) -> Mapping[str, float]:
    return MappingProxyType(caps)


QC_RULES = QCRules(
    duration=Bounds(
        min=1,
        max=1440,  # 24 hours
        per_type_max=_caps(run=480, walk=600, workout=180, bike=600, swim=240),
    ),
    distance=Bounds(
        min=0.01,  # 10 metres
        max=500,
        # Workouts carry no distance, so any positive value exceeds the cap
        per_type_max=_caps(run=100, walk=80, workout=0, bike=500, swim=50),
    ),
    speed=Bounds(
        min=0.5,
        max=None,
        per_type_max=_caps(run=25, walk=8, bike=60, swim=10),
    ),
    pace=Bounds(
        min=None,
        max=None,
        per_type_max=_caps(run=20, walk=30),
    ),
)

# Activity types where a missing distance means no distance-based credit
DISTANCE_TYPES = frozenset(
    {ActivityType.RUN.value, ActivityType.WALK.value, ActivityType.BIKE.value}
)

# Heuristic cross-check thresholds (warnings only)
FAST_RUN_SPEED_KMH = 20
FAST_RUN_DISTANCE_KM = 10
WALK_LOOKS_LIKE_RUN_KMH = 6


@dataclass
class ActivityCandidate:
    """An activity submission awaiting validation.

    Attributes:
        activity_type: Type tag, case-insensitive (None when missing)
        distance_km: Distance in kilometres, 0 for distance-less activities
        duration_minutes: Duration in minutes
        activity_date: Calendar date, datetime or ISO string (None skips date checks)
        title: Free text, not validated
    """

    activity_type: str | None
    distance_km: float = 0.0
    duration_minutes: float = 0.0
    activity_date: date | datetime | str | None = None
    title: str | None = None

    @property
    def normalized_type(self) -> str:
        """Lower-cased type tag ("" when missing)."""
        return (self.activity_type or "").strip().lower()


@dataclass(frozen=True)
class ActivityMetrics:
    """Metrics derived from distance and duration."""

    speed_kmh: float
    pace_min_per_km: float


@dataclass
class ValidationResult:
    """Outcome of validate_activity."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    metrics: ActivityMetrics | None = None

    @property
    def valid(self) -> bool:
        """True when there are no blocking errors."""
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict."""
        return {
            "valid": self.valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "metrics": asdict(self.metrics) if self.metrics else None,
        }


def parse_activity_date(value: date | datetime | str) -> date | None:
    """Parse an activity date into a calendar date.

    Accepts date objects, datetimes and ISO 8601 strings (date or datetime).

    Returns:
        The calendar date, or None if the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def _fmt(value: float) -> str:
    """Format a threshold without trailing zeros (100, 0.01)."""
    return f"{value:g}"


def validate_activity(candidate: ActivityCandidate, today: date | None = None) -> ValidationResult:
    """Run every QC rule against a candidate activity.

    Args:
        candidate: The submitted activity
        today: Reference date for the date rules (defaults to the current UTC date)

    Returns:
        ValidationResult with errors, warnings and derived metrics
    """
    result = ValidationResult()
    errors, warnings = result.errors, result.warnings

    # 1. Type presence and membership
    activity_type = candidate.normalized_type
    if not activity_type:
        errors.append("Activity type is required")
        return result

    if activity_type not in ActivityType.values():
        errors.append(
            f"Invalid activity type: {candidate.activity_type}. "
            f"Valid types: {', '.join(ActivityType.values())}"
        )

    # 2. Date plausibility
    if candidate.activity_date is not None:
        today = today or datetime.now(UTC).date()
        activity_date = parse_activity_date(candidate.activity_date)
        if activity_date is None:
            errors.append("Invalid date format")
        elif activity_date > today:
            errors.append("Activity date cannot be in the future")
        elif activity_date < today - timedelta(days=QC_RULES.long_ago_days):
            warnings.append("Activity date is more than one year ago")

    distance = candidate.distance_km or 0.0
    duration = candidate.duration_minutes or 0.0

    # 3. Duration bounds
    if duration < 0:
        errors.append("Duration cannot be negative")
    elif duration == 0 and distance == 0:
        errors.append("Either duration or distance must be provided")
    elif duration < QC_RULES.duration.min:
        errors.append(f"Duration must be at least {_fmt(QC_RULES.duration.min)} minute(s)")
    elif duration > QC_RULES.duration.max:
        errors.append(f"Duration cannot exceed {_fmt(QC_RULES.duration.max)} minutes (24 hours)")

    max_duration = QC_RULES.duration.per_type_max.get(activity_type)
    if max_duration is not None and duration > max_duration:
        errors.append(f"{activity_type} duration cannot exceed {_fmt(max_duration)} minutes")

    # 4. Distance bounds
    if distance < 0:
        errors.append("Distance cannot be negative")
    elif 0 < distance < QC_RULES.distance.min:
        warnings.append(
            f"Distance is very small ({_fmt(distance)} km). Did you mean to enter this?"
        )
    elif distance > QC_RULES.distance.max:
        errors.append(f"Distance cannot exceed {_fmt(QC_RULES.distance.max)} km")

    max_distance = QC_RULES.distance.per_type_max.get(activity_type)
    if max_distance is not None and distance > max_distance:
        errors.append(f"{activity_type} distance cannot exceed {_fmt(max_distance)} km")

    # 5. Speed and pace
    if distance > 0 and duration > 0:
        speed_kmh = distance / (duration / 60)
        pace_min_per_km = duration / distance
        result.metrics = ActivityMetrics(speed_kmh=speed_kmh, pace_min_per_km=pace_min_per_km)

        max_speed = QC_RULES.speed.per_type_max.get(activity_type)
        if max_speed is not None and speed_kmh > max_speed:
            errors.append(
                f"{activity_type} speed ({speed_kmh:.2f} km/h) exceeds maximum "
                f"reasonable speed ({_fmt(max_speed)} km/h)"
            )

        if speed_kmh < QC_RULES.speed.min:
            warnings.append(f"Very slow speed ({speed_kmh:.2f} km/h). Is this correct?")

        max_pace = QC_RULES.pace.per_type_max.get(activity_type)
        if max_pace is not None and pace_min_per_km > max_pace:
            warnings.append(f"Very slow pace ({pace_min_per_km:.1f} min/km). Is this correct?")

        if activity_type == ActivityType.WORKOUT.value:
            warnings.append(
                "Workout activities typically don't have distance. "
                "Did you mean a different activity type?"
            )
        if (
            activity_type == ActivityType.RUN.value
            and speed_kmh > FAST_RUN_SPEED_KMH
            and distance > FAST_RUN_DISTANCE_KM
        ):
            warnings.append("Very fast pace for a long distance. Please verify the data.")
        if activity_type == ActivityType.WALK.value and speed_kmh > WALK_LOOKS_LIKE_RUN_KMH:
            warnings.append(
                "Speed suggests running rather than walking. Please verify the activity type."
            )

    # 6. One of distance/duration missing
    if distance > 0 and duration == 0:
        warnings.append("Distance provided but no duration. Duration will be estimated.")
    if duration > 0 and distance == 0 and activity_type in DISTANCE_TYPES:
        warnings.append("Duration provided but no distance. Distance-based points will be zero.")

    return result


def qc_rules_snapshot() -> dict[str, Any]:
    """Current QC thresholds for monitoring endpoints.

    Returns:
        Dict with the rule tables and a generation timestamp
    """

    def bounds(b: Bounds) -> dict[str, Any]:
        return {"min": b.min, "max": b.max, "per_type_max": dict(b.per_type_max)}

    return {
        "rules": {
            "duration_minutes": bounds(QC_RULES.duration),
            "distance_km": bounds(QC_RULES.distance),
            "speed_kmh": bounds(QC_RULES.speed),
            "pace_min_per_km": bounds(QC_RULES.pace),
            "long_ago_days": QC_RULES.long_ago_days,
        },
        "activity_types": ActivityType.values(),
        "timestamp": datetime.now(UTC).isoformat(),
    }
