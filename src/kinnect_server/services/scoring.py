"""Calorie, points and streak accrual.

Pure functions, no database access. Callers persist the activity and the
returned progress state together.

Calories use a MET-style model with a fixed 70 kg reference body mass:

    run      70 kcal per km
    walk     35 kcal per km
    workout  MET 6 x 70 kg x hours
    other    MET 5 x 70 kg x hours

Points are one per 10 kcal, with a floor of one point per accepted activity.
"""

import math
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, replace
from datetime import date, timedelta
from itertools import groupby
from typing import TypeVar

from kinnect_server.services.quality_control import ActivityCandidate, ActivityType

T = TypeVar("T")

REFERENCE_WEIGHT_KG = 70
WORKOUT_MET = 6
DEFAULT_MET = 5
WALK_KCAL_PER_KG_KM = 0.5
CALORIES_PER_POINT = 10
MIN_POINTS = 1


@dataclass(frozen=True)
class ActivityScore:
    """Calories and points for one accepted activity."""

    calories_estimate: int
    points_earned: int


@dataclass(frozen=True)
class ProgressState:
    """A user's points and streak at a point in time."""

    points: int = 0
    streak: int = 0
    last_activity_date: date | None = None


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives.

    Python's round() uses banker's rounding, which would score 2.5 as 2.
    """
    return math.floor(value + 0.5)


def estimate_calories(activity_type: str, distance_km: float, duration_minutes: float) -> int:
    """Estimate calories burned.

    Args:
        activity_type: Activity type tag (unknown tags use the default MET)
        distance_km: Distance in kilometres
        duration_minutes: Duration in minutes

    Returns:
        Calories, rounded to the nearest integer
    """
    duration_hours = duration_minutes / 60

    if activity_type == ActivityType.RUN.value:
        return round_half_up(REFERENCE_WEIGHT_KG * distance_km)
    if activity_type == ActivityType.WALK.value:
        return round_half_up(REFERENCE_WEIGHT_KG * distance_km * WALK_KCAL_PER_KG_KM)
    if activity_type == ActivityType.WORKOUT.value:
        return round_half_up(WORKOUT_MET * REFERENCE_WEIGHT_KG * duration_hours)
    return round_half_up(DEFAULT_MET * REFERENCE_WEIGHT_KG * duration_hours)


def calculate_points(calories: int) -> int:
    """Convert calories to points (1 per 10 kcal, at least 1)."""
    return max(MIN_POINTS, round_half_up(calories / CALORIES_PER_POINT))


def score_activity(candidate: ActivityCandidate) -> ActivityScore:
    """Score a validated activity.

    Must only be called for candidates whose validation produced no errors.
    """
    calories = estimate_calories(
        candidate.normalized_type,
        candidate.distance_km or 0.0,
        candidate.duration_minutes or 0.0,
    )
    return ActivityScore(calories_estimate=calories, points_earned=calculate_points(calories))


def advance_progress(
    progress: ProgressState, points_earned: int, activity_date: date
) -> ProgressState:
    """Apply one credited activity day to a user's progress.

    Streak transitions:
    - same day as the last activity: unchanged
    - the day after the last activity: +1
    - anything else (gap, no history, or an earlier backfilled date): reset to 1

    Args:
        progress: Current state
        points_earned: Points to add
        activity_date: Calendar date of the activity

    Returns:
        New ProgressState (the input is not modified)
    """
    last = progress.last_activity_date

    if last == activity_date:
        streak = progress.streak
    elif last is not None and activity_date == last + timedelta(days=1):
        streak = progress.streak + 1
    else:
        streak = 1

    return replace(
        progress,
        points=progress.points + points_earned,
        streak=streak,
        last_activity_date=activity_date,
    )


def chronological_days(
    items: Iterable[T], key: Callable[[T], date]
) -> Iterator[tuple[date, list[T]]]:
    """Group items by calendar day, oldest day first.

    Bulk imports arrive in fetch order; streak transitions must be applied
    once per distinct day in date order.
    """
    ordered = sorted(items, key=key)
    for day, group in groupby(ordered, key=key):
        yield day, list(group)
