"""Repository functions for activities and user progress.

All reads and writes of the activities and user_progress tables go through
here. Functions take the caller's session and never commit; the activity
service owns transaction boundaries.
"""

import logging
from datetime import date, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from kinnect_server.models.activity import Activity
from kinnect_server.models.progress import UserProgress
from kinnect_server.services.scoring import ProgressState

logger = logging.getLogger(__name__)


def _to_state(row: UserProgress) -> ProgressState:
    return ProgressState(
        points=row.points,
        streak=row.streak,
        last_activity_date=row.last_activity_date,
    )


async def get_user_progress(session: AsyncSession, user_id: str) -> ProgressState:
    """Read a user's progress without locking.

    Returns:
        Current state, or a zero state if the user has no progress row yet
    """
    row = await session.get(UserProgress, user_id)
    if row is None:
        return ProgressState()
    return _to_state(row)


async def _select_progress_for_update(session: AsyncSession, user_id: str) -> UserProgress | None:
    stmt = (
        select(UserProgress)
        .where(UserProgress.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_progress_for_update(session: AsyncSession, user_id: str) -> ProgressState:
    """Read a user's progress and hold a row lock until the transaction ends.

    Concurrent submissions for the same user serialize here, so the streak
    is always advanced from the latest committed last_activity_date.
    A zero row is created on first use. If a concurrent first submission
    inserts the row first, the insert is rolled back to a savepoint and the
    committed row is locked instead.
    """
    row = await _select_progress_for_update(session, user_id)

    if row is None:
        try:
            async with session.begin_nested():
                session.add(
                    UserProgress(user_id=user_id, points=0, streak=0, last_activity_date=None)
                )
                await session.flush()
        except IntegrityError:
            logger.info(f"Progress row for {user_id} created concurrently, locking it")
        row = await _select_progress_for_update(session, user_id)

    return _to_state(row)


async def save_user_progress(session: AsyncSession, user_id: str, state: ProgressState) -> None:
    """Write a progress state back to the user's row."""
    row = await session.get(UserProgress, user_id)
    if row is None:
        row = UserProgress(user_id=user_id)
        session.add(row)

    row.points = state.points
    row.streak = state.streak
    row.last_activity_date = state.last_activity_date
    await session.flush()


async def add_activity(session: AsyncSession, user_id: str, **fields: Any) -> Activity:
    """Insert an activity row and flush it to obtain its id."""
    activity = Activity(user_id=user_id, **fields)
    session.add(activity)
    await session.flush()
    return activity


async def find_by_external_id(
    session: AsyncSession, user_id: str, source: str, external_activity_id: str
) -> Activity | None:
    """Find an activity previously imported from an external provider."""
    stmt = (
        select(Activity)
        .where(Activity.user_id == user_id)
        .where(Activity.source == source)
        .where(Activity.external_activity_id == external_activity_id)
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def find_similar_activity(
    session: AsyncSession,
    user_id: str,
    activity_type: str,
    activity_date: date,
    distance_km: float,
    tolerance: float,
) -> Activity | None:
    """Find a manual activity with the same date and type and a similar distance.

    Catches duplicates logged by hand before the same session was imported.
    Rows that carry a provider ID are never matched; those are deduplicated
    by ID only, so two distinct provider sessions on one day are both kept.

    Args:
        session: Database session
        user_id: User identifier
        activity_type: Activity type tag
        activity_date: Calendar date
        distance_km: Distance to match
        tolerance: Relative tolerance (0.05 = +/-5%)
    """
    stmt = (
        select(Activity)
        .where(Activity.user_id == user_id)
        .where(Activity.activity_date == activity_date)
        .where(Activity.activity_type == activity_type)
        .where(Activity.external_activity_id.is_(None))
        .where(Activity.distance_km >= distance_km * (1 - tolerance))
        .where(Activity.distance_km <= distance_km * (1 + tolerance))
        .limit(1)
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_activities(session: AsyncSession, user_id: str, days: int) -> list[Activity]:
    """List a user's activities from the last N days, most recent first."""
    since_date = date.today() - timedelta(days=days)
    stmt = (
        select(Activity)
        .where(Activity.user_id == user_id)
        .where(Activity.activity_date >= since_date)
        .order_by(Activity.activity_date.desc(), Activity.created_at.desc())
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())
