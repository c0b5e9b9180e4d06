"""Activity logging and import service.

Pipeline for every submission, manual or imported:

    validate -> (reject) | score -> lock progress -> insert -> advance -> commit

Nothing is stored or credited for a candidate with validation errors.
Imports apply streak transitions once per distinct day in chronological
order and commit day by day, so a failure part-way through keeps the days
already committed.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from typing import Any

import httpx
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from kinnect_server import repositories
from kinnect_server.core.config import settings
from kinnect_server.integrations.strava import StravaClient, StravaError
from kinnect_server.models.activity import Activity, ActivitySource, QCStatus
from kinnect_server.services.import_error_handler import ImportErrorHandler, ImportFailure
from kinnect_server.services.quality_control import (
    ActivityCandidate,
    ValidationResult,
    parse_activity_date,
    validate_activity,
)
from kinnect_server.services.scoring import (
    ActivityScore,
    ProgressState,
    advance_progress,
    chronological_days,
    score_activity,
)
from kinnect_server.transformers.strava import ImportedActivity, StravaActivityTransformer

logger = structlog.get_logger()

# The import response lists at most this many skipped items
MAX_SKIPPED_DETAILS = 10


class ActivityRejectedError(Exception):
    """Raised when a submitted activity fails quality control."""

    def __init__(self, result: ValidationResult) -> None:
        super().__init__("; ".join(result.errors))
        self.result = result


class ImportFetchError(Exception):
    """Raised when activities could not be fetched from the provider at all."""

    def __init__(self, failure: ImportFailure) -> None:
        super().__init__(failure.message)
        self.failure = failure


@dataclass
class LoggedActivity:
    """Result of a successful manual log."""

    activity: Activity
    score: ActivityScore
    progress: ProgressState
    validation: ValidationResult


@dataclass
class ImportResult:
    """Per-item outcome of a bulk import."""

    imported: list[dict[str, Any]] = field(default_factory=list)
    skipped: list[dict[str, Any]] = field(default_factory=list)
    rejected: list[dict[str, Any]] = field(default_factory=list)
    failed: list[dict[str, Any]] = field(default_factory=list)
    progress: ProgressState | None = None

    @property
    def has_failures(self) -> bool:
        """True if any item could not be fetched, read or stored."""
        return bool(self.failed)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the API response shape."""
        return {
            "message": f"Imported {len(self.imported)} activities",
            "imported": len(self.imported),
            "skipped": len(self.skipped),
            "rejected": len(self.rejected),
            "failed": len(self.failed),
            "details": {
                "imported": self.imported,
                "skipped": self.skipped[:MAX_SKIPPED_DETAILS],
                "rejected": self.rejected,
                "failed": self.failed,
            },
            "progress": progress_to_dict(self.progress) if self.progress else None,
        }


def progress_to_dict(progress: ProgressState) -> dict[str, Any]:
    return {
        "points": progress.points,
        "streak": progress.streak,
        "last_activity_date": (
            str(progress.last_activity_date) if progress.last_activity_date else None
        ),
    }


def _qc_columns(result: ValidationResult) -> dict[str, Any]:
    return {
        "qc_status": (
            QCStatus.ACCEPTED_WITH_WARNINGS.value if result.warnings else QCStatus.ACCEPTED.value
        ),
        "qc_warnings": list(result.warnings) or None,
        "qc_metrics": result.to_dict()["metrics"],
    }


class ActivityService:
    """Validate, score and persist activities for a user.

    The session is owned by the caller; the service commits at the end of
    each logical unit (one activity, or one day of an import).
    """

    def __init__(
        self,
        session: AsyncSession,
        strava_client_factory: Callable[[str], StravaClient] = StravaClient,
    ) -> None:
        """Initialize activity service.

        Args:
            session: Database session
            strava_client_factory: Builds a Strava client from an access token
        """
        self.session = session
        self.strava_client_factory = strava_client_factory
        self.error_handler = ImportErrorHandler()
        self.logger = logger.bind(service="activity")

    async def log_activity(
        self,
        user_id: str,
        candidate: ActivityCandidate,
        today: date | None = None,
    ) -> LoggedActivity:
        """Validate, score and store a manually logged activity.

        Args:
            user_id: User identifier
            candidate: The submitted activity (date defaults to today)
            today: Reference date for validation (defaults to the current UTC date)

        Returns:
            LoggedActivity with the stored row, score, new progress and warnings

        Raises:
            ActivityRejectedError: If validation produced errors
        """
        today = today or datetime.now(UTC).date()
        if candidate.activity_date is None:
            candidate = replace(candidate, activity_date=today)

        result = validate_activity(candidate, today=today)
        if not result.valid:
            self.logger.info("Activity rejected", user_id=user_id, errors=result.errors)
            raise ActivityRejectedError(result)

        activity_date = parse_activity_date(candidate.activity_date)
        score = score_activity(candidate)

        progress = await repositories.get_user_progress_for_update(self.session, user_id)
        activity = await repositories.add_activity(
            self.session,
            user_id,
            activity_type=candidate.normalized_type,
            title=candidate.title,
            distance_km=candidate.distance_km or 0.0,
            duration_minutes=candidate.duration_minutes or 0.0,
            activity_date=activity_date,
            calories_estimate=score.calories_estimate,
            points_earned=score.points_earned,
            source=ActivitySource.MANUAL.value,
            **_qc_columns(result),
        )
        progress = advance_progress(progress, score.points_earned, activity_date)
        await repositories.save_user_progress(self.session, user_id, progress)
        await self.session.commit()

        self.logger.info(
            "Activity logged",
            user_id=user_id,
            activity_id=activity.id,
            points=score.points_earned,
            streak=progress.streak,
            warnings=len(result.warnings),
        )
        return LoggedActivity(activity=activity, score=score, progress=progress, validation=result)

    async def import_from_strava(
        self,
        user_id: str,
        access_token: str,
        activity_ids: list[int | str] | None = None,
        import_all: bool = False,
        today: date | None = None,
    ) -> ImportResult:
        """Fetch activities from Strava and import them.

        Args:
            user_id: User identifier
            access_token: Strava access token
            activity_ids: Specific Strava activity IDs to import
            import_all: Import every activity (up to the configured page cap)
            today: Reference date for validation

        Returns:
            ImportResult with per-item outcome

        Raises:
            ImportFetchError: If the activity list could not be fetched
        """
        fetch_failures: list[dict[str, Any]] = []
        payloads: list[dict[str, Any]] = []

        async with self.strava_client_factory(access_token) as client:
            if import_all:
                self.logger.info("Importing all Strava activities", user_id=user_id)
                try:
                    payloads = await client.fetch_all_activities()
                except (StravaError, httpx.HTTPError) as e:
                    failure = self.error_handler.classify(e, context={"user_id": user_id})
                    raise ImportFetchError(failure) from e
            else:
                ids = activity_ids or []
                self.logger.info("Importing Strava activities", user_id=user_id, count=len(ids))
                for activity_id in ids:
                    try:
                        payloads.append(await client.get_activity(activity_id))
                    except (StravaError, httpx.HTTPError) as e:
                        failure = self.error_handler.classify(
                            e, context={"user_id": user_id, "external_id": activity_id}
                        )
                        fetch_failures.append({"id": str(activity_id), **failure.to_dict()})

        result = await self.import_activities(user_id, payloads, today=today)
        result.failed[:0] = fetch_failures
        return result

    async def import_activities(
        self,
        user_id: str,
        payloads: Iterable[dict[str, Any]],
        today: date | None = None,
    ) -> ImportResult:
        """Import Strava activity payloads for a user.

        Each payload is transformed, checked for duplicates (provider ID,
        then same date/type with distance within tolerance), validated and
        scored. Days are processed oldest first; each day is one transaction
        and advances the streak once.

        Args:
            user_id: User identifier
            payloads: Raw Strava activity payloads, in any order
            today: Reference date for validation

        Returns:
            ImportResult with per-item outcome and final progress
        """
        today = today or datetime.now(UTC).date()
        result = ImportResult()

        items: list[ImportedActivity] = []
        for payload in payloads:
            try:
                items.append(StravaActivityTransformer.transform(payload))
            except (KeyError, TypeError, ValueError) as e:
                external_id = payload.get("id") if isinstance(payload, dict) else None
                failure = self.error_handler.classify(
                    e, context={"user_id": user_id, "external_id": external_id}
                )
                result.failed.append(
                    {
                        "id": str(external_id) if external_id is not None else None,
                        **failure.to_dict(),
                    }
                )

        for day, day_items in chronological_days(items, key=lambda item: item.activity_date):
            await self._import_day(user_id, day, day_items, today, result)

        result.progress = await repositories.get_user_progress(self.session, user_id)

        self.logger.info(
            "Import completed",
            user_id=user_id,
            imported=len(result.imported),
            skipped=len(result.skipped),
            rejected=len(result.rejected),
            failed=len(result.failed),
        )
        return result

    async def _import_day(
        self,
        user_id: str,
        day: date,
        items: list[ImportedActivity],
        today: date,
        result: ImportResult,
    ) -> None:
        """Import one calendar day of activities in a single transaction."""
        imported_today: list[dict[str, Any]] = []
        day_points = 0

        try:
            progress = await repositories.get_user_progress_for_update(self.session, user_id)

            for item in items:
                reason = await self._duplicate_reason(user_id, item)
                if reason:
                    result.skipped.append({"id": item.external_activity_id, "reason": reason})
                    continue

                validation = validate_activity(item.candidate, today=today)
                if not validation.valid:
                    result.rejected.append(
                        {
                            "id": item.external_activity_id,
                            "errors": validation.errors,
                            "warnings": validation.warnings,
                        }
                    )
                    continue

                score = score_activity(item.candidate)
                try:
                    async with self.session.begin_nested():
                        activity = await repositories.add_activity(
                            self.session,
                            user_id,
                            activity_type=item.candidate.normalized_type,
                            title=item.candidate.title,
                            distance_km=item.candidate.distance_km,
                            duration_minutes=item.candidate.duration_minutes,
                            activity_date=day,
                            calories_estimate=score.calories_estimate,
                            points_earned=score.points_earned,
                            source=ActivitySource.STRAVA.value,
                            external_activity_id=item.external_activity_id,
                            **_qc_columns(validation),
                        )
                except SQLAlchemyError as e:
                    failure = self.error_handler.classify(
                        e, context={"user_id": user_id, "external_id": item.external_activity_id}
                    )
                    result.failed.append({"id": item.external_activity_id, **failure.to_dict()})
                    continue

                day_points += score.points_earned
                imported_today.append(
                    {
                        "external_id": item.external_activity_id,
                        "activity_id": activity.id,
                        "date": str(day),
                        "points": score.points_earned,
                        "warnings": validation.warnings,
                    }
                )

            if imported_today:
                progress = advance_progress(progress, day_points, day)
                await repositories.save_user_progress(self.session, user_id, progress)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            failure = self.error_handler.classify(e, context={"user_id": user_id, "day": str(day)})
            result.failed.extend(
                {"id": entry["external_id"], **failure.to_dict()} for entry in imported_today
            )
            return

        result.imported.extend(imported_today)

    async def _duplicate_reason(self, user_id: str, item: ImportedActivity) -> str | None:
        """Why an imported activity is a duplicate, or None if it is new."""
        existing = await repositories.find_by_external_id(
            self.session, user_id, ActivitySource.STRAVA.value, item.external_activity_id
        )
        if existing:
            return "Already imported"

        # Distance-less activities have nothing to match on
        if item.candidate.distance_km <= 0:
            return None

        similar = await repositories.find_similar_activity(
            self.session,
            user_id,
            activity_type=item.candidate.normalized_type,
            activity_date=item.activity_date,
            distance_km=item.candidate.distance_km,
            tolerance=settings.duplicate_distance_tolerance,
        )
        if similar:
            return "Matches an existing activity"
        return None
