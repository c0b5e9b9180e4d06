"""Activity logging, listing and import endpoints."""

from typing import Annotated, Any

from litestar import Router, get, post
from litestar.exceptions import (
    ClientException,
    HTTPException,
    NotAuthorizedException,
    TooManyRequestsException,
)
from litestar.params import Parameter
from litestar.status_codes import HTTP_200_OK, HTTP_201_CREATED, HTTP_502_BAD_GATEWAY
from sqlalchemy.ext.asyncio import AsyncSession

from kinnect_server import repositories
from kinnect_server.core.auth import api_key_guard
from kinnect_server.schemas.activity import ActivitySubmission, StravaImportRequest
from kinnect_server.services.activity import (
    ActivityRejectedError,
    ActivityService,
    ImportFetchError,
    progress_to_dict,
)
from kinnect_server.services.import_error_handler import ImportErrorType


@post("/users/{user_id:str}/activities", status_code=HTTP_201_CREATED)
async def log_activity(
    user_id: str,
    data: ActivitySubmission,
    session: AsyncSession,
) -> dict[str, Any]:
    """Log an activity for a user.

    The activity is checked by quality control first. Rejected activities
    return 400 with the list of errors and are not stored. Accepted ones are
    scored, stored and credited to the user's points and streak; warnings
    are returned alongside.

    Example:
        POST /api/v1/users/abc/activities
        {"type": "run", "distance_km": 10, "duration_minutes": 55, "date": "2026-10-18"}
    """
    service = ActivityService(session)

    try:
        logged = await service.log_activity(user_id, data.to_candidate())
    except ActivityRejectedError as e:
        raise ClientException(
            detail="Activity rejected by quality control",
            extra={"errors": e.result.errors, "warnings": e.result.warnings},
        ) from e

    return {
        "message": "Activity logged",
        "activity": logged.activity.to_dict(),
        "calories_estimate": logged.score.calories_estimate,
        "points_earned": logged.score.points_earned,
        "progress": progress_to_dict(logged.progress),
        "warnings": logged.validation.warnings,
        "metrics": logged.validation.to_dict()["metrics"],
    }


@get("/users/{user_id:str}/activities", status_code=HTTP_200_OK)
async def list_activities(
    user_id: str,
    session: AsyncSession,
    days: Annotated[int, Parameter(query="days", default=30, ge=1, le=730)] = 30,
) -> list[dict[str, Any]]:
    """List a user's activities, most recent first."""
    activities = await repositories.list_activities(session, user_id, days)
    return [activity.to_dict() for activity in activities]


@get("/users/{user_id:str}/progress", status_code=HTTP_200_OK)
async def get_progress(user_id: str, session: AsyncSession) -> dict[str, Any]:
    """Get a user's points, streak and last activity date."""
    progress = await repositories.get_user_progress(session, user_id)
    return {"user_id": user_id, **progress_to_dict(progress)}


@post("/users/{user_id:str}/activities/import-strava", status_code=HTTP_200_OK)
async def import_strava_activities(
    user_id: str,
    data: StravaImportRequest,
    session: AsyncSession,
    strava_token: Annotated[str, Parameter(header="X-Strava-Token")],
) -> dict[str, Any]:
    """Import activities from Strava.

    Every imported activity goes through the same quality control and
    scoring as a manual log. Already-imported activities are skipped.

    Example:
        POST /api/v1/users/abc/activities/import-strava
        Headers: X-Strava-Token: <access_token>
        {"import_all": true}
    """
    if not data.import_all and not data.strava_activity_ids:
        raise ClientException(detail="strava_activity_ids array or import_all=true required")

    service = ActivityService(session)

    try:
        result = await service.import_from_strava(
            user_id=user_id,
            access_token=strava_token,
            activity_ids=data.strava_activity_ids,
            import_all=data.import_all,
        )
    except ImportFetchError as e:
        failure = e.failure
        if failure.error_type == ImportErrorType.TOKEN_INVALID:
            raise NotAuthorizedException(detail=failure.message) from e
        if failure.error_type == ImportErrorType.RATE_LIMITED:
            raise TooManyRequestsException(
                detail=failure.message,
                headers={"Retry-After": str(failure.retry_after_seconds)},
            ) from e
        raise HTTPException(
            status_code=HTTP_502_BAD_GATEWAY,
            detail=failure.message,
            extra=failure.to_dict(),
        ) from e

    return {
        "status": "partial" if result.has_failures else "success",
        "user_id": user_id,
        **result.to_dict(),
    }


activities_router = Router(
    path="/",
    guards=[api_key_guard],
    route_handlers=[log_activity, list_activities, get_progress, import_strava_activities],
    tags=["Activities"],
)
