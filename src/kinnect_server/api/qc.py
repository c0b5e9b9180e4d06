"""Quality-control endpoints (no database access)."""

from dataclasses import asdict
from typing import Any

from litestar import Router, get, post
from litestar.status_codes import HTTP_200_OK

from kinnect_server.schemas.activity import ActivitySubmission
from kinnect_server.services.quality_control import qc_rules_snapshot, validate_activity
from kinnect_server.services.scoring import score_activity


@get("/qc/rules", status_code=HTTP_200_OK, sync_to_thread=False)
def get_qc_rules() -> dict[str, Any]:
    """Current QC thresholds.

    Example:
        GET /api/v1/qc/rules
    """
    return qc_rules_snapshot()


@post("/activities/validate", status_code=HTTP_200_OK, sync_to_thread=False)
def validate_submission(data: ActivitySubmission) -> dict[str, Any]:
    """Dry-run quality control for an activity without storing it.

    Returns the validation result plus the score the activity would earn
    (null when it would be rejected).

    Example:
        POST /api/v1/activities/validate
        {"type": "walk", "distance_km": 5, "duration_minutes": 40}
    """
    candidate = data.to_candidate()
    result = validate_activity(candidate)

    response = result.to_dict()
    response["score"] = asdict(score_activity(candidate)) if result.valid else None
    return response


qc_router = Router(
    path="/",
    route_handlers=[get_qc_rules, validate_submission],
    tags=["Quality Control"],
)
