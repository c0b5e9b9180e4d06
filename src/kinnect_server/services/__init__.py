"""Application services."""

from kinnect_server.services.activity import ActivityService
from kinnect_server.services.quality_control import validate_activity
from kinnect_server.services.scoring import advance_progress, score_activity

__all__ = [
    "ActivityService",
    "advance_progress",
    "score_activity",
    "validate_activity",
]
