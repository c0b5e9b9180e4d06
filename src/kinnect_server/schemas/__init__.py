"""Pydantic schemas for API requests."""

from kinnect_server.schemas.activity import ActivitySubmission, StravaImportRequest

__all__ = [
    "ActivitySubmission",
    "StravaImportRequest",
]
