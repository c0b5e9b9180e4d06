"""Database models."""

from kinnect_server.models.activity import Activity, ActivitySource, QCStatus
from kinnect_server.models.base import Base
from kinnect_server.models.progress import UserProgress

__all__ = [
    "Base",
    "Activity",
    "ActivitySource",
    "QCStatus",
    "UserProgress",
]
