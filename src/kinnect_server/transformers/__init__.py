"""External payload -> activity candidate transformers."""

from kinnect_server.transformers.strava import ImportedActivity, StravaActivityTransformer

__all__ = [
    "ImportedActivity",
    "StravaActivityTransformer",
]
