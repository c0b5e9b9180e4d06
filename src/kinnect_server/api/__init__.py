"""API routes."""

from litestar import Router

from kinnect_server.api.activities import activities_router
from kinnect_server.api.health import health_router
from kinnect_server.api.qc import qc_router
from kinnect_server.core.config import settings

# Versioned API routers get the /api/v1 prefix
_v1_routers = [
    activities_router,
    qc_router,
]

api_v1_router = Router(path=settings.api_prefix, route_handlers=_v1_routers)

# - health_router: /health - no auth needed, no version prefix
# - api_v1_router: /api/v1/* - activity and QC endpoints
api_routers = [health_router, api_v1_router]

__all__ = ["api_routers"]
