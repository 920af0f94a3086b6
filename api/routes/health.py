"""
Health endpoints for load balancers and Kubernetes.
Registered on the controller like any other handler; keep payloads minimal.
"""

from fastapi import Response

from core.dependencies import SettingsDep
from models.schemas import HealthResponse


async def health(settings: SettingsDep) -> HealthResponse:
    """Liveness: is the process alive."""
    return HealthResponse(service=settings.APP_NAME)


async def live() -> Response:
    """Minimal live check: 200 with no body."""
    return Response(status_code=200)
