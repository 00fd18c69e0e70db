"""
Prometheus metrics endpoint
"""

import logging
from typing import Optional

import jwt as pyjwt
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import Response

from shopvest.auth.principal import Role
from shopvest.infrastructure.settings import get_settings
from shopvest.utils.metrics import CONTENT_TYPE_LATEST, get_metrics_output

logger = logging.getLogger(__name__)

router = APIRouter(tags=["metrics"])


def verify_metrics_access(
    request: Request,
    x_metrics_token: Optional[str] = Header(None, alias="X-Metrics-Token"),
) -> bool:
    """
    Access is granted if:
    - METRICS_PUBLIC=true, OR
    - METRICS_TOKEN is set and matches the X-Metrics-Token header, OR
    - the Bearer token carries the ADMIN role
    """
    settings = get_settings()

    if settings.METRICS_PUBLIC:
        return True

    if settings.METRICS_TOKEN and x_metrics_token == settings.METRICS_TOKEN:
        return True

    authorization = request.headers.get("Authorization", "")
    if authorization.startswith("Bearer "):
        token = authorization.split(" ", 1)[1]
        try:
            claims = pyjwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        except pyjwt.InvalidTokenError:
            claims = {}
        roles = claims.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        if Role.ADMIN.value in [str(r).upper() for r in roles]:
            return True

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Access to metrics endpoint denied. Set METRICS_PUBLIC=true or provide a valid METRICS_TOKEN or ADMIN role.",
    )


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    description="Expose Prometheus metrics for observability. Protected by default (METRICS_PUBLIC=false).",
)
def get_metrics(_: bool = Depends(verify_metrics_access)) -> Response:
    return Response(content=get_metrics_output(), media_type=CONTENT_TYPE_LATEST)
