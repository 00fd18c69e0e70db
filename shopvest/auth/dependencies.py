"""
Authentication dependencies for FastAPI

Tokens are issued by the identity service and signed with JWT_SECRET
(HS256 by default). Claims used: sub (user id), email, name, roles.
"""

import logging
from uuid import UUID

import jwt as pyjwt
from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from shopvest.auth.principal import Principal, Role
from shopvest.infrastructure.database import get_db
from shopvest.infrastructure.settings import get_settings
from shopvest.services.users import provision_user

logger = logging.getLogger(__name__)


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": {"code": code, "message": message}},
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_principal(request: Request, authorization: str = Header(None)) -> Principal:
    """Extract the Principal from the Bearer JWT in the Authorization header"""
    if not authorization:
        raise _unauthorized("AUTHORIZATION_MISSING", "Authorization header missing")

    try:
        scheme, token = authorization.split()
    except ValueError:
        raise _unauthorized("INVALID_AUTHORIZATION", "Invalid authorization header format")
    if scheme.lower() != "bearer":
        raise _unauthorized("INVALID_AUTHORIZATION", "Invalid authentication scheme")

    settings = get_settings()
    try:
        payload = pyjwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except pyjwt.ExpiredSignatureError:
        raise _unauthorized("TOKEN_EXPIRED", "Token expired")
    except pyjwt.InvalidTokenError as e:
        raise _unauthorized("INVALID_TOKEN", f"Invalid token: {e}")

    roles = payload.get("roles") or [Role.USER.value]
    if isinstance(roles, str):
        roles = [roles]
    principal = Principal(
        subject=payload.get("sub") or "",
        email=payload.get("email"),
        name=payload.get("name"),
        roles=[str(role).upper() for role in roles],
        raw_claims=payload,
    )

    # Picked up by RequestLoggingMiddleware
    request.state.actor_id = principal.subject
    request.state.actor_role = ",".join(principal.roles)
    return principal


def require_user_role():
    """Require USER role - returns dependency"""
    def _check_role(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_role(Role.USER):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions - USER role required",
            )
        return principal
    return _check_role


def require_admin_role():
    """Require ADMIN role - returns dependency"""
    def _check_role(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_role(Role.ADMIN):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions - ADMIN role required",
            )
        return principal
    return _check_role


def get_user_id_from_principal(principal: Principal) -> UUID:
    """User id from the JWT subject claim"""
    if not principal.subject:
        raise _unauthorized("INVALID_PRINCIPAL", "Invalid principal - missing user identifier")
    try:
        return UUID(principal.subject)
    except (ValueError, TypeError):
        raise _unauthorized("INVALID_PRINCIPAL", "Invalid principal - invalid user identifier format")


def get_admin_id(principal: Principal = Depends(require_admin_role())) -> UUID:
    return get_user_id_from_principal(principal)


def get_current_user_id(
    principal: Principal = Depends(require_user_role()),
    db: Session = Depends(get_db),
) -> UUID:
    """
    Id of the User behind the token, provisioned on first authentication.

    The session is committed before returning so that no read transaction
    stays open while a service waits for resource locks.
    """
    user_id = get_user_id_from_principal(principal)
    provision_user(db, user_id=user_id, email=principal.email, full_name=principal.name)
    db.commit()
    return user_id
