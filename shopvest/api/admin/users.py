"""
Admin API - Users and KYC status
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_admin_id
from shopvest.core.users.models import KYCStatus
from shopvest.infrastructure.database import get_db
from shopvest.schemas.admin import KYCUpdateRequest, UserResponse
from shopvest.services import users as user_service

router = APIRouter()


@router.get("/users", response_model=List[UserResponse], summary="List users")
def list_users(
    kyc_status: Optional[KYCStatus] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> List[UserResponse]:
    users = user_service.list_users(db, kyc_status=kyc_status, limit=limit, offset=offset)
    return [UserResponse.model_validate(user) for user in users]


@router.put(
    "/users/{user_id}/kyc",
    response_model=UserResponse,
    summary="Record a KYC verdict",
    description="Called by the KYC service or an admin. Only APPROVED users may withdraw or transfer.",
)
def set_kyc_status(
    user_id: UUID,
    payload: KYCUpdateRequest,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> UserResponse:
    user = user_service.set_kyc_status(db, user_id=user_id, status=payload.status, updated_by=admin_id)
    return UserResponse.model_validate(user)
