"""
Admin API - Versioned system settings
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import get_admin_id
from shopvest.infrastructure.database import get_db
from shopvest.schemas.admin import SystemSettingsResponse, SystemSettingsUpdateRequest
from shopvest.services.system_settings import get_current_settings, list_settings_history, update_system_settings

router = APIRouter()


@router.get(
    "/settings/system",
    response_model=SystemSettingsResponse,
    summary="Get current system settings",
    description="Maintenance mode, withdrawal limits, fee rates and defaults in force. Requires ADMIN role.",
)
def get_system_settings(
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> SystemSettingsResponse:
    return SystemSettingsResponse.model_validate(get_current_settings(db))


@router.put(
    "/settings/system",
    response_model=SystemSettingsResponse,
    summary="Update system settings",
    description="Writes a new settings version; the next gated operation reads it. Requires ADMIN role.",
)
def put_system_settings(
    payload: SystemSettingsUpdateRequest,
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> SystemSettingsResponse:
    changes = payload.model_dump(exclude_unset=True, exclude={"change_note"})
    updated = update_system_settings(db, changes=changes, updated_by=admin_id, change_note=payload.change_note)
    return SystemSettingsResponse.model_validate(updated)


@router.get("/settings/system/history", response_model=List[SystemSettingsResponse], summary="Settings versions")
def get_system_settings_history(
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    admin_id: UUID = Depends(get_admin_id),
) -> List[SystemSettingsResponse]:
    return [SystemSettingsResponse.model_validate(item) for item in list_settings_history(db, limit=limit)]
