"""
Admin API - Shop management
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import require_admin_role
from shopvest.auth.principal import Principal
from shopvest.core.shops.models import ShopStatus
from shopvest.infrastructure.database import get_db
from shopvest.schemas.shops import CreateShopRequest, ShopResponse, ShopStatusRequest, UpdateShopRequest
from shopvest.services import shops as shop_service

router = APIRouter()


@router.post(
    "/shops",
    response_model=ShopResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a shop",
    description="daily_percent defaults to the current default profit percentage. Requires ADMIN role.",
)
def create_shop(
    payload: CreateShopRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_role()),
) -> ShopResponse:
    shop = shop_service.create_shop(db, **payload.model_dump())
    return ShopResponse.model_validate(shop)


@router.get("/shops", response_model=List[ShopResponse], summary="List all shops")
def list_shops(
    status: Optional[ShopStatus] = Query(default=None),
    search: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_role()),
) -> List[ShopResponse]:
    shops = shop_service.list_shops(db, status=status, search=search, limit=limit, offset=offset)
    return [ShopResponse.model_validate(shop) for shop in shops]


@router.patch("/shops/{shop_id}", response_model=ShopResponse, summary="Edit shop terms")
def update_shop(
    shop_id: UUID,
    payload: UpdateShopRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_role()),
) -> ShopResponse:
    shop = shop_service.update_shop(db, shop_id=shop_id, changes=payload.model_dump(exclude_unset=True))
    return ShopResponse.model_validate(shop)


@router.patch(
    "/shops/{shop_id}/status",
    response_model=ShopResponse,
    summary="Activate, deactivate or close a shop",
)
def set_shop_status(
    shop_id: UUID,
    payload: ShopStatusRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin_role()),
) -> ShopResponse:
    shop = shop_service.set_shop_status(db, shop_id=shop_id, status=payload.status)
    return ShopResponse.model_validate(shop)
