"""
Shop catalogue endpoints - READ-ONLY
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from shopvest.auth.dependencies import require_user_role
from shopvest.auth.principal import Principal
from shopvest.core.shops.models import ShopStatus
from shopvest.infrastructure.database import get_db
from shopvest.schemas.shops import ShopResponse
from shopvest.services import shops as shop_service

router = APIRouter(tags=["shops"])


@router.get(
    "/shops",
    response_model=List[ShopResponse],
    summary="List shops",
    description="Shops open for investment by default. Requires USER role.",
)
def list_shops(
    status: Optional[ShopStatus] = Query(default=ShopStatus.ACTIVE),
    search: Optional[str] = Query(default=None, max_length=100),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_role()),
) -> List[ShopResponse]:
    shops = shop_service.list_shops(db, status=status, search=search, limit=limit, offset=offset)
    return [ShopResponse.model_validate(shop) for shop in shops]


@router.get("/shops/{shop_id}", response_model=ShopResponse, summary="Get shop")
def get_shop(
    shop_id: UUID,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_role()),
) -> ShopResponse:
    return ShopResponse.model_validate(shop_service.get_shop(db, shop_id))
