"""
User service - provisioning and the KYC gate

KYC verification itself happens in an external collaborator; the engine only
stores the resulting status, which admins (or the KYC service through the
admin API) update.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from shopvest.core.users.models import User, UserStatus, KYCStatus
from shopvest.services.exceptions import NotFound, ValidationError

logger = logging.getLogger(__name__)


def get_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound(f"User {user_id} not found")
    return user


def provision_user(db: Session, *, user_id: UUID, email: str, full_name: Optional[str] = None) -> User:
    """
    Return the user for a verified token subject, creating it on first sight.

    Caller MUST commit.
    """
    user = db.get(User, user_id)
    if user is not None:
        return user

    if not email:
        email = f"{user_id}@users.shopvest.local"
    user = User(
        id=user_id,
        email=email,
        full_name=full_name,
        status=UserStatus.ACTIVE.value,
        kyc_status=KYCStatus.NOT_SUBMITTED.value,
    )
    db.add(user)
    db.flush()
    logger.info("User provisioned", extra={"user_id": str(user_id)})
    return user


def get_kyc_status(db: Session, user_id: UUID) -> KYCStatus:
    return KYCStatus(get_user(db, user_id).kyc_status)


def set_kyc_status(db: Session, *, user_id: UUID, status: KYCStatus, updated_by: Optional[UUID] = None) -> User:
    """Record the verdict of the KYC collaborator"""
    try:
        status = KYCStatus(status)
    except ValueError as exc:
        raise ValidationError(f"Invalid KYC status: {status}") from exc

    user = get_user(db, user_id)
    previous = user.kyc_status
    user.kyc_status = status.value
    db.commit()

    logger.info(
        "KYC status changed",
        extra={"user_id": str(user_id), "from": previous, "to": status.value, "updated_by": updated_by},
    )
    return user


def list_users(db: Session, *, kyc_status: Optional[KYCStatus] = None, limit: int = 100, offset: int = 0) -> List[User]:
    stmt = select(User).order_by(User.created_at.desc())
    if kyc_status is not None:
        stmt = stmt.where(User.kyc_status == KYCStatus(kyc_status).value)
    return list(db.execute(stmt.limit(limit).offset(offset)).scalars())
