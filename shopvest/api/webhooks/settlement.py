"""
Settlement webhook - payout and payment outcomes from the payment collaborator
"""

import logging
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from shopvest.infrastructure.database import get_db
from shopvest.schemas.payments import SettlementCallbackRequest, SettlementCallbackResponse
from shopvest.services.settlement import on_settlement_callback
from shopvest.services.withdrawals import SettlementOutcome
from shopvest.utils.trace_id import get_trace_id
from shopvest.utils.webhook_security import SIGNATURE_HEADER, TIMESTAMP_HEADER, verify_webhook_security

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/settlement",
    response_model=SettlementCallbackResponse,
    status_code=status.HTTP_200_OK,
    summary="Settlement callback",
    description=(
        "Final outcome of a withdrawal payout or a deposit. Idempotent per request id: "
        "repeated callbacks return the stored state with duplicate=true. Requires HMAC signature."
    ),
)
async def settlement_webhook(
    request: Request,
    db: Session = Depends(get_db),
    x_webhook_signature: Optional[str] = Header(None, alias=SIGNATURE_HEADER),
    x_webhook_timestamp: Optional[str] = Header(None, alias=TIMESTAMP_HEADER),
) -> SettlementCallbackResponse:
    trace_id = get_trace_id(request)
    body_bytes = await request.body()

    # Signature is computed over the exact raw body
    is_valid, error_code, error_details = verify_webhook_security(
        payload_body=body_bytes,
        signature_header=x_webhook_signature,
        timestamp_header=x_webhook_timestamp,
    )
    if not is_valid:
        logger.error(
            "Webhook security verification failed",
            extra={"trace_id": trace_id, "code": error_code, "path": request.url.path},
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": {"code": error_code, "message": "Webhook verification failed", "details": error_details}},
        )

    try:
        payload = SettlementCallbackRequest.model_validate_json(body_bytes)
    except pydantic.ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Invalid settlement payload",
                    "details": jsonable_encoder(exc.errors(), custom_encoder={Exception: str}),
                }
            },
        )

    logger.info(
        "Settlement callback received",
        extra={"trace_id": trace_id, "request_id": str(payload.request_id), "outcome": payload.outcome},
    )
    # Settlement takes resource locks; keep it off the event loop
    result = await run_in_threadpool(
        on_settlement_callback,
        db,
        payload.request_id,
        SettlementOutcome(payload.outcome),
        reference=payload.reference,
        reason=payload.reason,
    )
    return SettlementCallbackResponse(**result)
