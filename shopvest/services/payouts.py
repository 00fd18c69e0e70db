"""
Payout gateway seam

The engine hands approved withdrawals to a PayoutGateway and never holds a
resource lock while doing so. The gateway only acknowledges the instruction;
the final outcome arrives later through the settlement callback.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID, uuid4

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayoutInstruction:
    request_id: UUID
    owner_id: UUID
    amount: int  # Net amount, fee already deducted
    method: str
    destination: Optional[str]


class PayoutGateway(Protocol):
    def send_payout(self, instruction: PayoutInstruction) -> str:
        """
        Submit a payout and return the provider reference.

        Raises:
            ExternalSettlementError: the provider refused the instruction
        """
        ...


class LoggingPayoutGateway:
    """Default gateway: records the instruction and acknowledges it"""

    def send_payout(self, instruction: PayoutInstruction) -> str:
        reference = f"payout-{uuid4().hex[:16]}"
        logger.info(
            "Payout submitted",
            extra={
                "request_id": str(instruction.request_id),
                "owner_id": str(instruction.owner_id),
                "amount": instruction.amount,
                "method": instruction.method,
                "payout_reference": reference,
            },
        )
        return reference


_gateway: PayoutGateway = LoggingPayoutGateway()


def get_payout_gateway() -> PayoutGateway:
    return _gateway


def set_payout_gateway(gateway: PayoutGateway) -> None:
    global _gateway
    _gateway = gateway
