"""
Per-resource locks for read-then-write units of work

Rules:
- One key per resource: wallet (owner + kind), shop, investment, request.
  Unrelated users never wait on each other.
- Keys are acquired in one fixed global order, sorted by (rank, id):
  wallets < shops < investments < requests < settings.
- Keys belong to the Session that acquired them and stay held until that
  Session's transaction ends (commit, rollback or close).
- Re-acquiring a key the same Session already holds is a no-op.
- Waiting longer than LOCK_TIMEOUT_SECONDS raises ConcurrencyConflict
  (safe to retry).

The registry serializes threads of one process. Services also take
SELECT ... FOR UPDATE row locks so that several API processes sharing one
PostgreSQL database stay consistent.
"""

import enum
import logging
import threading
import time
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, NamedTuple, Optional

from sqlalchemy import event
from sqlalchemy.orm import Session

from shopvest.infrastructure.settings import get_settings
from shopvest.services.exceptions import ConcurrencyConflict
from shopvest.utils.metrics import record_lock_conflict

logger = logging.getLogger(__name__)


class LockKey(NamedTuple):
    rank: int
    resource: str
    ident: str


WALLET_RANK = 0
SHOP_RANK = 1
INVESTMENT_RANK = 2
REQUEST_RANK = 3
SETTINGS_RANK = 4


def _value(kind) -> str:
    return kind.value if isinstance(kind, enum.Enum) else str(kind)


def wallet_key(owner_id, kind) -> LockKey:
    return LockKey(WALLET_RANK, "wallet", f"{owner_id}:{_value(kind)}")


def shop_key(shop_id) -> LockKey:
    return LockKey(SHOP_RANK, "shop", str(shop_id))


def investment_key(investment_id) -> LockKey:
    return LockKey(INVESTMENT_RANK, "investment", str(investment_id))


def request_key(request_id) -> LockKey:
    return LockKey(REQUEST_RANK, "request", str(request_id))


def settings_key() -> LockKey:
    return LockKey(SETTINGS_RANK, "settings", "system")


class ResourceLockRegistry:
    """Keyed locks owned by a Session rather than by a thread"""

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._holders: Dict[LockKey, object] = {}

    def acquire(self, owner: object, keys: Iterable[LockKey], timeout: float) -> List[LockKey]:
        ordered = sorted(set(keys))
        deadline = time.monotonic() + timeout
        taken: List[LockKey] = []

        with self._condition:
            for key in ordered:
                while True:
                    holder = self._holders.get(key)
                    if holder is None:
                        self._holders[key] = owner
                        taken.append(key)
                        break
                    if holder is owner:
                        break
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        for held in taken:
                            del self._holders[held]
                        self._condition.notify_all()
                        record_lock_conflict(key.resource)
                        logger.warning(
                            "Resource lock timeout",
                            extra={"resource": key.resource, "resource_id": key.ident, "timeout_seconds": timeout},
                        )
                        raise ConcurrencyConflict(
                            f"{key.resource} {key.ident} is busy, retry the request",
                            details={"resource": key.resource},
                        )
                    self._condition.wait(remaining)
        return taken

    def release_all(self, owner: object) -> None:
        with self._condition:
            released = [key for key, holder in self._holders.items() if holder is owner]
            for key in released:
                del self._holders[key]
            if released:
                self._condition.notify_all()

    def held_by(self, owner: object) -> List[LockKey]:
        with self._condition:
            return sorted(key for key, holder in self._holders.items() if holder is owner)


registry = ResourceLockRegistry()


@event.listens_for(Session, "after_transaction_end")
def _release_on_transaction_end(session, transaction):
    # Savepoints have a parent; only the outermost transaction releases keys
    if transaction.parent is None:
        registry.release_all(session)


def _timeout(timeout: Optional[float]) -> float:
    return get_settings().LOCK_TIMEOUT_SECONDS if timeout is None else timeout


def hold_locks(db: Session, *keys: LockKey, timeout: Optional[float] = None) -> None:
    """
    Acquire keys for the current transaction of ``db``.

    Used by building blocks (wallet credit/debit, slot reservation) so that
    they are safe on their own; inside a unit_of_work the keys are normally
    already held and this is a no-op. Caller MUST commit or roll back.
    """
    registry.acquire(db, keys, _timeout(timeout))


@contextmanager
def unit_of_work(db: Session, *keys: LockKey, timeout: Optional[float] = None) -> Iterator[Session]:
    """
    Run a block atomically while holding the given resource keys.

    Commits on success, rolls back on any exception, and releases every key
    the session holds. Units do not nest: the inner commit would end the
    outer transaction.
    """
    registry.acquire(db, keys, _timeout(timeout))
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        registry.release_all(db)
