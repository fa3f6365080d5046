"""
Vault ledger: time-locked custody of a single asset

Each depositor holds at most one vault. Assets move into custody when the
vault is created and back out when it is withdrawn after its unlock time, or
early by the administrator through an emergency withdrawal.
"""

import logging
import threading
from dataclasses import asdict, dataclass, field
from typing import Dict, Optional, Set

from .adapters.clock import TimeSource
from .adapters.transfer import TransferAdapter
from .config import LedgerConfig
from .errors import (
    InvalidAmount,
    InvalidUnlockTime,
    LedgerInvariantError,
    NotAuthorized,
    VaultAlreadyExists,
    VaultLocked,
    VaultNotFound,
)
from .identity import resolve_caller

logger = logging.getLogger(__name__)


def _is_uint(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


@dataclass(frozen=True)
class VaultRecord:
    """Locked balance of one depositor"""
    amount: int
    unlock_time: int
    created_at: int

    def is_unlocked(self, now: int) -> bool:
        return now >= self.unlock_time

    def time_until_unlock(self, now: int) -> int:
        return max(0, self.unlock_time - now)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> 'VaultRecord':
        record = cls(
            amount=data['amount'],
            unlock_time=data['unlock_time'],
            created_at=data['created_at']
        )
        if not _is_uint(record.amount) or record.amount == 0:
            raise InvalidAmount(record.amount)
        if not (_is_uint(record.unlock_time) and _is_uint(record.created_at)):
            raise ValueError("Vault timestamps must be non-negative integers")
        if record.unlock_time < record.created_at:
            raise ValueError("Vault unlock time precedes its creation")
        return record


@dataclass
class LedgerState:
    """All mutable ledger state; total_locked always equals the sum of vault amounts"""
    vaults: Dict[str, VaultRecord] = field(default_factory=dict)
    total_locked: int = 0

    def insert(self, identity: str, record: VaultRecord) -> None:
        self.vaults[identity] = record
        self.total_locked += record.amount

    def remove(self, identity: str) -> VaultRecord:
        record = self.vaults.pop(identity)
        self.total_locked -= record.amount
        return record

    def check_invariants(self) -> None:
        expected = sum(record.amount for record in self.vaults.values())
        if self.total_locked != expected:
            raise LedgerInvariantError(self.total_locked, expected)

    def to_dict(self) -> dict:
        return {
            'vaults': {identity: record.to_dict() for identity, record in self.vaults.items()},
            'total_locked': self.total_locked
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'LedgerState':
        vaults = {
            identity: VaultRecord.from_dict(record)
            for identity, record in data.get('vaults', {}).items()
        }
        state = cls(vaults=vaults, total_locked=data.get('total_locked', 0))
        state.check_invariants()
        return state


class VaultLedger:
    """Time-locked custody ledger"""

    def __init__(self, config: LedgerConfig, clock: TimeSource, transfers: TransferAdapter,
                 state: Optional[LedgerState] = None):
        self.config = config
        self.clock = clock
        self.transfers = transfers
        self.state = state if state is not None else LedgerState()
        self.state.check_invariants()
        # Depositors whose inbound transfer is in flight
        self._pending: Set[str] = set()
        self._lock = threading.RLock()
        logger.info(
            "Vault ledger ready: admin=%s custody=%s min_lock=%d",
            config.admin, config.custody, config.min_lock_duration
        )

    # Mutations

    def create_vault(self, caller: Optional[str], amount: int, lock_duration: int) -> VaultRecord:
        """Lock ``amount`` from ``caller`` for at least ``lock_duration``"""
        caller = resolve_caller(caller)

        if not _is_uint(amount) or amount == 0:
            logger.debug("Rejected vault for %s: invalid amount %r", caller, amount)
            raise InvalidAmount(amount)
        if not _is_uint(lock_duration) or lock_duration < self.config.min_lock_duration:
            logger.debug("Rejected vault for %s: lock duration %r", caller, lock_duration)
            raise InvalidUnlockTime(lock_duration, self.config.min_lock_duration)
        if caller == self.config.custody:
            raise NotAuthorized(caller, "create a vault from the custody account")

        with self._lock:
            if caller in self.state.vaults or caller in self._pending:
                logger.debug("Rejected vault for %s: already exists", caller)
                raise VaultAlreadyExists(caller)

            now = self.clock.current_time()
            record = VaultRecord(amount=amount, unlock_time=now + lock_duration, created_at=now)

            self._pending.add(caller)
            try:
                self.transfers.transfer(caller, self.config.custody, amount)
            finally:
                self._pending.discard(caller)

            self.state.insert(caller, record)

        logger.info(
            "Vault created for %s: amount=%d unlock_time=%d",
            caller, record.amount, record.unlock_time
        )
        return record

    def withdraw(self, caller: Optional[str] = None) -> int:
        """Release the caller's vault once its unlock time has passed"""
        caller = resolve_caller(caller)

        with self._lock:
            record = self._require_vault(caller)
            now = self.clock.current_time()
            if not record.is_unlocked(now):
                logger.debug("Rejected withdrawal for %s: locked until %d", caller, record.unlock_time)
                raise VaultLocked(caller, record.unlock_time, now)

            self._release(caller, caller)

        logger.info("Vault withdrawn by %s: amount=%d", caller, record.amount)
        return record.amount

    def emergency_withdraw(self, caller: Optional[str], target: str) -> int:
        """Administrator release of ``target``'s vault, ignoring the time lock"""
        caller = resolve_caller(caller)
        if caller != self.config.admin:
            logger.debug("Rejected emergency withdrawal by %s", caller)
            raise NotAuthorized(caller, "emergency withdraw")

        with self._lock:
            record = self._require_vault(target)
            self._release(target, target)

        logger.info(
            "Emergency withdrawal by %s for %s: amount=%d", caller, target, record.amount
        )
        return record.amount

    def _release(self, owner: str, recipient: str) -> VaultRecord:
        # The record leaves state before the outbound transfer, so a
        # re-entrant call from the transfer sees no vault. The owner stays
        # reserved until the transfer settles so the record can be restored.
        record = self.state.remove(owner)
        self._pending.add(owner)
        try:
            with self.transfers.custody_allowance(self.config.custody, record.amount) as allowance:
                self.transfers.transfer(self.config.custody, recipient, record.amount, allowance=allowance)
        except Exception:
            # Any failure means the funds are still in custody
            self.state.insert(owner, record)
            logger.warning(
                "Transfer of %d to %s failed, vault restored", record.amount, recipient
            )
            raise
        finally:
            self._pending.discard(owner)
        return record

    # Queries

    def _require_vault(self, identity: str) -> VaultRecord:
        record = self.state.vaults.get(identity)
        if record is None:
            raise VaultNotFound(identity)
        return record

    def get_total_locked(self) -> int:
        return self.state.total_locked

    def get_vault(self, identity: str) -> VaultRecord:
        return self._require_vault(identity)

    def has_vault(self, identity: str) -> bool:
        return identity in self.state.vaults

    def vault_count(self) -> int:
        return len(self.state.vaults)

    def is_withdrawable(self, identity: str) -> bool:
        record = self._require_vault(identity)
        return record.is_unlocked(self.clock.current_time())

    def time_until_unlock(self, identity: str) -> int:
        record = self._require_vault(identity)
        return record.time_until_unlock(self.clock.current_time())

    def vault_status_message(self, identity: str) -> str:
        return self.config.status_message(self.is_withdrawable(identity))

    def snapshot(self) -> dict:
        with self._lock:
            return self.state.to_dict()
