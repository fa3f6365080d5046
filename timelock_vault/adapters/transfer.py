"""
Asset transfers between external identities and system custody

Moving assets out of custody needs a ``TransferAllowance``: a single-use
capability for one transfer of an exact amount, live only inside the
``custody_allowance`` block that issued it.
"""

import itertools
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Protocol

from ..config import DEFAULT_CUSTODY
from ..errors import InsufficientBalance, TransferFailed


@dataclass
class TransferAllowance:
    """Permission to move exactly ``amount`` out of ``custody`` once"""
    allowance_id: int
    custody: str
    amount: int
    used: bool = False
    revoked: bool = False

    @property
    def live(self) -> bool:
        return not (self.used or self.revoked)


class TransferAdapter(Protocol):
    def transfer(self, sender: str, recipient: str, amount: int,
                 allowance: Optional[TransferAllowance] = None) -> None:
        ...

    def custody_allowance(self, custody: str, amount: int) -> Iterator[TransferAllowance]:
        ...


TransferHook = Callable[[str, str, int], None]


class AssetBook:
    """In-memory single-asset balances with a protected custody account"""

    def __init__(self, custody: str = DEFAULT_CUSTODY, on_transfer: Optional[TransferHook] = None):
        self.custody = custody
        # Called before balances move; may raise to fail the transfer or re-enter the ledger
        self.on_transfer = on_transfer
        self._balances: Dict[str, int] = {}
        self._allowances: Dict[int, TransferAllowance] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    def mint(self, identity: str, amount: int) -> int:
        """Credit ``amount`` to an external identity"""
        if not isinstance(amount, int) or amount <= 0:
            raise ValueError(f"Mint amount must be a positive integer, got {amount!r}")
        if identity == self.custody:
            raise ValueError("Cannot mint into the custody account")
        with self._lock:
            self._balances[identity] = self.balance_of(identity) + amount
            return self._balances[identity]

    def balance_of(self, identity: str) -> int:
        return self._balances.get(identity, 0)

    @contextmanager
    def custody_allowance(self, custody: str, amount: int) -> Iterator[TransferAllowance]:
        """Issue an allowance for one outbound transfer, revoked on exit"""
        if custody != self.custody:
            raise ValueError(f"{custody} is not the custody account of this book")
        with self._lock:
            allowance = TransferAllowance(next(self._ids), custody, amount)
            self._allowances[allowance.allowance_id] = allowance
        try:
            yield allowance
        finally:
            with self._lock:
                allowance.revoked = True
                self._allowances.pop(allowance.allowance_id, None)

    def live_allowances(self) -> int:
        return len(self._allowances)

    def _check_allowance(self, sender: str, recipient: str, amount: int,
                         allowance: Optional[TransferAllowance]) -> None:
        if allowance is None:
            raise TransferFailed(sender, recipient, amount, "custody allowance required")
        if self._allowances.get(allowance.allowance_id) is not allowance or not allowance.live:
            raise TransferFailed(sender, recipient, amount, "custody allowance is not live")
        if allowance.custody != sender or allowance.amount != amount:
            raise TransferFailed(
                sender, recipient, amount,
                f"allowance covers {allowance.amount} from {allowance.custody}"
            )

    def transfer(self, sender: str, recipient: str, amount: int,
                 allowance: Optional[TransferAllowance] = None) -> None:
        if not isinstance(amount, int) or amount <= 0:
            raise TransferFailed(sender, recipient, amount, "amount must be positive")
        if sender == recipient:
            raise TransferFailed(sender, recipient, amount, "sender and recipient are the same")

        with self._lock:
            if sender == self.custody:
                self._check_allowance(sender, recipient, amount, allowance)

            balance = self.balance_of(sender)
            if balance < amount:
                raise InsufficientBalance(sender, recipient, amount, balance)

            if self.on_transfer is not None:
                self.on_transfer(sender, recipient, amount)

            # The hook may have re-entered and spent from the sender
            balance = self.balance_of(sender)
            if balance < amount:
                raise InsufficientBalance(sender, recipient, amount, balance)

            if allowance is not None and sender == self.custody:
                allowance.used = True
            self._balances[sender] = balance - amount
            self._balances[recipient] = self.balance_of(recipient) + amount

