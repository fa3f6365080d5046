"""
Time-locked vault ledger with a code-fingerprint trust registry
"""

from .config import LedgerConfig
from .errors import (
    InsufficientBalance,
    InvalidAmount,
    InvalidUnlockTime,
    NotAuthorized,
    TransferFailed,
    UntrustedContract,
    VaultAlreadyExists,
    VaultError,
    VaultLocked,
    VaultNotFound,
)
from .identity import Principal, acting_as, current_caller
from .registry import TrustEntry, TrustRegistry
from .vault import LedgerState, VaultLedger, VaultRecord

__version__ = "0.1.0"
__all__ = [
    "LedgerConfig",
    "VaultLedger",
    "VaultRecord",
    "LedgerState",
    "TrustRegistry",
    "TrustEntry",
    "Principal",
    "acting_as",
    "current_caller",
    "VaultError",
    "NotAuthorized",
    "VaultAlreadyExists",
    "VaultLocked",
    "InvalidAmount",
    "VaultNotFound",
    "InvalidUnlockTime",
    "UntrustedContract",
    "TransferFailed",
    "InsufficientBalance"
]
