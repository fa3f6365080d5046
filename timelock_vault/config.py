import os
from dataclasses import dataclass
from typing import Mapping, Optional

DEFAULT_CUSTODY = "vault-custody"
DEFAULT_MIN_LOCK_DURATION = 3600  # one hour in clock units (seconds)
SIGNATURE_MAX_AGE = 300  # signed API requests older than this are rejected

UNLOCKED_MESSAGE = "Vault is unlocked and ready for withdrawal"
LOCKED_MESSAGE = "Vault is still locked"


@dataclass
class LedgerConfig:
    """Fixed parameters of a ledger deployment"""

    admin: str  # identity allowed to emergency-withdraw and register contracts
    custody: str = DEFAULT_CUSTODY  # account holding locked assets
    min_lock_duration: int = DEFAULT_MIN_LOCK_DURATION
    unlocked_message: str = UNLOCKED_MESSAGE
    locked_message: str = LOCKED_MESSAGE

    def __post_init__(self):
        if not self.admin:
            raise ValueError("Admin identity must not be empty")
        if self.admin == self.custody:
            raise ValueError("Admin identity must differ from the custody account")
        if not isinstance(self.min_lock_duration, int) or self.min_lock_duration <= 0:
            raise ValueError(
                f"Minimum lock duration must be a positive integer, got {self.min_lock_duration!r}"
            )

    @classmethod
    def default(cls, admin: str) -> 'LedgerConfig':
        """Create a config with the standard one hour lock floor"""
        return cls(admin=admin)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'LedgerConfig':
        """Load config from VAULT_* environment variables"""
        if environ is None:
            environ = os.environ

        admin = environ.get("VAULT_ADMIN")
        if not admin:
            raise ValueError("VAULT_ADMIN must be set")

        min_lock = environ.get("VAULT_MIN_LOCK_DURATION")
        try:
            min_lock_duration = int(min_lock) if min_lock else DEFAULT_MIN_LOCK_DURATION
        except ValueError:
            raise ValueError(f"VAULT_MIN_LOCK_DURATION must be an integer, got {min_lock!r}")

        return cls(
            admin=admin,
            custody=environ.get("VAULT_CUSTODY", DEFAULT_CUSTODY),
            min_lock_duration=min_lock_duration,
        )

    def status_message(self, unlocked: bool) -> str:
        return self.unlocked_message if unlocked else self.locked_message
