"""
Trust registry: code fingerprints of programs vetted by the administrator

The registry is advisory. It records what a program's code looked like when
it was registered so later drift (a redeploy or upgrade) can be detected.
"""

import hmac
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from .adapters.fingerprint import HASH_SIZE, FingerprintAdapter
from .errors import CodeNotFound, NotAuthorized, UntrustedContract
from .identity import resolve_caller

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrustEntry:
    code_hash: bytes
    trusted: bool = True

    def __post_init__(self):
        if len(self.code_hash) != HASH_SIZE:
            raise ValueError(f"Code hash must be {HASH_SIZE} bytes, got {len(self.code_hash)}")


class TrustRegistry:
    """Maps program identities to the fingerprint captured at registration"""

    def __init__(self, admin: str, fingerprints: FingerprintAdapter):
        self.admin = admin
        self.fingerprints = fingerprints
        self._entries: Dict[str, TrustEntry] = {}
        self._lock = threading.RLock()

    def _resolve(self, program: str) -> bytes:
        try:
            fingerprint = self.fingerprints.resolve_code_hash(program)
        except CodeNotFound:
            raise UntrustedContract(program, "code cannot be resolved")
        if len(fingerprint) != HASH_SIZE:
            raise UntrustedContract(program, f"fingerprint is {len(fingerprint)} bytes")
        return fingerprint

    def register_trusted_contract(self, caller: Optional[str], program: str) -> bool:
        caller = resolve_caller(caller)
        if caller != self.admin:
            logger.debug("Rejected registration of %s by %s", program, caller)
            raise NotAuthorized(caller, "register trusted contracts")

        with self._lock:
            fingerprint = self._resolve(program)
            self._entries[program] = TrustEntry(code_hash=fingerprint)

        logger.info("Registered trusted contract %s (%s)", program, fingerprint.hex())
        return True

    def verify_contract_integrity(self, program: str) -> bool:
        """True if the program's code still matches its registered fingerprint"""
        entry = self._entries.get(program)
        if entry is None:
            raise UntrustedContract(program, "not registered")

        current = self._resolve(program)
        intact = hmac.compare_digest(current, entry.code_hash)
        if not intact:
            logger.warning(
                "Code of %s changed since registration: %s != %s",
                program, current.hex(), entry.code_hash.hex()
            )
        return intact

    def is_trusted_contract(self, program: str) -> bool:
        entry = self._entries.get(program)
        return entry is not None and entry.trusted

    def get_trust_entry(self, program: str) -> Optional[TrustEntry]:
        return self._entries.get(program)

    def trusted_contracts(self) -> List[str]:
        return sorted(self._entries)
