"""
Code fingerprinting for registered programs
"""

from typing import Dict, Protocol

from cryptography.hazmat.primitives import hashes

from ..errors import CodeNotFound

HASH_SIZE = 32


class FingerprintAdapter(Protocol):
    def resolve_code_hash(self, program: str) -> bytes:
        ...


def code_hash(code: bytes) -> bytes:
    """SHA-256 digest of program code"""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(code)
    return digest.finalize()


class ProgramStore:
    """In-memory program deployments, fingerprinted on lookup"""

    def __init__(self):
        self._code: Dict[str, bytes] = {}

    def deploy(self, program: str, code: bytes) -> bytes:
        """Deploy or redeploy ``program``; returns its new fingerprint"""
        if not isinstance(code, (bytes, bytearray)):
            raise TypeError("Program code must be bytes")
        self._code[program] = bytes(code)
        return code_hash(self._code[program])

    def remove(self, program: str) -> None:
        self._code.pop(program, None)

    def is_deployed(self, program: str) -> bool:
        return program in self._code

    def resolve_code_hash(self, program: str) -> bytes:
        if program not in self._code:
            raise CodeNotFound(program)
        return code_hash(self._code[program])
