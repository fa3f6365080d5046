"""
Caller identities

Identities are opaque strings. Principals backed by a SECP256k1 key use their
compressed public key (hex) as identity, which lets an outer surface such as
the web API authenticate callers by signature.
"""

import contextvars
import hashlib
from contextlib import contextmanager
from typing import Iterator, Optional, Tuple

from ecdsa import BadSignatureError, SECP256k1, SigningKey, VerifyingKey
from ecdsa.errors import MalformedPointError

from .errors import NotAuthorized

_current_caller: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "timelock_vault_caller", default=None
)


def current_caller() -> str:
    """Return the identity bound for the running operation"""
    caller = _current_caller.get()
    if caller is None:
        raise NotAuthorized("<anonymous>", "act without a bound caller")
    return caller


@contextmanager
def acting_as(identity: str) -> Iterator[str]:
    """Bind ``identity`` as the current caller for the enclosed block"""
    if not identity:
        raise ValueError("Caller identity must not be empty")
    token = _current_caller.set(identity)
    try:
        yield identity
    finally:
        _current_caller.reset(token)


def resolve_caller(caller: Optional[str]) -> str:
    """Explicit caller if given, otherwise the bound one"""
    if caller is None:
        return current_caller()
    return caller


class Principal:
    """Key-backed identity for depositors and administrators"""

    def __init__(self, private_key: bytes = None):
        if private_key:
            self.private_key = SigningKey.from_string(private_key, curve=SECP256k1)
        else:
            self.private_key = SigningKey.generate(curve=SECP256k1)

        self.public_key = self.private_key.get_verifying_key()

    @property
    def identity(self) -> str:
        """Compressed public key in hex format"""
        return self.public_key.to_string("compressed").hex()

    def sign(self, message: bytes) -> str:
        """Sign message and return signature in hex"""
        signature = self.private_key.sign(message, hashfunc=hashlib.sha256)
        return signature.hex()

    def sign_request(self, method: str, path: str, body: bytes, timestamp: int, nonce: str) -> str:
        """Sign an API request, bound to its method, path, time and nonce"""
        return self.sign(request_message(method, path, body, timestamp, nonce))

    def private_key_hex(self) -> str:
        return self.private_key.to_string().hex()

    @staticmethod
    def generate_key_pair() -> Tuple[str, str]:
        """Generate new key pair and return (private_key_hex, identity)"""
        principal = Principal()
        return principal.private_key_hex(), principal.identity


def request_message(method: str, path: str, body: bytes, timestamp: int, nonce: str) -> bytes:
    """Canonical bytes a caller signs for one API request"""
    header = f"{method.upper()}\n{path}\n{timestamp}\n{nonce}\n"
    return header.encode() + body


def verify_caller(identity: str, message: bytes, signature_hex: str) -> bool:
    """Check that ``signature_hex`` over ``message`` was made by ``identity``"""
    try:
        vk = VerifyingKey.from_string(bytes.fromhex(identity), curve=SECP256k1)
        signature = bytes.fromhex(signature_hex)
        return vk.verify(signature, message, hashfunc=hashlib.sha256)
    except (BadSignatureError, MalformedPointError, ValueError):
        return False
