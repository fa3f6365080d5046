"""
Collaborator adapters: time, asset transfer and code fingerprinting
"""

from .clock import ManualClock, SystemClock, TimeSource
from .fingerprint import FingerprintAdapter, ProgramStore, code_hash
from .transfer import AssetBook, TransferAdapter, TransferAllowance

__all__ = [
    "TimeSource",
    "SystemClock",
    "ManualClock",
    "FingerprintAdapter",
    "ProgramStore",
    "code_hash",
    "TransferAdapter",
    "AssetBook",
    "TransferAllowance"
]
