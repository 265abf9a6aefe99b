"""SHA-256 helpers for chunk and artifact integrity."""

import hashlib
from typing import Optional


def compute_checksum(data: bytes) -> str:
    """
    Compute the SHA-256 hex digest of data.
    """
    return hashlib.sha256(data).hexdigest()


def checksum_matches(data: bytes, expected: Optional[str]) -> bool:
    """
    Compare data against an expected SHA-256 hex digest.

    An absent expectation always matches; comparison is case-insensitive.
    """
    if not expected:
        return True
    return compute_checksum(data) == expected.strip().lower()


class IncrementalChecksumCalculator:
    """
    SHA-256 over data that arrives in pieces (e.g. chunks during assembly).
    """

    def __init__(self):
        self._hasher = hashlib.sha256()
        self._finalized = False

    def update(self, data: bytes) -> None:
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)

    def finalize(self) -> str:
        self._finalized = True
        return self._hasher.hexdigest()
