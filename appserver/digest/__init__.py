"""Incremental digest engine."""

from appserver.digest.sha256 import EMPTY_SHA256_HEX, Sha256, Sha256State

__all__ = [
    "EMPTY_SHA256_HEX",
    "Sha256",
    "Sha256State",
]
