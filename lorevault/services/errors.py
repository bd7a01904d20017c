"""
Exception hierarchy for lorevault services.

Tag validation problems are returned as data and never raised; these
exceptions cover persistence failures and invalid record operations.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class LoreVaultError(Exception):
    """Base exception for all lorevault errors."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}


class StoreError(LoreVaultError):
    """
    Persistence operation failed.
    Raised instead of returning an empty result so callers can tell
    "no data" apart from "write failed".
    """


class NotFoundError(LoreVaultError):
    """A document or folder referenced by an operation does not exist."""


class VaultValidationError(LoreVaultError):
    """Invalid structural request (cycles, cross-campaign moves, empty names)."""


class ConfigurationError(LoreVaultError):
    """Configuration or vocabulary data is invalid or missing."""


__all__ = [
    "LoreVaultError",
    "StoreError",
    "NotFoundError",
    "VaultValidationError",
    "ConfigurationError",
]
