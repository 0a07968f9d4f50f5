"""Exceptions raised by ``ekstre``.

Extraction itself never raises (bad fields become ``None``, failing parsers and
retrievals are logged and skipped). These types cover the operations that do
reject input: user actions on the ledger, the state file, and configuration.
"""

from __future__ import annotations


class EkstreError(Exception):
    """Base class for all library errors."""


class ConfigError(EkstreError, ValueError):
    """An ``EKSTRE_*`` environment variable holds an unusable value."""


class LedgerError(EkstreError, ValueError):
    """A user action cannot be applied to the obligation list."""


class DuplicateEntryError(LedgerError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(f"an entry with id {entry_id!r} already exists")
        self.entry_id = entry_id


class EntryNotFoundError(LedgerError):
    def __init__(self, entry_id: str) -> None:
        super().__init__(f"no entry with id {entry_id!r}")
        self.entry_id = entry_id


class StateFileError(EkstreError):
    """The stored obligation list exists but cannot be read back."""


__all__ = [
    "ConfigError",
    "DuplicateEntryError",
    "EkstreError",
    "EntryNotFoundError",
    "LedgerError",
    "StateFileError",
]
