"""Public interface for the ``ekstre`` package.

Turns Turkish bank notifications (text messages, statement emails and
banking-app screenshots) into a reconciled list of payment obligations.
Retrieval and persistence are collaborators; :mod:`ekstre.sources` and
:mod:`ekstre.store` are the directory and JSON-file implementations used by
the CLI.
"""

from .config import EngineConfig
from .errors import (
    ConfigError,
    DuplicateEntryError,
    EkstreError,
    EntryNotFoundError,
    LedgerError,
    StateFileError,
)
from .models import (
    Attachment,
    Candidates,
    LoanAgreement,
    Obligation,
    RawMessage,
    ReconcileResult,
)
from .processor import (
    MessageRef,
    MessageSource,
    RetrievalFilter,
    StatementProcessor,
    parse_message,
    process_screenshot,
)
from .reconcile import reconcile, stable_key

__all__ = [
    # Engine
    "StatementProcessor",
    "parse_message",
    "process_screenshot",
    "reconcile",
    "stable_key",
    # Retrieval contract
    "MessageRef",
    "MessageSource",
    "RetrievalFilter",
    # Models / types
    "Attachment",
    "Candidates",
    "EngineConfig",
    "LoanAgreement",
    "Obligation",
    "RawMessage",
    "ReconcileResult",
    # Errors
    "ConfigError",
    "DuplicateEntryError",
    "EkstreError",
    "EntryNotFoundError",
    "LedgerError",
    "StateFileError",
]
