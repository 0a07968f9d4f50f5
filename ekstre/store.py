"""JSON file persistence for the reconciled obligation list.

The engine itself is storage-agnostic: it takes the prior list and returns the
new one. This module is the reference persistence collaborator used by the
CLI. The file holds a versioned document validated with pydantic on load:

``{"schema_version": 1, "saved_at": "...", "obligations": [...]}``

Writes go to ``<path>.tmp`` first and are moved into place with
``os.replace`` so a crash never leaves a half-written file.
"""

from __future__ import annotations

import contextlib
import os
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .errors import StateFileError
from .logging_setup import get_logger
from .models import Attachment, Obligation, RawMessage

SCHEMA_VERSION: int = 1

_logger = get_logger("ekstre.store")


class StoredAttachment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    filename: str
    mime_type: str = "application/octet-stream"
    text: str | None = None


class StoredMessage(BaseModel):
    model_config = ConfigDict(extra="forbid")

    channel: Literal["message", "email", "screenshot"]
    sender: str
    body: str
    received_at: datetime
    subject: str = ""
    html_body: str | None = None
    attachments: list[StoredAttachment] = Field(default_factory=list)
    ref: str | None = None

    @classmethod
    def from_message(cls, message: RawMessage) -> StoredMessage:
        return cls(
            channel=message.channel,
            sender=message.sender,
            body=message.body,
            received_at=message.received_at,
            subject=message.subject,
            html_body=message.html_body,
            attachments=[
                StoredAttachment(filename=a.filename, mime_type=a.mime_type, text=a.text)
                for a in message.attachments
            ],
            ref=message.ref,
        )

    def to_message(self) -> RawMessage:
        return RawMessage(
            channel=self.channel,
            sender=self.sender,
            body=self.body,
            received_at=self.received_at,
            subject=self.subject,
            html_body=self.html_body,
            attachments=tuple(
                Attachment(filename=a.filename, mime_type=a.mime_type, text=a.text)
                for a in self.attachments
            ),
            ref=self.ref,
        )


class StoredObligation(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    bank_name: str
    due_date: date
    amount: Decimal | None
    source: Literal["message", "email", "screenshot", "manual"]
    entry_type: Literal["debt", "expense"] = "debt"
    last4_digits: str | None = None
    original_message: StoredMessage | None = None
    is_paid: bool = False
    user_amount: Decimal | None = None
    user_due_date: date | None = None
    description: str | None = None

    @classmethod
    def from_obligation(cls, item: Obligation) -> StoredObligation:
        return cls(
            id=item.id,
            bank_name=item.bank_name,
            due_date=item.due_date,
            amount=item.amount,
            source=item.source,
            entry_type=item.entry_type,
            last4_digits=item.last4_digits,
            original_message=(
                StoredMessage.from_message(item.original_message)
                if item.original_message is not None
                else None
            ),
            is_paid=item.is_paid,
            user_amount=item.user_amount,
            user_due_date=item.user_due_date,
            description=item.description,
        )

    def to_obligation(self) -> Obligation:
        return Obligation(
            id=self.id,
            bank_name=self.bank_name,
            due_date=self.due_date,
            amount=self.amount,
            source=self.source,
            entry_type=self.entry_type,
            last4_digits=self.last4_digits,
            original_message=self.original_message.to_message() if self.original_message else None,
            is_paid=self.is_paid,
            user_amount=self.user_amount,
            user_due_date=self.user_due_date,
            description=self.description,
        )


class StoredState(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schema_version: Literal[1] = SCHEMA_VERSION
    saved_at: datetime | None = None
    obligations: list[StoredObligation] = Field(default_factory=list)


def load_state(path: Path) -> list[Obligation]:
    """Read the stored list; a missing file is an empty list.

    Raises
    ------
    StateFileError
        When the file exists but cannot be read or does not validate.
    """

    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        _logger.debug("No state file at %s; starting empty", path)
        return []
    except OSError as e:
        raise StateFileError(f"cannot read state file {path}: {e}") from e
    try:
        state = StoredState.model_validate_json(raw)
    except ValidationError as e:
        raise StateFileError(f"state file {path} is invalid: {e}") from e
    return [item.to_obligation() for item in state.obligations]


def save_state(path: Path, items: Iterable[Obligation]) -> None:
    """Atomically write ``items`` to ``path``."""

    state = StoredState(
        saved_at=datetime.now(),
        obligations=[StoredObligation.from_obligation(item) for item in items],
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(state.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp, path)
    except OSError:
        with contextlib.suppress(FileNotFoundError):
            tmp.unlink()
        raise
    _logger.debug("Saved %d obligation(s) to %s", len(state.obligations), path)


__all__ = [
    "SCHEMA_VERSION",
    "StoredMessage",
    "StoredObligation",
    "StoredState",
    "load_state",
    "save_state",
]
