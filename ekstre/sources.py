"""Directory-backed retrieval collaborator.

``DirectorySource`` serves messages from an inbox directory exported by the
host application (or written by hand for testing):

- ``sms/*.json``: ``{"sender": ..., "body": ..., "received_at": ...}``
- ``email/*.eml``: raw RFC 822 sources, decoded with :mod:`ekstre.decoding`.
  Text already extracted from an attachment sits next to it as
  ``<eml stem>.<attachment filename>.txt`` (``isbank.ekstre.pdf.txt``).
- ``screenshots/*.txt``: OCR text; the file's mtime is the capture time.

Email queries understand the ``from:(...)``, ``subject:("...")`` and
``after:YYYY/MM/DD`` terms used in the bank table.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from email.header import decode_header, make_header
from email.utils import parsedate_to_datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, ValidationError

from .decoding import RAW_CODEC, decode_email_source, split_headers
from .logging_setup import get_logger
from .models import Attachment, Channel, RawMessage
from .normalize import fold_turkish
from .processor import MessageRef, RetrievalFilter

_logger = get_logger("ekstre.sources")

_FROM_RE = re.compile(r"from:\(([^)]*)\)", re.IGNORECASE)
_SUBJECT_RE = re.compile(r'subject:\("([^"]*)"\)', re.IGNORECASE)
_AFTER_RE = re.compile(r"after:(\d{4})/(\d{2})/(\d{2})", re.IGNORECASE)

_CHANNEL_DIRS: dict[Channel, tuple[str, str]] = {
    "message": ("sms", "*.json"),
    "email": ("email", "*.eml"),
    "screenshot": ("screenshots", "*.txt"),
}


class SmsFile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sender: str
    body: str
    received_at: datetime


def _local_naive(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _decode_header_value(value: str | None) -> str:
    if not value:
        return ""
    try:
        # Raw 8bit header bytes are usually UTF-8.
        value = value.encode(RAW_CODEC).decode("utf-8")
    except UnicodeError:
        pass
    try:
        return str(make_header(decode_header(value)))
    except (LookupError, UnicodeDecodeError, ValueError):
        return value


def _query_matches(query: str, *, sender: str, subject: str) -> bool:
    sender_f, subject_f = fold_turkish(sender), fold_turkish(subject)
    for m in _FROM_RE.finditer(query):
        if fold_turkish(m.group(1).strip()) not in sender_f:
            return False
    for m in _SUBJECT_RE.finditer(query):
        if fold_turkish(m.group(1).strip()) not in subject_f:
            return False
    return True


def _query_since(query: str) -> date | None:
    m = _AFTER_RE.search(query)
    if m is None:
        return None
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        return None


class DirectorySource:
    """A ``MessageSource`` over one channel's directory of an inbox export."""

    def __init__(self, root: Path, channel: Channel) -> None:
        self._root = Path(root)
        self._channel = channel

    @classmethod
    def for_inbox(cls, root: Path) -> dict[Channel, DirectorySource]:
        """One source per channel whose directory exists under ``root``."""

        sources: dict[Channel, DirectorySource] = {}
        for channel, (dirname, _) in _CHANNEL_DIRS.items():
            if (Path(root) / dirname).is_dir():
                sources[channel] = cls(root, channel)
        return sources

    @property
    def directory(self) -> Path:
        return self._root / _CHANNEL_DIRS[self._channel][0]

    def search(self, retrieval_filter: RetrievalFilter) -> list[MessageRef]:
        since = retrieval_filter.since
        if retrieval_filter.channel == "email":
            since = _query_since(retrieval_filter.query) or since
        matches: list[RawMessage] = []
        for path in sorted(self.directory.glob(_CHANNEL_DIRS[self._channel][1])):
            try:
                message = self._load(path)
            except (OSError, ValueError):
                _logger.warning("Skipping unreadable %s", path, exc_info=True)
                continue
            if since is not None and message.received_at.date() < since:
                continue
            if self._matches(message, retrieval_filter):
                matches.append(message)
        matches.sort(key=lambda m: m.received_at, reverse=True)
        return [
            MessageRef(channel=self._channel, id=m.ref or "")
            for m in matches[: retrieval_filter.max_results]
        ]

    def fetch_body(self, ref: MessageRef) -> RawMessage:
        path = self.directory / ref.id
        if not path.is_file():
            raise FileNotFoundError(path)
        return self._load(path)

    # -- internals ---------------------------------------------------------

    def _matches(self, message: RawMessage, retrieval_filter: RetrievalFilter) -> bool:
        if self._channel == "email":
            return _query_matches(
                retrieval_filter.query, sender=message.sender, subject=message.subject
            )
        if self._channel == "message":
            if message.sender.strip().casefold() != retrieval_filter.query.strip().casefold():
                return False
            if not retrieval_filter.keywords:
                return True
            body = fold_turkish(message.body)
            return any(fold_turkish(k) in body for k in retrieval_filter.keywords)
        return True

    def _load(self, path: Path) -> RawMessage:
        if self._channel == "message":
            return load_sms_file(path)
        if self._channel == "email":
            return load_email_file(path)
        return load_screenshot_file(path)


# ---------------------------------------------------------------------------
# Single-file loaders
# ---------------------------------------------------------------------------


def load_screenshot_file(path: Path) -> RawMessage:
    return RawMessage(
        channel="screenshot",
        sender="",
        body=path.read_text(encoding="utf-8"),
        received_at=datetime.fromtimestamp(path.stat().st_mtime),
        ref=path.name,
    )


def load_sms_file(path: Path) -> RawMessage:
    try:
        sms = SmsFile.model_validate_json(path.read_text(encoding="utf-8"))
    except ValidationError as e:
        raise ValueError(f"invalid message file {path}: {e}") from e
    return RawMessage(
        channel="message",
        sender=sms.sender,
        body=sms.body,
        received_at=_local_naive(sms.received_at),
        ref=path.name,
    )


def load_email_file(path: Path) -> RawMessage:
    source = path.read_bytes()
    headers = split_headers(source.decode(RAW_CODEC)).headers
    decoded = decode_email_source(source)
    received_at = datetime.fromtimestamp(path.stat().st_mtime)
    if headers.get("date"):
        try:
            received_at = _local_naive(parsedate_to_datetime(headers["date"]))
        except (TypeError, ValueError):
            _logger.debug("Unparseable Date header in %s", path, exc_info=True)
    attachments = tuple(
        Attachment(
            filename=sidecar.name[len(path.stem) + 1 : -len(".txt")],
            mime_type="application/pdf" if sidecar.name.endswith(".pdf.txt") else "text/plain",
            text=sidecar.read_text(encoding="utf-8"),
        )
        for sidecar in sorted(path.parent.glob(f"{path.stem}.*.txt"))
    )
    return RawMessage(
        channel="email",
        sender=_decode_header_value(headers.get("from")),
        body=decoded.plain_body or "",
        html_body=decoded.html_body,
        subject=_decode_header_value(headers.get("subject")),
        received_at=received_at,
        attachments=attachments,
        ref=path.name,
    )


__all__ = [
    "DirectorySource",
    "SmsFile",
    "load_email_file",
    "load_screenshot_file",
    "load_sms_file",
]
