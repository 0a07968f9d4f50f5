"""Decoding of raw email sources into text bodies.

The retrieval collaborator hands over the raw RFC 822 source of a message (or
its already split parts). This module turns that into a ``DecodedBody``:

1. MIME split: read the ``boundary`` of a multipart ``Content-Type`` and split
   the body on ``--boundary`` delimiters, recursing into nested multiparts.
2. Transfer decoding: ``quoted-printable`` (soft line breaks removed, ``=XX``
   escapes turned into bytes) or ``base64``; anything else is taken as-is.
3. Charset decoding: the part's ``Content-Type`` charset, else a ``charset=``
   hint inside the HTML itself, else UTF-8. A failing decoder is retried once
   with UTF-8 before the part is given up.

A source read from disk arrives as ``bytes``. It is mapped to text with
latin-1, which keeps every byte, so ``7bit``/``8bit`` bodies get the declared
charset applied to their real bytes. A ``str`` source is already text: its
unencoded bodies are used as they are.

Nothing here raises. A body that cannot be decoded comes back as ``None`` and
parsers treat it as a message they cannot handle.
"""

from __future__ import annotations

import base64
import binascii
import codecs
import re
from dataclasses import dataclass, field

from .logging_setup import get_logger

_logger = get_logger("ekstre.decoding")

_BOUNDARY_RE = re.compile(r'boundary\s*=\s*(?:"([^"]+)"|([^;\s]+))', re.IGNORECASE)
_CHARSET_RE = re.compile(r"""charset\s*=\s*["']?([^;"'\s>]+)""", re.IGNORECASE)
_QP_SOFT_BREAK_RE = re.compile(r"=\r?\n")
_QP_ESCAPE_RE = re.compile(r"=([0-9A-Fa-f]{2})")
_HEADER_BODY_SPLIT_RE = re.compile(r"\r?\n\r?\n")
_LEADING_NEWLINE_RE = re.compile(r"^\r?\n")

# Byte-preserving text mapping for raw sources.
RAW_CODEC = "latin-1"
_BYTE_ENCODINGS = frozenset({"quoted-printable", "base64"})


@dataclass(frozen=True, slots=True)
class DecodedBody:
    plain_body: str | None = None
    html_body: str | None = None

    @property
    def is_empty(self) -> bool:
        return not self.plain_body and not self.html_body


@dataclass(frozen=True, slots=True)
class MimePart:
    """One leaf or container part: lowercased header names and the raw body."""

    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "text/plain")

    @property
    def mime_type(self) -> str:
        return self.content_type.split(";", 1)[0].strip().lower()

    @property
    def transfer_encoding(self) -> str | None:
        value = self.headers.get("content-transfer-encoding")
        return value.strip().lower() if value else None


# ---------------------------------------------------------------------------
# Headers and MIME structure
# ---------------------------------------------------------------------------


def parse_headers(block: str) -> dict[str, str]:
    """Parse an RFC 822 header block, unfolding continuation lines."""

    headers: dict[str, str] = {}
    current: str | None = None
    for line in block.splitlines():
        if not line.strip():
            continue
        if line[0] in " \t" and current is not None:
            headers[current] += " " + line.strip()
            continue
        name, sep, value = line.partition(":")
        if not sep:
            continue
        current = name.strip().lower()
        # First occurrence wins, like the top-most header of a message.
        headers.setdefault(current, value.strip())
    return headers


def split_headers(source: str) -> MimePart:
    """Split a message or part into its header block and body."""

    parts = _HEADER_BODY_SPLIT_RE.split(source, maxsplit=1)
    if len(parts) == 1:
        return MimePart(headers={}, body=source)
    return MimePart(headers=parse_headers(parts[0]), body=parts[1])


def boundary_of(content_type: str) -> str | None:
    m = _BOUNDARY_RE.search(content_type)
    if m is None:
        return None
    return m.group(1) or m.group(2)


def split_multipart(body: str, boundary: str) -> list[MimePart]:
    """Split a multipart body on ``--boundary`` delimiters.

    The preamble before the first delimiter and everything after the closing
    ``--boundary--`` are dropped.
    """

    delimiter = f"--{boundary}"
    chunks = body.split(delimiter)
    parts: list[MimePart] = []
    for chunk in chunks[1:]:
        if chunk.startswith("--"):
            break
        chunk = _LEADING_NEWLINE_RE.sub("", chunk, count=1)
        if chunk.startswith(("\r\n", "\n")):
            # Blank first line: a part without headers.
            parts.append(MimePart(headers={}, body=chunk.lstrip("\r\n")))
        else:
            parts.append(split_headers(chunk))
    return parts


def iter_leaf_parts(part: MimePart, *, depth: int = 0) -> list[MimePart]:
    """Flatten nested multiparts into their leaf parts, in document order."""

    if not part.mime_type.startswith("multipart/"):
        return [part]
    boundary = boundary_of(part.content_type)
    if boundary is None or depth > 8:
        return []
    leaves: list[MimePart] = []
    for child in split_multipart(part.body, boundary):
        leaves.extend(iter_leaf_parts(child, depth=depth + 1))
    return leaves


# ---------------------------------------------------------------------------
# Transfer and charset decoding
# ---------------------------------------------------------------------------


def decode_quoted_printable(payload: str, literal_codec: str = "utf-8") -> bytes:
    """Remove soft line breaks and turn ``=XX`` escapes into raw bytes.

    Text between escapes is turned back into bytes with ``literal_codec``.
    """

    text = _QP_SOFT_BREAK_RE.sub("", payload)
    out = bytearray()
    pos = 0
    for m in _QP_ESCAPE_RE.finditer(text):
        out.extend(text[pos : m.start()].encode(literal_codec, errors="replace"))
        out.append(int(m.group(1), 16))
        pos = m.end()
    out.extend(text[pos:].encode(literal_codec, errors="replace"))
    return bytes(out)


def decode_base64(payload: str) -> bytes:
    """Decode standard or URL-safe base64, tolerating whitespace and padding."""

    compact = re.sub(r"\s+", "", payload).replace("-", "+").replace("_", "/")
    compact += "=" * (-len(compact) % 4)
    return base64.b64decode(compact)


def decode_transfer(payload: str, encoding: str | None, literal_codec: str = "utf-8") -> bytes:
    if encoding == "quoted-printable":
        return decode_quoted_printable(payload, literal_codec)
    if encoding == "base64":
        return decode_base64(payload)
    return payload.encode(literal_codec, errors="replace")


def charset_of(content_type: str | None) -> str | None:
    if not content_type:
        return None
    m = _CHARSET_RE.search(content_type)
    return m.group(1).strip().lower() if m else None


def _text_codec(charset: str | None) -> str:
    if charset:
        try:
            return codecs.lookup(charset).name
        except LookupError:
            pass
    return "utf-8"


def sniff_html_charset(raw: bytes) -> str | None:
    """Find a ``charset=`` hint (``<meta charset=...>`` or http-equiv) in HTML."""

    head = raw[:4096].decode("ascii", errors="ignore")
    return charset_of(head) if "<" in head else None


def decode_bytes(raw: bytes, charset: str | None) -> str | None:
    """Decode ``raw`` with ``charset``; retry once with UTF-8; else ``None``."""

    resolved = charset or sniff_html_charset(raw) or "utf-8"
    try:
        return raw.decode(resolved)
    except (LookupError, UnicodeDecodeError):
        _logger.debug("Charset %s failed; retrying as utf-8", resolved, exc_info=True)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        _logger.warning("Undecodable body (charset=%s); treating it as empty", resolved)
        return None


def decode_part(part: MimePart, *, raw_codec: str | None = None) -> str | None:
    """Decode one leaf part to text.

    ``raw_codec`` names the mapping that turned the original bytes into
    ``part.body`` (``RAW_CODEC`` for sources read as bytes). Without it the
    body is taken to be text already.
    """

    charset = charset_of(part.content_type)
    if raw_codec is None and part.transfer_encoding not in _BYTE_ENCODINGS:
        return part.body
    try:
        raw = decode_transfer(
            part.body, part.transfer_encoding, raw_codec or _text_codec(charset)
        )
    except (binascii.Error, ValueError):
        _logger.warning(
            "Invalid %s payload in %s part", part.transfer_encoding, part.mime_type, exc_info=True
        )
        return None
    return decode_bytes(raw, charset)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def decode_parts(parts: list[MimePart], *, raw_codec: str | None = None) -> DecodedBody:
    """Pick and decode the first ``text/html`` and first ``text/plain`` leaf."""

    html: str | None = None
    plain: str | None = None
    for part in parts:
        if html is None and part.mime_type == "text/html":
            html = decode_part(part, raw_codec=raw_codec)
        elif plain is None and part.mime_type == "text/plain":
            plain = decode_part(part, raw_codec=raw_codec)
    return DecodedBody(plain_body=plain, html_body=html)


def decode_email_source(source: str | bytes | None) -> DecodedBody:
    """Decode a full raw email (headers + body) into its text bodies.

    ``bytes`` are the message as stored on disk; ``str`` is already text.
    """

    if not source:
        return DecodedBody()
    raw_codec: str | None = None
    if isinstance(source, bytes):
        raw_codec = RAW_CODEC
        text = source.decode(RAW_CODEC)
    else:
        text = source
    try:
        message = split_headers(text)
        if not message.headers:
            if raw_codec is None:
                return DecodedBody(plain_body=text)
            return DecodedBody(plain_body=decode_bytes(source, None))
        return decode_parts(iter_leaf_parts(message), raw_codec=raw_codec)
    except (ValueError, UnicodeError):
        _logger.warning("Failed to decode email source", exc_info=True)
        return DecodedBody()


__all__ = [
    "DecodedBody",
    "MimePart",
    "RAW_CODEC",
    "boundary_of",
    "charset_of",
    "decode_base64",
    "decode_bytes",
    "decode_email_source",
    "decode_part",
    "decode_parts",
    "decode_quoted_printable",
    "decode_transfer",
    "iter_leaf_parts",
    "parse_headers",
    "sniff_html_charset",
    "split_headers",
    "split_multipart",
]
