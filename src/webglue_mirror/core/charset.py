"""Turn the raw bytes of a fetched page into text.

Order of evidence: the ``charset`` parameter of ``Content-Type``, then a
``<meta charset>`` / ``http-equiv`` declaration near the top of the body,
then statistical detection by charset-normalizer, then UTF-8. Decoding
replaces undecodable bytes instead of failing.
"""

from __future__ import annotations

import codecs
import logging
import re
from typing import Mapping

from charset_normalizer import from_bytes

from webglue_mirror.core.models import DecodeError

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"
META_SNIFF_BYTES = 4096

BINARY_MAIN_TYPES = {"image", "audio", "video", "font"}
BINARY_TYPES = {"application/pdf", "application/zip", "application/gzip"}

_HEADER_CHARSET_RE = re.compile(r"charset\s*=\s*[\"']?([^\s;\"']+)", re.I)
_META_CHARSET_RE = re.compile(rb"<meta[^>]+?charset\s*=\s*[\"']?\s*([A-Za-z0-9_.:\-]+)", re.I)


def header_value(headers: Mapping[str, str] | None, name: str) -> str:
    if not headers:
        return ""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return str(value or "")
    return ""


def _usable(encoding: str | None) -> str | None:
    if not encoding:
        return None
    enc = encoding.strip().lower()
    try:
        info = codecs.lookup(enc)
    except LookupError:
        logger.debug("Ignoring unknown charset %r", encoding)
        return None
    # base64, zlib and friends are bytes-to-bytes codecs.
    if not getattr(info, "_is_text_encoding", True):
        logger.debug("Ignoring non-text codec %r", encoding)
        return None
    return enc


def charset_from_headers(headers: Mapping[str, str] | None) -> str | None:
    m = _HEADER_CHARSET_RE.search(header_value(headers, "Content-Type"))
    return _usable(m.group(1)) if m else None


def charset_from_meta(body: bytes) -> str | None:
    m = _META_CHARSET_RE.search(body[:META_SNIFF_BYTES])
    return _usable(m.group(1).decode("ascii", errors="ignore")) if m else None


def detect_encoding(headers: Mapping[str, str] | None, body: bytes) -> str:
    enc = charset_from_headers(headers) or charset_from_meta(body)
    if enc:
        return enc
    best = from_bytes(body).best() if body else None
    if best is not None:
        enc = _usable(best.encoding)
        if enc:
            return enc
    return DEFAULT_ENCODING


def ensure_textual(headers: Mapping[str, str] | None) -> None:
    """Reject responses that declare a binary media type.

    Anything else is decoded, since servers often label HTML as
    application/octet-stream or similar.
    """

    content_type = header_value(headers, "Content-Type").split(";", 1)[0].strip().lower()
    main = content_type.partition("/")[0]
    if main in BINARY_MAIN_TYPES or content_type in BINARY_TYPES:
        raise DecodeError(f"Target is not a text document (content_type={content_type!r})")


def decode_html(body: bytes, headers: Mapping[str, str] | None = None) -> str:
    ensure_textual(headers)
    enc = detect_encoding(headers, body)
    logger.debug("Decoding %d bytes as %s", len(body), enc)
    try:
        return body.decode(enc, errors="replace")
    except (LookupError, UnicodeError):
        # Some codecs (idna, punycode) refuse the "replace" handler.
        return body.decode(DEFAULT_ENCODING, errors="replace")
