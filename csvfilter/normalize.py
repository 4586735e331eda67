"""
Input decoding ahead of the Document.

Responsibilities:
- encoding detection + decode to text
- newline normalization (CRLF/CR -> LF)
- splitting into the ordered line list a Document loads
"""

from __future__ import annotations

import base64
import hashlib
import logging
from typing import Any, Dict, List

from charset_normalizer import from_bytes

from . import rules
from .models import SanitizedCsv

logger = logging.getLogger(__name__)


def _sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def decode_bytes(raw: bytes) -> tuple[str, Dict[str, Any]]:
    """
    Decode uploaded bytes to text.

    Rules:
    - Detect encoding best-effort via charset-normalizer.
    - If decode fails, fall back to UTF-8, then to replacement characters, and report it.
    - A UTF-8 BOM is consumed so it never lands in the first header token.
    """
    detected = None
    match = from_bytes(raw).best()
    if match is not None:
        detected = match.encoding

    decode_used = detected or "utf-8"
    if raw.startswith(b"\xef\xbb\xbf") and (decode_used.lower().replace("-", "_") in ("utf_8", "utf8")):
        decode_used = "utf-8-sig"

    decode_fallback = False

    try:
        text = raw.decode(decode_used)
    except (UnicodeDecodeError, LookupError):
        try:
            text = raw.decode("utf-8-sig")
            decode_used = "utf-8-sig"
        except UnicodeDecodeError:
            # Last resort: decode with replacement so processing can continue deterministically
            text = raw.decode("utf-8", errors="replace")
            decode_used = "utf-8"
        decode_fallback = True
        logger.warning("Could not decode input as %s; used %s", detected, decode_used)

    report = {
        "detected": detected,
        "decode_used": decode_used,
        "decode_fallback": decode_fallback,
        "newlines": {
            "crlf": text.count("\r\n"),
            "cr": text.count("\r") - text.count("\r\n"),
            "lf": text.count("\n") - text.count("\r\n"),
        },
    }
    return text, report


def split_lines(text: str) -> List[str]:
    """Split on CRLF, CR or LF. A trailing line terminator does not produce an extra line."""
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return lines


def encode_csv(text: str, filename: str) -> SanitizedCsv:
    """Wrap output text in the transport envelope (UTF-8 with BOM, base64, sha256)."""
    data = text.encode(rules.OUTPUT_ENCODING)
    return SanitizedCsv(
        filename=filename,
        sha256=_sha256_hex(data),
        encoding=rules.OUTPUT_ENCODING,
        content_b64=base64.b64encode(data).decode("ascii"),
    )
