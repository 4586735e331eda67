"""
Quote-aware line scanner.

A single left-to-right pass with two states (outside/inside quotes):
- carriage returns, tabs and quotes are never emitted; a quote flips the state
- the delimiter only splits columns outside quotes, inside quotes it becomes a space
- everything else is copied through

Quotes are not paired or validated. An odd number of quotes leaves the rest
of the line "inside"; that is accepted behaviour, not a parse error.
"""

from __future__ import annotations

from typing import Iterable, List

from . import rules


def scan_line(line: str, delimiter: str, disallowed: Iterable[str] = "") -> str:
    """Return the line with quoting resolved and globally disallowed characters removed."""
    if not line:
        return ""

    out: list[str] = []
    inside_quotes = False

    for ch in line:
        if ch == rules.QUOTE_CHAR:
            inside_quotes = not inside_quotes
        elif ch in rules.DROPPED_CHARS:
            continue
        elif ch == delimiter:
            out.append(" " if inside_quotes else delimiter)
        else:
            out.append(ch)

    banned = set(disallowed)
    if banned:
        return "".join(ch for ch in out if ch not in banned)
    return "".join(out)


def split_line(text: str, delimiter: str) -> List[str]:
    # str.split keeps empty tokens, e.g. "a,,b" -> ["a", "", "b"]
    return text.split(delimiter)


def tokenize(line: str, delimiter: str, disallowed: Iterable[str] = "") -> tuple[str, List[str]]:
    """Scan then split. Returns the cleaned text and its tokens."""
    text = scan_line(line, delimiter, disallowed)
    return text, split_line(text, delimiter)
