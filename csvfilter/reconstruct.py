"""
Recovery of rows that were merged during export.

When a line terminator is lost upstream, the last value of one row and the
first value of the next are glued into a single "smushed" token. A line that
holds k+1 logical rows of n fields therefore splits into n + k*(n-1) tokens,
with the smushed tokens at indices (n-1), 2*(n-1), ..., k*(n-1).

Smushed tokens are split by character-length bisection. That is a heuristic:
when the two halves had different lengths the characters are silently
misassigned between the recovered rows.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional

from .models import RowRecord, ValueRecord
from .scanner import tokenize

logger = logging.getLogger(__name__)


def _first_half(token: str) -> str:
    return token[: len(token) // 2]


def _second_half(token: str) -> str:
    return token[len(token) // 2:]


def merged_row_count(token_count: int, field_count: int) -> Optional[int]:
    """Number of extra rows embedded in a line, or None when the arithmetic does not resolve."""
    if field_count < 2 or token_count <= field_count:
        return None
    extra = token_count - field_count
    if extra % (field_count - 1) != 0:
        return None
    return extra // (field_count - 1)


def repair(tokens: List[str], field_count: int) -> List[List[str]]:
    """Split a token list into the logical rows it contains.

    Returns a single row (the tokens as given) when no repair applies.
    """
    extra_rows = merged_row_count(len(tokens), field_count)
    if extra_rows is None:
        return [list(tokens)]

    step = field_count - 1
    rows = [tokens[:step] + [_first_half(tokens[step])]]

    for k in range(1, extra_rows + 1):
        joined = k * step
        row = [_second_half(tokens[joined])]
        row.extend(tokens[joined + 1: joined + step])
        last = tokens[joined + step]
        row.append(last if k == extra_rows else _first_half(last))
        rows.append(row)

    return rows


def _values(tokens: List[str], field_count: int) -> tuple[List[ValueRecord], List[ValueRecord]]:
    values = [ValueRecord(field_index=i, original_value=tok) for i, tok in enumerate(tokens[:field_count])]
    values.extend(ValueRecord(field_index=i, is_missing=True) for i in range(len(values), field_count))
    overflow = [
        ValueRecord(field_index=i, original_value=tokens[i])
        for i in range(field_count, len(tokens))
    ]
    return values, overflow


def build_row(
    line: str,
    delimiter: str,
    field_count: int,
    position: int,
    disallowed: Iterable[str] = "",
    recovered: bool = False,
) -> RowRecord:
    """Scan, split and (if needed) repair one raw line into a RowRecord.

    Recovered rows are attached as ``extra_rows`` and are built through this
    same path, so each of them is scanned and checked again.
    """
    text, tokens = tokenize(line, delimiter, disallowed)
    pieces = repair(tokens, field_count)

    if len(pieces) == 1:
        values, overflow = _values(tokens, field_count)
        if len(tokens) > field_count:
            logger.debug("Line %d has %d columns, expected %d", position, len(tokens), field_count)
        return RowRecord(
            original_text=text,
            values=values,
            has_expected_column_count=len(tokens) == field_count,
            position=position,
            overflow=overflow,
            recovered=recovered,
        )

    logger.info("Line %d holds %d merged rows; splitting", position, len(pieces))
    first, rest = pieces[0], pieces[1:]
    values, _ = _values(first, field_count)
    extra = [
        build_row(delimiter.join(piece), delimiter, field_count, position, disallowed, recovered=True)
        for piece in rest
    ]
    return RowRecord(
        original_text=delimiter.join(first),
        values=values,
        has_expected_column_count=True,
        position=position,
        extra_rows=extra,
        recovered=recovered,
    )


def flatten_rows(rows: Iterable[RowRecord]) -> List[RowRecord]:
    """Emit every row followed immediately by its recovered rows, in discovery order."""
    flat: List[RowRecord] = []
    for row in rows:
        flat.append(row.model_copy(update={"extra_rows": []}))
        flat.extend(flatten_rows(row.extra_rows))
    return flat
