"""
Document orchestration: one schema, many input files.

A Document is configured once (field specs, delimiter, globally disallowed
characters, blank-line and header policy) and then loaded repeatedly. All
per-file state lives in a LoadState and is replaced wholesale by reset(),
which every load performs first.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, List, Optional, Sequence, Union

from . import rules
from .models import ErrorKind, ExportResult, LoadState, ReportItem, RowRecord, ValueRecord
from .normalize import split_lines
from .reconstruct import build_row, flatten_rows
from .sanitize import mark_undefined, sanitize_value
from .schema import FieldSpec

logger = logging.getLogger(__name__)


class EmptyInputError(ValueError):
    """Raised when exporting a load that had no usable lines."""


def _join_lines(lines: Iterable[str]) -> str:
    return "".join(f"{line}\n" for line in lines)


class Document:
    def __init__(
        self,
        field_specs: Sequence[Union[FieldSpec, dict]],
        delimiter: str = rules.DEFAULT_DELIMITER,
        disallowed: Iterable[str] = rules.DEFAULT_DISALLOWED,
        remove_empty_lines: bool = rules.REMOVE_EMPTY_LINES,
        has_header: Optional[bool] = None,
    ):
        if len(delimiter) != 1:
            raise ValueError(f"Delimiter must be a single character, got {delimiter!r}")
        if delimiter in rules.DROPPED_CHARS + rules.QUOTE_CHAR:
            raise ValueError(f"Delimiter {delimiter!r} is removed by the scanner and cannot split columns")
        if not field_specs:
            raise ValueError("At least one field spec is required")

        self.field_specs = tuple(
            spec if isinstance(spec, FieldSpec) else FieldSpec.model_validate(spec)
            for spec in field_specs
        )
        self.delimiter = delimiter
        self.disallowed = frozenset(disallowed)
        if delimiter in self.disallowed:
            raise ValueError(f"Delimiter {delimiter!r} is also a globally disallowed character")
        self.remove_empty_lines = remove_empty_lines
        # True: always a header, False: never, None: detect from the first line
        self.has_header = has_header

        self.state = LoadState()

    # --- per-load state ---

    @property
    def filename(self) -> str:
        return self.state.filename

    @property
    def header_tokens(self) -> Optional[List[str]]:
        return self.state.header_tokens

    @property
    def rows(self) -> List[RowRecord]:
        return self.state.rows

    @property
    def document_error(self) -> str:
        return self.state.document_error

    @property
    def field_count(self) -> int:
        return len(self.field_specs)

    @property
    def is_valid(self) -> bool:
        return self.state.document_error == ""

    @property
    def has_errors(self) -> bool:
        return any(not row.all_valid for row in self.state.rows)

    @property
    def output_filename(self) -> str:
        return self.state.filename

    @property
    def error_filename(self) -> str:
        return f"{self.state.filename}{rules.ERROR_SUFFIX}"

    def reset(self) -> None:
        """Clear everything learned from the previous input; configuration is untouched."""
        self.state = LoadState()

    # --- loading ---

    def load_lines(self, lines: Iterable[str], filename: str = "") -> None:
        self.reset()
        self.state.filename = filename
        self.parse(list(lines))

    def load_text(self, text: str, filename: str = "") -> None:
        self.load_lines(split_lines(text), filename)

    def load_file(self, path: Union[str, Path]) -> None:
        path = Path(path)
        self.load_text(path.read_text(encoding="utf-8-sig"), filename=path.name)

    def is_header(self, line: str) -> bool:
        """Mostly-letter lines are headers: stripping digits and punctuation barely shrinks them."""
        stripped = "".join(c for c in line if c not in rules.HEADER_STRIP_CHARS)
        return len(line) * rules.HEADER_SIZE_CHANGE < len(stripped)

    def parse(self, lines: List[str]) -> None:
        if self.remove_empty_lines:
            lines = [line for line in lines if line.strip()]

        if not lines:
            logger.warning("Empty input %s", self.state.filename or "<unnamed>")
            self.state.document_error = rules.EMPTY_FILE_ERROR
            return

        header = self.has_header
        if header is None:
            header = self.is_header(lines[0])

        if header:
            self.state.header_tokens = lines[0].split(self.delimiter)
            data = lines[1:]
        else:
            logger.info("No header detected in %s", self.state.filename or "<unnamed>")
            data = lines

        offset = 2 if header else 1
        built = [
            build_row(line, self.delimiter, self.field_count, i + offset, self.disallowed)
            for i, line in enumerate(data)
        ]
        self.state.rows = flatten_rows(built)

        recovered = sum(1 for row in self.state.rows if row.recovered)
        logger.info(
            "Loaded %s: %d rows (%d recovered from merged lines)",
            self.state.filename or "<unnamed>", len(self.state.rows), recovered,
        )

    # --- sanitizing and export ---

    def _sanitize_one(self, value: ValueRecord) -> ValueRecord:
        if value.field_index > self.field_count - 1:
            return mark_undefined(value)
        return sanitize_value(self.field_specs[value.field_index], value)

    def sanitize(self) -> None:
        """Apply the field specs to every value. Safe to call more than once."""
        self.state.rows = [
            row.model_copy(update={
                "values": [self._sanitize_one(v) for v in row.values],
                "overflow": [self._sanitize_one(v) for v in row.overflow],
            })
            for row in self.state.rows
        ]
        invalid = sum(len(row.invalid_values()) for row in self.state.rows)
        if invalid:
            logger.info("%s: %d invalid values", self.state.filename or "<unnamed>", invalid)

    def error_items(self) -> List[ReportItem]:
        return [
            ReportItem(
                row=row.position,
                column=value.field_name,
                value=value.original_value,
                issue=value.error_kind or ErrorKind.CUSTOM_CHECK_FAILURE,
                message=value.error_message,
            )
            for row in self.state.rows
            for value in row.invalid_values()
        ]

    def export(self) -> ExportResult:
        """Sanitize and render the output text, plus the error report when anything failed."""
        if not self.is_valid:
            raise EmptyInputError(self.state.document_error)

        self.sanitize()
        d = self.delimiter

        lines: List[str] = []
        if self.state.header_tokens is not None:
            lines.append(d.join(self.state.header_tokens))
        lines.extend(row.to_row_string(d) for row in self.state.rows)

        errors = self.error_items()
        error_text = None
        if errors:
            report = [d.join(rules.ERROR_REPORT_COLUMNS)]
            report.extend(d.join([str(e.row), e.column, e.value, e.message]) for e in errors)
            error_text = _join_lines(report)

        return ExportResult(sanitized_text=_join_lines(lines), error_text=error_text, errors=errors)

    def summary(self) -> dict[str, Any]:
        return {
            "rows": len(self.state.rows),
            "columns": self.field_count,
            "has_header": self.state.header_tokens is not None,
            "recovered_rows": sum(1 for row in self.state.rows if row.recovered),
            "errors": sum(len(row.invalid_values()) for row in self.state.rows),
        }
