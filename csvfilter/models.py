from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ErrorKind(str, Enum):
    BLANK_NOT_ALLOWED = "blank_not_allowed"
    LENGTH_VIOLATION = "length_violation"
    REGEX_MISMATCH = "regex_mismatch"
    CUSTOM_CHECK_FAILURE = "custom_check_failure"
    NOT_IN_ALLOWED_SET = "not_in_allowed_set"
    UNDEFINED_FIELD = "undefined_field"


class ValueRecord(BaseModel):
    """One cell of a row. Immutable; every sanitize step returns a new copy."""

    model_config = ConfigDict(frozen=True)

    field_index: int
    field_name: str = ""
    original_value: str = ""
    sanitized_value: Optional[str] = None
    error_message: str = ""
    error_kind: Optional[ErrorKind] = None
    is_missing: bool = False

    @property
    def is_valid(self) -> bool:
        return self.error_message == ""

    def with_error(self, kind: ErrorKind, message: str, **update) -> ValueRecord:
        return self.model_copy(update={"error_kind": kind, "error_message": message, **update})


class RowRecord(BaseModel):
    original_text: str = ""
    values: List[ValueRecord] = Field(default_factory=list)
    has_expected_column_count: bool = True
    position: int
    # rows recovered from the same raw line, in detection order
    extra_rows: List[RowRecord] = Field(default_factory=list)
    # surplus tokens of a long row that could not be repaired
    overflow: List[ValueRecord] = Field(default_factory=list)
    recovered: bool = False

    @property
    def all_valid(self) -> bool:
        return all(v.is_valid for v in self.values) and all(v.is_valid for v in self.overflow)

    def invalid_values(self) -> List[ValueRecord]:
        return [v for v in [*self.values, *self.overflow] if not v.is_valid]

    def to_row_string(self, delimiter: str) -> str:
        return delimiter.join(v.sanitized_value or "" for v in self.values)


class LoadState(BaseModel):
    """Everything a Document learns from one input; cleared before each load."""

    filename: str = ""
    header_tokens: Optional[List[str]] = None
    rows: List[RowRecord] = Field(default_factory=list)
    document_error: str = ""


class ReportItem(BaseModel):
    row: int
    column: str
    value: str
    issue: ErrorKind
    message: str


class ExportResult(BaseModel):
    sanitized_text: str
    error_text: Optional[str] = None
    errors: List[ReportItem] = Field(default_factory=list)


class SanitizedCsv(BaseModel):
    filename: str
    sha256: str
    encoding: str = Field(default="utf-8-sig")
    content_b64: str


class FileSummary(BaseModel):
    rows: int = 0
    columns: int = 0
    has_header: bool = False
    recovered_rows: int = 0
    errors: int = 0


class FileResult(BaseModel):
    source: str
    document_error: Optional[str] = None
    summary: FileSummary = Field(default_factory=FileSummary)
    normalizations: Dict[str, Any] = Field(default_factory=dict)
    sanitized_csv: Optional[SanitizedCsv] = None
    error_csv: Optional[SanitizedCsv] = None
    errors: List[ReportItem] = Field(default_factory=list)


class SanitizeResponse(BaseModel):
    files: List[FileResult]


class ChecksResponse(BaseModel):
    checks: List[str]


class HealthResponse(BaseModel):
    ok: bool = True
