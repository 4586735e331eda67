from __future__ import annotations

import re
import sys
from typing import Annotated, Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, PlainValidator, field_validator, model_validator

from . import rules
from .checks import CustomCheck, get_check


def _as_check(v: Any) -> CustomCheck:
    if isinstance(v, CustomCheck):
        return v
    if isinstance(v, str):
        return get_check(v)
    raise ValueError(f"Expected a check name or CustomCheck, got {type(v).__name__}")


# checks travel as their registry names in JSON
Check = Annotated[CustomCheck, PlainValidator(_as_check), PlainSerializer(lambda c: c.name, return_type=str)]


class FieldSpec(BaseModel):
    """Validation and transformation contract for one column."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str
    allowed_blank: bool = True
    trim_whitespace: bool = True
    max_length: int = sys.maxsize
    min_length: int = Field(default=0, ge=0)
    allowed_characters: str = ""
    disallowed_characters: str = ""
    regex_pattern: str = ""
    allowed_values: Optional[Tuple[str, ...]] = None
    value_if_blank: str = rules.BLANK_ERROR
    value_if_wrong_length: str = rules.WRONG_LENGTH_ERROR
    value_if_not_in_allowed_set: str = rules.NOT_IN_OPTIONS_ERROR
    custom_checks: Tuple[Check, ...] = ()

    @field_validator("regex_pattern")
    @classmethod
    def _compiles(cls, v: str) -> str:
        if v:
            try:
                re.compile(v)
            except re.error as exc:
                raise ValueError(f"Invalid regex '{v}': {exc}") from exc
        return v

    @field_validator("custom_checks", mode="before")
    @classmethod
    def _single_check(cls, v: Any) -> Any:
        if v is None:
            return []
        if isinstance(v, (str, CustomCheck)):
            return [v]
        return v

    @model_validator(mode="after")
    def _length_bounds(self) -> FieldSpec:
        if self.min_length > self.max_length:
            raise ValueError(f"min_length {self.min_length} exceeds max_length {self.max_length} for '{self.name}'")
        return self

    @property
    def compiled_regex(self) -> Optional[re.Pattern]:
        return re.compile(self.regex_pattern) if self.regex_pattern else None
