"""
Field-level sanitization as an ordered pipeline of pure steps.

Each step takes the FieldSpec and the current Stage and returns a new Stage.
A step that settles the outcome (blank, wrong length, regex failure) sets
``done`` and the remaining steps are skipped. Order matters:

    name -> trim -> blank -> char filter -> length -> regex
         -> collapse spaces -> custom checks -> allowed values
"""

from __future__ import annotations

import re
from typing import Callable, NamedTuple, Tuple

from . import rules
from .models import ErrorKind, ValueRecord
from .schema import FieldSpec

_MULTI_SPACE = re.compile(r" {2,}")


class Stage(NamedTuple):
    value: ValueRecord
    text: str
    done: bool = False


Step = Callable[[FieldSpec, Stage], Stage]


def assign_name(spec: FieldSpec, stage: Stage) -> Stage:
    return stage._replace(value=stage.value.model_copy(update={"field_name": spec.name}))


def trim(spec: FieldSpec, stage: Stage) -> Stage:
    if not spec.trim_whitespace:
        return stage
    return stage._replace(text=stage.text.strip())


def check_blank(spec: FieldSpec, stage: Stage) -> Stage:
    if not (stage.value.is_missing or stage.text == ""):
        return stage
    if spec.allowed_blank:
        return stage._replace(done=True)
    value = stage.value.with_error(ErrorKind.BLANK_NOT_ALLOWED, spec.value_if_blank)
    return Stage(value, stage.text, True)


def filter_characters(spec: FieldSpec, stage: Stage) -> Stage:
    text = stage.text
    if spec.allowed_characters:
        text = "".join(c for c in text if c in spec.allowed_characters)
    if spec.disallowed_characters:
        text = "".join(c for c in text if c not in spec.disallowed_characters)
    return stage._replace(text=text)


def check_length(spec: FieldSpec, stage: Stage) -> Stage:
    if spec.min_length <= len(stage.text) <= spec.max_length:
        return stage
    # keep the filtered text so the offending value is visible in the report
    value = stage.value.with_error(
        ErrorKind.LENGTH_VIOLATION, spec.value_if_wrong_length, sanitized_value=stage.text
    )
    return Stage(value, stage.text, True)


def check_regex(spec: FieldSpec, stage: Stage) -> Stage:
    pattern = spec.compiled_regex
    if pattern is None or pattern.fullmatch(stage.text):
        return stage
    value = stage.value.with_error(ErrorKind.REGEX_MISMATCH, rules.REGEX_ERROR)
    return Stage(value, stage.text, True)


def collapse_spaces(spec: FieldSpec, stage: Stage) -> Stage:
    text = _MULTI_SPACE.sub(" ", stage.text)
    return Stage(stage.value.model_copy(update={"sanitized_value": text}), text)


def run_custom_checks(spec: FieldSpec, stage: Stage) -> Stage:
    # checks do not short-circuit each other; a later one may overwrite an earlier result
    value = stage.value
    for check in spec.custom_checks:
        value = check.execute(value)
    return stage._replace(value=value)


def check_allowed_values(spec: FieldSpec, stage: Stage) -> Stage:
    if not spec.allowed_values or stage.value.sanitized_value in spec.allowed_values:
        return stage
    value = stage.value.with_error(ErrorKind.NOT_IN_ALLOWED_SET, spec.value_if_not_in_allowed_set)
    return stage._replace(value=value)


PIPELINE: Tuple[Step, ...] = (
    assign_name,
    trim,
    check_blank,
    filter_characters,
    check_length,
    check_regex,
    collapse_spaces,
    run_custom_checks,
    check_allowed_values,
)


def sanitize_value(spec: FieldSpec, value: ValueRecord) -> ValueRecord:
    """Run the full pipeline for one value. Never raises for bad data."""
    fresh = value.model_copy(
        update={"field_name": "", "sanitized_value": None, "error_message": "", "error_kind": None}
    )
    stage = Stage(fresh, fresh.original_value)
    for step in PIPELINE:
        stage = step(spec, stage)
        if stage.done:
            break
    return stage.value


def mark_undefined(value: ValueRecord) -> ValueRecord:
    """A value with no FieldSpec at its index is passed through and flagged."""
    return value.with_error(
        ErrorKind.UNDEFINED_FIELD,
        rules.UNDEFINED_FIELD_ERROR,
        sanitized_value=value.original_value,
    )
