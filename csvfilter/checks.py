"""
Named post-sanitization checks.

A check receives the ValueRecord produced by the earlier sanitize steps and
returns an updated copy. Checks are registered under a short name so schemas
can reference them from JSON, e.g. ``{"name": "DOB", "custom_checks": ["date"]}``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Callable, Dict, List, Type

from . import rules
from .models import ErrorKind, ValueRecord

_REGISTRY: Dict[str, Type["CustomCheck"]] = {}

# Month-first formats, the way a US-locale parser reads them
DATE_FORMATS = (
    "%m/%d/%Y",
    "%m/%d/%y",
    "%m-%d-%Y",
    "%m-%d-%y",
    "%m.%d.%Y",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%B %d, %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%d %b %Y",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M %p",
    "%m/%d/%Y %I:%M:%S %p",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)


def register_check(name: str) -> Callable[[Type["CustomCheck"]], Type["CustomCheck"]]:
    def wrap(cls: Type["CustomCheck"]) -> Type["CustomCheck"]:
        if name in _REGISTRY:
            raise ValueError(f"Custom check '{name}' is already registered")
        cls.name = name
        _REGISTRY[name] = cls
        return cls
    return wrap


def get_check(name: str) -> "CustomCheck":
    try:
        return _REGISTRY[name]()
    except KeyError:
        raise ValueError(
            f"Unknown custom check '{name}'. Available: {', '.join(available_checks())}"
        ) from None


def available_checks() -> List[str]:
    return sorted(_REGISTRY)


class CustomCheck(ABC):
    """Base for checks. Subclasses implement execute() and register a name."""

    name: str = ""
    error_message: str = ""

    @abstractmethod
    def execute(self, value: ValueRecord) -> ValueRecord:
        """Return an updated copy of the value."""

    def fail(self, value: ValueRecord) -> ValueRecord:
        # the original text is passed through so it shows up in the output
        return value.with_error(
            ErrorKind.CUSTOM_CHECK_FAILURE,
            self.error_message,
            sanitized_value=value.original_value,
        )

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def parse_date(text: str) -> datetime | None:
    text = text.strip()
    for fmt in DATE_FORMATS:
        try:
            dt = datetime.strptime(text, fmt)
        except ValueError:
            continue
        if "%y" in fmt and dt.year > rules.TWO_DIGIT_YEAR_MAX:
            dt = dt.replace(year=dt.year - 100)
        return dt
    return None


@register_check("date")
class DateCheck(CustomCheck):
    error_message = rules.DATE_ERROR

    def execute(self, value: ValueRecord) -> ValueRecord:
        dt = parse_date(value.original_value)
        if dt is None:
            return self.fail(value)
        formatted = rules.OUTPUT_DATE_FORMAT.format(month=dt.month, day=dt.day, year=dt.year)
        return value.model_copy(update={"sanitized_value": formatted})


@register_check("gender")
class GenderCheck(CustomCheck):
    error_message = rules.GENDER_ERROR

    def execute(self, value: ValueRecord) -> ValueRecord:
        first = value.original_value[:1].upper()
        if first in ("M", "F"):
            return value.model_copy(update={"sanitized_value": first})
        return self.fail(value)
