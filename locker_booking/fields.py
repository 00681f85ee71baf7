from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Mapping
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$", re.ASCII)
_INTEGER_RE = re.compile(r"[+-]?\d{1,19}", re.ASCII)

# range of the INTEGER columns
INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class FieldError(ValueError):
    pass


@dataclass
class FieldContext:
    """What a validator may look at besides its own value."""

    now: datetime
    values: Mapping[str, Any] = field(default_factory=dict)


Validator = Callable[[Any, FieldContext], Any]


@dataclass(frozen=True)
class Field:
    name: str
    validator: Validator
    required: bool = True
    default: Any = None

    def clean(self, value: Any, context: FieldContext) -> Any:
        if isinstance(value, str):
            value = value.strip()
        return self.validator(value, context)


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value.replace(microsecond=0)
    if not isinstance(value, str) or not _TIMESTAMP_RE.match(value):
        raise FieldError("must be in DATETIME format (YYYY-MM-DD HH:MM:SS)")
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError as error:
        raise FieldError("is not a valid date/time") from error


def format_timestamp(value: datetime) -> str:
    return value.strftime(TIMESTAMP_FORMAT)


def text(label: str, min_length: int = 1, max_length: int = 255, pattern: str | None = None) -> Validator:
    compiled = re.compile(pattern) if pattern else None

    def _validate(value: Any, _context: FieldContext) -> str:
        if not isinstance(value, str):
            raise FieldError(f"{label} must be a string")
        if not value:
            raise FieldError(f"{label} cannot be empty")
        if not min_length <= len(value) <= max_length:
            raise FieldError(f"{label} must be between {min_length} and {max_length} characters")
        if compiled is not None and not compiled.match(value):
            raise FieldError(f"{label} contains invalid characters")
        return value

    return _validate


def email(label: str = "Email") -> Validator:
    def _validate(value: Any, _context: FieldContext) -> str:
        if not isinstance(value, str) or not value:
            raise FieldError(f"{label} cannot be empty")
        try:
            validated = validate_email(value, check_deliverability=False)
        except EmailNotValidError as error:
            raise FieldError("Invalid email format") from error
        return validated.normalized.lower()

    return _validate


def phone(label: str = "Phone number") -> Validator:
    def _validate(value: Any, _context: FieldContext) -> str:
        digits = re.sub(r"\D", "", str(value), flags=re.ASCII)
        if not 10 <= len(digits) <= 15:
            raise FieldError(f"{label} must be between 10 and 15 digits")
        return digits

    return _validate


def integer(label: str, min_value: int | None = None, max_value: int | None = None) -> Validator:
    def _validate(value: Any, _context: FieldContext) -> int:
        if isinstance(value, bool):
            raise FieldError(f"{label} must be an integer")
        if isinstance(value, str) and _INTEGER_RE.fullmatch(value):
            value = int(value)
        if not isinstance(value, int):
            raise FieldError(f"{label} must be an integer")
        if not INT64_MIN <= value <= INT64_MAX:
            raise FieldError(f"{label} is out of range")
        if min_value is not None and max_value is not None and not min_value <= value <= max_value:
            raise FieldError(f"{label} must be between {min_value} and {max_value}")
        if min_value is not None and value < min_value:
            raise FieldError(f"{label} must be at least {min_value}")
        if max_value is not None and value > max_value:
            raise FieldError(f"{label} must be at most {max_value}")
        return value

    return _validate


def boolean(label: str) -> Validator:
    def _validate(value: Any, _context: FieldContext) -> bool:
        if isinstance(value, bool):
            return value
        if value in ("true", "false"):
            return value == "true"
        raise FieldError(f"{label} must be a boolean (true/false)")

    return _validate


def url(label: str, max_length: int = 100) -> Validator:
    def _validate(value: Any, _context: FieldContext) -> str:
        if not isinstance(value, str) or len(value) > max_length:
            raise FieldError(f"{label} must be a valid URL of at most {max_length} characters")
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise FieldError(f"{label} must be a valid URL")
        return value

    return _validate


def timestamp(label: str, in_future: bool = False, after: str | None = None) -> Validator:
    """Validate a ``YYYY-MM-DD HH:MM:SS`` value.

    ``after`` names another field of the same payload that this one must be
    strictly later than.
    """

    def _validate(value: Any, context: FieldContext) -> str:
        try:
            moment = parse_timestamp(value)
        except FieldError as error:
            raise FieldError(f"{label} {error}") from error
        if in_future and moment <= context.now:
            raise FieldError(f"{label} must be in the future")
        if after is not None:
            other_value = context.values.get(after)
            if isinstance(other_value, str):
                other_value = other_value.strip()
            try:
                other = parse_timestamp(other_value)
            except FieldError:
                other = None
            if other is None or moment <= other:
                raise FieldError(f"{label} must be after {after}")
        return format_timestamp(moment)

    return _validate
