import re
import sys
from dataclasses import dataclass
from typing import Any
from tt.util.misc import TIMESTAMP_FORMAT, parse_timestamp

MAX_NAME_LENGTH = 100
MIN_NAME_LENGTH = 1
MAX_RATE = 10000

# Statement terminators, comments, and a quote followed by a DML/DDL keyword.
_SQL_INJECTION = re.compile(
    r"(';|'\s*(union|select|insert|update|delete|drop|create|alter|exec|execute)\s+|--|/\*|\*/)",
    re.IGNORECASE,
)
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]+")
_CANONICAL_TIMESTAMP = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")


# Outcome of every check below. `sanitized` is always usable, even when `valid` is False, so callers can
# prefill an edit field with the cleaned-up value.
@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None
    sanitized: Any


def validate_name(value, kind="Task"):
    """Validate a task, project or client name before it goes anywhere near SQL.

    Strips surrounding whitespace and control characters, enforces the
    1..100 length window and refuses anything shaped like an injection
    attempt. `kind` only changes the wording of the error message.
    """
    if not isinstance(value, str):
        return ValidationResult(False, f"{kind} name is required", "")

    cleaned = _CONTROL_CHARS.sub("", value).strip()
    if len(cleaned) < MIN_NAME_LENGTH:
        return ValidationResult(False, f"{kind} name cannot be empty", cleaned)
    if len(cleaned) > MAX_NAME_LENGTH:
        return ValidationResult(False, f"{kind} name too long (max {MAX_NAME_LENGTH} characters)",
                                cleaned[:MAX_NAME_LENGTH])
    if _SQL_INJECTION.search(cleaned):
        return ValidationResult(False, f"{kind} name contains potentially dangerous content",
                                _SQL_INJECTION.sub("", cleaned).strip())
    return ValidationResult(True, None, cleaned)


# Numeric check for ids and second counts. Floats are truncated, bools are refused (True is not a task id).
def validate_number(value, minimum=0, maximum=sys.maxsize):
    if isinstance(value, bool):
        return ValidationResult(False, "Value must be a number", minimum)
    try:
        number = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return ValidationResult(False, "Value must be a number", minimum)
    if number < minimum:
        return ValidationResult(False, f"Value must be at least {minimum}", minimum)
    if number > maximum:
        return ValidationResult(False, f"Value must not exceed {maximum}", maximum)
    return ValidationResult(True, None, number)


# Only the canonical storage format is accepted for writes; anything else must be normalized first.
def validate_timestamp(value):
    if not isinstance(value, str) or not _CANONICAL_TIMESTAMP.match(value):
        return ValidationResult(False, f"Timestamp must use the {TIMESTAMP_FORMAT} format", None)
    if parse_timestamp(value) is None:
        return ValidationResult(False, f"Timestamp '{value}' is not a real date", None)
    return ValidationResult(True, None, value)


# Hourly client rate, rounded to cents.
def validate_rate(value):
    if isinstance(value, bool):
        return ValidationResult(False, "Rate must be a number", 0.0)
    try:
        rate = float(value)
    except (TypeError, ValueError):
        return ValidationResult(False, "Rate must be a number", 0.0)
    if rate != rate:
        return ValidationResult(False, "Rate must be a number", 0.0)
    if rate < 0:
        return ValidationResult(False, "Rate cannot be negative", 0.0)
    if rate > MAX_RATE:
        return ValidationResult(False, f"Rate too high (max {MAX_RATE})", float(MAX_RATE))
    return ValidationResult(True, None, round(rate, 2))
