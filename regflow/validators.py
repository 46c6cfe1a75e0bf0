"""
Field validators for the registration wizard.

Every validator is a pure function ``(value, session) -> Optional[str]``:
``None`` means the value is acceptable, a string is the message shown under
the field. Validators never raise on bad input and never mutate the session,
so they can be re-run on every keystroke.

The factories below build the concrete rules used by ``regflow.steps``.
"""
from __future__ import annotations

import re
from datetime import date
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from regflow.models.fields import (
    ChoiceValue,
    DateValue,
    FieldValue,
    MultiChoiceValue,
    PhotoListValue,
    TextValue,
)

if TYPE_CHECKING:
    from regflow.session import RegistrationSession

Validator = Callable[[FieldValue, "RegistrationSession"], Optional[str]]

# MM/DD/YYYY; month and day may be typed without the leading zero
_DISPLAY_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")

NAME_RE = re.compile(r"^[a-zA-Z\s\-']+$")
NICKNAME_RE = re.compile(r"^[a-zA-Z0-9_\s]+$")
PHONE_RE = re.compile(r"^[\d\s\-+()]*$")
EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")


# ── Date helpers ──────────────────────────────────────────────────────────────

def parse_display_date(text: str) -> Optional[date]:
    """
    Parse a MM/DD/YYYY string into a calendar date.

    Returns None for anything that is not a real date (13/01/1950,
    02/30/1950, free text …) instead of raising.
    """
    if not text:
        return None
    m = _DISPLAY_DATE_RE.match(text.strip())
    if not m:
        return None
    month, day, year = (int(part) for part in m.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def calculate_age(birth: Optional[date], today: date) -> Optional[int]:
    """
    Whole years between *birth* and *today*.

    One year less while today's month/day precedes the birthday's.
    Birth dates in the future yield None.
    """
    if birth is None:
        return None
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age if age >= 0 else None


def age_from_text(text: str, today: date) -> Optional[int]:
    return calculate_age(parse_display_date(text), today)


# ── Value accessors ───────────────────────────────────────────────────────────

def _text_of(value: FieldValue) -> str:
    if isinstance(value, (TextValue, DateValue)):
        return value.text.strip()
    if isinstance(value, ChoiceValue):
        return value.choice.strip()
    return ""


def _count_of(value: FieldValue) -> int:
    if isinstance(value, MultiChoiceValue):
        return len(value.items)
    if isinstance(value, PhotoListValue):
        return len(value.uris)
    return 0 if value.is_empty else 1


# ── Factories ─────────────────────────────────────────────────────────────────

def required(message: str = "Required") -> Validator:
    def _required(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        return message if value.is_empty else None
    return _required


def min_length(limit: int, message: str) -> Validator:
    """Skipped for empty values; pair with ``required`` when the field is mandatory."""
    def _min_length(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        text = _text_of(value)
        if text and len(text) < limit:
            return message
        return None
    return _min_length


def max_length(limit: int, message: str) -> Validator:
    def _max_length(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        return message if len(_text_of(value)) > limit else None
    return _max_length


def matches(pattern: re.Pattern[str], message: str) -> Validator:
    def _matches(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        text = _text_of(value)
        if text and not pattern.match(text):
            return message
        return None
    return _matches


def email_format(message: str = "Please enter a valid email address") -> Validator:
    return matches(EMAIL_RE, message)


def valid_date(message: str = "Please enter a valid date (MM/DD/YYYY)") -> Validator:
    def _valid_date(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        text = _text_of(value)
        if text and parse_display_date(text) is None:
            return message
        return None
    return _valid_date


def minimum_age(limit: int, message: str) -> Validator:
    """Unparsable dates are left to ``valid_date``."""
    def _minimum_age(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        text = _text_of(value)
        if not text or parse_display_date(text) is None:
            return None
        age = age_from_text(text, session.today())
        if age is None or age < limit:
            return message
        return None
    return _minimum_age


def maximum_age(limit: int, message: str = "Please enter a valid birth date") -> Validator:
    def _maximum_age(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        age = age_from_text(_text_of(value), session.today())
        if age is not None and age > limit:
            return message
        return None
    return _maximum_age


def min_selections(limit: int, message: str) -> Validator:
    # Always counts the current value, never a cached total
    def _min_selections(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        return message if _count_of(value) < limit else None
    return _min_selections


def max_items(limit: int, message: str) -> Validator:
    def _max_items(value: FieldValue, session: "RegistrationSession") -> Optional[str]:
        return message if _count_of(value) > limit else None
    return _max_items


# ── Runner ────────────────────────────────────────────────────────────────────

def run_validators(
    validators: Iterable[Validator],
    value: FieldValue,
    session: "RegistrationSession",
) -> Optional[str]:
    """Return the first failing message, in declaration order."""
    for validator in validators:
        error = validator(value, session)
        if error:
            return error
    return None
