"""
Conversion between the wizard's display dates and the backend's birthDate format.

Display  : MM/DD/YYYY as typed or picked (month/day may lack the leading zero)
Backend  : MM/DD/YYYY, always zero-padded

Profile snapshots may also carry ISO dates (YYYY-MM-DD); those are accepted
on the way in.
"""
from __future__ import annotations

import re
from datetime import date

from regflow.validators import parse_display_date

_ISO_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")


def format_backend_date(value: date) -> str:
    return f"{value.month:02d}/{value.day:02d}/{value.year:04d}"


def to_backend_date(display: str) -> str:
    """
    Zero-pad a display date for the backend: "2/8/1957" → "02/08/1957".

    Anything the birthday validator would reject is returned stripped but
    otherwise unchanged.
    """
    text = display.strip()
    parsed = parse_display_date(text)
    if parsed is None:
        return text
    return format_backend_date(parsed)


def from_backend_date(backend: str) -> str:
    """Backend (or ISO) date → display format; unknown shapes pass through."""
    text = backend.strip()
    iso = _ISO_DATE_RE.match(text)
    if iso:
        year, month, day = (int(part) for part in iso.groups())
        try:
            return format_backend_date(date(year, month, day))
        except ValueError:
            return text
    parsed = parse_display_date(text)
    if parsed is None:
        return text
    return format_backend_date(parsed)
