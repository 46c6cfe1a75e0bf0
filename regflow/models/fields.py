"""
Tagged field values for the registration form.

Every form field has a kind; the value stored in the session is the matching
model below, so validators and the completion merge always see a known shape
instead of loosely-typed strings and arrays.

Kinds
-----
text   — free text (names, phone, bio …)
date   — a date as the user edited it, display format MM/DD/YYYY
choice — single-select (city, civil status …)
multi  — multi-select (hobby, interests, looking for)
photos — ordered image references (URIs)
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Annotated, Any, Literal, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class FieldKind:
    TEXT   = "text"
    DATE   = "date"
    CHOICE = "choice"
    MULTI  = "multi"
    PHOTOS = "photos"

    ALL = (TEXT, DATE, CHOICE, MULTI, PHOTOS)


class _Value(BaseModel):
    model_config = ConfigDict(frozen=True)


class TextValue(_Value):
    kind: Literal["text"] = "text"
    text: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def plain(self) -> str:
        return self.text.strip()


class DateValue(_Value):
    kind: Literal["date"] = "date"
    text: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text.strip()

    def plain(self) -> str:
        return self.text.strip()


class ChoiceValue(_Value):
    kind: Literal["choice"] = "choice"
    choice: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.choice.strip()

    def plain(self) -> str:
        return self.choice.strip()


class MultiChoiceValue(_Value):
    kind: Literal["multi"] = "multi"
    items: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.items) == 0

    def plain(self) -> list[str]:
        return list(self.items)


class PhotoListValue(_Value):
    kind: Literal["photos"] = "photos"
    uris: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return len(self.uris) == 0

    def plain(self) -> list[str]:
        return list(self.uris)


FieldValue = Annotated[
    Union[TextValue, DateValue, ChoiceValue, MultiChoiceValue, PhotoListValue],
    Field(discriminator="kind"),
]

FieldValueAdapter: TypeAdapter[FieldValue] = TypeAdapter(FieldValue)


def _as_items(raw: Any) -> Tuple[str, ...]:
    """Normalise a string / iterable of strings into a tuple without blanks or duplicates."""
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if isinstance(raw, (Mapping, bytes)) or not isinstance(raw, Iterable):
        raise ValueError(f"Expected a string or a list of strings, got {type(raw).__name__}")
    items: list[str] = []
    for item in raw:
        item = str(item).strip()
        if item and item not in items:
            items.append(item)
    return tuple(items)


def empty_value(kind: str) -> FieldValue:
    return make_value(kind, None)


def make_value(kind: str, raw: Any) -> FieldValue:
    """
    Coerce raw presentation input into the tagged value for *kind*.

    An existing value of the right kind is returned unchanged; ``None`` yields
    the empty value; a bare string for a multi-select becomes a one-item
    selection.
    """
    if isinstance(raw, BaseModel):
        if getattr(raw, "kind", None) != kind:
            raise ValueError(f"Expected a {kind!r} value, got {raw.kind!r}")
        return raw

    if kind == FieldKind.TEXT:
        return TextValue(text="" if raw is None else str(raw))
    if kind == FieldKind.DATE:
        return DateValue(text="" if raw is None else str(raw).strip())
    if kind == FieldKind.CHOICE:
        return ChoiceValue(choice="" if raw is None else str(raw))
    if kind == FieldKind.MULTI:
        return MultiChoiceValue(items=_as_items(raw))
    if kind == FieldKind.PHOTOS:
        return PhotoListValue(uris=_as_items(raw))
    raise ValueError(f"Unknown field kind: {kind!r}")
