from regflow.models.fields import (
    FieldKind, FieldValue, FieldValueAdapter,
    TextValue, DateValue, ChoiceValue, MultiChoiceValue, PhotoListValue,
    make_value, empty_value,
)
from regflow.models.identity import Phase1Identity
from regflow.models.payload import CompletionPayload

__all__ = [
    "FieldKind", "FieldValue", "FieldValueAdapter",
    "TextValue", "DateValue", "ChoiceValue", "MultiChoiceValue", "PhotoListValue",
    "make_value", "empty_value",
    "Phase1Identity", "CompletionPayload",
]
