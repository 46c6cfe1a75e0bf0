"""
Completion merge: Phase-1 identity + validated Phase-2 form → one flat payload.

Also builds the partial payloads persisting steps send to ``update_profile``.
Both share the same wire conventions:
  - birthday is sent as zero-padded ``birthDate``
  - multi-select ``hobby`` is a comma-separated string, other multi-selects are lists
  - e-mail always comes from the Phase-1 identity
"""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, Optional

from regflow.models.fields import MultiChoiceValue
from regflow.models.identity import Phase1Identity
from regflow.models.payload import CompletionPayload
from regflow.services.dates import to_backend_date
from regflow.steps import StepDefinition
from regflow.validators import age_from_text

if TYPE_CHECKING:
    from regflow.session import RegistrationSession

# Form field → backend key, where they differ
WIRE_NAMES: Dict[str, str] = {"birthday": "birthDate"}

# Multi-selects the backend stores as a single string
JOINED_FIELDS = ("hobby",)

# Phase-2 fields never sent: identity always wins
IDENTITY_FIELDS = ("email",)


class MissingIdentityError(Exception):
    """Phase 1 never completed: there is no account to attach the profile to."""


def _wire_value(session: "RegistrationSession", name: str) -> Any:
    value = session.value(name)
    if name == "birthday":
        return to_backend_date(value.plain())
    if name in JOINED_FIELDS and isinstance(value, MultiChoiceValue):
        return ", ".join(value.items)
    return value.plain()


def _optional(session: "RegistrationSession", name: str, default: Any = "") -> Any:
    """Wire value of *name*, or *default* when the session has no such field."""
    if not any(spec.name == name for spec in session.iter_fields()):
        return default
    return _wire_value(session, name)


def _identity_of(
    session: "RegistrationSession",
    identity: Optional[Phase1Identity],
) -> Phase1Identity:
    identity = identity or session.identity
    if identity is None:
        raise MissingIdentityError("Please complete account creation first.")
    return identity


def build_completion_payload(
    session: "RegistrationSession",
    identity: Optional[Phase1Identity] = None,
    min_age: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Merge the session with the Phase-1 identity into the final request body.

    Raises ``pydantic.ValidationError`` when the merged record fails the hard
    gate (empty required field, ineligible age …) and ``MissingIdentityError``
    when there is no identity. The session is not modified.
    """
    identity = _identity_of(session, identity)

    birthday = session.value("birthday").plain()
    age = age_from_text(birthday, session.today())

    data = {
        "firstName":   _optional(session, "firstName"),
        "lastName":    _optional(session, "lastName"),
        "middleName":  _optional(session, "middleName"),
        "nickName":    _optional(session, "nickName"),
        "address":     _optional(session, "address"),
        "phone":       _optional(session, "phone"),
        "email":       identity.email,
        "birthDate":   to_backend_date(birthday),
        "age":         age if age is not None else 0,
        "country":     _optional(session, "country"),
        "city":        _optional(session, "city"),
        "civilStatus": _optional(session, "civilStatus"),
        "hobby":       _optional(session, "hobby"),
        "bio":         _optional(session, "bio"),
        "interests":   _optional(session, "interests", []),
        "lookingFor":  _optional(session, "lookingFor", []),
    }

    context = {"min_age": min_age} if min_age is not None else None
    payload = CompletionPayload.model_validate(data, context=context)
    return payload.model_dump(mode="json")


def build_step_payload(
    session: "RegistrationSession",
    step: StepDefinition,
    identity: Optional[Phase1Identity] = None,
) -> Dict[str, Any]:
    """Partial update sent when a persisting step is submitted."""
    identity = _identity_of(session, identity)
    fields: Dict[str, Any] = {}
    for name in step.field_names:
        if name in IDENTITY_FIELDS:
            continue
        fields[WIRE_NAMES.get(name, name)] = _wire_value(session, name)

    if "birthday" in step.field_names:
        age = age_from_text(session.value("birthday").plain(), session.today())
        fields["age"] = age if age is not None else 0
    if "email" in step.field_names:
        fields["email"] = identity.email
    return fields


def canonical_json(payload: Dict[str, Any]) -> str:
    """Stable serialisation: same payload → same bytes."""
    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
