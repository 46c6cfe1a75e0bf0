"""
The in-memory state of one in-progress registration.

A session is created when Phase 1 completes (or seeded from the backend's
profile snapshot when an incomplete profile is resumed) and is owned by
exactly one ``WorkflowController``. Everything public here is read-only;
the underscore mutators are the controller's alone.
"""
from __future__ import annotations

import logging
from datetime import date
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterator, Mapping, Optional, Tuple

from regflow.models.fields import FieldKind, FieldValue, empty_value, make_value
from regflow.models.identity import Phase1Identity
from regflow.services.dates import from_backend_date
from regflow.steps import STEPS, FieldSpec, StepDefinition
from regflow.validators import age_from_text, run_validators

logger = logging.getLogger(__name__)

BIRTHDAY_FIELD = "birthday"

# Backend profile keys that differ from the form's field names
SNAPSHOT_ALIASES: Dict[str, str] = {
    "birthDate": "birthday",
    "profilePhotos": "photos",
}


class RegistrationError(Exception):
    """Programming error: unknown field, finished session, …"""


class RegistrationSession:
    """
    Field values, touched flags, error messages and the current step.

    Attributes
    ----------
    identity    : Phase-1 identity (None when Phase 1 never completed)
    values      : field name → tagged value
    touched     : field name → shown-errors flag
    errors      : field name → current message or None
    step_index  : 0-based position in ``steps``
    derived_age : age computed from ``birthday``; never set directly
    """

    def __init__(
        self,
        identity: Optional[Phase1Identity],
        steps: Tuple[StepDefinition, ...] = STEPS,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self._identity = identity
        self._steps = steps
        self._clock = clock
        self._specs: Dict[str, FieldSpec] = {
            spec.name: spec for step in steps for spec in step.fields
        }

        self._values: Dict[str, FieldValue] = {
            name: empty_value(spec.kind) for name, spec in self._specs.items()
        }
        self._touched: Dict[str, bool] = {name: False for name in self._specs}
        self._errors: Dict[str, Optional[str]] = {name: None for name in self._specs}

        self._step_index = 0
        self._dirty = False
        self._revision = 0
        self._submitted = False
        self._discarded = False

        for name in self._specs:
            self._errors[name] = self.validate_field(name)

    # ── Constructors ─────────────────────────────────────────────────────────

    @classmethod
    def create(
        cls,
        identity: Optional[Phase1Identity],
        steps: Tuple[StepDefinition, ...] = STEPS,
        clock: Callable[[], date] = date.today,
    ) -> "RegistrationSession":
        """Blank session right after account creation."""
        return cls(identity, steps=steps, clock=clock)

    @classmethod
    def from_snapshot(
        cls,
        identity: Optional[Phase1Identity],
        snapshot: Mapping[str, Any],
        steps: Tuple[StepDefinition, ...] = STEPS,
        clock: Callable[[], date] = date.today,
    ) -> "RegistrationSession":
        """
        Resume from the backend's current profile.

        Known keys are coerced into the field kinds, unknown keys ignored.
        The wizard restarts at the first step that does not fully validate.
        """
        session = cls(identity, steps=steps, clock=clock)
        for key, raw in snapshot.items():
            name = SNAPSHOT_ALIASES.get(key, key)
            spec = session._specs.get(name)
            if spec is None or raw is None:
                continue
            if spec.kind == FieldKind.MULTI and isinstance(raw, str):
                raw = raw.split(",")
            if spec.kind == FieldKind.DATE and isinstance(raw, str):
                raw = from_backend_date(raw)
            try:
                value = make_value(spec.kind, raw)
            except ValueError:
                logger.warning("Ignoring malformed snapshot field %s", name)
                continue
            session._store(name, value)
            if not value.is_empty:
                session._touched[name] = True

        for name in session._specs:
            session._errors[name] = session.validate_field(name)

        session._step_index = session.first_incomplete_step()
        session._dirty = False
        logger.info(
            "Session resumed for %s at step %d",
            identity.username if identity else "<no identity>",
            session._step_index,
        )
        return session

    # ── Read-only views ──────────────────────────────────────────────────────

    @property
    def identity(self) -> Optional[Phase1Identity]:
        return self._identity

    @property
    def steps(self) -> Tuple[StepDefinition, ...]:
        return self._steps

    @property
    def values(self) -> Mapping[str, FieldValue]:
        return MappingProxyType(self._values)

    @property
    def touched(self) -> Mapping[str, bool]:
        return MappingProxyType(self._touched)

    @property
    def errors(self) -> Mapping[str, Optional[str]]:
        return MappingProxyType(self._errors)

    @property
    def step_index(self) -> int:
        return self._step_index

    @property
    def current_step(self) -> StepDefinition:
        return self._steps[self._step_index]

    @property
    def derived_age(self) -> Optional[int]:
        """Age from the current birthday on the session clock's today."""
        if BIRTHDAY_FIELD not in self._values:
            return None
        return age_from_text(self._values[BIRTHDAY_FIELD].plain(), self.today())

    @property
    def dirty(self) -> bool:
        """True while there are edits not yet accepted by the backend."""
        return self._dirty

    @property
    def revision(self) -> int:
        """Bumped on every value change."""
        return self._revision

    @property
    def submitted(self) -> bool:
        return self._submitted

    @property
    def discarded(self) -> bool:
        return self._discarded

    @property
    def is_active(self) -> bool:
        return not (self._submitted or self._discarded)

    def today(self) -> date:
        return self._clock()

    def spec(self, name: str) -> FieldSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise RegistrationError(f"Unknown field: {name!r}") from None

    def value(self, name: str) -> FieldValue:
        self.spec(name)
        return self._values[name]

    def iter_fields(self) -> Iterator[FieldSpec]:
        return iter(self._specs.values())

    def validate_field(self, name: str) -> Optional[str]:
        """Run the field's validators against its current value (no state change)."""
        spec = self.spec(name)
        return run_validators(spec.validators, self._values[name], self)

    def dependents(self, name: str) -> Tuple[str, ...]:
        """Fields whose rules read *name* and must be re-checked when it changes."""
        return tuple(
            spec.name for spec in self._specs.values() if name in spec.derived_from
        )

    def visible_errors(self) -> Dict[str, str]:
        """Errors the UI should show: only for touched fields."""
        return {
            name: msg for name, msg in self._errors.items()
            if msg and self._touched[name]
        }

    def first_incomplete_step(self) -> int:
        for index, step in enumerate(self._steps):
            if any(self.validate_field(name) for name in step.field_names):
                return index
        return len(self._steps) - 1

    # ── Mutators (controller only) ───────────────────────────────────────────

    def _store(self, name: str, value: FieldValue) -> None:
        self._values[name] = value

    def _set_value(self, name: str, raw: Any) -> FieldValue:
        spec = self.spec(name)
        value = make_value(spec.kind, raw)
        self._store(name, value)
        self._dirty = True
        self._revision += 1
        return value

    def _refresh_error(self, name: str) -> Optional[str]:
        self._errors[name] = self.validate_field(name)
        return self._errors[name]

    def _touch(self, name: str) -> None:
        self.spec(name)
        self._touched[name] = True

    def _set_step(self, index: int) -> None:
        if not 0 <= index < len(self._steps):
            raise RegistrationError(f"Step index out of range: {index}")
        self._step_index = index

    def _mark_saved(self, revision: int) -> None:
        # Edits made while the save was in flight stay unsaved
        if revision == self._revision:
            self._dirty = False

    def _mark_submitted(self) -> None:
        self._submitted = True
        self._dirty = False

    def _discard(self) -> None:
        self._discarded = True
